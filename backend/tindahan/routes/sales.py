# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/tindahan/routes/sales.py
"""
Sales API routes

- POST /api/sales/checkout rings up a whole cart in one transaction
- history is cashier-scoped: cashiers see their own sales, admins see all
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import PosError, ValidationError, error_response
from ..services import checkout_service, sales_service
from ..decorators import require_principal
from ..validation import to_int


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("/checkout")
@require_principal
def checkout_route():
    """
    Check out a cart.

    Body:
    {
        "items": [{"product_id": 1, "quantity": 2}, ...],
        "payment_kind": "cash" | "credit",
        "cash_received": "100.00",          (cash)
        "customer_id": 7 | "customer_name": "Maria Santos"   (credit)
    }
    """
    data = request.get_json(silent=True)

    try:
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")

        customer = data.get("customer_id")
        if customer is None:
            customer = data.get("customer_name")
        else:
            customer = to_int(customer, "customer_id")

        sale = checkout_service.checkout(
            g.principal_id,
            data.get("items"),
            data.get("payment_kind"),
            cash_received=data.get("cash_received"),
            customer=customer,
        )
        return jsonify({"sale": sale.to_dict(include_lines=True, viewer_id=g.principal_id)}), 201

    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to check out sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_principal
def list_sales_route():
    """
    Query params:
    - since / until: ISO-8601, inclusive
    - payment_kind: cash | credit
    - limit: default 100, max 500
    """
    try:
        result = sales_service.list_sales(
            g.principal_id,
            since=request.args.get("since"),
            until=request.args.get("until"),
            limit=request.args.get("limit", default=100, type=int),
            payment_kind=request.args.get("payment_kind"),
        )
        return jsonify(result), 200
    except PosError as e:
        return error_response(e)


@sales_bp.get("/<int:sale_id>")
@require_principal
def get_sale_route(sale_id: int):
    try:
        return jsonify({"sale": sales_service.get_sale(g.principal_id, sale_id)}), 200
    except PosError as e:
        return error_response(e)
