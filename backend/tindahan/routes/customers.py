# Overview: Flask API routes for customers and their credit ledger; parses input and returns JSON responses.

"""
Customer and utang routes.

OWNERSHIP: customers and ledger entries are scoped to the acting principal.
Balances are never read from a column; every response recomputes them from
the ledger.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import PosError, ValidationError, error_response
from ..models import Customer
from ..services import customer_service, ledger_service
from ..validation import ModelValidationPolicy, validate_payload
from ..decorators import require_principal

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"full_name", "contact_number", "notes"},
    required_on_create={"full_name"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_principal
def list_customers_route():
    result = customer_service.list_customers(g.principal_id, search=request.args.get("q"))
    return jsonify(result), 200


@customers_bp.post("")
@require_principal
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    requested_owner_id = payload.pop("owner_id", None) if isinstance(payload, dict) else None

    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
        customer = customer_service.create_customer(g.principal_id, patch, requested_owner_id=requested_owner_id)
        return jsonify({**customer.to_dict(), "balance": "0.00"}), 201
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<int:customer_id>")
@require_principal
def get_customer_route(customer_id: int):
    try:
        return jsonify(customer_service.get_customer(g.principal_id, customer_id)), 200
    except PosError as e:
        return error_response(e)


@customers_bp.patch("/<int:customer_id>")
@require_principal
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
        customer_service.update_customer(g.principal_id, customer_id, patch)
        return jsonify(customer_service.get_customer(g.principal_id, customer_id)), 200
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<int:customer_id>/ledger")
@require_principal
def customer_ledger_route(customer_id: int):
    """Ledger history, newest first, with the derived balance."""
    try:
        entries = ledger_service.list_entries(g.principal_id, customer_id)
        balance = ledger_service.customer_balance(g.principal_id, customer_id)
        return jsonify({
            "customer_id": customer_id,
            "balance": f"{balance:.2f}",
            "items": [e.to_dict() for e in entries],
            "count": len(entries),
        }), 200
    except PosError as e:
        return error_response(e)


def _ledger_write(writer, customer_id: int, action: str):
    data = request.get_json(silent=True) or {}

    try:
        if "amount" not in data:
            raise ValidationError("amount required")
        entry = writer(g.principal_id, customer_id, data["amount"], note=data.get("note"))
        balance = ledger_service.customer_balance(g.principal_id, customer_id)
        return jsonify({"entry": entry.to_dict(), "balance": f"{balance:.2f}"}), 201
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record %s", action)
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.post("/<int:customer_id>/payments")
@require_principal
def record_payment_route(customer_id: int):
    """
    Record a payment.

    Body: {"amount": number|string, "note": str (optional)}
    422 invalid_amount when amount <= 0 or above the outstanding balance.
    """
    return _ledger_write(ledger_service.record_payment, customer_id, "payment")


@customers_bp.post("/<int:customer_id>/credits")
@require_principal
def record_credit_route(customer_id: int):
    """Manual charge not tied to a sale. Body as for payments."""
    return _ledger_write(ledger_service.record_credit, customer_id, "credit")
