# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/tindahan/routes/products.py
"""
Product management routes.

OWNERSHIP: every product operation is scoped to the acting principal
(g.principal_id, set by @require_principal). Foreign products answer 403,
absent ones 404.

owner_id is never accepted from the client: a payload naming another owner
is refused by the service, and stock_qty only changes through
/adjust-stock or a checkout.
"""
from flask import Blueprint, request, jsonify, g, current_app
from ..services import catalog_service
from ..models import Product
from ..errors import PosError, ValidationError, error_response
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    to_int,
)
from ..decorators import require_principal

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "category_id", "cost_price", "selling_price",
        "stock_qty", "min_stock_level", "barcode", "image_url",
    },
    required_on_create={"name", "selling_price"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _flag(name: str) -> bool:
    return request.args.get(name, "").lower() in ("1", "true", "yes")


@products_bp.get("")
@require_principal
def list_products_route():
    """
    List the principal's products.

    Query params:
    - low_stock: 1/true - only stock_qty <= min_stock_level
    - in_stock: 1/true - only stock_qty > 0
    - q: name search
    """
    result = catalog_service.list_products(
        g.principal_id,
        low_stock=_flag("low_stock"),
        in_stock=_flag("in_stock"),
        search=request.args.get("q"),
    )
    return jsonify(result), 200


@products_bp.post("")
@require_principal
def create_product_route():
    payload = request.get_json(silent=True) or {}
    requested_owner_id = payload.pop("owner_id", None) if isinstance(payload, dict) else None

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        product = catalog_service.create_product(g.principal_id, patch, requested_owner_id=requested_owner_id)
        return jsonify(product.to_dict()), 201
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
@require_principal
def get_product_route(product_id: int):
    try:
        product = catalog_service.get_product(g.principal_id, product_id)
        return jsonify(product.to_dict()), 200
    except PosError as e:
        return error_response(e)


@products_bp.patch("/<int:product_id>")
@require_principal
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        if isinstance(payload, dict) and "owner_id" in payload:
            raise ValidationError("Field not allowed: owner_id")
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        product = catalog_service.update_product(g.principal_id, product_id, patch)
        return jsonify(product.to_dict()), 200
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_principal
def delete_product_route(product_id: int):
    try:
        catalog_service.delete_product(g.principal_id, product_id)
        return jsonify({"deleted": True, "id": product_id}), 200
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/adjust-stock")
@require_principal
def adjust_stock_route(product_id: int):
    """
    Explicit stock change.

    Body: {"quantity_change": int (non-zero, may be negative), "reason": str}
    """
    data = request.get_json(silent=True) or {}

    try:
        if "quantity_change" not in data:
            raise ValidationError("quantity_change required")
        quantity_change = to_int(data["quantity_change"], "quantity_change")
        adjustment = catalog_service.adjust_stock(
            g.principal_id, product_id, quantity_change, reason=data.get("reason")
        )
        product = catalog_service.get_product(g.principal_id, product_id)
        return jsonify({"adjustment": adjustment.to_dict(), "product": product.to_dict()}), 201
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500
