# Overview: Flask API routes for product categories; shared list, admin-managed.

from flask import Blueprint, request, jsonify, current_app

from ..errors import PosError, error_response
from ..services import catalog_service
from ..decorators import require_principal, require_role
from ..models.identity import ROLE_ADMIN


categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_principal
def list_categories_route():
    categories = catalog_service.list_categories()
    return jsonify({"items": [c.to_dict() for c in categories], "count": len(categories)}), 200


@categories_bp.post("")
@require_principal
@require_role(ROLE_ADMIN)
def create_category_route():
    data = request.get_json(silent=True) or {}
    try:
        category = catalog_service.create_category(data.get("name"))
        return jsonify(category.to_dict()), 201
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create category")
        return jsonify({"error": "Internal server error"}), 500
