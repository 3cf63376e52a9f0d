from flask import Blueprint, jsonify, g, current_app

from ..decorators import require_principal
from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
@require_principal
def dashboard_route():
    try:
        summary = reporting_service.dashboard_summary(g.principal_id)
        summary["currency"] = current_app.config.get("CURRENCY_SYMBOL")
        return jsonify(summary), 200
    except Exception:
        current_app.logger.exception("Failed to build dashboard")
        return jsonify({"error": "Internal server error"}), 500
