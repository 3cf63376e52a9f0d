# Overview: Flask API routes for receivables; parses input and returns JSON responses.

from flask import Blueprint, jsonify, g

from ..errors import PosError, error_response
from ..services import ledger_service
from ..decorators import require_principal


ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")


@ledger_bp.get("/receivables")
@require_principal
def receivables_route():
    """Own customers with a positive balance and the total outstanding."""
    try:
        return jsonify(ledger_service.receivables(g.principal_id)), 200
    except PosError as e:
        return error_response(e)
