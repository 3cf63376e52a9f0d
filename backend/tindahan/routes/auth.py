# Overview: Flask API routes for the acting principal; role bootstrap, profile and PIN gate.

# backend/tindahan/routes/auth.py
"""
Principal API routes

The identity provider authenticates; every route here already has a
principal resolved from the bearer token by @require_principal.

- POST /api/auth/role: first call assigns a role (first principal admin,
  everyone after cashier); later calls return the same role
- GET /api/auth/me: profile, role and whether a product PIN is set
- POST /api/auth/verify-pin: yes/no answer for the product PIN gate
- POST /api/auth/logout: revoke the bearer token
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import PosError, error_response
from ..services import principal_service, role_service, session_service
from ..decorators import require_principal
from ..time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/role")
@require_principal
def ensure_role_route():
    try:
        role = role_service.ensure_role(g.principal_id)
        return jsonify({"principal_id": g.principal_id, "role": role}), 200
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to assign role")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_principal
def me_route():
    principal = g.principal
    return jsonify({
        "principal": principal.to_dict(),
        "role": role_service.get_role(principal.id),
        "session_expires_at": to_utc_z(g.session_context.session.expires_at),
    }), 200


@auth_bp.post("/verify-pin")
@require_principal
def verify_pin_route():
    """
    Check the product PIN before opening product add/edit screens.

    Always 200 with {"valid": bool}; the PIN itself is never echoed.
    """
    data = request.get_json(silent=True) or {}
    pin = data.get("pin")
    if pin is None:
        return jsonify({"error": "pin required"}), 400

    try:
        valid = principal_service.verify_pin(g.principal_id, str(pin))
    except PosError as e:
        return error_response(e)

    if not valid:
        current_app.logger.info("Product PIN rejected for principal %s", g.principal_id)
    return jsonify({"valid": valid}), 200


@auth_bp.post("/logout")
@require_principal
def logout_route():
    """Revoke the bearer token used for this request."""
    token = request.headers.get("Authorization", "").split(" ", 1)[1].strip()
    session_service.revoke_session(token)
    return jsonify({"revoked": True}), 200
