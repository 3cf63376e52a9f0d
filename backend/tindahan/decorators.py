# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .services import session_service, role_service


def _is_authenticated() -> bool:
    return hasattr(g, 'principal') and hasattr(g, 'principal_id')


def require_principal(f):
    """
    Require a bearer session token and establish the acting principal.

    Sets the following Flask g attributes:
    - g.principal: The authenticated Principal
    - g.principal_id: Its id, passed explicitly to every service call
    - g.session_context: The full SessionContext object

    Returns 401 if the Authorization header is missing or the token is
    invalid, expired or revoked.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1].strip()

        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.principal = context.principal
        g.principal_id = context.principal_id
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_role(role: str):
    """
    Require the acting principal to hold a role.

    Must be applied after @require_principal. A principal with no role yet
    (ensure_role never called) fails the check like any other mismatch.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            actual = role_service.get_role(g.principal_id)
            if actual != role:
                current_app.logger.warning(
                    "ROLE_DENIED principal=%s required=%s actual=%s path=%s",
                    g.principal_id, role, actual, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "code": "unauthorized",
                    "required_role": role,
                }), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator
