# Overview: Request authentication decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def require_auth(f):
    """
    Require a valid bearer session.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.current_admin: The active AdminUser record, or None
    - g.session_context: The full SessionContext object
    - g.session_token: The plaintext token (for logout)

    Returns 401 if the header is missing, the token is unknown, revoked or
    expired, or the account has been deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.current_admin = context.admin
        g.session_context = context
        g.session_token = token

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """
    Require an authenticated user with an active admin record.

    Applies require_auth itself, so routes only need this one decorator.
    """
    @wraps(f)
    def admin_check(*args, **kwargs):
        if not g.session_context.is_admin:
            return jsonify({"error": "Admin access required"}), 403
        return f(*args, **kwargs)

    return require_auth(admin_check)
