# Overview: Flask API routes for customer accounts; parses input and returns JSON responses.

# backend/storefront/routes/auth.py
"""
Customer authentication and profile routes.

Sign-up flow:
1. POST /api/auth/register          -> unverified account + profile
2. POST /api/send-otp  {email}      -> code emailed
3. PUT  /api/send-otp  {email, otp} -> code checked
4. POST /api/confirm-user {email}   -> account verified
5. POST /api/auth/login             -> bearer token

SECURITY:
- Login throttling per email (login_throttle_service)
- Unverified and deactivated accounts cannot sign in
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services import login_throttle_service
from ..services.auth_service import AuthError
from ..validation import ValidationError, ConflictError, validate_registration
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api")


def session_payload(user, admin, token, session) -> dict:
    """Shape shared by customer and admin sign-in responses."""
    return {
        "user": user.to_dict(),
        "profile": user.profile.to_dict() if user.profile else None,
        "admin": admin.to_dict() if admin else None,
        "token": token,
        "session": session.to_dict(),
    }


@auth_bp.post("/auth/register")
def register_route():
    """Create an unverified account. The client continues with /api/send-otp."""
    try:
        cleaned = validate_registration(request.get_json(silent=True))
        user = auth_service.register_user(**cleaned)
        current_app.logger.info("Registered user %s", user.id)
        return jsonify({
            "user": user.to_dict(),
            "message": "Account created. Verify your email to continue.",
        }), 201

    except ValidationError as e:
        return jsonify({"error": str(e), "errors": e.errors}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/auth/login")
def login_route():
    """
    Authenticate by email and password and create a session token.

    Returns user, profile, admin record (or null) and the token.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = (data.get("email") or "").strip().lower()
        password = data.get("password")

        if not email or not password:
            return jsonify({"error": "email and password required"}), 400

        user_agent = request.headers.get("User-Agent")
        ip_address = request.remote_addr

        locked, seconds_remaining = login_throttle_service.is_locked(email)
        if locked:
            return jsonify({
                "error": "Account temporarily locked due to too many failed login attempts",
                "locked": True,
                "retry_after_seconds": seconds_remaining,
            }), 429

        try:
            user = auth_service.authenticate(email, password)
        except AuthError as e:
            return jsonify({"error": str(e)}), e.status_code

        if not user:
            login_throttle_service.record_attempt(
                email,
                success=False,
                ip_address=ip_address,
                user_agent=user_agent,
                reason="Invalid credentials",
            )
            return jsonify({"error": "Invalid email or password"}), 401

        login_throttle_service.record_attempt(
            email, success=True, user_id=user.id, ip_address=ip_address, user_agent=user_agent
        )
        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=user_agent,
            ip_address=ip_address,
        )
        admin = auth_service.get_active_admin(user.id)

        payload = session_payload(user, admin, token, session)
        payload["message"] = "Login successful"
        return jsonify(payload), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/auth/logout")
@require_auth
def logout_route():
    """Revoke the caller's session token."""
    try:
        session_service.revoke_session(g.session_token, reason="User logout")
        return jsonify({"message": "Logout successful"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/auth/session")
@require_auth
def session_route():
    """
    Current identity for a stored token.

    Used by the client at startup to rehydrate the store: user, profile,
    admin record and the server-side expiry.
    """
    context = g.session_context
    return jsonify({
        "user": context.user.to_dict(),
        "profile": context.user.profile.to_dict() if context.user.profile else None,
        "admin": context.admin.to_dict() if context.admin else None,
        "session": context.session.to_dict(),
    }), 200


@auth_bp.get("/profile")
@require_auth
def get_profile_route():
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "profile": user.profile.to_dict() if user.profile else None,
    }), 200


@auth_bp.put("/profile")
@require_auth
def update_profile_route():
    """
    Update profile fields: full_name, phone, address, city, state, postal_code.

    Unknown fields are rejected; provided strings are stripped.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify({"error": "No profile fields provided"}), 400

    unknown = sorted(set(data) - auth_service.PROFILE_FIELDS)
    if unknown:
        return jsonify({"error": f"Field not allowed: {', '.join(unknown)}"}), 400

    patch = {}
    for key, value in data.items():
        if value is not None and not isinstance(value, str):
            return jsonify({"error": f"{key} must be a string"}), 400
        patch[key] = value.strip() if isinstance(value, str) else None

    if "full_name" in patch and len(patch["full_name"] or "") < 2:
        return jsonify({"error": "Name must be at least 2 characters"}), 400
    if "phone" in patch and len(patch["phone"] or "") < 10:
        return jsonify({"error": "Phone number must be at least 10 digits"}), 400

    try:
        profile = auth_service.update_profile(g.current_user, patch)
        return jsonify({
            "user": g.current_user.to_dict(),
            "profile": profile.to_dict(),
            "message": "Profile updated successfully",
        }), 200
    except Exception:
        current_app.logger.exception("Failed to update profile for user %s", g.current_user.id)
        return jsonify({"error": "Internal server error"}), 500
