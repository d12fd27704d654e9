# Overview: Flask API routes for email verification (OTP issue/check, account confirmation).

from flask import Blueprint, request, jsonify, current_app

from ..services import auth_service
from ..services.email_service import send_otp_email
from ..services.otp_service import get_otp_store, verify_otp, OtpError
from ..validation import is_valid_email


verification_bp = Blueprint("verification", __name__, url_prefix="/api")


@verification_bp.post("/send-otp")
def send_otp_route():
    """
    Issue a 6-digit code for {email} and email it.

    A new request replaces any pending code for the same address.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    if not email:
        return jsonify({"error": "Email is required"}), 400
    if not is_valid_email(email):
        return jsonify({"error": "Please enter a valid email"}), 400

    store = get_otp_store()
    try:
        otp = store.issue(email)
        send_otp_email(email.strip(), otp)
    except Exception:
        current_app.logger.exception("Failed to send OTP")
        return jsonify({"error": "Failed to send OTP"}), 500

    return jsonify({"success": True, "message": "OTP sent successfully"}), 200


@verification_bp.put("/send-otp")
def verify_otp_route():
    """Check {email, otp}. On success the code is consumed."""
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    otp = data.get("otp")
    if not email or not otp:
        return jsonify({"error": "Email and OTP are required"}), 400

    try:
        verify_otp(email, str(otp).strip())
    except OtpError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to verify OTP")
        return jsonify({"error": "Failed to verify OTP"}), 500

    return jsonify({"success": True, "message": "OTP verified successfully"}), 200


@verification_bp.post("/confirm-user")
def confirm_user_route():
    """
    Mark {email} as verified.

    Only allowed once per successful OTP check for that address.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    if not email:
        return jsonify({"error": "Email is required"}), 400

    if not get_otp_store().consume_verification(email):
        return jsonify({"error": "Email has not been verified with an OTP"}), 400

    try:
        user = auth_service.confirm_email(email)
    except Exception:
        current_app.logger.exception("Failed to confirm user")
        return jsonify({"error": "Failed to confirm user"}), 500

    if user is None:
        return jsonify({"error": "User not found"}), 404

    current_app.logger.info("Confirmed email for user %s", user.id)
    return jsonify({
        "success": True,
        "message": "User confirmed successfully",
        "user": user.to_dict(),
    }), 200
