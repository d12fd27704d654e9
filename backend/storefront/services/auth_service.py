# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Customer accounts use email + password (bcrypt). Registration creates an
unverified account plus its profile; the email is confirmed through the OTP
flow before login is allowed.

The admin dashboard is unlocked with a 4-digit PIN. A successful PIN login
maps to one static system administrator identity, created on first use.
"""

import hmac
import re
import secrets

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User, UserProfile, AdminUser, ADMIN_ROLES
from ..validation import ConflictError
from ..time_utils import utcnow


SYSTEM_ADMIN_EMAIL = "admin@i1fashion.com"
SYSTEM_ADMIN_NAME = "System Administrator"
SYSTEM_ADMIN_PERMISSIONS = {
    "products": True,
    "orders": True,
    "users": True,
    "analytics": True,
    "settings": True,
}

PIN_RE = re.compile(r"^\d{4}$")


class AuthError(Exception):
    """Raised when credentials are valid but the account may not sign in."""

    def __init__(self, message: str, status_code: int = 403):
        super().__init__(message)
        self.status_code = status_code


def hash_password(password: str) -> str:
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """bcrypt.checkpw is timing-safe; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def register_user(*, email: str, password: str, full_name: str, phone: str) -> User:
    """
    Create an unverified user and its profile.

    Raises ConflictError if the email is already registered.
    """
    email = email.strip().lower()
    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError("An account with this email already exists")

    user = User(
        email=email,
        password_hash=hash_password(password),
        full_name=full_name,
        phone=phone,
        email_verified=False,
        is_active=True,
    )
    db.session.add(user)
    db.session.flush()

    db.session.add(UserProfile(user_id=user.id, full_name=full_name, phone=phone))
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Return the user for valid credentials, None otherwise.

    Raises AuthError for a deactivated or unverified account so the caller can
    tell the user why they were refused.
    """
    user = db.session.query(User).filter_by(email=(email or "").strip().lower()).first()
    if not user or not verify_password(password or "", user.password_hash):
        return None

    if not user.is_active:
        raise AuthError("Account is deactivated")
    if not user.email_verified:
        raise AuthError("Please verify your email before signing in")

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def confirm_email(email: str) -> User | None:
    """Mark the account (and its profile) as email-verified. None if no such user."""
    user = db.session.query(User).filter_by(email=(email or "").strip().lower()).first()
    if not user:
        return None

    user.email_verified = True
    profile = user.profile
    if profile is None:
        profile = UserProfile(user_id=user.id, full_name=user.full_name, phone=user.phone)
        db.session.add(profile)
    profile.email_verified = True
    db.session.commit()
    return user


PROFILE_FIELDS = {"full_name", "phone", "address", "city", "state", "postal_code"}


def update_profile(user: User, patch: dict) -> UserProfile:
    """Apply a validated profile patch; name and phone are mirrored onto the user."""
    profile = user.profile
    if profile is None:
        profile = UserProfile(user_id=user.id)
        db.session.add(profile)

    for key, value in patch.items():
        if key in PROFILE_FIELDS:
            setattr(profile, key, value)
    if "full_name" in patch:
        user.full_name = patch["full_name"]
    if "phone" in patch:
        user.phone = patch["phone"]

    db.session.commit()
    return profile


def get_active_admin(user_id: int) -> AdminUser | None:
    return db.session.query(AdminUser).filter_by(user_id=user_id, is_active=True).first()


def verify_admin_pin(pin) -> bool:
    """Exact match against the configured 4-digit PIN."""
    configured = str(current_app.config.get("ADMIN_PIN", ""))
    if not isinstance(pin, str) or not PIN_RE.match(pin) or not PIN_RE.match(configured):
        return False
    return hmac.compare_digest(pin, configured)


def grant_admin(
    user: User,
    role: str = "admin",
    permissions: dict | None = None,
) -> AdminUser:
    if role not in ADMIN_ROLES:
        raise ValueError(f"role must be one of: {', '.join(sorted(ADMIN_ROLES))}")

    admin = db.session.query(AdminUser).filter_by(user_id=user.id).first()
    if admin is None:
        admin = AdminUser(user_id=user.id)
        db.session.add(admin)
    admin.role = role
    admin.permissions = dict(permissions if permissions is not None else SYSTEM_ADMIN_PERMISSIONS)
    admin.is_active = True
    db.session.commit()
    return admin


def get_or_create_system_admin() -> tuple[User, AdminUser]:
    """
    Return the static identity behind PIN login, creating it on first use.

    The account gets a random password: it can only be reached via the PIN.
    """
    user = db.session.query(User).filter_by(email=SYSTEM_ADMIN_EMAIL).first()
    if user is None:
        user = User(
            email=SYSTEM_ADMIN_EMAIL,
            password_hash=hash_password(secrets.token_urlsafe(32)),
            full_name=SYSTEM_ADMIN_NAME,
            phone="",
            email_verified=True,
            is_active=True,
        )
        db.session.add(user)
        db.session.flush()

    admin = db.session.query(AdminUser).filter_by(user_id=user.id).first()
    if admin is None or not admin.is_active or admin.role != "super_admin":
        admin = grant_admin(user, role="super_admin")

    now = utcnow()
    user.last_login_at = now
    admin.last_login_at = now
    db.session.commit()
    return user, admin
