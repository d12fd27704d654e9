# backend/storefront/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/storefront.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///storefront.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Admin dashboard PIN (exactly 4 digits)
    ADMIN_PIN = os.environ.get("ADMIN_PIN", "6300")

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    SESSION_TTL_DAYS = int(os.environ.get("SESSION_TTL_DAYS", "7"))
    OTP_TTL_MINUTES = int(os.environ.get("OTP_TTL_MINUTES", "10"))

    # Outbound mail (plain SMTP relay, e.g. Gmail with an app password)
    SMTP_HOST = os.environ.get("SMTP_HOST", "smtp.gmail.com")
    SMTP_PORT = int(os.environ.get("SMTP_PORT", "587"))
    SMTP_USER = os.environ.get("SMTP_USER") or os.environ.get("GMAIL_USER")
    SMTP_PASSWORD = os.environ.get("SMTP_PASS") or os.environ.get("GMAIL_APP_PASSWORD")
    SMTP_USE_TLS = _env_bool("SMTP_USE_TLS", True)
    MAIL_DEFAULT_SENDER = os.environ.get("MAIL_DEFAULT_SENDER") or SMTP_USER or "no-reply@i1fashion.com"
    # When suppressed, messages are appended to app.extensions["mail_outbox"] instead of sent
    MAIL_SUPPRESS_SEND = _env_bool("MAIL_SUPPRESS_SEND", SMTP_USER is None)
    MAIL_SEND_ASYNC = _env_bool("MAIL_SEND_ASYNC", True)

    SHOP_NAME = os.environ.get("SHOP_NAME", "i1Fashion")
    SUPPORT_EMAIL = os.environ.get("SUPPORT_EMAIL", "support@i1fashion.com")
    SHIPPING_COUNTRY = os.environ.get("SHIPPING_COUNTRY", "India")

    ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ).split(",")
        if origin.strip()
    }
