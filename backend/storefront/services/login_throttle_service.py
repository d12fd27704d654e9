"""
Login Throttling Service

Limits failed sign-in attempts per identifier (email, or the admin PIN per
client IP). After too many failures inside the window the identifier is
locked for LOCKOUT_DURATION.

- Tracks attempts in the login_attempts table
- A successful sign-in resets the count: only failures after the most
  recent success are considered
"""

from datetime import timedelta
from ..extensions import db
from ..models import LoginAttempt
from ..time_utils import utcnow


MAX_FAILED_ATTEMPTS = 10  # Lock after 10 failed attempts
LOCKOUT_WINDOW = timedelta(minutes=15)  # Within 15 minutes
LOCKOUT_DURATION = timedelta(minutes=15)  # Lockout for 15 minutes

PIN_MAX_FAILED_ATTEMPTS = 5


def pin_identifier(ip_address: str | None) -> str:
    return f"admin-pin:{ip_address or 'unknown'}"


def _normalize(identifier: str) -> str:
    return (identifier or "").strip().lower()


def _window_start(identifier: str):
    cutoff = utcnow() - LOCKOUT_WINDOW
    last_success = db.session.query(db.func.max(LoginAttempt.occurred_at)).filter(
        LoginAttempt.identifier == identifier,
        LoginAttempt.success.is_(True),
    ).scalar()
    if last_success is not None and last_success > cutoff:
        return last_success
    return cutoff


def get_recent_failed_attempts(identifier: str) -> int:
    """Count failures within LOCKOUT_WINDOW since the last successful sign-in."""
    identifier = _normalize(identifier)
    return db.session.query(LoginAttempt).filter(
        LoginAttempt.identifier == identifier,
        LoginAttempt.success.is_(False),
        LoginAttempt.occurred_at > _window_start(identifier),
    ).count()


def is_locked(identifier: str, max_attempts: int = MAX_FAILED_ATTEMPTS) -> tuple[bool, int | None]:
    """
    Returns:
    - (True, seconds_remaining) if locked
    - (False, None) if not locked
    """
    identifier = _normalize(identifier)
    if get_recent_failed_attempts(identifier) < max_attempts:
        return False, None

    most_recent = db.session.query(LoginAttempt).filter(
        LoginAttempt.identifier == identifier,
        LoginAttempt.success.is_(False),
    ).order_by(LoginAttempt.occurred_at.desc(), LoginAttempt.id.desc()).first()

    if most_recent:
        lockout_end = most_recent.occurred_at + LOCKOUT_DURATION
        now = utcnow()
        if now < lockout_end:
            return True, int((lockout_end - now).total_seconds())

    return False, None


def record_attempt(
    identifier: str,
    *,
    success: bool,
    user_id: int | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    reason: str | None = None,
) -> int:
    """Record an attempt; returns the number of recent failures after it."""
    db.session.add(LoginAttempt(
        identifier=_normalize(identifier),
        user_id=user_id,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    ))
    db.session.commit()
    return 0 if success else get_recent_failed_attempts(identifier)


def cleanup_old_attempts(retention_days: int = 30) -> int:
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(LoginAttempt).filter(
        LoginAttempt.occurred_at < cutoff
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
