# Overview: In-process one-time-code store for email verification.

"""
OTP Service

Issues 6-digit codes keyed by email and verifies them once.

LIMITS: the store lives in process memory. Pending codes are lost on
restart and are not shared between server processes; a multi-instance
deployment needs an external expiring key-value store behind the same
interface.

FLOW:
1. issue(email)       -> new code, replaces any pending one, 10 minute TTL
2. verify(email, otp) -> on match the code is removed and the email is
                         marked verified for a short confirmation window
3. consume_verification(email) -> True once, used by account confirmation
"""

from __future__ import annotations

import secrets
import threading
import time
from dataclasses import dataclass

from flask import current_app


DEFAULT_TTL_SECONDS = 10 * 60
CONFIRMATION_WINDOW_SECONDS = 15 * 60

VERIFY_OK = "ok"
VERIFY_MISSING = "missing"
VERIFY_EXPIRED = "expired"
VERIFY_MISMATCH = "mismatch"

VERIFY_MESSAGES = {
    VERIFY_MISSING: "Invalid or expired OTP",
    VERIFY_EXPIRED: "OTP has expired",
    VERIFY_MISMATCH: "Invalid OTP",
}


@dataclass
class _Entry:
    otp: str
    expires: float


def generate_otp() -> str:
    """Six digits, 100000-999999."""
    return str(100000 + secrets.randbelow(900000))


class OtpStore:
    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock=time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._codes: dict[str, _Entry] = {}
        self._verified: dict[str, float] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(email: str) -> str:
        return email.strip().lower()

    def _sweep(self, now: float) -> None:
        for email in [e for e, entry in self._codes.items() if now > entry.expires]:
            del self._codes[email]
        for email in [e for e, until in self._verified.items() if now > until]:
            del self._verified[email]

    def issue(self, email: str) -> str:
        otp = generate_otp()
        with self._lock:
            now = self._clock()
            self._sweep(now)
            self._codes[self._key(email)] = _Entry(otp=otp, expires=now + self.ttl_seconds)
        return otp

    def verify(self, email: str, otp: str) -> str:
        """Return one of the VERIFY_* outcomes; only VERIFY_OK consumes the code."""
        key = self._key(email)
        with self._lock:
            now = self._clock()
            entry = self._codes.get(key)
            self._sweep(now)

            if entry is None:
                return VERIFY_MISSING
            if now > entry.expires:
                return VERIFY_EXPIRED
            if not secrets.compare_digest(entry.otp, str(otp)):
                return VERIFY_MISMATCH

            del self._codes[key]
            self._verified[key] = now + CONFIRMATION_WINDOW_SECONDS
            return VERIFY_OK

    def consume_verification(self, email: str) -> bool:
        key = self._key(email)
        with self._lock:
            self._sweep(self._clock())
            return self._verified.pop(key, None) is not None

    def pending_count(self) -> int:
        with self._lock:
            return len(self._codes)


def init_otp_store(app) -> OtpStore:
    store = OtpStore(ttl_seconds=app.config.get("OTP_TTL_MINUTES", 10) * 60)
    app.extensions["otp_store"] = store
    return store


def get_otp_store() -> OtpStore:
    return current_app.extensions["otp_store"]


class OtpError(Exception):
    """Verification failed; the message is safe to show to the user."""

    def __init__(self, outcome: str):
        super().__init__(VERIFY_MESSAGES.get(outcome, "Invalid OTP"))
        self.outcome = outcome


def verify_otp(email: str, otp: str) -> None:
    """Raise OtpError unless `otp` is the pending code for `email`."""
    outcome = get_otp_store().verify(email, otp)
    if outcome != VERIFY_OK:
        raise OtpError(outcome)
