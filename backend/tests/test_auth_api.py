"""
Account tests: registration, OTP email verification, sign-in, sessions and
profile updates.
"""

import re

import pytest

from storefront.models import LoginAttempt, User
from storefront.services import session_service
from storefront.services.otp_service import (
    OtpStore,
    VERIFY_EXPIRED,
    VERIFY_MISMATCH,
    VERIFY_MISSING,
    VERIFY_OK,
)

from conftest import CUSTOMER_PASSWORD, auth_headers


NEW_ACCOUNT = {
    "email": "Arjun@Example.com",
    "password": "secret123",
    "confirm_password": "secret123",
    "full_name": "Arjun Mehta",
    "phone": "9000012345",
}


def otp_from(message) -> str:
    text = message.get_body(preferencelist=("plain",)).get_content()
    return re.search(r"\b(\d{6})\b", text).group(1)


# =============================================================================
# REGISTRATION + VERIFICATION
# =============================================================================


class TestRegistration:

    def test_register_creates_unverified_account(self, client, db_session):
        resp = client.post("/api/auth/register", json=NEW_ACCOUNT)

        assert resp.status_code == 201
        assert resp.json["user"]["email"] == "arjun@example.com"
        assert resp.json["user"]["email_verified"] is False

    def test_register_validation_errors(self, client, db_session):
        resp = client.post("/api/auth/register", json={
            "email": "bad", "password": "123", "confirm_password": "456", "full_name": "A", "phone": "12",
        })

        assert resp.status_code == 400
        assert set(resp.json["errors"]) == {"email", "password", "confirm_password", "full_name", "phone"}

    def test_duplicate_email_conflicts(self, client, customer):
        resp = client.post("/api/auth/register", json=dict(NEW_ACCOUNT, email="PRIYA@example.com"))
        assert resp.status_code == 409

    def test_unverified_account_cannot_sign_in(self, client, db_session):
        client.post("/api/auth/register", json=NEW_ACCOUNT)

        resp = client.post("/api/auth/login", json={"email": "arjun@example.com", "password": "secret123"})

        assert resp.status_code == 403

    def test_full_verification_flow(self, client, outbox, db_session):
        client.post("/api/auth/register", json=NEW_ACCOUNT)

        sent = client.post("/api/send-otp", json={"email": "arjun@example.com"})
        assert sent.status_code == 200
        assert sent.json["message"] == "OTP sent successfully"
        assert outbox[0]["Subject"] == "Verify Your Email - i1Fashion"

        verified = client.put("/api/send-otp", json={"email": "arjun@example.com", "otp": otp_from(outbox[0])})
        assert verified.status_code == 200
        assert verified.json["message"] == "OTP verified successfully"

        confirmed = client.post("/api/confirm-user", json={"email": "arjun@example.com"})
        assert confirmed.status_code == 200
        assert confirmed.json["user"]["email_verified"] is True

        login = client.post("/api/auth/login", json={"email": "arjun@example.com", "password": "secret123"})
        assert login.status_code == 200
        assert login.json["message"] == "Login successful"

    def test_confirm_requires_fresh_verification(self, client, outbox, db_session):
        client.post("/api/auth/register", json=NEW_ACCOUNT)
        assert client.post("/api/confirm-user", json={"email": "arjun@example.com"}).status_code == 400

        client.post("/api/send-otp", json={"email": "arjun@example.com"})
        client.put("/api/send-otp", json={"email": "arjun@example.com", "otp": otp_from(outbox[0])})

        assert client.post("/api/confirm-user", json={"email": "arjun@example.com"}).status_code == 200
        assert client.post("/api/confirm-user", json={"email": "arjun@example.com"}).status_code == 400

    def test_confirm_unknown_user(self, client, outbox, db_session):
        client.post("/api/send-otp", json={"email": "ghost@example.com"})
        client.put("/api/send-otp", json={"email": "ghost@example.com", "otp": otp_from(outbox[0])})

        resp = client.post("/api/confirm-user", json={"email": "ghost@example.com"})

        assert resp.status_code == 404
        assert resp.json["error"] == "User not found"

    def test_wrong_otp(self, client, outbox, db_session):
        client.post("/api/send-otp", json={"email": "arjun@example.com"})
        good = otp_from(outbox[0])
        wrong = "000000" if good != "000000" else "111111"

        resp = client.put("/api/send-otp", json={"email": "arjun@example.com", "otp": wrong})

        assert resp.status_code == 400

    @pytest.mark.parametrize("body,error", [
        ({}, "Email is required"),
        ({"email": "nope"}, "Please enter a valid email"),
    ])
    def test_send_otp_validation(self, client, db_session, body, error):
        resp = client.post("/api/send-otp", json=body)

        assert resp.status_code == 400
        assert resp.json["error"] == error

    def test_verify_requires_both_fields(self, client, db_session):
        resp = client.put("/api/send-otp", json={"email": "arjun@example.com"})
        assert resp.json["error"] == "Email and OTP are required"

    def test_send_failure_is_reported(self, client, db_session, monkeypatch):
        from storefront.routes import verification

        def smtp_down(email, otp):
            raise ConnectionRefusedError("smtp down")

        monkeypatch.setattr(verification, "send_otp_email", smtp_down)

        resp = client.post("/api/send-otp", json={"email": "arjun@example.com"})

        assert resp.status_code == 500
        assert resp.json["error"] == "Failed to send OTP"


class TestOtpStore:

    def test_outcomes(self):
        now = [1000.0]
        store = OtpStore(ttl_seconds=60, clock=lambda: now[0])

        assert store.verify("a@b.co", "123456") == VERIFY_MISSING

        otp = store.issue("A@B.co")
        assert len(otp) == 6 and otp.isdigit()
        assert store.verify("a@b.co", "x") == VERIFY_MISMATCH
        assert store.verify("a@b.co", otp) == VERIFY_OK
        # consumed
        assert store.verify("a@b.co", otp) == VERIFY_MISSING

    def test_expiry(self):
        now = [1000.0]
        store = OtpStore(ttl_seconds=60, clock=lambda: now[0])
        otp = store.issue("a@b.co")

        now[0] += 61

        assert store.verify("a@b.co", otp) == VERIFY_EXPIRED
        assert store.pending_count() == 0
        assert store.verify("a@b.co", otp) == VERIFY_MISSING

    def test_new_code_replaces_old(self):
        store = OtpStore()
        first = store.issue("a@b.co")
        second = store.issue("a@b.co")

        if first != second:
            assert store.verify("a@b.co", first) == VERIFY_MISMATCH
        assert store.verify("a@b.co", second) == VERIFY_OK


# =============================================================================
# SIGN-IN / SESSIONS
# =============================================================================


class TestLogin:

    def test_login_returns_session_payload(self, client, customer):
        resp = client.post("/api/auth/login", json={"email": "PRIYA@example.com", "password": CUSTOMER_PASSWORD})

        assert resp.status_code == 200
        assert resp.json["user"]["full_name"] == "Priya Sharma"
        assert resp.json["profile"]["phone"] == "9876543210"
        assert resp.json["admin"] is None
        assert resp.json["token"]

    def test_bad_password(self, client, db_session, customer):
        resp = client.post("/api/auth/login", json={"email": customer.email, "password": "wrong-pass"})

        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid email or password"
        assert db_session.query(LoginAttempt).filter_by(success=False).count() == 1

    def test_missing_fields(self, client, db_session):
        assert client.post("/api/auth/login", json={"email": "a@b.co"}).status_code == 400

    def test_lockout_after_repeated_failures(self, client, customer):
        for _ in range(10):
            client.post("/api/auth/login", json={"email": customer.email, "password": "wrong-pass"})

        resp = client.post("/api/auth/login", json={"email": customer.email, "password": CUSTOMER_PASSWORD})

        assert resp.status_code == 429

    def test_deactivated_account(self, client, db_session, customer):
        customer.is_active = False
        db_session.commit()

        resp = client.post("/api/auth/login", json={"email": customer.email, "password": CUSTOMER_PASSWORD})

        assert resp.status_code == 403

    def test_session_and_logout(self, client, customer):
        token = client.post(
            "/api/auth/login", json={"email": customer.email, "password": CUSTOMER_PASSWORD}
        ).json["token"]

        session = client.get("/api/auth/session", headers=auth_headers(token))
        assert session.status_code == 200
        assert session.json["user"]["id"] == customer.id
        assert session.json["session"]["expires_at"]

        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
        assert client.get("/api/auth/session", headers=auth_headers(token)).status_code == 401

    def test_unknown_token(self, client, db_session):
        assert client.get("/api/auth/session", headers=auth_headers("nope")).status_code == 401

    def test_tokens_are_stored_hashed(self, db_session, customer):
        session, token = session_service.create_session(user_id=customer.id)

        assert session.token_hash != token
        assert session.token_hash == session_service.hash_token(token)


class TestProfile:

    def test_update_profile_mirrors_name_and_phone(self, client, db_session, customer, customer_headers):
        resp = client.put("/api/profile", json={
            "full_name": "Priya S", "phone": "9111111111", "city": "Pune",
        }, headers=customer_headers)

        assert resp.status_code == 200
        assert resp.json["profile"]["city"] == "Pune"
        assert db_session.get(User, customer.id).full_name == "Priya S"

    def test_profile_validation(self, client, customer_headers):
        resp = client.put("/api/profile", json={"phone": "123"}, headers=customer_headers)
        assert resp.status_code == 400

    def test_profile_rejects_unknown_fields(self, client, customer_headers):
        resp = client.put("/api/profile", json={"email_verified": True}, headers=customer_headers)
        assert resp.status_code == 400
