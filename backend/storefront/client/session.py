# Overview: Startup rehydration of the client store from a stored bearer token.

# backend/storefront/client/session.py
"""
Session rehydration.

At startup the client first drops an expired local session, then asks the
server who the stored token belongs to. A rejected token (401) clears the
local session. Network trouble keeps the cached state so the storefront
still works offline; the next successful call corrects it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from .api import ApiError


log = logging.getLogger(__name__)

EXPIRED = "expired"
ANONYMOUS = "anonymous"
AUTHENTICATED = "authenticated"
OFFLINE = "offline"


@dataclass
class RehydrateResult:
    status: str
    user: dict | None = None
    admin: dict | None = None


def merge_profile(user: dict, profile: dict | None) -> dict:
    """The store's user: account fields, with the profile's name and phone when set."""
    merged = dict(user)
    if profile:
        merged["full_name"] = profile.get("full_name") or merged.get("full_name") or ""
        merged["phone"] = profile.get("phone") or merged.get("phone") or ""
    return merged


def rehydrate(store, client) -> RehydrateResult:
    if not store.check_session_expiry():
        client.token = None
        return RehydrateResult(status=EXPIRED)

    if not client.token:
        if store.state.is_authenticated:
            store.clear_session()
        return RehydrateResult(status=ANONYMOUS)

    try:
        data = client.get_session()
    except ApiError as e:
        if e.status_code in (401, 403):
            log.info("Stored session rejected (%s); clearing local session", e.status_code)
            client.token = None
            store.clear_session()
            return RehydrateResult(status=ANONYMOUS)
        log.warning("Could not rehydrate session: %s", e)
        return RehydrateResult(status=OFFLINE, user=store.state.user, admin=store.state.admin_user)

    user = merge_profile(data["user"], data.get("profile"))
    admin = data.get("admin")
    store.set_user(user)
    store.set_admin_user(admin)
    return RehydrateResult(status=AUTHENTICATED, user=user, admin=admin)
