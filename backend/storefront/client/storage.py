# Overview: Device storage backends and the persisted store envelope.

# backend/storefront/client/storage.py
"""
Device storage for the client store.

The store slice is written under STORE_KEY as {"state": ..., "version": N}.
The user's email, full_name and phone are obfuscated (base64 over a
percent-encoded string). This hides them from casual inspection only; it is
not encryption.

Older envelopes are migrated on read. Anything unreadable falls back to the
logged-out defaults.
"""
from __future__ import annotations

import base64
import binascii
import copy
import json
import logging
import os
from pathlib import Path
from urllib.parse import quote, unquote


log = logging.getLogger(__name__)

STORE_KEY = "i1fashion-store"
STORE_VERSION = 2
SESSION_DURATION_MS = 7 * 24 * 60 * 60 * 1000

PII_FIELDS = ("email", "full_name", "phone")

DEFAULT_STATE = {
    "user": None,
    "is_authenticated": False,
    "session_expiry": None,
    "admin_user": None,
    "is_admin": False,
    "cart_items": [],
    "cart_count": 0,
    "cart_total": 0,
}


class MemoryStorage:
    """Process-local storage. Default for tests and scripts."""

    def __init__(self):
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()

    def keys(self) -> list[str]:
        return sorted(self._items)


class FileStorage:
    """
    One file per key inside `directory`.

    Keys are percent-quoted into file names, so any string is a valid key.
    clear() removes every key this storage has written.
    """

    SUFFIX = ".json"

    def __init__(self, directory):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}{self.SUFFIX}"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(value, encoding="utf-8")
        os.replace(tmp, path)

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def clear(self) -> None:
        for path in self.directory.glob(f"*{self.SUFFIX}"):
            path.unlink(missing_ok=True)

    def keys(self) -> list[str]:
        return sorted(unquote(p.name[: -len(self.SUFFIX)]) for p in self.directory.glob(f"*{self.SUFFIX}"))


def obfuscate(text: str) -> str:
    encoded = quote(text, safe="!~*'()")
    return base64.b64encode(encoded.encode("ascii")).decode("ascii")


def reveal(text: str) -> str:
    """Inverse of obfuscate(). Text that was never obfuscated comes back unchanged."""
    try:
        decoded = base64.b64decode(text.encode("ascii"), validate=True).decode("ascii")
    except (binascii.Error, UnicodeError):
        return text
    return unquote(decoded)


def _map_pii(user: dict | None, func) -> dict | None:
    if not user:
        return user
    out = dict(user)
    for field in PII_FIELDS:
        value = out.get(field)
        out[field] = func(value) if value else ""
    return out


def default_state() -> dict:
    return copy.deepcopy(DEFAULT_STATE)


def migrate(state: dict, version: int) -> dict:
    """Bring an older persisted slice up to STORE_VERSION."""
    if version < 2:
        state.setdefault("admin_user", None)
        state.setdefault("is_admin", False)
    return state


def load_persisted(storage) -> dict:
    """
    Read the persisted slice, or the defaults if there is none.

    Never raises: unreadable data is logged and ignored.
    """
    try:
        raw = storage.get_item(STORE_KEY)
        if raw is None:
            return default_state()

        envelope = json.loads(raw)
        state = envelope.get("state") or {}
        version = int(envelope.get("version", 0))
        if version > STORE_VERSION:
            log.warning("Persisted store version %s is newer than %s; ignoring it", version, STORE_VERSION)
            return default_state()

        state = migrate(state, version)
        state["user"] = _map_pii(state.get("user"), reveal)

        merged = default_state()
        merged.update({k: v for k, v in state.items() if k in DEFAULT_STATE})
        return merged
    except Exception:
        log.exception("Failed to read persisted store; starting logged out")
        return default_state()


def save_persisted(storage, state: dict) -> bool:
    """Write the persisted slice. Failures are logged and reported as False."""
    try:
        payload = {k: state.get(k) for k in DEFAULT_STATE}
        payload["user"] = _map_pii(payload.get("user"), obfuscate)
        storage.set_item(STORE_KEY, json.dumps({"state": payload, "version": STORE_VERSION}))
        return True
    except Exception:
        log.exception("Failed to persist store")
        return False
