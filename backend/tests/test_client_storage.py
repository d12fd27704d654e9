"""
Device storage tests: backends, PII obfuscation, version migration and
fallback to defaults on unreadable data.
"""

import json

from storefront.client import storage as storage_mod
from storefront.client.storage import (
    FileStorage,
    MemoryStorage,
    STORE_KEY,
    STORE_VERSION,
    load_persisted,
    obfuscate,
    reveal,
    save_persisted,
)


def test_obfuscate_reveal_unicode():
    text = "Ananyā Rao <ananya+shop@example.in>"
    hidden = obfuscate(text)

    assert hidden != text
    assert reveal(hidden) == text


def test_reveal_keeps_plain_text():
    assert reveal("Plain Name") == "Plain Name"


def test_save_writes_versioned_envelope():
    storage = MemoryStorage()
    state = storage_mod.default_state()
    state["user"] = {"id": 1, "email": "a@b.co", "full_name": "A B", "phone": ""}
    save_persisted(storage, state)

    envelope = json.loads(storage.get_item(STORE_KEY))
    assert envelope["version"] == STORE_VERSION
    assert envelope["state"]["user"]["email"] != "a@b.co"
    assert envelope["state"]["cart_items"] == []


def test_version_1_payload_is_migrated():
    storage = MemoryStorage()
    storage.set_item(STORE_KEY, json.dumps({
        "state": {
            "user": {"id": 3, "email": obfuscate("old@example.com"), "full_name": "", "phone": ""},
            "is_authenticated": True,
            "session_expiry": 123,
            "cart_items": [],
            "cart_count": 0,
            "cart_total": 0,
        },
        "version": 1,
    }))

    state = load_persisted(storage)

    assert state["user"]["email"] == "old@example.com"
    assert state["admin_user"] is None
    assert state["is_admin"] is False
    assert state["session_expiry"] == 123


def test_corrupt_payload_falls_back_to_defaults(caplog):
    storage = MemoryStorage()
    storage.set_item(STORE_KEY, "{not json")

    state = load_persisted(storage)

    assert state["user"] is None
    assert state["is_authenticated"] is False
    assert state["cart_items"] == []
    assert "Failed to read persisted store" in caplog.text


def test_newer_version_is_ignored():
    storage = MemoryStorage()
    storage.set_item(STORE_KEY, json.dumps({"state": {"is_authenticated": True}, "version": STORE_VERSION + 1}))

    assert load_persisted(storage)["is_authenticated"] is False


def test_save_failure_is_reported_not_raised(monkeypatch):
    class BrokenStorage(MemoryStorage):
        def set_item(self, key, value):
            raise OSError("disk full")

    assert save_persisted(BrokenStorage(), storage_mod.default_state()) is False


def test_file_storage_round_trip_and_clear(tmp_path):
    storage = FileStorage(tmp_path / "device")
    storage.set_item(STORE_KEY, '{"state": {}, "version": 2}')
    storage.set_item("i1fashion-auth-token", "abc")

    assert storage.get_item("i1fashion-auth-token") == "abc"
    assert storage.keys() == ["i1fashion-auth-token", STORE_KEY]

    storage.remove_item("i1fashion-auth-token")
    assert storage.get_item("i1fashion-auth-token") is None

    storage.clear()
    assert storage.keys() == []
    assert storage.get_item(STORE_KEY) is None
