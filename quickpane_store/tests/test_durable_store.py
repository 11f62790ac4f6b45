from __future__ import annotations

import gc
import json
import threading

import pytest

from quickpane_store.errors import RecordNotFound, ValidationError
from quickpane_store.preferences import PreferenceRecord
from quickpane_store.store import DurableStore
from quickpane_store.validation import Theme


def test_generic_keys_route_to_preferences_and_recovery(tmp_path):
    store = DurableStore(tmp_path)

    store.save("preferences", {"theme": "dark"})
    store.save("session-42", {"cursor": 17})

    assert store.load("preferences") == PreferenceRecord(theme=Theme.DARK)
    assert store.load("session-42") == {"cursor": 17}
    assert (tmp_path / "preferences.json").exists()
    assert (tmp_path / "recovery" / "session-42.json").exists()


def test_save_preferences_accepts_theme_strings_and_members(tmp_path):
    store = DurableStore(tmp_path)

    assert store.save_preferences("light").theme is Theme.LIGHT
    assert store.save_preferences(Theme.SYSTEM).theme is Theme.SYSTEM
    with pytest.raises(ValidationError):
        store.save_preferences("sepia")
    assert store.load_preferences().theme is Theme.SYSTEM


def test_limits_are_configurable(tmp_path):
    store = DurableStore(tmp_path, max_recovery_bytes=8, recovery_max_age_seconds=10, clock=lambda: 0.0)

    assert store.recovery.max_bytes == 8
    assert store.recovery.max_age_seconds == 10


def test_load_unknown_recovery_key(tmp_path):
    with pytest.raises(RecordNotFound):
        DurableStore(tmp_path).load_recovery("never-saved")


def test_concurrent_saves_to_one_key_leave_one_complete_payload(tmp_path):
    store = DurableStore(tmp_path)
    payloads = [{"writer": index, "body": [index] * 5000} for index in range(8)]
    errors = []
    start = threading.Barrier(len(payloads))

    def _writer(payload):
        try:
            start.wait()
            for _ in range(5):
                store.save_recovery("shared", payload)
        except Exception as exc:  # pragma: no cover - surfaced via assertion below
            errors.append(exc)

    threads = [threading.Thread(target=_writer, args=(payload,)) for payload in payloads]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert not errors
    on_disk = json.loads((tmp_path / "recovery" / "shared.json").read_text(encoding="utf-8"))
    assert on_disk in payloads


def test_writers_on_different_keys_do_not_block_each_other(tmp_path, monkeypatch):
    store = DurableStore(tmp_path)
    entered = threading.Event()
    release = threading.Event()
    original_save = store.recovery.save

    def _stalling_save(key, document):
        if key == "slow":
            entered.set()
            release.wait(5.0)
        return original_save(key, document)

    monkeypatch.setattr(store.recovery, "save", _stalling_save)
    slow = threading.Thread(target=store.save_recovery, args=("slow", {"n": 1}))
    slow.start()
    try:
        assert entered.wait(timeout=2.0)
        fast = threading.Thread(target=store.save_recovery, args=("fast", {"n": 2}))
        fast.start()
        fast.join(timeout=2.0)

        assert not fast.is_alive()
        assert store.load_recovery("fast") == {"n": 2}
        assert not (tmp_path / "recovery" / "slow.json").exists()
    finally:
        release.set()
        slow.join(timeout=5.0)
    assert store.load_recovery("slow") == {"n": 1}


def test_rejected_and_finished_writes_leave_no_lock_entries(tmp_path):
    store = DurableStore(tmp_path)

    for key in ("../etc/passwd", "a/b", "", "x" * 101):
        with pytest.raises(ValidationError):
            store.save_recovery(key, {})
    assert len(store._key_locks) == 0

    for index in range(50):
        store.save_recovery(f"draft-{index}", {"index": index})
    store.save_preferences("dark")
    gc.collect()

    assert len(store._key_locks) == 0


def test_generic_preferences_key_is_reserved_for_the_singleton(tmp_path):
    store = DurableStore(tmp_path)

    store.save("preferences", "light")
    store.save_recovery("preferences", {"draft": True})

    assert store.load("preferences") == PreferenceRecord(theme=Theme.LIGHT)
    assert store.load_recovery("preferences") == {"draft": True}
    assert (tmp_path / "recovery" / "preferences.json").exists()
