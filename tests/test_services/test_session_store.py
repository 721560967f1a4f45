"""Tests for the write-through session store."""

import json

from autoquote.models.sessions import CallSession, SessionStatus, ShopSnapshot
from autoquote.services.session_store import JsonSessionStore


def _session(session_id: str, status: SessionStatus = SessionStatus.CALLING) -> CallSession:
    return CallSession(
        session_id=session_id,
        call_ids=["c-1"],
        shops=[ShopSnapshot(name="Alpha Auto", phone="+14085550001", address="1 First St")],
        damage_description="Dent",
        status=status,
    )


def test_persist_writes_full_snapshot(tmp_path):
    path = tmp_path / "call_sessions.json"
    store = JsonSessionStore(path, CallSession)
    store.persist("s-1", _session("s-1"))
    store.persist("s-2", _session("s-2"))

    data = json.loads(path.read_text())
    assert set(data) == {"s-1", "s-2"}
    assert data["s-1"]["sessionId"] == "s-1"
    assert data["s-1"]["callIds"] == ["c-1"]


def test_hydrates_from_file(tmp_path):
    path = tmp_path / "call_sessions.json"
    JsonSessionStore(path, CallSession).persist("s-1", _session("s-1", SessionStatus.COMPLETED))

    reopened = JsonSessionStore(path, CallSession)
    assert len(reopened) == 1
    assert reopened.load("s-1").status is SessionStatus.COMPLETED


def test_load_falls_back_to_file(tmp_path):
    path = tmp_path / "call_sessions.json"
    reader = JsonSessionStore(path, CallSession)
    JsonSessionStore(path, CallSession).persist("s-9", _session("s-9"))

    assert reader.load("s-9").session_id == "s-9"
    assert reader.load("missing") is None


def test_persist_overwrites_record(tmp_path):
    store = JsonSessionStore(tmp_path / "s.json", CallSession)
    store.persist("s-1", _session("s-1"))
    store.persist("s-1", _session("s-1", SessionStatus.FAILED))
    assert store.load_all()["s-1"].status is SessionStatus.FAILED


def test_flush_failure_is_logged_not_raised(tmp_path, caplog):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("")
    store = JsonSessionStore(blocker / "sessions.json", CallSession, name="broken")

    store.persist("s-1", _session("s-1"))

    assert store.load("s-1").session_id == "s-1"
    assert any("Session flush failed" in r.getMessage() for r in caplog.records)


def test_unreadable_records_are_skipped(tmp_path):
    path = tmp_path / "s.json"
    path.write_text(json.dumps({"bad": {"sessionId": 3}, "good": _session("good").to_json_dict()}))
    store = JsonSessionStore(path, CallSession)
    assert list(store.load_all()) == ["good"]
