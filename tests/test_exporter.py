# tests/test_exporter.py
import json
import uuid
from datetime import datetime, timezone

import pytest

from logstore.errors import PersistenceError
from logstore.exporter import ExportEngine, build_bundle, export_filename_stamp
from logstore.ingestion import IngestionService
from logstore.schemas import encode_json
from logstore.store import RecordStore

SESSION = "550e8400-e29b-41d4-a716-446655440000"


@pytest.fixture
def store(tmp_path):
    s = RecordStore.from_url(f"sqlite:///{tmp_path / 'export.db'}")
    s.init_schema()
    yield s
    s.close()


def test_empty_store_export(store):
    bundle = ExportEngine(store).export_all()
    assert bundle.as_array == []
    assert list(bundle.as_lines) == []
    assert len(bundle.as_lines) == 0
    assert bundle.by_session == {}
    assert bundle.statistics.to_dict() == {
        "totalRecords": 0,
        "uniqueSessions": 0,
        "totalPayloadBytes": 0,
        "oldest": None,
        "newest": None,
    }


def test_login_logout_grouped_in_order(store):
    svc = IngestionService(store)
    svc.ingest(SESSION, {"event": "login"})
    svc.ingest(SESSION, {"event": "logout"})

    bundle = ExportEngine(store).export_all()
    entries = bundle.by_session[SESSION]
    assert [e["data"] for e in entries] == [{"event": "login"}, {"event": "logout"}]
    assert set(entries[0].keys()) == {"id", "data", "createdAt"}


def test_projection_shapes(store):
    rec = store.insert(SESSION, {"event": "login"})
    bundle = ExportEngine(store).export_all()

    assert bundle.as_array == [{
        "id": rec.id,
        "sessionId": SESSION,
        "data": {"event": "login"},
        "createdAt": rec.to_dict()["createdAt"],
    }]
    created = bundle.as_array[0]["createdAt"]
    assert created.endswith("Z")
    assert datetime.fromisoformat(created.replace("Z", "+00:00")) is not None


def test_grouping_covers_every_record(store):
    sessions = [str(uuid.uuid4()) for _ in range(3)]
    order = [0, 1, 0, 2, 1, 0, 2]
    for i, s in enumerate(order):
        store.insert(sessions[s], {"i": i})

    bundle = ExportEngine(store).export_all()

    # keys follow first appearance in the scan
    assert list(bundle.by_session.keys()) == sessions
    for rec in bundle.as_array:
        grouped_ids = [e["id"] for e in bundle.by_session[rec["sessionId"]]]
        assert rec["id"] in grouped_ids
    union = {e["id"] for entries in bundle.by_session.values() for e in entries}
    assert union == {r["id"] for r in bundle.as_array}
    # each session keeps chronological order
    assert [e["data"]["i"] for e in bundle.by_session[sessions[0]]] == [0, 2, 5]


def test_lines_are_restartable_and_match_array(store):
    for i in range(3):
        store.insert(SESSION, {"i": i, "text": "é"})
    bundle = ExportEngine(store).export_all()

    first = list(bundle.as_lines)
    second = list(bundle.as_lines)
    assert first == second
    assert len(bundle.as_lines) == 3
    assert [json.loads(line) for line in first] == bundle.as_array
    assert all("\n" not in line for line in first)


def test_statistics(store):
    a = str(uuid.uuid4())
    payloads = [{"event": "login"}, [1, 2, 3], "ünïcode"]
    recs = [store.insert(a, payloads[0]), store.insert(SESSION, payloads[1]), store.insert(a, payloads[2])]

    stats = ExportEngine(store).export_all().statistics
    assert stats.total_records == 3
    assert stats.unique_sessions == 2
    assert stats.total_payload_bytes == sum(len(encode_json(p).encode("utf-8")) for p in payloads)
    assert stats.oldest == recs[0].created_at
    assert stats.newest == recs[-1].created_at

    rendered = stats.render()
    assert "Total records: 3" in rendered
    assert "Unique sessions: 2" in rendered
    assert "Date range:" in rendered


def test_export_is_idempotent(store):
    for i in range(4):
        store.insert(str(uuid.uuid4()) if i % 2 else SESSION, {"i": i})
    engine = ExportEngine(store)
    first = engine.export_all()
    second = engine.export_all()
    assert first.as_array == second.as_array
    assert first.by_session == second.by_session
    assert first.statistics == second.statistics
    assert first == second


def test_export_scans_exactly_once(store, monkeypatch):
    store.insert(SESSION, {"event": "login"})
    calls = []
    original = store.scan_all

    def counting_scan(deadline=None):
        calls.append(deadline)
        return original(deadline=deadline)

    monkeypatch.setattr(store, "scan_all", counting_scan)
    ExportEngine(store).export_all()
    assert len(calls) == 1


def test_export_aborts_on_persistence_error(store, monkeypatch):
    def failing_scan(deadline=None):
        raise PersistenceError("connection reset")

    monkeypatch.setattr(store, "scan_all", failing_scan)
    with pytest.raises(PersistenceError):
        ExportEngine(store).export_all()


def test_build_bundle_without_store():
    bundle = build_bundle([])
    assert bundle.statistics.oldest is None and bundle.statistics.newest is None


def test_export_filename_stamp():
    ts = datetime(2025, 3, 4, 5, 6, 7, 890000, tzinfo=timezone.utc)
    assert export_filename_stamp(ts) == "2025-03-04_05-06-07-890Z"
