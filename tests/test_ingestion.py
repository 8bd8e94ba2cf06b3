# tests/test_ingestion.py
import pytest

from logstore.errors import PersistenceError, ValidationError
from logstore.ingestion import IngestionService
from logstore.store import RecordStore

SESSION = "550e8400-e29b-41d4-a716-446655440000"


class NoTouchStore:
    """Fails the test if the service reaches the store."""

    def insert(self, *args, **kwargs):
        raise AssertionError("store must not be called for invalid input")


class BrokenStore:
    def insert(self, session_id, data, deadline=None):
        raise PersistenceError("disk full")


@pytest.fixture
def store(tmp_path):
    s = RecordStore.from_url(f"sqlite:///{tmp_path / 'ingest.db'}")
    s.init_schema()
    yield s
    s.close()


def test_ingest_returns_assigned_id_and_timestamp(store):
    svc = IngestionService(store)
    result = svc.ingest(SESSION, {"event": "login"})

    assert result.session_id == SESSION
    assert result.id
    assert result.created_at.tzinfo is not None

    records = store.scan_all()
    assert len(records) == 1
    assert records[0].id == result.id
    assert records[0].created_at == result.created_at
    assert records[0].data == {"event": "login"}


def test_sessions_are_created_implicitly(store):
    svc = IngestionService(store)
    a = "9b2f8c1e-3d4a-4f6b-8c7d-1e2f3a4b5c6d"
    b = "0f1e2d3c-4b5a-4968-a7b6-c5d4e3f2a1b0"
    svc.ingest(a, {"n": 1})
    svc.ingest(b, {"n": 2})
    svc.ingest(a, {"n": 3})
    assert [r.session_id for r in store.scan_all()] == [a, b, a]


@pytest.mark.parametrize("bad_id", ["not-a-uuid", "", "550e8400-e29b-11d4-a716-446655440000"])
def test_invalid_session_id_never_reaches_store(bad_id):
    svc = IngestionService(NoTouchStore())
    with pytest.raises(ValidationError):
        svc.ingest(bad_id, {"event": "login"})


def test_persistence_error_is_surfaced():
    svc = IngestionService(BrokenStore())
    with pytest.raises(PersistenceError):
        svc.ingest(SESSION, {"event": "login"})
