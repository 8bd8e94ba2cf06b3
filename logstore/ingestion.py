# logstore/ingestion.py
from typing import Any, Optional

from logstore import monitoring
from logstore.deadline import Deadline
from logstore.errors import OperationCancelled, PersistenceError, ValidationError
from logstore.schemas import IngestResult
from logstore.store import RecordStore
from logstore.validator import validate_session_id


class IngestionService:
    """Validates a submission and writes it through to the record store."""

    def __init__(self, store: RecordStore):
        self.store = store

    def ingest(self, session_id: str, payload: Any, deadline: Optional[Deadline] = None) -> IngestResult:
        """
        Store ``payload`` under ``session_id``.

        Raises ValidationError for a malformed session id (nothing is written),
        PersistenceError if the store rejects the write and OperationCancelled
        if the deadline expires first.
        """
        try:
            validate_session_id(session_id)
        except ValidationError:
            monitoring.inc_ingest_failure("invalid_session_id")
            raise

        try:
            record = self.store.insert(session_id, payload, deadline=deadline)
        except OperationCancelled:
            monitoring.inc_ingest_failure("cancelled")
            raise
        except PersistenceError:
            monitoring.inc_ingest_failure("persistence")
            raise

        monitoring.inc_records_ingested()
        monitoring.logger.info("Record stored", extra={"record_id": record.id, "session_id": session_id})
        return IngestResult(id=record.id, session_id=record.session_id, created_at=record.created_at)
