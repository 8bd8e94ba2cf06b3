# logstore/store.py
"""
Append-only record store over a single SQL table.

Records are only ever inserted and scanned; there is no update or delete path.
Every operation accepts an optional Deadline. Database failures surface as
PersistenceError with the driver exception chained, never retried here.
"""
import json
from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from logstore import db as dbmod
from logstore import monitoring
from logstore.deadline import Deadline, check_deadline
from logstore.errors import PersistenceError
from logstore.models import LogRecordRow
from logstore.schemas import Record, as_utc, encode_json


def _to_record(row: LogRecordRow) -> Record:
    return Record(
        id=str(row.id),
        session_id=row.session_id,
        data=json.loads(row.data_json),
        created_at=as_utc(row.created_at),
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecordStore:
    def __init__(self, engine: Engine, scan_batch_size: int = 500):
        self.engine = engine
        self.scan_batch_size = scan_batch_size
        self._session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    @classmethod
    def from_url(cls, url: Optional[str] = None, **kwargs) -> "RecordStore":
        return cls(dbmod.make_engine(url), **kwargs)

    # ---- lifecycle ------------------------------------------------------
    def init_schema(self) -> None:
        try:
            dbmod.init_db(self.engine)
        except SQLAlchemyError as e:
            raise PersistenceError(f"schema initialisation failed: {e}") from e

    def close(self) -> None:
        self.engine.dispose()

    def __enter__(self) -> "RecordStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---- writes ---------------------------------------------------------
    def insert(self, session_id: str, data: Any, deadline: Optional[Deadline] = None) -> Record:
        """Persist one record and return it with its assigned id and created_at.

        The row is committed in its own transaction. If the deadline expires
        before commit the transaction is rolled back and OperationCancelled is
        raised, so a record is either fully stored or not stored at all.

        created_at is stamped after the id is assigned and never precedes the
        newest stored timestamp, so id order and (created_at, id) order agree
        even if the wall clock steps backwards.
        """
        check_deadline(deadline, "insert")
        try:
            data_json = encode_json(data)
        except (TypeError, ValueError, RecursionError) as e:
            raise PersistenceError(f"payload cannot be encoded as JSON: {e}") from e

        row = LogRecordRow(
            session_id=session_id,
            data_json=data_json,
            created_at=_utcnow(),
        )
        try:
            with self._session_factory() as session, session.begin():
                session.add(row)
                # SQLite holds the write lock from here until commit
                session.flush()
                latest = session.scalar(
                    select(func.max(LogRecordRow.created_at)).where(LogRecordRow.id != row.id)
                )
                now = _utcnow()
                row.created_at = max(now, as_utc(latest)) if latest is not None else now
                session.flush()
                check_deadline(deadline, "insert")
        except SQLAlchemyError as e:
            monitoring.logger.error("Record insert failed", extra={"session_id": session_id, "error": str(e)})
            raise PersistenceError(f"insert failed: {e}") from e
        return _to_record(row)

    # ---- reads ----------------------------------------------------------
    def scan_all(self, deadline: Optional[Deadline] = None) -> List[Record]:
        """All records ordered by created_at, then id, read from one snapshot."""
        check_deadline(deadline, "scan")
        stmt = (
            select(LogRecordRow)
            .order_by(LogRecordRow.created_at, LogRecordRow.id)
            .execution_options(yield_per=self.scan_batch_size)
        )
        records: List[Record] = []
        try:
            with self._session_factory() as session:
                for row in session.scalars(stmt):
                    check_deadline(deadline, "scan")
                    records.append(_to_record(row))
        except SQLAlchemyError as e:
            monitoring.logger.error("Record scan failed", extra={"error": str(e)})
            raise PersistenceError(f"scan failed: {e}") from e
        except ValueError as e:
            raise PersistenceError(f"stored payload is not valid JSON: {e}") from e
        return records

    def count(self) -> int:
        try:
            with self._session_factory() as session:
                return session.scalar(select(func.count()).select_from(LogRecordRow))
        except SQLAlchemyError as e:
            raise PersistenceError(f"count failed: {e}") from e

    def is_available(self, deadline: Optional[Deadline] = None) -> bool:
        if deadline is not None and deadline.expired():
            return False
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            monitoring.logger.warning("Store liveness check failed", extra={"error": str(e)})
            return False
