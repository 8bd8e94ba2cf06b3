# logstore/exporter.py
"""
Export engine: one full scan of the store projected into every export shape.

Provides:
- build_bundle(records) -> ExportBundle (pure projection, no I/O)
- ExportEngine(store).export_all(deadline) -> ExportBundle
- export_filename_stamp(ts) -> "2025-01-01_10-00-00-000Z"

Bundle shapes:
- as_array: [{"id", "sessionId", "data", "createdAt"}] in scan order
- as_lines: the same projection as compact JSON lines (re-iterable)
- by_session: {sessionId: [{"id", "data", "createdAt"}]} keyed in order of first appearance
- statistics: ExportStatistics
"""
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Sequence

from logstore import monitoring
from logstore.deadline import Deadline
from logstore.errors import LogStoreError
from logstore.schemas import ExportStatistics, Record, encode_json, to_iso
from logstore.store import RecordStore


class NdjsonLines:
    """Line-delimited view of projected records; every iteration starts over."""

    def __init__(self, rows: Sequence[Dict[str, Any]]):
        self._rows = tuple(rows)

    def __iter__(self) -> Iterator[str]:
        for row in self._rows:
            yield encode_json(row)

    def __len__(self) -> int:
        return len(self._rows)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NdjsonLines):
            return NotImplemented
        return list(self) == list(other)


@dataclass(frozen=True)
class ExportBundle:
    as_array: List[Dict[str, Any]]
    as_lines: NdjsonLines
    by_session: Dict[str, List[Dict[str, Any]]]
    statistics: ExportStatistics
    exported_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc), compare=False)


def build_bundle(records: Sequence[Record]) -> ExportBundle:
    as_array: List[Dict[str, Any]] = []
    by_session: Dict[str, List[Dict[str, Any]]] = {}
    payload_bytes = 0

    for rec in records:
        as_array.append(rec.to_dict())
        by_session.setdefault(rec.session_id, []).append(rec.to_dict(include_session=False))
        payload_bytes += len(encode_json(rec.data).encode("utf-8"))

    oldest: Optional[datetime] = None
    newest: Optional[datetime] = None
    if records:
        oldest = min(r.created_at for r in records)
        newest = max(r.created_at for r in records)

    stats = ExportStatistics(
        total_records=len(records),
        unique_sessions=len(by_session),
        total_payload_bytes=payload_bytes,
        oldest=oldest,
        newest=newest,
    )
    return ExportBundle(
        as_array=as_array,
        as_lines=NdjsonLines(as_array),
        by_session=by_session,
        statistics=stats,
    )


def export_filename_stamp(ts: datetime) -> str:
    return to_iso(ts).replace(":", "-").replace(".", "-").replace("T", "_")


class ExportEngine:
    def __init__(self, store: RecordStore):
        self.store = store

    def export_all(self, deadline: Optional[Deadline] = None) -> ExportBundle:
        """Scan the store exactly once and derive every projection from that scan.

        Any store failure aborts the whole export; no partial bundle is returned.
        """
        start = time.time()
        try:
            records = self.store.scan_all(deadline=deadline)
        except LogStoreError as e:
            monitoring.observe_export(start, "fail")
            monitoring.logger.error("Export aborted", extra={"error": str(e)})
            raise
        bundle = build_bundle(records)
        monitoring.observe_export(start, "success", records=bundle.statistics.total_records)
        monitoring.logger.info(
            "Export built",
            extra={
                "total_records": bundle.statistics.total_records,
                "unique_sessions": bundle.statistics.unique_sessions,
            },
        )
        return bundle
