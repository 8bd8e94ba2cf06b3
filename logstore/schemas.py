# logstore/schemas.py
import json
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict


def encode_json(value: Any) -> str:
    """Compact JSON text used for storage, NDJSON lines and payload sizing."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), allow_nan=False)


def as_utc(ts: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything we store is UTC
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def to_iso(ts: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision, e.g. 2025-01-01T10:00:00.000Z"""
    return as_utc(ts).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Record(BaseModel):
    """One immutable stored submission."""
    model_config = ConfigDict(frozen=True)

    id: str
    session_id: str
    data: Any = None
    created_at: datetime

    def to_dict(self, include_session: bool = True) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id}
        if include_session:
            out["sessionId"] = self.session_id
        out["data"] = self.data
        out["createdAt"] = to_iso(self.created_at)
        return out


class IngestResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    session_id: str
    created_at: datetime


class ExportStatistics(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_records: int = 0
    unique_sessions: int = 0
    total_payload_bytes: int = 0
    oldest: Optional[datetime] = None
    newest: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRecords": self.total_records,
            "uniqueSessions": self.unique_sessions,
            "totalPayloadBytes": self.total_payload_bytes,
            "oldest": to_iso(self.oldest) if self.oldest else None,
            "newest": to_iso(self.newest) if self.newest else None,
        }

    def render(self) -> str:
        lines = [
            "=== Statistics ===",
            f"Total records: {self.total_records}",
            f"Unique sessions: {self.unique_sessions}",
            f"Total data size: {self.total_payload_bytes / 1024 / 1024:.2f} MB",
        ]
        if self.oldest and self.newest:
            lines.append(f"Date range: {to_iso(self.oldest)} to {to_iso(self.newest)}")
        lines.append("==================")
        return "\n".join(lines)


class HealthStatus(BaseModel):
    healthy: bool
    store_status: Literal["connected", "disconnected"]
    uptime_seconds: float
