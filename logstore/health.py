# logstore/health.py
import time
from typing import Optional

from logstore import monitoring
from logstore.deadline import Deadline
from logstore.schemas import HealthStatus
from logstore.store import RecordStore


class HealthReporter:
    """Reports store liveness and process uptime. check_health() never raises."""

    def __init__(self, store: RecordStore, check_timeout: Optional[float] = 5.0):
        self.store = store
        self.check_timeout = check_timeout
        self._started = time.monotonic()

    def uptime(self) -> float:
        return time.monotonic() - self._started

    def check_health(self) -> HealthStatus:
        try:
            available = bool(self.store.is_available(deadline=Deadline(self.check_timeout)))
        except Exception:
            monitoring.logger.exception("Health check raised")
            available = False
        monitoring.set_store_available(available)
        return HealthStatus(
            healthy=available,
            store_status="connected" if available else "disconnected",
            uptime_seconds=self.uptime(),
        )
