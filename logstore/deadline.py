# logstore/deadline.py
"""Caller-supplied deadline / cancellation signal for store operations."""

import threading
import time
from typing import Optional

from logstore.errors import OperationCancelled


class Deadline:
    """Expires after ``timeout`` seconds or as soon as ``cancel_event`` is set.

    Both are optional; ``Deadline()`` never expires.
    """

    def __init__(self, timeout: Optional[float] = None, cancel_event: Optional[threading.Event] = None):
        self._expires_at = time.monotonic() + timeout if timeout is not None else None
        self._cancel_event = cancel_event

    def expired(self) -> bool:
        if self._cancel_event is not None and self._cancel_event.is_set():
            return True
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def check(self, operation: str) -> None:
        if self.expired():
            raise OperationCancelled(operation)


def check_deadline(deadline: Optional[Deadline], operation: str) -> None:
    if deadline is not None:
        deadline.check(operation)
