# logstore/validator.py
"""
Session identifier validation.

A session id must be the canonical text form of a version 4 UUID:
xxxxxxxx-xxxx-4xxx-Yxxx-xxxxxxxxxxxx where x is a hex digit and Y is one of
8, 9, a, b. Hex digits are accepted in either case.
"""

import re
from typing import Any

from logstore.errors import ValidationError

SESSION_ID_REGEX = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}",
    flags=re.I,
)

INVALID_SESSION_ID_MESSAGE = "Invalid session ID. Must be a valid UUID."
METHOD_NOT_ALLOWED_MESSAGE = "Method not allowed. Only POST requests are accepted."


def is_valid_session_id(candidate: Any) -> bool:
    if not isinstance(candidate, str):
        return False
    # fullmatch: "$" would also accept a trailing newline
    return SESSION_ID_REGEX.fullmatch(candidate) is not None


def validate_session_id(candidate: Any) -> str:
    """Return ``candidate`` unchanged or raise ValidationError."""
    if not is_valid_session_id(candidate):
        raise ValidationError(INVALID_SESSION_ID_MESSAGE)
    return candidate


def require_post(method: str) -> str:
    """Raise a 405 ValidationError unless ``method`` is POST."""
    if method.upper() != "POST":
        raise ValidationError(METHOD_NOT_ALLOWED_MESSAGE, status_code=405)
    return method
