# tests/test_session_id_validator.py
import uuid

import pytest

from logstore.errors import ValidationError
from logstore.validator import is_valid_session_id, require_post, validate_session_id

SAMPLE_ID = "550e8400-e29b-41d4-a716-446655440000"
HEX = "0123456789abcdef"


def _replace(s: str, idx: int, ch: str) -> str:
    return s[:idx] + ch + s[idx + 1:]


def test_generated_uuid4_values_pass():
    for _ in range(200):
        u = str(uuid.uuid4())
        assert is_valid_session_id(u), u
        assert is_valid_session_id(u.upper()), u


def test_sample_id_passes():
    assert is_valid_session_id(SAMPLE_ID)
    assert validate_session_id(SAMPLE_ID) == SAMPLE_ID


def test_wrong_version_nibble_fails():
    # position 14 is the version nibble
    for ch in HEX:
        if ch == "4":
            continue
        assert not is_valid_session_id(_replace(SAMPLE_ID, 14, ch)), ch


def test_wrong_variant_nibble_fails():
    # position 19 is the variant nibble
    for ch in HEX:
        candidate = _replace(SAMPLE_ID, 19, ch)
        assert is_valid_session_id(candidate) == (ch in "89ab"), ch


@pytest.mark.parametrize("candidate", [
    "",
    "not-a-uuid",
    SAMPLE_ID[:-1],
    SAMPLE_ID + "0",
    SAMPLE_ID.replace("-", ""),
    "550e8400e-29b-41d4-a716-446655440000",
    _replace(SAMPLE_ID, 0, "g"),
    _replace(SAMPLE_ID, 30, "z"),
    SAMPLE_ID + "\n",
    " " + SAMPLE_ID,
    str(uuid.uuid1()),
    "{" + SAMPLE_ID + "}",
])
def test_malformed_ids_fail(candidate):
    assert not is_valid_session_id(candidate)


def test_non_string_fails():
    assert not is_valid_session_id(None)
    assert not is_valid_session_id(uuid.uuid4())
    assert not is_valid_session_id(12345)


def test_validate_raises_validation_error():
    with pytest.raises(ValidationError) as exc:
        validate_session_id("not-a-uuid")
    assert exc.value.status_code == 400
    assert "Invalid session ID" in exc.value.message


@pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE", "HEAD"])
def test_require_post_rejects_other_methods(method):
    with pytest.raises(ValidationError) as exc:
        require_post(method)
    assert exc.value.status_code == 405
    assert exc.value.message == "Method not allowed. Only POST requests are accepted."


def test_require_post_accepts_post():
    assert require_post("POST") == "POST"
    assert require_post("post") == "post"
