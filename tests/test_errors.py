import json

import pytest

from element_capture.errors import (
    ERROR_HINTS,
    AssemblyInvariantViolation,
    ElementCaptureError,
    EmptyCropRegion,
    ErrorContext,
    FrameWidthMismatch,
    RateLimited,
    RateLimitExceeded,
    SnapshotFailure,
    classify_error,
    get_error_with_hint,
    get_user_friendly_message,
    handle_api_error,
    is_rate_limit_error,
)


def test_rate_limit_detection():
    assert is_rate_limit_error(RateLimited("slow down"))
    assert is_rate_limit_error(RuntimeError("exceeds the MAX_CAPTURE_VISIBLE_TAB_CALLS_PER_SECOND quota"))
    assert not is_rate_limit_error(RuntimeError("Cannot access a chrome:// URL"))


def test_classify_error():
    assert classify_error("Frame 2 width mismatch: expected 10px, got 9px") == "width_mismatch"
    assert classify_error("Target is outside the viewport at frame 3") == "empty_crop"
    assert classify_error("Failed to capture frame") == "snapshot_failed"
    assert classify_error("something else entirely") == ""


def test_error_with_hint_falls_back_to_default_message():
    info = get_error_with_hint("rate_limited")
    assert info["error"] == "Screenshot rate limit exceeded"
    assert info["hint"]
    assert get_error_with_hint("unknown")["error"] == "Unknown error"


def test_errors_carry_codes_and_details():
    error = RateLimitExceeded(frame_index=3, attempts=3)
    assert isinstance(error, ElementCaptureError)
    assert error.code == "RATE_LIMIT_EXCEEDED"
    assert error.details == {"frame_index": 3, "attempts": 3}
    assert EmptyCropRegion(1, 400).code == "EMPTY_CROP_REGION"
    assert AssemblyInvariantViolation("bad").details == {}


@pytest.mark.parametrize("error, status", [
    (FrameWidthMismatch(1, 10, 9), 400),
    (EmptyCropRegion(0, 0), 400),
    (ValueError("bad input"), 400),
    (RateLimitExceeded(0, 3), 429),
    (SnapshotFailure("boom"), 502),
    (AssemblyInvariantViolation("broken"), 500),
    (RuntimeError("unexpected"), 500),
])
def test_handle_api_error_status_codes(error, status):
    response = handle_api_error(error)
    assert response.status_code == status
    body = json.loads(response.body)
    assert body["success"] is False
    assert body["error"]["type"] == error.__class__.__name__


def test_user_friendly_messages():
    assert "wait" in get_user_friendly_message(RateLimitExceeded(0, 3))
    assert "unexpected" in get_user_friendly_message(KeyError("x"))


def test_error_context_wraps_foreign_exceptions():
    with pytest.raises(SnapshotFailure) as exc_info:
        with ErrorContext("decoding snapshot", raise_as=SnapshotFailure):
            raise OSError("truncated")
    assert "decoding snapshot" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, OSError)


def test_error_context_passes_capture_errors_through():
    with pytest.raises(FrameWidthMismatch):
        with ErrorContext("stitching"):
            raise FrameWidthMismatch(1, 2, 3)


def test_generic_too_many_errors_are_not_rate_limits():
    assert not is_rate_limit_error(OSError(24, "Too many open files"))
    # still gets the rate-limit hint when surfaced to a user
    assert classify_error("Too many requests") == "rate_limited"


def test_error_response_carries_hint_docs_and_user_message():
    body = json.loads(handle_api_error(RateLimitExceeded(2, 3)).body)

    assert body["error"]["hint"] == ERROR_HINTS["rate_limited"]["hint"]
    assert body["error"]["docs"] == ERROR_HINTS["rate_limited"]["docs"]
    assert body["error"]["user_message"] == get_user_friendly_message(RateLimitExceeded(2, 3))
