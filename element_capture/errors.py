"""
Centralized Error Handling Module for Element Capture

Provides the capture error taxonomy, troubleshooting hints, and
consistent HTTP error responses for the stitch API.
"""

import logging
import traceback
from typing import Dict, Any, Optional
from fastapi import status
from fastapi.responses import JSONResponse

logger = logging.getLogger("element_capture")


# =============================================================================
# ERROR HINTS - User-friendly troubleshooting suggestions
# =============================================================================

ERROR_HINTS = {
    "rate_limited": {
        "message": "Screenshot rate limit exceeded",
        "hint": "The browser limits how often the visible tab can be captured. Wait a moment and retry, or capture a shorter region.",
        "docs": "/docs/rate-limits"
    },
    "snapshot_failed": {
        "message": "Failed to capture a viewport snapshot",
        "hint": "The tab may have been closed, navigated away, or lost focus during capture. Keep the tab in front and try again.",
        "docs": "/docs/snapshots"
    },
    "empty_crop": {
        "message": "Target region is outside the viewport",
        "hint": "The selected element scrolled out of view during capture. Check for layout shifts or lazy-loaded content above the element.",
        "docs": "/docs/geometry"
    },
    "width_mismatch": {
        "message": "Frames have different widths",
        "hint": "The element was resized during capture (window resize or zoom change). Keep the window size fixed while capturing.",
        "docs": "/docs/geometry"
    },
    "frame_order": {
        "message": "Frames are missing or out of order",
        "hint": "Send every captured frame with a contiguous frame_index starting at 0.",
        "docs": "/docs/stitch-api"
    },
    "assembly": {
        "message": "Failed to assemble the long image",
        "hint": "The captured frames are geometrically inconsistent. Re-run the capture.",
        "docs": "/docs/stitching"
    },
}


def get_error_with_hint(error_type: str, original_message: str = "") -> dict:
    """
    Get error message with troubleshooting hint.

    Args:
        error_type: Key from ERROR_HINTS dictionary
        original_message: Original error message to include

    Returns:
        Dict with error, hint, and optional docs link
    """
    hint_info = ERROR_HINTS.get(error_type, {})
    return {
        "error": original_message or hint_info.get("message", "Unknown error"),
        "hint": hint_info.get("hint", ""),
        "docs": hint_info.get("docs", "")
    }


def classify_error(error_message: str) -> str:
    """
    Classify an error message to determine the appropriate hint type.

    Returns:
        Error type key for ERROR_HINTS lookup, or "" when nothing matches
    """
    msg = error_message.lower()

    if "quota" in msg or "rate limit" in msg or "too many" in msg:
        return "rate_limited"
    if "width" in msg and ("mismatch" in msg or "differ" in msg):
        return "width_mismatch"
    if "crop" in msg or "off-viewport" in msg or "outside the viewport" in msg:
        return "empty_crop"
    if "frame_index" in msg or "out of order" in msg or "contiguous" in msg:
        return "frame_order"
    if "snapshot" in msg or "screenshot" in msg or "capture" in msg:
        return "snapshot_failed"
    if "assembl" in msg or "stitch" in msg:
        return "assembly"

    return ""


def is_rate_limit_error(error: Exception) -> bool:
    """True when an arbitrary snapshot error is the host's capture-quota signal"""
    if isinstance(error, RateLimited):
        return True
    # Only explicit quota wording; "too many ..." also covers host failures like EMFILE
    msg = str(error).lower()
    return "quota" in msg or "rate limit" in msg


class RateLimited(Exception):
    """Raised by a snapshot port when the host refuses a capture for quota reasons"""


class ElementCaptureError(Exception):
    """Base exception for all Element Capture errors"""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class RateLimitExceeded(ElementCaptureError):
    """Raised when a frame stays rate-limited after every retry"""

    def __init__(self, frame_index: int, attempts: int):
        super().__init__(
            f"Snapshot rate limit exceeded for frame {frame_index} after {attempts} attempts",
            code="RATE_LIMIT_EXCEEDED",
            details={"frame_index": frame_index, "attempts": attempts},
        )


class SnapshotFailure(ElementCaptureError):
    """Raised when the snapshot port fails for a reason other than rate limiting"""

    def __init__(self, message: str, frame_index: Optional[int] = None):
        super().__init__(
            message, code="SNAPSHOT_FAILURE", details={"frame_index": frame_index}
        )


class EmptyCropRegion(ElementCaptureError):
    """Raised when the target has no visible area in the viewport"""

    def __init__(self, frame_index: int, scroll_offset: float):
        super().__init__(
            f"Target is outside the viewport at frame {frame_index} (scroll offset {scroll_offset})",
            code="EMPTY_CROP_REGION",
            details={"frame_index": frame_index, "scroll_offset": scroll_offset},
        )


class FrameWidthMismatch(ElementCaptureError):
    """Raised when cropped frames do not share the same width"""

    def __init__(self, frame_index: int, expected: int, actual: int):
        super().__init__(
            f"Frame {frame_index} width mismatch: expected {expected}px, got {actual}px",
            code="FRAME_WIDTH_MISMATCH",
            details={"frame_index": frame_index, "expected": expected, "actual": actual},
        )


class InvalidFrameSequence(ElementCaptureError):
    """Raised when frame indices are not contiguous from 0"""

    def __init__(self, message: str, indices: Optional[list] = None):
        super().__init__(
            message, code="INVALID_FRAME_SEQUENCE", details={"indices": indices}
        )


class AssemblyInvariantViolation(ElementCaptureError):
    """Raised when the composite cannot be assembled consistently"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="ASSEMBLY_INVARIANT_VIOLATION", details=details)


def create_error_response(
    error: Exception,
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    include_traceback: bool = False,
) -> JSONResponse:
    """
    Create a standardized error response

    Args:
        error: The exception that occurred
        status_code: HTTP status code
        include_traceback: Include full traceback in response (debug only)

    Returns:
        JSONResponse with error details
    """
    error_response = {
        "success": False,
        "error": {"message": str(error), "type": error.__class__.__name__},
    }

    if isinstance(error, ElementCaptureError):
        error_response["error"]["code"] = error.code
        error_response["error"]["details"] = error.details

    hint_type = classify_error(str(error))
    if hint_type:
        hint_info = get_error_with_hint(hint_type, str(error))
        error_response["error"]["hint"] = hint_info["hint"]
        error_response["error"]["docs"] = hint_info["docs"]

    error_response["error"]["user_message"] = get_user_friendly_message(error)

    if include_traceback:
        error_response["error"]["traceback"] = traceback.format_exc()

    logger.error(f"{error.__class__.__name__}: {error}", exc_info=True)

    return JSONResponse(status_code=status_code, content=error_response)


def handle_api_error(error: Exception) -> JSONResponse:
    """
    Handle API errors with appropriate status codes

    Args:
        error: The exception to handle

    Returns:
        JSONResponse with appropriate status code
    """
    if isinstance(error, (FrameWidthMismatch, EmptyCropRegion, InvalidFrameSequence, ValueError)):
        return create_error_response(error, status.HTTP_400_BAD_REQUEST)

    elif isinstance(error, RateLimitExceeded):
        return create_error_response(error, status.HTTP_429_TOO_MANY_REQUESTS)

    elif isinstance(error, SnapshotFailure):
        return create_error_response(error, status.HTTP_502_BAD_GATEWAY)

    else:
        return create_error_response(error, status.HTTP_500_INTERNAL_SERVER_ERROR)


def get_user_friendly_message(error: Exception) -> str:
    """
    Get a user-friendly error message for frontend display
    """
    if isinstance(error, RateLimitExceeded):
        return "The browser refused further screenshots. Please wait a moment and try again."

    elif isinstance(error, SnapshotFailure):
        return "Failed to capture the page. Please keep the tab open and in front."

    elif isinstance(error, EmptyCropRegion):
        return "The selected element moved out of view during capture."

    elif isinstance(error, FrameWidthMismatch):
        return "The element changed size during capture. Please try again without resizing the window."

    elif isinstance(error, (AssemblyInvariantViolation, InvalidFrameSequence)):
        return f"Could not assemble the long screenshot: {error.message}"

    else:
        return f"An unexpected error occurred: {str(error)}"


# Context manager for error handling
class ErrorContext:
    """
    Context manager for error handling

    Usage:
        with ErrorContext("decoding snapshot", raise_as=SnapshotFailure):
            # code that might fail
            pass
    """

    def __init__(self, operation: str, raise_as: type = ElementCaptureError):
        self.operation = operation
        self.raise_as = raise_as

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            logger.error(f"Error during {self.operation}: {exc_val}", exc_info=True)
            if not isinstance(exc_val, ElementCaptureError):
                raise self.raise_as(f"Failed {self.operation}: {exc_val}") from exc_val
        return False  # Don't suppress exception
