"""
Element Capture - Default Configuration Constants

Centralized tuning values for capture scheduling and stitching.
Values can be overridden via environment variables prefixed with
ELEMENT_CAPTURE_ (e.g. ELEMENT_CAPTURE_SETTLE_DELAY_MS=100).

Usage:
    from element_capture.config import defaults
    backoff = defaults.RATE_LIMIT_BACKOFF_MS
"""

import os
from dataclasses import dataclass, fields

ENV_PREFIX = "ELEMENT_CAPTURE_"


@dataclass
class CaptureDefaults:
    """Capture pipeline default configuration."""

    # ==========================================================================
    # Scheduling
    # ==========================================================================
    SCROLL_OVERLAP_RATIO: float = 0.2  # 20% of the client extent is re-captured
    SETTLE_FRAMES: int = 2  # Rendered frames to wait after a scroll move
    SETTLE_DELAY_MS: int = 50  # Extra delay after the rendered frames
    ISOLATION_SETTLE_MS: int = 100  # Wait after hiding overlay elements

    # ==========================================================================
    # Snapshot retry policy
    # ==========================================================================
    MAX_SNAPSHOT_ATTEMPTS: int = 3
    RATE_LIMIT_BACKOFF_MS: int = 500

    # ==========================================================================
    # Duplicate detection
    # ==========================================================================
    DETECT_DUPLICATES: bool = True
    MAX_OVERLAP_HEIGHT: int = 200  # Used when no client extent is known
    MAX_OVERLAP_RATIO: float = 0.3  # Of the client extent, when orchestrating
    MATCH_TOLERANCE_PER_CHANNEL: int = 5
    MATCH_FRACTION_THRESHOLD: float = 0.95
    SAMPLE_COLUMNS: int = 100

    # ==========================================================================
    # Server
    # ==========================================================================
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    @classmethod
    def from_env(cls) -> "CaptureDefaults":
        """Build defaults, applying any ELEMENT_CAPTURE_* environment overrides"""
        overrides = {}
        for f in fields(cls):
            raw = os.getenv(f"{ENV_PREFIX}{f.name}")
            if raw is None:
                continue
            overrides[f.name] = _coerce(raw, f.type)
        return cls(**overrides)


def _coerce(raw: str, type_name):
    # dataclass field types are strings under postponed evaluation
    type_name = getattr(type_name, "__name__", type_name)
    if type_name == "bool":
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if type_name == "int":
        return int(raw)
    if type_name == "float":
        return float(raw)
    return raw


# Shared instance
defaults = CaptureDefaults.from_env()
