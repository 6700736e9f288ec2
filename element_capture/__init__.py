"""
Element Capture

Long screenshots of scrollable page regions: schedule overlapping
viewport snapshots, crop them to the target, drop duplicated rows and
stitch the rest into one image.

Modules:
- geometry: Crop rectangle computation
- raster: RGBA pixel buffers (numpy / PIL)
- scheduler: Scroll + snapshot loop with retry/backoff
- overlap: Duplicate row detection between adjacent frames
- stitcher: Composite assembly
- pipeline: End-to-end orchestration (isolation, progress, cancellation)
"""

from .config import CaptureDefaults, defaults
from .errors import (
    ElementCaptureError,
    RateLimited,
    RateLimitExceeded,
    SnapshotFailure,
    EmptyCropRegion,
    FrameWidthMismatch,
    InvalidFrameSequence,
    AssemblyInvariantViolation,
)
from .models import Rect, Viewport, CaptureTarget, StitchOptions
from .geometry import CropRect, compute_crop_rect, clamp_crop_to_image
from .raster import RasterBuffer, to_raster
from .frames import FrameRecord, CompositeImage, CaptureStatus, ScheduleResult, CaptureResult
from .overlap import OverlapDetector
from .stitcher import ImageStitcher, stitch_frames
from .scheduler import CaptureScheduler, plan_scroll_offsets, describe_target
from .pipeline import ElementCapturePipeline, PipelineState

__all__ = [
    # Config
    'CaptureDefaults',
    'defaults',
    # Errors
    'ElementCaptureError',
    'RateLimited',
    'RateLimitExceeded',
    'SnapshotFailure',
    'EmptyCropRegion',
    'FrameWidthMismatch',
    'InvalidFrameSequence',
    'AssemblyInvariantViolation',
    # Models
    'Rect',
    'Viewport',
    'CaptureTarget',
    'StitchOptions',
    'CropRect',
    'RasterBuffer',
    'FrameRecord',
    'CompositeImage',
    'CaptureStatus',
    'ScheduleResult',
    'CaptureResult',
    # Geometry
    'compute_crop_rect',
    'clamp_crop_to_image',
    'to_raster',
    # Stitching
    'OverlapDetector',
    'ImageStitcher',
    'stitch_frames',
    # Scheduling
    'CaptureScheduler',
    'plan_scroll_offsets',
    'describe_target',
    'ElementCapturePipeline',
    'PipelineState',
]

__version__ = '0.1.0'
