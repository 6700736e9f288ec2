"""
Element Capture - Frame Records

Runtime records passed between the scheduler, the stitcher and the caller.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .geometry import CropRect
from .raster import RasterBuffer


@dataclass
class FrameRecord:
    """One viewport snapshot plus where to crop it"""
    snapshot: RasterBuffer
    crop: CropRect
    scroll_offset: float
    frame_index: int


@dataclass
class CompositeImage:
    """The assembled long image"""
    raster: RasterBuffer
    overlaps: List[int] = field(default_factory=list)

    @property
    def width(self) -> int:
        return self.raster.width

    @property
    def height(self) -> int:
        return self.raster.height

    def to_pil(self):
        return self.raster.to_pil()

    def to_png_bytes(self) -> bytes:
        return self.raster.to_png_bytes()


class CaptureStatus(str, Enum):
    """Terminal outcome of a capture that did not raise"""
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class ScheduleResult:
    """Frames produced by one scheduling pass"""
    status: CaptureStatus
    frames: List[FrameRecord]
    total_frames: int

    @property
    def cancelled(self) -> bool:
        return self.status == CaptureStatus.CANCELLED


@dataclass
class CaptureResult:
    """What the pipeline hands back to its caller"""
    status: CaptureStatus
    image: Optional[CompositeImage] = None
    frame_count: int = 0
    duration_ms: int = 0

    @property
    def cancelled(self) -> bool:
        return self.status == CaptureStatus.CANCELLED

    @property
    def metadata(self) -> dict:
        return {
            "status": self.status.value,
            "frame_count": self.frame_count,
            "duration_ms": self.duration_ms,
            "final_width": self.image.width if self.image else 0,
            "final_height": self.image.height if self.image else 0,
            "overlaps": list(self.image.overlaps) if self.image else [],
        }
