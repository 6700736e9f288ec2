"""
Element Capture - Models

Pydantic models for capture requests and stitching options.
"""

from typing import List, Optional
from pydantic import BaseModel, Field, model_validator

from .config import defaults


class Rect(BaseModel):
    """Rectangle in viewport (CSS pixel) coordinates"""
    left: float
    top: float
    width: float = Field(..., ge=0)
    height: float = Field(..., ge=0)

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height


class Viewport(BaseModel):
    """Visible viewport size and device pixel scale"""
    width: float = Field(..., ge=0)
    height: float = Field(..., ge=0)
    device_pixel_ratio: float = Field(1.0, gt=0)


class CaptureTarget(BaseModel):
    """
    One capture request: where the target sits in the viewport and how far
    its scroll container can move.

    content_offset is the position of the crop target inside its scroll
    container. It is 0 when the target scrolls itself.
    """
    bounds: Rect
    viewport: Viewport
    client_extent: float = Field(..., ge=0)
    scroll_extent: float = Field(..., ge=0)
    scroll_offset: float = Field(0, ge=0)
    content_offset: float = Field(0, ge=0)

    @model_validator(mode="after")
    def _check_extents(self):
        if self.scroll_extent < self.client_extent:
            raise ValueError(
                f"scroll_extent ({self.scroll_extent}) must be >= client_extent ({self.client_extent})"
            )
        return self

    @property
    def scrollable_height(self) -> float:
        return self.scroll_extent - self.client_extent

    def default_max_overlap_height(self) -> int:
        """Largest duplicate band worth searching, in snapshot pixels"""
        height = round(self.client_extent * defaults.MAX_OVERLAP_RATIO * self.viewport.device_pixel_ratio)
        return max(1, height)


class StitchOptions(BaseModel):
    """Duplicate detection settings for the stitcher"""
    detect_duplicates: bool = defaults.DETECT_DUPLICATES
    max_overlap_height: int = Field(defaults.MAX_OVERLAP_HEIGHT, gt=0)
    match_tolerance_per_channel: int = Field(defaults.MATCH_TOLERANCE_PER_CHANNEL, ge=0, le=255)
    match_fraction_threshold: float = Field(defaults.MATCH_FRACTION_THRESHOLD, gt=0, le=1)

    class Config:
        json_schema_extra = {
            "example": {
                "detect_duplicates": True,
                "max_overlap_height": 240,
                "match_tolerance_per_channel": 5,
                "match_fraction_threshold": 0.95
            }
        }


class CropRegionModel(BaseModel):
    """Crop rectangle as received over the API (may be fractional)"""
    x: float = Field(..., ge=0)
    y: float = Field(..., ge=0)
    width: float = Field(..., ge=0)
    height: float = Field(..., ge=0)


class FramePayload(BaseModel):
    """One captured frame as sent to the stitch endpoint"""
    image: str = Field(..., description="PNG data URL or bare base64")
    crop_region: CropRegionModel
    scroll_top: float = 0
    frame_index: int = Field(..., ge=0)


class StitchRequest(BaseModel):
    frames: List[FramePayload] = Field(..., min_length=1)
    options: Optional[StitchOptions] = None
