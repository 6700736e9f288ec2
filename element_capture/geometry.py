"""
Element Capture - Crop Geometry

Maps a target's viewport-relative bounds to the pixel-space rectangle
to cut out of a raw viewport snapshot.
"""

import math
from dataclasses import dataclass

from .models import Rect


@dataclass(frozen=True)
class CropRect:
    """Crop rectangle in snapshot pixel space"""
    x: int
    y: int
    width: int
    height: int

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def as_box(self) -> tuple:
        """(left, upper, right, lower) for PIL.Image.crop"""
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    @classmethod
    def from_floats(cls, x: float, y: float, width: float, height: float) -> "CropRect":
        """Round a fractional pixel rectangle the way the browser does"""
        return cls(_round_half_up(x), _round_half_up(y), _round_half_up(width), _round_half_up(height))


EMPTY_CROP = CropRect(0, 0, 0, 0)


def compute_crop_rect(
    target: Rect,
    viewport_width: float,
    viewport_height: float,
    device_pixel_ratio: float = 1.0,
) -> CropRect:
    """
    Visible part of target, scaled to snapshot pixels.

    Returns EMPTY_CROP when the target does not intersect the viewport;
    the caller must not request a snapshot for it.
    """
    visible_left = max(0.0, target.left)
    visible_top = max(0.0, target.top)
    visible_right = min(viewport_width, target.right)
    visible_bottom = min(viewport_height, target.bottom)

    visible_width = visible_right - visible_left
    visible_height = visible_bottom - visible_top

    if visible_width <= 0 or visible_height <= 0:
        return EMPTY_CROP

    d = device_pixel_ratio
    crop = CropRect.from_floats(
        visible_left * d,
        visible_top * d,
        visible_width * d,
        visible_height * d,
    )
    # sub-pixel slivers round to nothing
    return EMPTY_CROP if crop.is_empty else crop


def clamp_crop_to_image(crop: CropRect, image_width: int, image_height: int) -> CropRect:
    """Clip crop to [0, image_width) x [0, image_height)"""
    left = min(max(0, crop.x), image_width)
    top = min(max(0, crop.y), image_height)
    right = min(max(left, crop.x + crop.width), image_width)
    bottom = min(max(top, crop.y + crop.height), image_height)

    if right - left <= 0 or bottom - top <= 0:
        return EMPTY_CROP
    return CropRect(left, top, right - left, bottom - top)


def _round_half_up(value: float) -> int:
    # round() is banker's rounding; browsers round .5 up
    return int(math.floor(value + 0.5))
