"""
Element Capture - Image Stitcher
Crops each captured frame to the target region, trims rows duplicated
across frame boundaries, and concatenates the rest top to bottom.
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

from .errors import AssemblyInvariantViolation, FrameWidthMismatch
from .frames import CompositeImage, FrameRecord
from .models import StitchOptions
from .overlap import OverlapDetector
from .raster import CHANNELS, RasterBuffer

logger = logging.getLogger(__name__)


class ImageStitcher:
    """
    Assembles ordered FrameRecords into one CompositeImage.

    Frames are used strictly in the order given; the stitcher never
    reorders or skips them.
    """

    def __init__(self, options: Optional[StitchOptions] = None):
        self.options = options or StitchOptions()
        self.detector = OverlapDetector(
            tolerance=self.options.match_tolerance_per_channel,
            threshold=self.options.match_fraction_threshold,
        )

    def crop_frames(self, frames: Sequence[FrameRecord]) -> List[RasterBuffer]:
        """Cut every snapshot down to its crop rectangle; all results must share width"""
        cropped = []
        shared_width = None

        for i, frame in enumerate(frames):
            if frame.crop.is_empty:
                raise AssemblyInvariantViolation(
                    f"Frame {frame.frame_index} has an empty crop region",
                    details={"frame_index": frame.frame_index},
                )
            try:
                raster = frame.snapshot.crop(frame.crop)
            except ValueError as e:
                raise AssemblyInvariantViolation(
                    f"Frame {frame.frame_index}: {e}",
                    details={"frame_index": frame.frame_index},
                ) from e

            if shared_width is None:
                shared_width = raster.width
            elif raster.width != shared_width:
                raise FrameWidthMismatch(frame.frame_index, shared_width, raster.width)

            logger.debug(f"  Frame {i}: crop {frame.crop} -> {raster.width}x{raster.height}")
            cropped.append(raster)

        return cropped

    def compute_overlaps(self, cropped: Sequence[RasterBuffer]) -> List[int]:
        """overlap[i] = duplicated rows at the top of frame i; overlap[0] is always 0"""
        overlaps = [0]
        for i in range(1, len(cropped)):
            if self.options.detect_duplicates:
                overlap = self.detector.detect(
                    cropped[i - 1], cropped[i], self.options.max_overlap_height
                )
            else:
                overlap = 0
            overlaps.append(overlap)
        return overlaps

    def stitch(self, frames: Sequence[FrameRecord]) -> CompositeImage:
        """
        Build the long image.

        Raises:
            FrameWidthMismatch: cropped frames differ in width
            AssemblyInvariantViolation: no frames, or the computed layout is inconsistent
        """
        if not frames:
            raise AssemblyInvariantViolation("No frames to stitch")

        cropped = self.crop_frames(frames)
        overlaps = self.compute_overlaps(cropped)

        width = cropped[0].width
        heights = [c.height for c in cropped]
        total_height = sum(heights) - sum(overlaps[1:])

        for i, overlap in enumerate(overlaps):
            if overlap < 0 or overlap > heights[i]:
                raise AssemblyInvariantViolation(
                    f"Overlap {overlap}px outside frame {i} height {heights[i]}px",
                    details={"frame_index": i, "overlap": overlap, "height": heights[i]},
                )
        if total_height <= 0:
            raise AssemblyInvariantViolation(
                f"Computed composite height {total_height}px is not positive",
                details={"heights": heights, "overlaps": overlaps},
            )

        logger.info(
            f"[ImageStitcher] Stitching {len(cropped)} frames -> {width}x{total_height}px "
            f"(duplicates removed: {sum(overlaps)}px)"
        )

        canvas = np.zeros((total_height, width, CHANNELS), dtype=np.uint8)
        current_y = 0

        for i, raster in enumerate(cropped):
            source_y = overlaps[i]
            rows = raster.height - source_y
            canvas[current_y:current_y + rows] = raster.pixels[source_y:]
            current_y += rows

        if current_y != total_height:
            raise AssemblyInvariantViolation(
                f"Write cursor ended at {current_y}px, expected {total_height}px",
                details={"cursor": current_y, "height": total_height},
            )

        return CompositeImage(raster=RasterBuffer(canvas), overlaps=overlaps)


def stitch_frames(frames: Sequence[FrameRecord], options: Optional[StitchOptions] = None) -> CompositeImage:
    """Convenience wrapper: ImageStitcher(options).stitch(frames)"""
    return ImageStitcher(options).stitch(frames)
