"""
Element Capture - Overlap Detection

Finds how many rows at the bottom of one frame reappear at the top of
the next one (capture-window overlap or sticky headers), so the
stitcher can drop them.
"""

import logging

import numpy as np

from .config import defaults
from .raster import RasterBuffer

logger = logging.getLogger(__name__)


class OverlapDetector:
    """Detects duplicated boundary rows between adjacent frames."""

    def __init__(
        self,
        tolerance: int = defaults.MATCH_TOLERANCE_PER_CHANNEL,
        threshold: float = defaults.MATCH_FRACTION_THRESHOLD,
        sample_columns: int = defaults.SAMPLE_COLUMNS,
    ):
        """
        Initialize overlap detector.

        Args:
            tolerance: Max absolute difference per R/G/B channel for a sample to match
            threshold: Fraction of matching samples a candidate must exceed
            sample_columns: Max number of columns sampled per row
        """
        if not 0 < threshold <= 1:
            raise ValueError(f"threshold must be in (0, 1], got {threshold}")
        if tolerance < 0:
            raise ValueError(f"tolerance must be >= 0, got {tolerance}")
        self.tolerance = tolerance
        self.threshold = threshold
        self.sample_columns = sample_columns

    def sample_positions(self, width: int) -> np.ndarray:
        """Evenly spaced x-columns compared for every row"""
        sample_count = min(width, self.sample_columns)
        if sample_count <= 0:
            return np.zeros(0, dtype=np.intp)
        sample_step = width // sample_count
        return np.arange(sample_count, dtype=np.intp) * sample_step

    def detect(self, previous: RasterBuffer, current: RasterBuffer, max_overlap_height: int) -> int:
        """
        Number of rows at the top of current that duplicate the bottom of previous.

        Candidates are tried from the largest possible height down to 1 and
        the first one whose match fraction exceeds the threshold wins.

        Returns:
            Overlap in rows, 0 when nothing matches. Never larger than
            min(max_overlap_height, previous.height, current.height).
        """
        if previous.width != current.width:
            raise ValueError(
                f"Frames must share width for overlap detection ({previous.width} != {current.width})"
            )

        check_height = min(max_overlap_height, previous.height, current.height)
        xs = self.sample_positions(current.width)
        if check_height <= 0 or xs.size == 0:
            return 0

        # Bottom strip of previous, top strip of current, sampled columns, RGB only
        prev_strip = previous.pixels[previous.height - check_height:, xs, :3].astype(np.int16)
        curr_strip = current.pixels[:check_height, xs, :3].astype(np.int16)

        for overlap in range(check_height, 0, -1):
            prev_rows = prev_strip[check_height - overlap:]
            curr_rows = curr_strip[:overlap]

            diff = np.abs(prev_rows - curr_rows)
            matches = np.all(diff <= self.tolerance, axis=2)
            match_count = int(np.count_nonzero(matches))
            total_samples = matches.size
            fraction = match_count / total_samples

            # an all-sample match qualifies too, so threshold=1.0 still accepts exact duplicates
            if fraction > self.threshold or match_count == total_samples:
                logger.debug(f"  Overlap {overlap}px ({fraction:.3f} of {total_samples} samples match)")
                return overlap

        return 0
