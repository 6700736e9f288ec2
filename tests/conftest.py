"""
Shared fakes for the capture pipeline tests.

FakePage simulates a scroll container whose content is a known raster:
every snapshot shows the rows currently scrolled into view, placed at the
target's position inside a larger viewport.
"""

from typing import List, Optional

import numpy as np
import pytest

from element_capture.errors import RateLimited
from element_capture.models import CaptureTarget, Rect, Viewport
from element_capture.raster import RasterBuffer


def noise_raster(width: int, height: int, seed: int = 0) -> RasterBuffer:
    """Opaque random pixels; rows never match each other by accident"""
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    pixels[:, :, 3] = 255
    return RasterBuffer(pixels)


def solid_raster(width: int, height: int, rgba=(255, 255, 255, 255)) -> RasterBuffer:
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[:, :] = rgba
    return RasterBuffer(pixels)


class FakePage:
    """Scroll port + snapshot port over one content raster"""

    def __init__(
        self,
        content: RasterBuffer,
        client_extent: int,
        target_left: int = 10,
        target_top: int = 20,
        viewport_width: Optional[int] = None,
        viewport_height: Optional[int] = None,
        initial_offset: float = 0,
    ):
        self.content = content
        self.client = client_extent
        self.left = target_left
        self.top = target_top
        self.viewport_width = viewport_width or content.width + 2 * target_left
        self.viewport_height = viewport_height or client_extent + 2 * target_top
        self.offset = initial_offset
        self.offset_history: List[float] = []
        self.frame_waits: List[int] = []
        self.snapshot_count = 0
        self.bounds_override: Optional[Rect] = None

    # -- ScrollPort ---------------------------------------------------------

    async def set_scroll_offset(self, offset: float) -> None:
        self.offset = max(0, min(offset, self.content.height - self.client))
        self.offset_history.append(offset)

    async def current_offset(self) -> float:
        return self.offset

    async def client_extent(self) -> float:
        return self.client

    async def scroll_extent(self) -> float:
        return max(self.content.height, self.client)

    async def wait_for_frames(self, count: int) -> None:
        self.frame_waits.append(count)

    async def target_bounds(self) -> Rect:
        if self.bounds_override is not None:
            return self.bounds_override
        return Rect(left=self.left, top=self.top, width=self.content.width, height=self.client)

    # -- SnapshotPort -------------------------------------------------------

    async def capture_viewport(self):
        self.snapshot_count += 1
        viewport = np.zeros((self.viewport_height, self.viewport_width, 4), dtype=np.uint8)
        start = int(self.offset)
        visible = self.content.pixels[start:start + self.client]
        viewport[self.top:self.top + visible.shape[0], self.left:self.left + visible.shape[1]] = visible
        return RasterBuffer(viewport)

    # -- helpers ------------------------------------------------------------

    def viewport(self, device_pixel_ratio: float = 1.0) -> Viewport:
        return Viewport(
            width=self.viewport_width,
            height=self.viewport_height,
            device_pixel_ratio=device_pixel_ratio,
        )

    def target(self) -> CaptureTarget:
        return CaptureTarget(
            bounds=Rect(left=self.left, top=self.top, width=self.content.width, height=self.client),
            viewport=self.viewport(),
            client_extent=self.client,
            scroll_extent=max(self.content.height, self.client),
            scroll_offset=self.offset,
        )


class ScriptedSnapshotPort:
    """
    Snapshot port that plays back a script of outcomes.

    "rate" raises RateLimited, "quota" raises a plain error mentioning the
    capture quota, "fail" raises a non-rate-limit error, "emfile" raises an
    OSError whose message merely says "too many", "ok" delegates to
    the wrapped page. Once the script runs out every call is "ok".
    """

    def __init__(self, page: FakePage, script: List[str]):
        self.page = page
        self.script = list(script)
        self.calls = 0

    async def capture_viewport(self):
        self.calls += 1
        outcome = self.script.pop(0) if self.script else "ok"
        if outcome == "rate":
            raise RateLimited("rate limited")
        if outcome == "quota":
            raise RuntimeError("This request exceeds the MAX_CAPTURE_VISIBLE_TAB_CALLS_PER_SECOND quota.")
        if outcome == "emfile":
            raise OSError(24, "Too many open files")
        if outcome == "fail":
            raise RuntimeError("Tab was closed")
        return await self.page.capture_viewport()


class RecordingSleep:
    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)


class RecordingProgress:
    def __init__(self):
        self.frames = []
        self.stitching = 0

    def on_frame(self, frames_done: int, total_frames: int):
        self.frames.append((frames_done, total_frames))

    def on_stitching(self):
        self.stitching += 1


class RecordingIsolation:
    def __init__(self, hidden: int = 2):
        self.hidden = hidden
        self.calls: List[str] = []

    async def isolate(self) -> int:
        self.calls.append("isolate")
        return self.hidden

    async def restore(self) -> None:
        self.calls.append("restore")

    async def force_restore(self) -> None:
        self.calls.append("force_restore")


@pytest.fixture
def sleep():
    return RecordingSleep()
