"""
Element Capture - Host Ports

Interfaces the pipeline consumes. Implementations wrap the host surface
(browser tab, webview, device) that actually scrolls, measures and
screenshots the page.
"""

from typing import Protocol

from .models import Rect
from .raster import SnapshotLike


class ScrollPort(Protocol):
    """Moves the scroll container and reports its metrics"""

    async def set_scroll_offset(self, offset: float) -> None: ...

    async def current_offset(self) -> float: ...

    async def client_extent(self) -> float: ...

    async def scroll_extent(self) -> float: ...

    async def wait_for_frames(self, count: int) -> None:
        """Return after the host has rendered `count` more frames"""
        ...

    async def target_bounds(self) -> Rect:
        """Current viewport-relative bounds of the crop target"""
        ...


class SnapshotPort(Protocol):
    """
    Captures the visible viewport.

    Exclusive and rate limited by the host: raise errors.RateLimited when
    the host refuses for quota reasons, anything else for other failures.
    """

    async def capture_viewport(self) -> SnapshotLike: ...


class IsolationPort(Protocol):
    """Hides fixed/sticky elements overlapping the target, and brings them back"""

    async def isolate(self) -> int: ...

    async def restore(self) -> None: ...

    async def force_restore(self) -> None: ...


class ProgressSink(Protocol):
    """Progress notices; either method may be a coroutine function"""

    def on_frame(self, frames_done: int, total_frames: int) -> None: ...

    def on_stitching(self) -> None: ...
