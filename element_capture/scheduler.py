"""
Element Capture - Capture Scheduler
Scrolls the target through its content in overlapping steps and takes one
viewport snapshot per step.

Strategy:
1. Step = 80% of the visible height (20% overlap for duplicate detection)
2. Frames = ceil(scrollable / step) + 1, last one clamped to the bottom
3. Scroll, wait for render to settle, snapshot (retrying on rate limits)
4. Always scroll back to where the user was
"""

import asyncio
import inspect
import logging
import math
import time
import weakref
from typing import Callable, List, Optional

from .config import CaptureDefaults, defaults
from .errors import (
    EmptyCropRegion,
    ErrorContext,
    RateLimitExceeded,
    SnapshotFailure,
    is_rate_limit_error,
)
from .frames import CaptureStatus, FrameRecord, ScheduleResult
from .geometry import clamp_crop_to_image, compute_crop_rect
from .models import CaptureTarget, Viewport
from .ports import ScrollPort, SnapshotPort
from .raster import RasterBuffer, to_raster

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

# The snapshot primitive is shared by the whole process: one capture loop at a time
_snapshot_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Lock]" = weakref.WeakKeyDictionary()


def _snapshot_lock() -> asyncio.Lock:
    loop = asyncio.get_running_loop()
    lock = _snapshot_locks.get(loop)
    if lock is None:
        lock = asyncio.Lock()
        _snapshot_locks[loop] = lock
    return lock


def plan_scroll_offsets(
    client_extent: float,
    scroll_extent: float,
    overlap_ratio: float = defaults.SCROLL_OVERLAP_RATIO,
) -> List[float]:
    """
    Scroll offsets (relative to the top of the content) to capture at.

    Returns an empty list when the content does not scroll; the caller
    captures a single frame where it is.
    """
    scrollable_height = scroll_extent - client_extent
    if scrollable_height <= 0:
        return []

    step = client_extent * (1 - overlap_ratio)
    if step <= 0:
        raise ValueError(f"Scroll step must be positive (client_extent={client_extent}, overlap_ratio={overlap_ratio})")

    total_frames = math.ceil(scrollable_height / step) + 1
    return [0 if i == 0 else min(i * step, scrollable_height) for i in range(total_frames)]


async def describe_target(
    scroll_port: ScrollPort,
    viewport: Viewport,
    content_offset: float = 0,
) -> CaptureTarget:
    """Build a CaptureTarget from the live metrics reported by the scroll port"""
    return CaptureTarget(
        bounds=await scroll_port.target_bounds(),
        viewport=viewport,
        client_extent=await scroll_port.client_extent(),
        scroll_extent=await scroll_port.scroll_extent(),
        scroll_offset=await scroll_port.current_offset(),
        content_offset=content_offset,
    )


class CaptureScheduler:
    """
    Turns one CaptureTarget into an ordered list of FrameRecords
    """

    def __init__(
        self,
        scroll_port: ScrollPort,
        snapshot_port: SnapshotPort,
        config: CaptureDefaults = defaults,
        sleep: Callable = asyncio.sleep,
    ):
        """
        Initialize capture scheduler

        Args:
            scroll_port: Moves the scroll container and reports metrics
            snapshot_port: Rate-limited viewport screenshot primitive
            config: Tuning values (settle delay, retries, backoff)
            sleep: Awaitable sleep, injectable for tests
        """
        self.scroll_port = scroll_port
        self.snapshot_port = snapshot_port
        self.config = config
        self._sleep = sleep

    async def capture(
        self,
        target: CaptureTarget,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ScheduleResult:
        """
        Capture every frame for target.

        The scroll position is restored before this returns or raises.
        Cancellation is checked between frames; a cancelled capture returns
        a CANCELLED result with no frames.

        Raises:
            RateLimitExceeded: a frame stayed rate limited through every attempt
            SnapshotFailure: the snapshot port failed for another reason
            EmptyCropRegion: the target had no visible area at some frame
        """
        start_time = time.time()
        offsets = plan_scroll_offsets(
            target.client_extent, target.scroll_extent, self.config.SCROLL_OVERLAP_RATIO
        )
        scrolls = bool(offsets)

        async with _snapshot_lock():
            initial_offset = await self.scroll_port.current_offset()
            if not scrolls:
                offsets = [initial_offset]
            total_frames = len(offsets)

            logger.info(
                f"[CaptureScheduler] Capturing {total_frames} frame(s): "
                f"scrollable={target.scrollable_height:g}px, client={target.client_extent:g}px"
            )

            frames: List[FrameRecord] = []
            status = CaptureStatus.COMPLETED
            capture_error: Optional[BaseException] = None
            try:
                for i, offset in enumerate(offsets):
                    if cancel_event is not None and cancel_event.is_set():
                        logger.info(f"[CaptureScheduler] Cancelled before frame {i + 1}/{total_frames}")
                        frames = []
                        status = CaptureStatus.CANCELLED
                        break

                    frames.append(await self._capture_frame(target, i, offset, scrolls))
                    logger.debug(f"  Captured frame {i + 1}/{total_frames} at offset {offset:g}")

                    if on_progress is not None:
                        result = on_progress(i + 1, total_frames)
                        if inspect.isawaitable(result):
                            await result
            except BaseException as e:
                capture_error = e
                logger.error(f"[CaptureScheduler] Capture failed: {e}")
                raise
            finally:
                # a failed restore must not mask the error that ended the capture
                await self._restore_scroll(initial_offset, reraise=capture_error is None)

        duration_ms = int((time.time() - start_time) * 1000)
        if status == CaptureStatus.COMPLETED:
            logger.info(f"[CaptureScheduler] Complete: {len(frames)} frame(s) in {duration_ms}ms")

        return ScheduleResult(
            status=status,
            frames=frames,
            total_frames=total_frames,
        )

    async def _capture_frame(
        self,
        target: CaptureTarget,
        frame_index: int,
        offset: float,
        scrolls: bool,
    ) -> FrameRecord:
        if scrolls:
            await self.scroll_port.set_scroll_offset(target.content_offset + offset)
        await self._settle()

        # Geometry first: never spend a rate-limited snapshot on an invisible target
        viewport = target.viewport
        bounds = await self.scroll_port.target_bounds()
        crop = compute_crop_rect(bounds, viewport.width, viewport.height, viewport.device_pixel_ratio)
        if crop.is_empty:
            raise EmptyCropRegion(frame_index, offset)

        snapshot = await self._capture_with_retry(frame_index)

        crop = clamp_crop_to_image(crop, snapshot.width, snapshot.height)
        if crop.is_empty:
            raise EmptyCropRegion(frame_index, offset)

        return FrameRecord(
            snapshot=snapshot,
            crop=crop,
            scroll_offset=offset,
            frame_index=frame_index,
        )

    async def _settle(self):
        """Let the host paint the new scroll position"""
        await self.scroll_port.wait_for_frames(self.config.SETTLE_FRAMES)
        if self.config.SETTLE_DELAY_MS > 0:
            await self._sleep(self.config.SETTLE_DELAY_MS / 1000)

    async def _capture_with_retry(self, frame_index: int) -> RasterBuffer:
        """
        Request one snapshot, backing off on rate limits.

        Only rate-limit signals are retried; any other failure aborts at once.
        """
        max_attempts = self.config.MAX_SNAPSHOT_ATTEMPTS

        for attempt in range(1, max_attempts + 1):
            try:
                snapshot = await self.snapshot_port.capture_viewport()
            except Exception as e:
                if not is_rate_limit_error(e):
                    raise SnapshotFailure(f"Snapshot failed for frame {frame_index}: {e}", frame_index) from e

                logger.warning(f"  Frame {frame_index}: rate limited (attempt {attempt}/{max_attempts})")
                if attempt < max_attempts:
                    await self._sleep(self.config.RATE_LIMIT_BACKOFF_MS / 1000)
                continue

            with ErrorContext(f"decoding snapshot for frame {frame_index}", raise_as=SnapshotFailure):
                return to_raster(snapshot)

        raise RateLimitExceeded(frame_index, max_attempts)

    async def _restore_scroll(self, offset: float, reraise: bool = True):
        try:
            await self.scroll_port.set_scroll_offset(offset)
            logger.debug(f"  Scroll restored to {offset:g}")
        except Exception as e:
            logger.error(f"[CaptureScheduler] Failed to restore scroll offset {offset:g}: {e}")
            if reraise:
                raise
