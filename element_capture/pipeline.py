"""
Element Capture - Capture Pipeline
Runs one long-screenshot request end to end:

IDLE -> CAPTURING -> SCROLL_RESTORE -> STITCHING -> DONE

FAILED is reachable from every step, always after the scroll position
has been restored. CANCELLED ends a capture without an image.
"""

import asyncio
import inspect
import logging
import time
from enum import Enum
from typing import Callable, List, Optional

from .config import CaptureDefaults, defaults
from .frames import CaptureResult, CaptureStatus
from .models import CaptureTarget, StitchOptions, Viewport
from .ports import IsolationPort, ProgressSink, ScrollPort, SnapshotPort
from .scheduler import CaptureScheduler, describe_target
from .stitcher import ImageStitcher

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    SCROLL_RESTORE = "scroll_restore"
    STITCHING = "stitching"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ElementCapturePipeline:
    """
    Orchestrates isolation, scheduling and stitching for one capture.

    A pipeline instance serves a single request; call cancel() from another
    task to stop it between frames.
    """

    def __init__(
        self,
        scroll_port: ScrollPort,
        snapshot_port: SnapshotPort,
        isolation_port: Optional[IsolationPort] = None,
        progress: Optional[ProgressSink] = None,
        config: CaptureDefaults = defaults,
        sleep: Callable = asyncio.sleep,
    ):
        self.scroll_port = scroll_port
        self.isolation_port = isolation_port
        self.progress = progress
        self.config = config
        self._sleep = sleep
        self.scheduler = CaptureScheduler(scroll_port, snapshot_port, config=config, sleep=sleep)

        self.state = PipelineState.IDLE
        self.history: List[PipelineState] = [PipelineState.IDLE]
        self._cancel_event = asyncio.Event()

    def cancel(self):
        """Request cancellation; honoured before the next frame"""
        logger.info("[CapturePipeline] Cancellation requested")
        self._cancel_event.set()

    async def run(
        self,
        target: Optional[CaptureTarget] = None,
        viewport: Optional[Viewport] = None,
        options: Optional[StitchOptions] = None,
        content_offset: float = 0,
    ) -> CaptureResult:
        """
        Capture and stitch.

        Args:
            target: Capture request; built from the scroll port's metrics when omitted
            viewport: Required when target is omitted
            options: Stitch options; max_overlap_height defaults to 30% of the client extent
            content_offset: Crop target position inside its scroll container (target omitted)

        Returns:
            CaptureResult, COMPLETED with an image or CANCELLED without one

        Raises:
            ElementCaptureError subclasses for every fatal condition
        """
        if self.state != PipelineState.IDLE:
            raise RuntimeError(f"Pipeline already used (state={self.state.value})")

        start_time = time.time()
        isolated = False

        try:
            if target is None:
                if viewport is None:
                    raise ValueError("viewport is required when no target is given")
                target = await describe_target(self.scroll_port, viewport, content_offset)

            if options is None:
                options = StitchOptions(max_overlap_height=target.default_max_overlap_height())

            if self.isolation_port is not None:
                hidden = await self.isolation_port.isolate()
                isolated = True
                logger.info(f"[CapturePipeline] Isolated {hidden} overlapping element(s)")
                if self.config.ISOLATION_SETTLE_MS > 0:
                    await self._sleep(self.config.ISOLATION_SETTLE_MS / 1000)

            self._transition(PipelineState.CAPTURING)
            schedule = await self.scheduler.capture(
                target,
                on_progress=self._on_frame,
                cancel_event=self._cancel_event,
            )
            # the scheduler has already put the scroll position back
            self._transition(PipelineState.SCROLL_RESTORE)

            if isolated:
                await self.isolation_port.restore()
                isolated = False

            if schedule.cancelled:
                self._transition(PipelineState.CANCELLED)
                return CaptureResult(
                    status=CaptureStatus.CANCELLED,
                    duration_ms=int((time.time() - start_time) * 1000),
                )

            self._transition(PipelineState.STITCHING)
            if self.progress is not None:
                notice = self.progress.on_stitching()
                if inspect.isawaitable(notice):
                    await notice

            image = ImageStitcher(options).stitch(schedule.frames)
            self._transition(PipelineState.DONE)

            duration_ms = int((time.time() - start_time) * 1000)
            logger.info(
                f"[CapturePipeline] Complete: {image.width}x{image.height} "
                f"from {len(schedule.frames)} frame(s) in {duration_ms}ms"
            )
            return CaptureResult(
                status=CaptureStatus.COMPLETED,
                image=image,
                frame_count=len(schedule.frames),
                duration_ms=duration_ms,
            )

        except Exception as e:
            self._transition(PipelineState.FAILED)
            logger.error(f"[CapturePipeline] Capture failed: {e}")
            raise

        finally:
            if isolated:
                await self.isolation_port.force_restore()

    def _on_frame(self, frames_done: int, total_frames: int):
        if self.progress is not None:
            return self.progress.on_frame(frames_done, total_frames)
        return None

    def _transition(self, state: PipelineState):
        logger.debug(f"  {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)
