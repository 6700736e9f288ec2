"""
Element Capture - FastAPI Server
Stitches frames captured by a browser-side scheduler into one long PNG.
"""

import logging
from datetime import datetime
from typing import List

from fastapi import FastAPI
import uvicorn

from element_capture import __version__
from element_capture.config import defaults
from element_capture.errors import EmptyCropRegion, InvalidFrameSequence, handle_api_error
from element_capture.frames import FrameRecord
from element_capture.geometry import CropRect, clamp_crop_to_image
from element_capture.models import FramePayload, StitchRequest
from element_capture.raster import RasterBuffer
from element_capture.stitcher import ImageStitcher

# Configure logging
logging.basicConfig(
    level=getattr(logging, defaults.LOG_LEVEL.upper(), logging.INFO),
    format='[%(asctime)s] %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Element Capture", version=__version__)


def build_frame_records(payloads: List[FramePayload]) -> List[FrameRecord]:
    """
    Decode uploaded frames into FrameRecords.

    Frames must already be in capture order with indices 0..n-1; they are
    never re-sorted.
    """
    indices = [p.frame_index for p in payloads]
    if indices != list(range(len(payloads))):
        raise InvalidFrameSequence(
            f"Frame indices must be contiguous from 0 in capture order, got {indices}",
            indices=indices,
        )

    frames = []
    for payload in payloads:
        try:
            snapshot = RasterBuffer.from_data_url(payload.image)
        except (OSError, ValueError) as e:
            raise ValueError(f"Frame {payload.frame_index}: image could not be decoded ({e})") from e

        region = payload.crop_region
        crop = CropRect.from_floats(region.x, region.y, region.width, region.height)
        crop = clamp_crop_to_image(crop, snapshot.width, snapshot.height)
        if crop.is_empty:
            raise EmptyCropRegion(payload.frame_index, payload.scroll_top)

        frames.append(FrameRecord(
            snapshot=snapshot,
            crop=crop,
            scroll_offset=payload.scroll_top,
            frame_index=payload.frame_index,
        ))
    return frames


@app.api_route("/api/health", methods=["GET", "HEAD"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "ok",
        "version": __version__,
        "message": "Element Capture is running"
    }


@app.post("/api/stitch")
async def stitch_frames(request: StitchRequest):
    """Stitch captured frames into one long PNG"""
    try:
        logger.info(f"[API] Stitching {len(request.frames)} frame(s)")
        frames = build_frame_records(request.frames)
        composite = ImageStitcher(request.options).stitch(frames)

        logger.info(f"[API] Stitched image: {composite.width}x{composite.height}")

        return {
            "success": True,
            "image": composite.raster.to_base64(),
            "width": composite.width,
            "height": composite.height,
            "overlaps": composite.overlaps,
            "frame_count": len(frames),
            "timestamp": datetime.now().isoformat()
        }
    except Exception as e:
        return handle_api_error(e)


def main():
    logger.info(f"Starting Element Capture v{__version__}")
    logger.info(f"API: http://localhost:{defaults.SERVER_PORT}/api")

    uvicorn.run(
        app,
        host=defaults.SERVER_HOST,
        port=defaults.SERVER_PORT,
        log_level=defaults.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    main()
