"""
Element Capture - Raster Buffers

Row-major RGBA pixel buffer used by every stage of the pipeline.
Wraps a (height, width, 4) uint8 numpy array and converts to and from
PIL images, PNG bytes and data URLs.
"""

import base64
import io
from typing import Union

import numpy as np
from PIL import Image

from .geometry import CropRect

CHANNELS = 4  # R, G, B, A


class RasterBuffer:
    """Row-major RGBA pixel buffer with explicit width/height"""

    __slots__ = ("pixels",)

    def __init__(self, pixels: np.ndarray):
        if pixels.ndim != 3 or pixels.shape[2] != CHANNELS:
            raise ValueError(f"Expected (height, width, {CHANNELS}) array, got shape {pixels.shape}")
        if pixels.dtype != np.uint8:
            pixels = pixels.astype(np.uint8)
        self.pixels = pixels

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self):
        """(width, height), same order as PIL"""
        return self.width, self.height

    def pixel(self, x: int, y: int) -> tuple:
        """(r, g, b, a) at column x, row y"""
        return tuple(int(c) for c in self.pixels[y, x])

    def channel(self, x: int, y: int, c: int) -> int:
        return int(self.pixels[y, x, c])

    def rows(self, start: int, stop: int) -> "RasterBuffer":
        """Rows [start, stop) as a view"""
        return RasterBuffer(self.pixels[start:stop])

    def crop(self, rect: CropRect) -> "RasterBuffer":
        """Copy of the pixels inside rect; rect must lie within the buffer"""
        if (rect.x < 0 or rect.y < 0
                or rect.x + rect.width > self.width
                or rect.y + rect.height > self.height):
            raise ValueError(f"Crop {rect} exceeds raster bounds {self.width}x{self.height}")
        return RasterBuffer(
            self.pixels[rect.y:rect.y + rect.height, rect.x:rect.x + rect.width].copy()
        )

    def __eq__(self, other):
        if not isinstance(other, RasterBuffer):
            return NotImplemented
        return self.pixels.shape == other.pixels.shape and bool(np.array_equal(self.pixels, other.pixels))

    def __repr__(self):
        return f"RasterBuffer({self.width}x{self.height})"

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_pil(cls, image: Image.Image) -> "RasterBuffer":
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return cls(np.array(image, dtype=np.uint8))

    @classmethod
    def from_bytes(cls, data: bytes) -> "RasterBuffer":
        """Decode encoded image bytes (PNG, JPEG, ...)"""
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            return cls.from_pil(image)

    @classmethod
    def from_data_url(cls, data_url: str) -> "RasterBuffer":
        """Decode a data URL or bare base64 string"""
        if data_url.startswith("data:"):
            _, _, data_url = data_url.partition(",")
        return cls.from_bytes(base64.b64decode(data_url))

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def to_pil(self) -> Image.Image:
        return Image.fromarray(self.pixels)

    def to_png_bytes(self) -> bytes:
        img_buffer = io.BytesIO()
        self.to_pil().save(img_buffer, format="PNG")
        return img_buffer.getvalue()

    def to_base64(self) -> str:
        return base64.b64encode(self.to_png_bytes()).decode("utf-8")

    def to_data_url(self) -> str:
        return f"data:image/png;base64,{self.to_base64()}"


SnapshotLike = Union[RasterBuffer, Image.Image, bytes, str]


def to_raster(snapshot: SnapshotLike) -> RasterBuffer:
    """Normalize whatever a snapshot port returned into a RasterBuffer"""
    if isinstance(snapshot, RasterBuffer):
        return snapshot
    if isinstance(snapshot, Image.Image):
        return RasterBuffer.from_pil(snapshot)
    if isinstance(snapshot, (bytes, bytearray)):
        return RasterBuffer.from_bytes(bytes(snapshot))
    if isinstance(snapshot, str):
        return RasterBuffer.from_data_url(snapshot)
    raise TypeError(f"Unsupported snapshot type: {type(snapshot).__name__}")
