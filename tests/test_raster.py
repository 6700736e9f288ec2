import io

import numpy as np
import pytest
from PIL import Image

from element_capture.geometry import CropRect
from element_capture.raster import RasterBuffer, to_raster

from conftest import noise_raster


def test_pixel_access_is_row_major():
    pixels = np.zeros((3, 4, 4), dtype=np.uint8)
    pixels[2, 1] = (10, 20, 30, 40)
    raster = RasterBuffer(pixels)

    assert raster.size == (4, 3)
    assert raster.pixel(1, 2) == (10, 20, 30, 40)
    assert raster.channel(1, 2, 2) == 30


def test_crop_copies_the_region():
    raster = noise_raster(20, 10, seed=1)
    cropped = raster.crop(CropRect(2, 3, 5, 4))

    assert cropped.size == (5, 4)
    assert np.array_equal(cropped.pixels, raster.pixels[3:7, 2:7])
    original = raster.pixels[3, 2].copy()
    cropped.pixels[0, 0] = original ^ 0xFF
    assert np.array_equal(raster.pixels[3, 2], original)


def test_crop_outside_bounds_is_rejected():
    with pytest.raises(ValueError):
        noise_raster(10, 10).crop(CropRect(5, 5, 6, 1))


def test_rejects_non_rgba_arrays():
    with pytest.raises(ValueError):
        RasterBuffer(np.zeros((4, 4, 3), dtype=np.uint8))


def test_png_data_url_round_trip_is_lossless():
    raster = noise_raster(13, 7, seed=5)
    assert RasterBuffer.from_data_url(raster.to_data_url()) == raster


def test_to_raster_normalizes_pil_and_bytes():
    image = Image.new("RGB", (6, 4), (1, 2, 3))
    from_pil = to_raster(image)
    assert from_pil.pixel(0, 0) == (1, 2, 3, 255)

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    assert to_raster(buffer.getvalue()) == from_pil


def test_to_raster_rejects_unknown_types():
    with pytest.raises(TypeError):
        to_raster(42)
