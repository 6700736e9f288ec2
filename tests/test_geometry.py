from element_capture.geometry import EMPTY_CROP, CropRect, clamp_crop_to_image, compute_crop_rect
from element_capture.models import Rect


def test_fully_visible_target_is_unchanged_at_scale_one():
    crop = compute_crop_rect(Rect(left=10, top=20, width=300, height=200), 1024, 768)
    assert crop == CropRect(10, 20, 300, 200)


def test_device_pixel_ratio_scales_position_and_size():
    crop = compute_crop_rect(Rect(left=10, top=20, width=300, height=200), 1024, 768, 2.0)
    assert crop == CropRect(20, 40, 600, 400)


def test_target_is_clipped_to_viewport():
    # hangs off the top-left and the bottom-right corners
    crop = compute_crop_rect(Rect(left=-50, top=-30, width=1200, height=900), 1024, 768)
    assert crop == CropRect(0, 0, 1024, 768)


def test_partially_scrolled_out_target():
    crop = compute_crop_rect(Rect(left=0, top=700, width=400, height=300), 1024, 768, 1.5)
    assert crop == CropRect(0, 1050, 600, 102)


def test_offscreen_target_yields_empty_crop():
    assert compute_crop_rect(Rect(left=0, top=800, width=400, height=300), 1024, 768) == EMPTY_CROP
    assert compute_crop_rect(Rect(left=-500, top=0, width=400, height=300), 1024, 768).is_empty


def test_touching_edge_is_empty():
    crop = compute_crop_rect(Rect(left=1024, top=0, width=100, height=100), 1024, 768)
    assert crop.is_empty


def test_fractional_coordinates_round_half_up():
    crop = compute_crop_rect(Rect(left=0.25, top=0.5, width=100.5, height=50.25), 1024, 768, 1.0)
    assert crop == CropRect(0, 1, 101, 50)


def test_clamp_trims_rounding_overshoot():
    assert clamp_crop_to_image(CropRect(0, 0, 101, 50), 100, 50) == CropRect(0, 0, 100, 50)


def test_clamp_outside_image_is_empty():
    assert clamp_crop_to_image(CropRect(200, 0, 10, 10), 100, 50).is_empty
