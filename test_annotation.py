"""
Tests for bounding box scaling, clamping and drawing.
"""

import math

import pytest
from PIL import Image

from purine_vision.annotation import (
    Box,
    clamp_box,
    fit_to_container,
    label_position,
    render_annotations,
    scale_box,
)
from purine_vision.schemas import AnalysisResult, Coordinates

RED = (255, 0, 0)
GOLD = (255, 215, 0)
WHITE = (255, 255, 255)


class TestFitToContainer:
    """Display sizing that preserves aspect ratio."""

    def test_wide_image_bound_by_width(self):
        fit = fit_to_container(2000, 1000, 800, 600)

        assert fit.width == 800
        assert fit.height == 400
        assert fit.scale_x == pytest.approx(0.4)
        assert fit.scale_y == pytest.approx(0.4)

    def test_tall_image_bound_by_height(self):
        fit = fit_to_container(1000, 2000, 800, 600)

        assert fit.height == 600
        assert fit.width == 300
        assert fit.scale_x == pytest.approx(0.3)

    def test_small_image_is_not_enlarged(self):
        fit = fit_to_container(300, 400, 800, 600)

        assert (fit.width, fit.height) == (300, 400)
        assert fit.scale_x == 1.0
        assert fit.scale_y == 1.0

    @pytest.mark.parametrize(
        "size", [(0, 100, 800, 600), (100, 100, 0, 600), (100, -1, 800, 600)]
    )
    def test_non_positive_sizes_rejected(self, size):
        with pytest.raises(ValueError):
            fit_to_container(*size)


class TestClampBox:
    """Making model boxes safe to draw."""

    def test_box_inside_canvas_is_unchanged(self):
        assert clamp_box(Box(10, 20, 50, 60), 100, 100) == Box(10, 20, 50, 60)

    def test_box_is_clipped_to_canvas(self):
        assert clamp_box(Box(-20, -5, 150, 80), 100, 100) == Box(0, 0, 99, 80)

    def test_corners_are_whole_pixels(self):
        box = clamp_box(Box(10.4, 19.6, 50.5, 60.2), 100, 100)

        assert box == Box(10, 20, 50, 60)
        assert all(isinstance(v, int) for v in box)

    def test_box_at_canvas_edge(self):
        assert clamp_box(Box(0, 0, 100, 100), 100, 100) == Box(0, 0, 99, 99)

    def test_reversed_corners_are_swapped(self):
        assert clamp_box(Box(50, 60, 10, 20), 100, 100) == Box(10, 20, 50, 60)

    def test_box_outside_canvas_is_rejected(self):
        assert clamp_box(Box(120, 120, 200, 200), 100, 100) is None

    def test_degenerate_box_is_rejected(self):
        assert clamp_box(Box(10, 10, 10, 50), 100, 100) is None

    def test_non_finite_box_is_rejected(self):
        assert clamp_box(Box(math.nan, 0, 10, 10), 100, 100) is None
        assert clamp_box(Box(0, 0, math.inf, 10), 100, 100) is None

    def test_scaled_then_clamped(self):
        coords = Coordinates(x1=100, y1=100, x2=1200, y2=500)
        box = clamp_box(scale_box(coords, 0.5, 0.5), 500, 500)
        assert box == Box(50, 50, 499, 250)


class TestLabelPosition:
    """Placing the text label for a box."""

    def test_label_sits_above_box(self):
        assert label_position(Box(10, 50, 90, 90), 60, 20, 200, 200) == (10, 30)

    def test_label_moves_inside_at_top_edge(self):
        assert label_position(Box(10, 5, 90, 90), 60, 20, 200, 200) == (10, 5)

    def test_label_shifts_left_at_right_edge(self):
        assert label_position(Box(180, 50, 199, 90), 60, 20, 200, 200) == (140, 30)

    def test_label_wider_than_canvas_starts_at_zero(self):
        x, _ = label_position(Box(10, 50, 90, 90), 300, 20, 200, 200)
        assert x == 0


class TestRenderAnnotations:
    """Drawing the annotated image."""

    @pytest.fixture
    def photo(self):
        return Image.new("RGB", (200, 200), color="white")

    @pytest.fixture
    def result(self, sample_result):
        return AnalysisResult.model_validate(sample_result)

    def test_boxes_drawn_in_tier_colors(self, photo, result):
        summary = render_annotations(photo, result)

        assert summary.drawn == 2
        assert summary.skipped == 0
        # Bottom edges, away from the labels
        assert summary.image.getpixel((100, 179)) == RED
        assert summary.image.getpixel((90, 119)) == GOLD
        assert summary.image.getpixel((100, 150)) == WHITE

    def test_original_is_not_modified(self, photo, result):
        render_annotations(photo, result)
        assert photo.getpixel((100, 179)) == WHITE

    def test_boxes_outside_canvas_are_skipped(self, photo):
        result = AnalysisResult.model_validate(
            {
                "high_purine_foods": [
                    {
                        "food_name": "Off canvas",
                        "purine_value": 200,
                        "coordinates": {"x1": 500, "y1": 500, "x2": 600, "y2": 600},
                    }
                ]
            }
        )
        summary = render_annotations(photo, result)

        assert summary.drawn == 0
        assert summary.skipped == 1

    def test_container_scales_image_and_boxes(self, result):
        photo = Image.new("RGB", (400, 400), color="white")
        result.high_purine_foods[0].coordinates = Coordinates(
            x1=40, y1=80, x2=360, y2=360
        )

        summary = render_annotations(photo, result, container=(200, 300))

        assert summary.image.size == (200, 200)
        assert summary.image.getpixel((100, 179)) == RED

    def test_edge_box_outline_is_fully_visible(self, photo):
        result = AnalysisResult.model_validate(
            {
                "high_purine_foods": [
                    {
                        "food_name": "Sardine",
                        "purine_value": 345,
                        "coordinates": {"x1": 100, "y1": 100, "x2": 250, "y2": 250},
                    }
                ]
            }
        )
        summary = render_annotations(photo, result)

        assert summary.drawn == 1
        for offset in (1, 2, 3):
            assert summary.image.getpixel((200 - offset, 150)) == RED
            assert summary.image.getpixel((150, 200 - offset)) == RED
        assert summary.image.getpixel((196, 150)) == WHITE

    def test_non_rgb_input_is_converted(self, result):
        photo = Image.new("RGBA", (200, 200), color=(255, 255, 255, 255))
        summary = render_annotations(photo, result)
        assert summary.image.mode == "RGB"
