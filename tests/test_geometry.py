"""
Tests for label placement geometry.
"""

import pytest

from scanreport.core.geometry import box_corners, resolve_label_placement
from scanreport.models.schemas import BoundingBox

PADDING = 12
LABEL_HEIGHT = 20
MARGIN = 4
TOP_THRESHOLD = LABEL_HEIGHT + 2 * MARGIN


def place(box, text_width=40, image_width=200, image_height=150):
    return resolve_label_placement(
        box, text_width, image_width, image_height,
        padding_x=PADDING, label_height=LABEL_HEIGHT, label_margin=MARGIN
    )


class TestDefaultPlacement:
    """Labels sit above and left-aligned with their box."""

    def test_label_above_box(self):
        """A box well below the top edge gets its label above it."""
        placement = place(BoundingBox(x=30, y=80, width=50, height=40))

        assert not placement.inside_box
        assert placement.x == 30
        assert placement.y == 80 - LABEL_HEIGHT - MARGIN
        assert placement.bottom <= 80

    def test_label_size_from_text_width(self):
        """Width is measured text width plus padding; height is fixed."""
        placement = place(BoundingBox(x=30, y=80, width=50, height=40), text_width=57.5)

        assert placement.width == pytest.approx(57.5 + PADDING)
        assert placement.height == LABEL_HEIGHT

    def test_text_anchor_padded_and_centred(self):
        """Text starts after half the padding, on the label midline."""
        placement = place(BoundingBox(x=30, y=80, width=50, height=40))

        assert placement.text_x == placement.x + PADDING / 2
        assert placement.text_y == placement.y + LABEL_HEIGHT / 2


class TestTopEdge:
    """Boxes near the top edge get their label inside the box."""

    def test_label_moves_inside(self):
        """A box touching the top edge gets an inside label."""
        placement = place(BoundingBox(x=30, y=5, width=50, height=40))

        assert placement.inside_box
        assert placement.y == 5 + MARGIN

    def test_threshold_boundary(self):
        """Exactly at the threshold the label still fits above."""
        placement = place(BoundingBox(x=30, y=TOP_THRESHOLD, width=50, height=40))

        assert not placement.inside_box
        assert placement.y == MARGIN

    @pytest.mark.parametrize("y", [0, 1, 7.5, 19, TOP_THRESHOLD - 0.5])
    def test_every_box_under_threshold_is_inside(self, y):
        """All boxes with y below the threshold get top-inside labels."""
        box = BoundingBox(x=10, y=y, width=60, height=60)
        placement = place(box)

        assert placement.inside_box
        assert placement.y >= box.y
        assert placement.y == box.y + MARGIN


class TestRightEdge:
    """Labels that would pass the right edge shift left."""

    def test_shift_left_to_fit(self):
        """The label is moved so its right edge stays inside the image."""
        placement = place(BoundingBox(x=180, y=80, width=15, height=15), text_width=50)

        assert placement.x == 200 - (50 + PADDING) - MARGIN
        assert placement.right <= 200

    def test_floor_at_zero(self):
        """A label wider than the image is clamped to x = 0."""
        placement = place(BoundingBox(x=10, y=80, width=15, height=15),
                          text_width=100, image_width=40)

        assert placement.x == 0

    def test_fitting_label_untouched(self):
        """A label that fits keeps the box's left edge."""
        placement = place(BoundingBox(x=100, y=80, width=15, height=15), text_width=50)

        assert placement.x == 100

    @pytest.mark.parametrize("image_width", [30, 64, 120, 200])
    @pytest.mark.parametrize("x", [0, 25, 90, 150, 199])
    @pytest.mark.parametrize("text_width", [0, 20, 75, 180])
    def test_right_edge_invariant(self, image_width, x, text_width):
        """Either the label fits inside the image or it is floored at 0."""
        placement = place(BoundingBox(x=x, y=80, width=5, height=5),
                          text_width=text_width, image_width=image_width)

        if x + text_width + PADDING > image_width:
            assert placement.right <= image_width or placement.x == 0
        assert placement.x >= 0


class TestNoOtherCorrections:
    """Only the top and right edges are corrected."""

    def test_box_below_image_not_corrected(self):
        """A label for a box past the bottom edge is left where it falls."""
        placement = place(BoundingBox(x=20, y=400, width=30, height=30), image_height=150)

        assert placement.y == 400 - LABEL_HEIGHT - MARGIN
        assert placement.y > 150

    def test_overlapping_labels_not_adjusted(self):
        """Adjacent findings may produce overlapping labels."""
        first = place(BoundingBox(x=40, y=80, width=30, height=30))
        second = place(BoundingBox(x=45, y=82, width=30, height=30))

        assert second.x < first.right
        assert second.y < first.bottom


class TestBoxCorners:
    """Drawing corners for degenerate boxes."""

    def test_zero_area_box(self):
        """A zero-size box collapses to a single point."""
        assert box_corners(BoundingBox(x=0, y=0, width=0, height=0)) == (0, 0, 0, 0)

    def test_negative_extent_coerced(self):
        """Negative extents from upstream never invert the rectangle."""
        box = BoundingBox(x=10, y=10, width=-5, height=-8)
        x0, y0, x1, y1 = box_corners(box)

        assert x1 >= x0
        assert y1 >= y0
