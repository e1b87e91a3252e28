"""
Tests for the overlay renderer.
"""

import io

import numpy as np
import pytest
from PIL import Image

from scanreport.core.errors import RenderFailure, SourceUnavailable
from scanreport.core.image_loader import load_image
from scanreport.core.overlay_renderer import OverlayRenderer, OverlayStyle, encode_png

from tests.factories import BASE_COLOR, SCAN_SIZE, make_finding, make_scan_bytes

STROKE_RGB = (255, 59, 48)


def pixels(image: Image.Image) -> np.ndarray:
    return np.asarray(image.convert("RGB"))


class TestHealthyPath:
    """No findings means no overlays."""

    def test_surface_equals_base_image(self, renderer, scan_handle):
        """The healthy surface is the undecorated scan."""
        surface = renderer.render(scan_handle, ())

        assert surface.overlay_count == 0
        assert np.array_equal(pixels(surface.image), pixels(scan_handle.image))

    def test_grayscale_scan_preserved(self, renderer):
        """A grayscale scan renders unchanged apart from the RGB mode."""
        buffer = io.BytesIO()
        Image.linear_gradient("L").resize((120, 90)).save(buffer, format="PNG")
        handle = load_image(buffer.getvalue())

        surface = renderer.render(handle, ())

        assert surface.image.mode == "RGB"
        assert np.array_equal(pixels(surface.image), pixels(handle.image))


class TestHighBitDepthScans:
    """16-bit and float scans are stretched onto 8-bit grayscale."""

    @staticmethod
    def gradient_png(high=4000) -> bytes:
        data = np.linspace(0, high, 100 * 100).reshape(100, 100).astype(np.uint16)
        buffer = io.BytesIO()
        Image.fromarray(data).save(buffer, format="PNG")
        return buffer.getvalue()

    def test_16bit_png_not_saturated(self, renderer):
        """A 0..4000 gradient keeps its tonal range instead of clipping to white."""
        handle = load_image(self.gradient_png())
        surface = renderer.render(handle, ())
        px = pixels(surface.image)

        assert handle.image.mode == "L"
        assert (px == 255).mean() < 0.05
        assert px.min() == 0
        assert px.max() == 255

    def test_16bit_gradient_stays_monotonic(self):
        """Brighter source values never map to darker output pixels."""
        handle = load_image(self.gradient_png())
        row = np.asarray(handle.image).flatten()

        assert np.all(np.diff(row.astype(int)) >= 0)

    def test_float_scan(self, renderer):
        """Float images use the same stretch."""
        data = np.linspace(-1.0, 1.0, 64 * 64, dtype=np.float32).reshape(64, 64)
        buffer = io.BytesIO()
        Image.fromarray(data).save(buffer, format="TIFF")
        handle = load_image(buffer.getvalue())

        surface = renderer.render(handle, (make_finding(x=5, y=30, width=20, height=20),))
        assert handle.image.mode == "L"
        assert (surface.width, surface.height) == (64, 64)
        assert np.asarray(handle.image).max() == 255


class TestFindingOverlays:
    """Highlight, outline and label drawing."""

    def test_surface_matches_original_size(self, renderer, scan_handle):
        """The surface is exactly the source resolution."""
        surface = renderer.render(scan_handle, [make_finding()])

        assert surface.image.size == SCAN_SIZE
        assert (surface.width, surface.height) == (scan_handle.width, scan_handle.height)

    def test_one_overlay_per_finding(self, renderer, scan_handle):
        """N findings draw exactly N highlight rectangles."""
        findings = [
            make_finding(label=f"Lesion {i}", x=10 + 30 * i, y=40, width=20, height=20)
            for i in range(5)
        ]
        surface = renderer.render(scan_handle, findings)

        assert surface.overlay_count == 5
        assert len(surface.placements) == 5

    def test_highlight_is_semi_transparent(self, renderer, scan_handle):
        """The box interior is tinted, not painted over."""
        surface = renderer.render(scan_handle, [make_finding(x=50, y=60, width=80, height=60)])
        r, g, b = surface.image.getpixel((90, 100))

        assert BASE_COLOR[0] < r < STROKE_RGB[0]
        assert (r, g, b) != BASE_COLOR

    def test_outline_is_solid(self, renderer, scan_handle):
        """The box edge is drawn in the opaque stroke colour."""
        surface = renderer.render(scan_handle, [make_finding(x=50, y=60, width=80, height=60)])

        assert surface.image.getpixel((50, 100)) == STROKE_RGB
        assert surface.image.getpixel((51, 100)) == STROKE_RGB

    def test_pixels_outside_boxes_untouched(self, renderer, scan_handle):
        """Overlays only affect the box and label areas."""
        surface = renderer.render(scan_handle, [make_finding(x=50, y=60, width=80, height=60)])

        assert surface.image.getpixel((5, 145)) == BASE_COLOR
        assert surface.image.getpixel((195, 5)) == BASE_COLOR

    def test_later_findings_draw_over_earlier(self, renderer, scan_handle):
        """Overlapping highlights stack in list order."""
        findings = [
            make_finding(label="A", x=40, y=60, width=60, height=60),
            make_finding(label="B", x=70, y=60, width=60, height=60),
        ]
        surface = renderer.render(scan_handle, findings)

        single = surface.image.getpixel((55, 110))[0]
        stacked = surface.image.getpixel((85, 110))[0]
        assert stacked > single

    def test_label_background_drawn(self, renderer, scan_handle):
        """The label rectangle is filled at its resolved position."""
        surface = renderer.render(scan_handle, [make_finding(x=50, y=60, width=80, height=60)])
        placement = surface.placements[0]

        assert not placement.inside_box
        assert surface.image.getpixel((int(placement.x) + 1, int(placement.y) + 1)) == STROKE_RGB

    def test_label_measured_with_drawing_font(self, renderer, scan_handle, overlay_style):
        """Label width comes from the same font used to draw the text."""
        label = "Pneumothorax"
        surface = renderer.render(scan_handle, [make_finding(label=label)])

        expected = renderer.font.getlength(label) + overlay_style.padding_x
        assert surface.placements[0].width == pytest.approx(expected)

    def test_input_image_not_mutated(self, renderer, scan_handle):
        """Rendering never touches the source pixels."""
        before = pixels(scan_handle.image).copy()
        renderer.render(scan_handle, [make_finding()])

        assert np.array_equal(before, pixels(scan_handle.image))


class TestDegenerateGeometry:
    """Malformed boxes clip or overflow but never fail."""

    def test_zero_area_box_at_origin(self, renderer, scan_handle):
        """A 0x0 box at (0, 0) renders without error."""
        surface = renderer.render(scan_handle, [make_finding(x=0, y=0, width=0, height=0)])

        assert surface.overlay_count == 1
        assert surface.placements[0].inside_box

    def test_box_past_image_bounds(self, renderer, scan_handle):
        """A box extending past the image is clipped."""
        surface = renderer.render(scan_handle, [make_finding(x=180, y=140, width=100, height=100)])

        assert surface.image.size == SCAN_SIZE

    def test_negative_and_nan_values(self, renderer, scan_handle):
        """Nonsense coordinates are coerced instead of crashing."""
        finding = make_finding(x=-20, y=float("nan"), width=-5, height=30)
        surface = renderer.render(scan_handle, [finding])

        assert surface.overlay_count == 1


class TestFailures:
    """Error kinds raised by loading and rendering."""

    def test_undecodable_source(self):
        """Garbage bytes raise SourceUnavailable."""
        with pytest.raises(SourceUnavailable):
            load_image(b"definitely not a png")

    def test_empty_source(self):
        """Empty bytes raise SourceUnavailable."""
        with pytest.raises(SourceUnavailable):
            load_image(b"")

    def test_missing_file(self, tmp_path):
        """A missing path raises SourceUnavailable."""
        with pytest.raises(SourceUnavailable):
            load_image(tmp_path / "missing.png")

    def test_bad_font_path(self):
        """An unreadable label font is a render failure."""
        with pytest.raises(RenderFailure):
            OverlayRenderer(OverlayStyle(font_path="/nonexistent/font.ttf"))


class TestEncodePng:
    """PNG encoding of rendered surfaces."""

    def test_png_round_trip_keeps_resolution(self, renderer, scan_handle):
        """Encoded output is a PNG at the original size."""
        content = encode_png(renderer.render(scan_handle, [make_finding()]))

        assert content.startswith(b"\x89PNG\r\n\x1a\n")
        with Image.open(io.BytesIO(content)) as decoded:
            assert decoded.size == SCAN_SIZE

    def test_jpeg_source_exported_as_png(self, renderer):
        """Lossy sources still export losslessly as PNG."""
        handle = load_image(make_scan_bytes(fmt="JPEG"))
        content = encode_png(renderer.render(handle, ()))

        with Image.open(io.BytesIO(content)) as decoded:
            assert decoded.format == "PNG"
            assert np.array_equal(pixels(decoded), pixels(handle.image))
