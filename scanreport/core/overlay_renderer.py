"""
Overlay rendering for ScanReport.

Draws finding highlights, outlines and labels on top of the original scan
at its native resolution. The result is shared by the PNG and PDF exports.
"""

import io
from dataclasses import dataclass
from typing import Optional, Sequence

from PIL import Image, ImageColor, ImageDraw, ImageFont

from scanreport.config import Settings, settings as default_settings
from scanreport.core.errors import EncodeFailure, RenderFailure, SourceUnavailable
from scanreport.core.geometry import LabelPlacement, box_corners, resolve_label_placement
from scanreport.core.image_loader import ImageHandle
from scanreport.models.schemas import Finding
from scanreport.utils.logger import get_logger

logger = get_logger("overlay_renderer")


@dataclass(frozen=True)
class OverlayStyle:
    """Visual parameters for finding overlays, in image pixels."""

    font_path: Optional[str] = None
    font_size: int = 14
    padding_x: int = 12
    label_height: int = 20
    label_margin: int = 4
    highlight_alpha: float = 0.3
    stroke_width: int = 2
    highlight_color: str = "#ff3b30"
    stroke_color: str = "#ff3b30"
    label_background_color: str = "#ff3b30"
    label_text_color: str = "#ffffff"

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "OverlayStyle":
        config = config or default_settings
        return cls(
            font_path=config.label_font_path,
            font_size=config.label_font_size,
            padding_x=config.label_padding_x,
            label_height=config.label_height,
            label_margin=config.label_margin,
            highlight_alpha=config.highlight_alpha,
            stroke_width=config.stroke_width,
            highlight_color=config.highlight_color,
            stroke_color=config.stroke_color,
            label_background_color=config.label_background_color,
            label_text_color=config.label_text_color,
        )

    def load_font(self) -> ImageFont.ImageFont:
        """Load the label font used for both measuring and drawing."""
        if self.font_path:
            return ImageFont.truetype(self.font_path, self.font_size)
        return ImageFont.load_default(size=self.font_size)


@dataclass(frozen=True)
class RenderedSurface:
    """
    Annotated raster sized exactly to the source image.

    Owned by a single export call and never modified after rendering.
    """

    image: Image.Image
    overlay_count: int
    placements: tuple[LabelPlacement, ...] = ()

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height


class OverlayRenderer:
    """
    Renders finding overlays onto a scan.

    For each finding, in order:
    - semi-transparent highlight fill of the bounding box
    - solid outline of the box
    - solid label background with the label text on top

    Later findings draw over earlier ones. A healthy result (no findings)
    yields the base image unchanged.
    """

    def __init__(self, style: Optional[OverlayStyle] = None):
        self.style = style or OverlayStyle.from_settings()
        try:
            self.font = self.style.load_font()
        except (OSError, ValueError) as e:
            raise RenderFailure(f"Could not load label font: {e}") from e

        self._highlight_rgba = self._with_alpha(
            self.style.highlight_color, self.style.highlight_alpha
        )
        self._stroke_rgb = ImageColor.getrgb(self.style.stroke_color)[:3]
        self._label_bg_rgb = ImageColor.getrgb(self.style.label_background_color)[:3]
        self._label_text_rgb = ImageColor.getrgb(self.style.label_text_color)[:3]

    @staticmethod
    def _with_alpha(color: str, alpha: float) -> tuple[int, int, int, int]:
        r, g, b = ImageColor.getrgb(color)[:3]
        return (r, g, b, max(0, min(255, round(alpha * 255))))

    def measure_label(self, text: str) -> float:
        """Width of ``text`` at the label font, in pixels."""
        return float(self.font.getlength(text))

    def render(
        self,
        image: ImageHandle,
        findings: Sequence[Finding] = ()
    ) -> RenderedSurface:
        """
        Draw the base image and all finding overlays.

        Args:
            image: Decoded source image
            findings: Findings in draw order (empty for a healthy result)

        Returns:
            RenderedSurface at the original image resolution

        Raises:
            SourceUnavailable: If the image pixels cannot be read
            RenderFailure: If drawing fails
        """
        try:
            canvas = image.image.convert("RGBA")
        except (OSError, ValueError) as e:
            raise SourceUnavailable(f"Image pixels unavailable: {e}") from e

        if canvas.size != image.size:
            raise RenderFailure(
                f"Image size {canvas.size} does not match handle size {image.size}"
            )

        placements: list[LabelPlacement] = []
        try:
            for finding in findings:
                canvas = self._draw_highlight(canvas, finding)
                placements.append(self._draw_outline_and_label(canvas, finding, image))
            surface_image = canvas.convert("RGB")
        except (OSError, ValueError, TypeError) as e:
            logger.error("Overlay rendering failed", error=str(e))
            raise RenderFailure(f"Could not draw overlays: {e}") from e

        logger.info(
            "Overlay rendered",
            width=image.width,
            height=image.height,
            findings=len(placements)
        )

        return RenderedSurface(
            image=surface_image,
            overlay_count=len(placements),
            placements=tuple(placements)
        )

    def _draw_highlight(self, canvas: Image.Image, finding: Finding) -> Image.Image:
        layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
        ImageDraw.Draw(layer).rectangle(
            box_corners(finding.bounding_box),
            fill=self._highlight_rgba
        )
        return Image.alpha_composite(canvas, layer)

    def _draw_outline_and_label(
        self,
        canvas: Image.Image,
        finding: Finding,
        image: ImageHandle
    ) -> LabelPlacement:
        draw = ImageDraw.Draw(canvas)
        draw.rectangle(
            box_corners(finding.bounding_box),
            outline=self._stroke_rgb,
            width=self.style.stroke_width
        )

        placement = resolve_label_placement(
            finding.bounding_box,
            self.measure_label(finding.label),
            image.width,
            image.height,
            padding_x=self.style.padding_x,
            label_height=self.style.label_height,
            label_margin=self.style.label_margin,
        )
        draw.rectangle(
            (placement.x, placement.y, placement.right, placement.bottom),
            fill=self._label_bg_rgb
        )

        # Centre the glyph box on the label's vertical midline
        _, top, _, bottom = self.font.getbbox(finding.label)
        draw.text(
            (placement.text_x, placement.text_y - (top + bottom) / 2),
            finding.label,
            font=self.font,
            fill=self._label_text_rgb
        )
        return placement


def encode_png(surface: RenderedSurface) -> bytes:
    """
    Encode a rendered surface as PNG.

    Raises:
        EncodeFailure: If Pillow cannot write the PNG
    """
    buffer = io.BytesIO()
    try:
        surface.image.save(buffer, format="PNG")
    except (OSError, ValueError) as e:
        raise EncodeFailure(f"PNG encoding failed: {e}") from e
    return buffer.getvalue()
