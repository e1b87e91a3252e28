"""
Label placement geometry for finding overlays.

Boxes arrive in native image pixel space and are drawn without scaling.
This module only decides where each label rectangle goes.
"""

from dataclasses import dataclass

from scanreport.models.schemas import BoundingBox


@dataclass(frozen=True)
class LabelPlacement:
    """Resolved label rectangle and text anchor, in image pixels."""

    x: float
    y: float
    width: float
    height: float
    text_x: float
    text_y: float
    inside_box: bool

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


def box_corners(box: BoundingBox) -> tuple[float, float, float, float]:
    """Return (x0, y0, x1, y1) for drawing, never inverted."""
    return (box.x, box.y, box.x + max(0.0, box.width), box.y + max(0.0, box.height))


def resolve_label_placement(
    box: BoundingBox,
    text_width: float,
    image_width: int,
    image_height: int,
    padding_x: float = 12,
    label_height: float = 20,
    label_margin: float = 4,
) -> LabelPlacement:
    """
    Place a finding label relative to its bounding box.

    The label sits above the box, ``label_margin`` clear of its top edge and
    left-aligned with it. Two edge cases are corrected:

    - Top edge: when ``box.y < label_height + 2 * label_margin`` a label
      above would leave the canvas, so it moves inside the top of the box,
      ``label_margin`` below the box's top edge.
    - Right edge: when the label would pass the image width it shifts left
      to ``image_width - width - label_margin``, floored at 0.

    Labels are not corrected near the bottom edge and labels of different
    findings are not kept apart; both behaviours are kept for compatibility.

    Args:
        box: Finding bounding box
        text_width: Measured width of the label text at the drawing font
        image_width: Width of the source image in pixels
        image_height: Height of the source image in pixels
        padding_x: Total horizontal padding added to the text width
        label_height: Fixed label height
        label_margin: Gap between label and box or image edge

    Returns:
        LabelPlacement
    """
    width = max(0.0, text_width) + padding_x
    height = label_height

    x = box.x
    y = box.y - height - label_margin
    inside_box = False

    if box.y < label_height + 2 * label_margin:
        y = box.y + label_margin
        inside_box = True

    if x + width > image_width:
        x = max(0.0, image_width - width - label_margin)

    return LabelPlacement(
        x=x,
        y=y,
        width=width,
        height=height,
        text_x=x + padding_x / 2,
        text_y=y + height / 2,
        inside_box=inside_box,
    )
