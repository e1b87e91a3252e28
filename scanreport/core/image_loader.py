"""
Image loading for ScanReport.

Decodes uploaded scans into an ImageHandle at their original resolution.
Bounding boxes from the inference service are expressed in this pixel
space, so no resizing or padding is ever applied here.
"""

import asyncio
import io
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

from scanreport.core.errors import SourceUnavailable
from scanreport.utils.logger import get_logger

logger = get_logger("image_loader")

ImageSource = Union[bytes, Path, str]


def _rescale_to_8bit(pil_image: Image.Image) -> Image.Image:
    """
    Stretch a 16-bit or float scan onto 0..255 grayscale.

    A plain mode conversion clips every value above 255 to white.
    """
    if pil_image.mode != "F":
        pil_image = pil_image.convert("I")
    low, high = pil_image.getextrema()
    scale = 255.0 / (high - low) if high > low else 0.0
    offset = -low * scale
    return pil_image.point(lambda value: value * scale + offset).convert("L")


@dataclass(frozen=True)
class ImageHandle:
    """Decoded raster source and its native pixel dimensions."""

    image: Image.Image
    width: int
    height: int
    format: str

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)


def load_image(
    source: ImageSource,
    filename: Optional[str] = None
) -> ImageHandle:
    """
    Decode an image from bytes or a file path.

    The pixel data is fully loaded before returning so that later drawing
    never touches the source stream.

    Args:
        source: Image bytes, file path, or path string
        filename: Optional filename for logging

    Returns:
        ImageHandle at the original resolution

    Raises:
        SourceUnavailable: If the image cannot be read or decoded
    """
    try:
        if isinstance(source, bytes):
            if not source:
                raise SourceUnavailable("Image data is empty")
            pil_image = Image.open(io.BytesIO(source))
        else:
            path = Path(source)
            filename = filename or path.name
            pil_image = Image.open(path)

        original_format = pil_image.format or "UNKNOWN"
        pil_image.load()

        if pil_image.mode.startswith("I") or pil_image.mode == "F":
            pil_image = _rescale_to_8bit(pil_image)
        elif pil_image.mode not in ("RGB", "RGBA", "L"):
            pil_image = pil_image.convert("RGBA" if "A" in pil_image.getbands() else "RGB")

    except SourceUnavailable:
        raise
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.error("Image decode failed", filename=filename, error=str(e))
        raise SourceUnavailable(f"Could not decode image: {e}") from e

    logger.info(
        "Image loaded",
        filename=filename,
        width=pil_image.width,
        height=pil_image.height,
        format=original_format,
        mode=pil_image.mode
    )

    return ImageHandle(
        image=pil_image,
        width=pil_image.width,
        height=pil_image.height,
        format=original_format
    )


async def load_image_async(
    source: Union[ImageSource, ImageHandle],
    filename: Optional[str] = None
) -> ImageHandle:
    """
    Decode an image without blocking the event loop.

    This is the single suspension point before any drawing starts. An
    already decoded handle is returned as is.
    """
    if isinstance(source, ImageHandle):
        return source
    return await asyncio.to_thread(load_image, source, filename)
