"""
PDF writer for assembled report pages.

Replays the draw commands of each page onto a reportlab canvas. Layout
coordinates are top-down; reportlab's origin is the bottom-left corner.
"""

import io
from typing import Optional, Sequence

from reportlab.lib import colors
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from scanreport.config import settings
from scanreport.core.document_assembler import (
    DrawCommand,
    ImageCommand,
    LineCommand,
    Page,
    RectCommand,
    TextCommand,
)
from scanreport.core.errors import EncodeFailure
from scanreport.utils.logger import get_logger

logger = get_logger("document_writer")


class DocumentWriter:
    """Encodes pages as a PDF document."""

    def __init__(self, title: Optional[str] = None, author: Optional[str] = None):
        self.title = title or settings.report_title
        self.author = author or settings.app_name

    def write(self, pages: Sequence[Page]) -> bytes:
        """
        Render pages to PDF bytes.

        Raises:
            EncodeFailure: If there is nothing to write or reportlab fails
        """
        if not pages:
            raise EncodeFailure("Document has no pages")

        buffer = io.BytesIO()
        try:
            pdf = canvas.Canvas(buffer, pagesize=(pages[0].width, pages[0].height))
            pdf.setTitle(self.title)
            pdf.setAuthor(self.author)
            pdf.setCreator(f"{settings.app_name} {settings.app_version}")

            for page in pages:
                pdf.setPageSize((page.width, page.height))
                for command in page.commands:
                    self._draw(pdf, page, command)
                pdf.showPage()

            pdf.save()
        except Exception as e:
            logger.error("PDF encoding failed", error=str(e), pages=len(pages))
            raise EncodeFailure(f"PDF encoding failed: {e}") from e

        content = buffer.getvalue()
        logger.info("PDF encoded", pages=len(pages), size=len(content))
        return content

    def _draw(self, pdf: canvas.Canvas, page: Page, command: DrawCommand) -> None:
        if isinstance(command, TextCommand):
            pdf.setFillColor(colors.HexColor(command.color))
            pdf.setFont(command.font_name, command.font_size)
            y = page.height - command.y
            if command.align == "right":
                pdf.drawRightString(command.x, y, command.text)
            elif command.align == "center":
                pdf.drawCentredString(command.x, y, command.text)
            else:
                pdf.drawString(command.x, y, command.text)

        elif isinstance(command, ImageCommand):
            pdf.drawImage(
                ImageReader(command.image),
                command.x,
                page.height - command.y - command.height,
                width=command.width,
                height=command.height,
            )

        elif isinstance(command, RectCommand):
            if command.stroke_color:
                pdf.setStrokeColor(colors.HexColor(command.stroke_color))
            if command.fill_color:
                pdf.setFillColor(colors.HexColor(command.fill_color))
            pdf.setLineWidth(command.line_width)
            pdf.rect(
                command.x,
                page.height - command.y - command.height,
                command.width,
                command.height,
                stroke=1 if command.stroke_color else 0,
                fill=1 if command.fill_color else 0,
            )

        elif isinstance(command, LineCommand):
            pdf.setStrokeColor(colors.HexColor(command.color))
            pdf.setLineWidth(command.line_width)
            pdf.line(
                command.x1, page.height - command.y1,
                command.x2, page.height - command.y2,
            )

        else:
            raise TypeError(f"Unknown draw command: {type(command).__name__}")
