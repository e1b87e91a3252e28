"""
Document assembly for ScanReport.

Lays out the report as a list of pages, each holding positioned draw
commands. Coordinates are in PDF points with the origin at the top-left
corner of the page and y growing downwards; the writer flips them.

Layout is a single forward pass over a PageCursor:

    TITLE -> IMAGE -> SUMMARY -> FINDINGS -> DISCLAIMER -> DONE

Before any block of known height is placed, it either fits above the
printable bottom of the current page or a new page is started first.
Blocks are never split across pages.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Sequence, Union

from PIL import Image
from reportlab.lib.pagesizes import A4, letter

from scanreport.config import Settings, settings as default_settings
from scanreport.core.overlay_renderer import RenderedSurface
from scanreport.core.text_flow import TextFlow
from scanreport.models.schemas import AnomalyResult, Finding, HealthyResult
from scanreport.utils.logger import get_logger

logger = get_logger("document_assembler")

PAGE_SIZES = {"A4": A4, "letter": letter}

HEADING_COLOR = "#0066cc"
TEXT_COLOR = "#333333"
MUTED_COLOR = "#666666"
RULE_COLOR = "#dddddd"


# =============================================================================
# Draw Commands
# =============================================================================

@dataclass(frozen=True)
class TextCommand:
    """One line of text; ``y`` is the baseline."""

    x: float
    y: float
    text: str
    font_name: str
    font_size: float
    color: str = TEXT_COLOR
    align: str = "left"


@dataclass(frozen=True)
class ImageCommand:
    """Raster image; ``y`` is the top edge."""

    x: float
    y: float
    width: float
    height: float
    image: Image.Image


@dataclass(frozen=True)
class RectCommand:
    x: float
    y: float
    width: float
    height: float
    stroke_color: Optional[str] = None
    fill_color: Optional[str] = None
    line_width: float = 0.5


@dataclass(frozen=True)
class LineCommand:
    x1: float
    y1: float
    x2: float
    y2: float
    color: str = RULE_COLOR
    line_width: float = 0.7


DrawCommand = Union[TextCommand, ImageCommand, RectCommand, LineCommand]


class BlockKind(str, Enum):
    TITLE = "title"
    IMAGE = "image"
    SUMMARY = "summary"
    FINDINGS_HEADING = "findings_heading"
    FINDING = "finding"
    DISCLAIMER = "disclaimer"


@dataclass(frozen=True)
class LayoutBlock:
    """Vertical span occupied by one laid-out block on a page."""

    kind: BlockKind
    top: float
    bottom: float
    index: Optional[int] = None


@dataclass
class Page:
    """One output page: draw commands plus the blocks placed on it."""

    index: int
    width: float
    height: float
    commands: list[DrawCommand] = field(default_factory=list)
    blocks: list[LayoutBlock] = field(default_factory=list)

    def blocks_of(self, kind: BlockKind) -> list[LayoutBlock]:
        return [block for block in self.blocks if block.kind == kind]


class LayoutState(str, Enum):
    TITLE = "title"
    IMAGE = "image"
    SUMMARY = "summary"
    FINDINGS = "findings"
    DISCLAIMER = "disclaimer"
    DONE = "done"


@dataclass
class PageCursor:
    """Forward-only vertical position within the current page."""

    y: float
    page_index: int = 0


# =============================================================================
# Style
# =============================================================================

@dataclass(frozen=True)
class DocumentStyle:
    """Page geometry and typography for the PDF report, in points."""

    page_width: float = A4[0]
    page_height: float = A4[1]
    margin: float = 50.0
    disclaimer_bottom_margin: float = 36.0
    max_image_height: float = 360.0
    block_spacing: float = 10.0
    body_font: str = "Helvetica"
    bold_font: str = "Helvetica-Bold"
    italic_font: str = "Helvetica-Oblique"
    title_font_size: float = 20.0
    heading_font_size: float = 14.0
    body_font_size: float = 11.0
    disclaimer_font_size: float = 8.5
    line_height_factor: float = 1.35
    title: str = "Medical Scan Analysis Report"
    disclaimer_text: str = (
        "Disclaimer: This report was generated by an automated image analysis "
        "system and is provided for informational purposes only."
    )

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "DocumentStyle":
        config = config or default_settings
        page_width, page_height = PAGE_SIZES[config.page_size]
        return cls(
            page_width=page_width,
            page_height=page_height,
            margin=config.page_margin,
            disclaimer_bottom_margin=config.disclaimer_bottom_margin,
            max_image_height=config.max_image_height,
            block_spacing=config.block_spacing,
            body_font=config.body_font,
            bold_font=config.bold_font,
            italic_font=config.italic_font,
            title_font_size=config.title_font_size,
            heading_font_size=config.heading_font_size,
            body_font_size=config.body_font_size,
            disclaimer_font_size=config.disclaimer_font_size,
            line_height_factor=config.line_height_factor,
            title=config.report_title,
            disclaimer_text=config.disclaimer_text,
        )

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * self.margin

    @property
    def printable_bottom(self) -> float:
        """Lowest y a regular block may reach."""
        return self.page_height - self.margin

    @property
    def disclaimer_bottom(self) -> float:
        """Lowest y the disclaimer footer may reach."""
        return self.page_height - self.disclaimer_bottom_margin

    def line_height(self, font_size: float) -> float:
        return font_size * self.line_height_factor


# =============================================================================
# Assembly
# =============================================================================

@dataclass
class _TextRun:
    lines: list[str]
    font_name: str
    font_size: float
    color: str


class _LayoutPass:
    """Mutable state for one assembly pass; discarded afterwards."""

    def __init__(self, style: DocumentStyle):
        self.style = style
        self.pages: list[Page] = []
        self.cursor = PageCursor(y=style.margin)
        self.state = LayoutState.TITLE
        self._new_page()

    @property
    def page(self) -> Page:
        return self.pages[-1]

    def _new_page(self) -> None:
        self.pages.append(Page(
            index=len(self.pages),
            width=self.style.page_width,
            height=self.style.page_height,
        ))
        self.cursor.page_index = len(self.pages) - 1
        self.cursor.y = self.style.margin

    def advance_to(self, state: LayoutState) -> None:
        logger.debug(
            "Layout state",
            previous=self.state.value,
            state=state.value,
            page=self.cursor.page_index,
            y=round(self.cursor.y, 2)
        )
        self.state = state

    def ensure_room(self, height: float, bottom: Optional[float] = None) -> None:
        """Start a new page unless ``height`` fits above ``bottom``."""
        bottom = self.style.printable_bottom if bottom is None else bottom
        if self.cursor.y + height <= bottom:
            return
        if self.cursor.y <= self.style.margin:
            # Already at the top of a fresh page; a break would not help
            logger.warning(
                "Block taller than printable height",
                height=round(height, 2),
                page=self.cursor.page_index
            )
            return
        self._new_page()

    def place_text_block(
        self,
        kind: BlockKind,
        runs: Sequence[_TextRun],
        index: Optional[int] = None,
        bottom: Optional[float] = None,
        spacing: Optional[float] = None,
    ) -> LayoutBlock:
        height = self.text_height(runs)
        self.ensure_room(height, bottom)

        top = self.cursor.y
        y = top
        for run in runs:
            line_height = self.style.line_height(run.font_size)
            for line in run.lines:
                self.page.commands.append(TextCommand(
                    x=self.style.margin,
                    y=y + run.font_size,
                    text=line,
                    font_name=run.font_name,
                    font_size=run.font_size,
                    color=run.color,
                ))
                y += line_height

        return self._close_block(kind, top, height, index, spacing)

    def place_image_block(self, image: Image.Image) -> LayoutBlock:
        style = self.style
        draw_width = style.content_width
        draw_height = draw_width * image.height / image.width
        if draw_height > style.max_image_height:
            scale = style.max_image_height / draw_height
            draw_width *= scale
            draw_height = style.max_image_height

        self.ensure_room(draw_height)
        top = self.cursor.y
        x = style.margin + (style.content_width - draw_width) / 2

        self.page.commands.append(ImageCommand(
            x=x, y=top, width=draw_width, height=draw_height, image=image
        ))
        self.page.commands.append(RectCommand(
            x=x, y=top, width=draw_width, height=draw_height,
            stroke_color=RULE_COLOR
        ))
        return self._close_block(BlockKind.IMAGE, top, draw_height)

    def text_height(self, runs: Sequence[_TextRun]) -> float:
        return sum(
            TextFlow.measure(run.lines, self.style.line_height(run.font_size))
            for run in runs
        )

    def _close_block(
        self,
        kind: BlockKind,
        top: float,
        height: float,
        index: Optional[int] = None,
        spacing: Optional[float] = None,
    ) -> LayoutBlock:
        block = LayoutBlock(kind=kind, top=top, bottom=top + height, index=index)
        self.page.blocks.append(block)
        self.cursor.y = block.bottom + (self.style.block_spacing if spacing is None else spacing)
        return block


class DocumentAssembler:
    """
    Composes the paginated report from a rendered surface and a result.

    Page order of content: title and image (first page only), summary,
    one block per finding in result order, disclaimer footer. Every page
    is stamped with "Page i of n" once layout is complete.
    """

    def __init__(self, style: Optional[DocumentStyle] = None):
        self.style = style or DocumentStyle.from_settings()
        self.body_flow = TextFlow(self.style.body_font, self.style.body_font_size)
        self.bold_flow = TextFlow(self.style.bold_font, self.style.body_font_size)
        self.title_flow = TextFlow(self.style.bold_font, self.style.title_font_size)
        self.heading_flow = TextFlow(self.style.bold_font, self.style.heading_font_size)
        self.disclaimer_flow = TextFlow(self.style.italic_font, self.style.disclaimer_font_size)
        self.meta_flow = TextFlow(self.style.body_font, self.style.disclaimer_font_size)

    def assemble(
        self,
        surface: RenderedSurface,
        result: Union[HealthyResult, AnomalyResult],
        generated_at: Optional[datetime] = None,
    ) -> list[Page]:
        """
        Lay out the full report.

        Args:
            surface: Annotated image to embed
            result: Analysis result to describe
            generated_at: Optional timestamp printed under the title

        Returns:
            Pages in order, each with its draw commands and block spans

        Raises:
            LayoutFailure: If text cannot be measured
        """
        layout = _LayoutPass(self.style)
        width = self.style.content_width

        # TITLE
        runs = [self._run(self.title_flow, self.style.title, width, HEADING_COLOR)]
        if generated_at is not None:
            stamp = f"Generated {generated_at.strftime('%B %d, %Y at %I:%M %p')}"
            runs.append(self._run(self.meta_flow, stamp, width, MUTED_COLOR))
        title_block = layout.place_text_block(BlockKind.TITLE, runs)
        layout.page.commands.append(LineCommand(
            x1=self.style.margin,
            y1=title_block.bottom + self.style.block_spacing / 2,
            x2=self.style.margin + width,
            y2=title_block.bottom + self.style.block_spacing / 2,
            color=HEADING_COLOR,
            line_width=1.5,
        ))
        layout.cursor.y += self.style.block_spacing / 2

        layout.advance_to(LayoutState.IMAGE)
        layout.place_image_block(surface.image)

        layout.advance_to(LayoutState.SUMMARY)
        layout.place_text_block(BlockKind.SUMMARY, [
            self._run(self.heading_flow, "Summary", width, HEADING_COLOR),
            self._run(self.body_flow, result.summary, width, TEXT_COLOR),
        ])

        layout.advance_to(LayoutState.FINDINGS)
        if isinstance(result, AnomalyResult):
            self._lay_out_findings(layout, result.findings)
        elif isinstance(result, HealthyResult):
            logger.debug("Healthy result, no finding blocks")
        else:
            raise TypeError(f"Unsupported result type: {type(result).__name__}")

        layout.advance_to(LayoutState.DISCLAIMER)
        disclaimer = [self._run(self.disclaimer_flow, self.style.disclaimer_text, width, MUTED_COLOR)]
        layout.ensure_room(
            layout.text_height(disclaimer) + self.style.block_spacing / 2,
            self.style.disclaimer_bottom
        )
        rule_y = layout.cursor.y
        layout.page.commands.append(LineCommand(
            x1=self.style.margin, y1=rule_y,
            x2=self.style.margin + width, y2=rule_y,
        ))
        layout.cursor.y += self.style.block_spacing / 2
        layout.place_text_block(
            BlockKind.DISCLAIMER,
            disclaimer,
            bottom=self.style.disclaimer_bottom,
            spacing=0.0,
        )

        layout.advance_to(LayoutState.DONE)
        self._stamp_page_numbers(layout.pages)

        logger.info(
            "Document assembled",
            pages=len(layout.pages),
            findings=len(result.findings) if isinstance(result, AnomalyResult) else 0
        )
        return layout.pages

    def _lay_out_findings(self, layout: _LayoutPass, findings: Sequence[Finding]) -> None:
        width = self.style.content_width
        blocks = [
            [
                self._run(self.bold_flow, f"Finding {number}: {finding.label}", width, TEXT_COLOR),
                self._run(self.body_flow, finding.description, width, TEXT_COLOR),
            ]
            for number, finding in enumerate(findings, start=1)
        ]

        heading = [self._run(self.heading_flow, f"Findings ({len(findings)})", width, HEADING_COLOR)]
        # Keep the heading on the same page as the first finding
        layout.ensure_room(
            layout.text_height(heading) + self.style.block_spacing / 2
            + layout.text_height(blocks[0])
        )
        layout.place_text_block(
            BlockKind.FINDINGS_HEADING,
            heading,
            spacing=self.style.block_spacing / 2,
        )

        for number, runs in enumerate(blocks, start=1):
            layout.place_text_block(BlockKind.FINDING, runs, index=number)

    def _stamp_page_numbers(self, pages: list[Page]) -> None:
        total = len(pages)
        baseline = self.style.page_height - self.style.disclaimer_bottom_margin / 2
        for page in pages:
            page.commands.append(TextCommand(
                x=self.style.page_width - self.style.margin,
                y=baseline,
                text=f"Page {page.index + 1} of {total}",
                font_name=self.style.body_font,
                font_size=self.style.disclaimer_font_size,
                color=MUTED_COLOR,
                align="right",
            ))

    @staticmethod
    def _run(flow: TextFlow, text: str, width: float, color: str) -> _TextRun:
        return _TextRun(
            lines=flow.wrap(text, width),
            font_name=flow.font_name,
            font_size=flow.font_size,
            color=color,
        )
