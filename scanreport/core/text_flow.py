"""
Width-driven text wrapping for PDF layout.

Lines are broken at word boundaries using the real glyph widths of the
target font, so long clinical terms are measured as they will be drawn.
"""

import re

from reportlab.pdfbase import pdfmetrics

from scanreport.core.errors import LayoutFailure

# Standard PDF fonts are drawn with WinAnsi encoding
_STANDARD_FONT_ENCODING = "cp1252"

_WORD_RE = re.compile(r"\S+")


class TextFlow:
    """Wraps and measures text for one font face and size."""

    def __init__(self, font_name: str, font_size: float):
        self.font_name = font_name
        self.font_size = float(font_size)
        try:
            pdfmetrics.getFont(font_name)
        except KeyError as e:
            raise LayoutFailure(f"Unknown font: {font_name}") from e

    def width(self, text: str) -> float:
        """Rendered width of ``text`` in points."""
        return pdfmetrics.stringWidth(text, self.font_name, self.font_size)

    def _check_encodable(self, text: str) -> None:
        try:
            text.encode(_STANDARD_FONT_ENCODING)
        except UnicodeEncodeError as e:
            raise LayoutFailure(
                f"Unsupported character {text[e.start:e.end]!r} for font {self.font_name}"
            ) from e

    def wrap(self, text: str, max_width: float) -> list[str]:
        """
        Wrap ``text`` to lines no wider than ``max_width`` points.

        Explicit newlines start a new paragraph. A word wider than the
        line is never split; it is placed alone on its own line.

        Raises:
            LayoutFailure: If the text contains characters the font cannot draw
        """
        if max_width <= 0:
            raise LayoutFailure(f"Content width must be positive, got {max_width}")

        text = text or ""
        self._check_encodable(text)

        space_width = self.width(" ")
        lines: list[str] = []

        for paragraph in text.splitlines():
            words = _WORD_RE.findall(paragraph)
            if not words:
                if lines:
                    lines.append("")
                continue

            current = words[0]
            current_width = self.width(current)
            for word in words[1:]:
                word_width = self.width(word)
                if current_width + space_width + word_width <= max_width:
                    current = f"{current} {word}"
                    current_width += space_width + word_width
                else:
                    lines.append(current)
                    current = word
                    current_width = word_width
            lines.append(current)

        # Trailing blank paragraphs add no height
        while lines and not lines[-1]:
            lines.pop()

        return lines

    @staticmethod
    def measure(lines: list[str], line_height: float) -> float:
        """Total height of ``lines`` at ``line_height`` points per line."""
        return len(lines) * line_height
