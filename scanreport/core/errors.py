"""
Export error kinds for ScanReport.

Every failure of an export call is terminal for that call and carries a
machine-readable error code for the API layer.
"""

from typing import Optional


class ExportError(Exception):
    """Base class for export failures."""

    error_code = "EXPORT_ERROR"

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        super().__init__(self.message)


class SourceUnavailable(ExportError):
    """The source image could not be decoded or loaded."""

    error_code = "SOURCE_UNAVAILABLE"


class RenderFailure(ExportError):
    """The drawing surface could not be created or drawn to."""

    error_code = "RENDER_FAILURE"


class LayoutFailure(ExportError):
    """Text measurement or document assembly could not complete."""

    error_code = "LAYOUT_FAILURE"


class EncodeFailure(ExportError):
    """Final PNG or PDF byte encoding failed."""

    error_code = "ENCODE_FAILURE"
