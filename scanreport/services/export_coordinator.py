"""
Export coordinator for ScanReport.

Orchestrates one export call: decode the image, render the overlays, then
either encode a PNG or assemble and encode the PDF report.
"""

import asyncio
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from scanreport.config import settings
from scanreport.core.document_assembler import DocumentAssembler
from scanreport.core.document_writer import DocumentWriter
from scanreport.core.errors import EncodeFailure, ExportError
from scanreport.core.image_loader import ImageHandle, ImageSource, load_image_async
from scanreport.core.naming import document_filename, image_filename
from scanreport.core.overlay_renderer import OverlayRenderer, RenderedSurface, encode_png
from scanreport.models.schemas import (
    AnomalyResult,
    HealthyResult,
    parse_analysis_result,
)
from scanreport.utils.logger import export_context, get_logger

logger = get_logger("export_coordinator")

PNG_MEDIA_TYPE = "image/png"
PDF_MEDIA_TYPE = "application/pdf"


@dataclass(frozen=True)
class ExportRequest:
    """Inputs for one export call. Both fields are read-only."""

    image: Union[ImageSource, ImageHandle]
    result: Union[HealthyResult, AnomalyResult]
    filename: Optional[str] = None

    @classmethod
    def from_payload(
        cls,
        image: Union[ImageSource, ImageHandle],
        payload: Union[Mapping[str, Any], str, bytes],
        filename: Optional[str] = None
    ) -> "ExportRequest":
        """Build a request from raw inference output."""
        return cls(image=image, result=parse_analysis_result(payload), filename=filename)


@dataclass(frozen=True)
class ExportArtifact:
    """Encoded export ready for download or saving."""

    filename: str
    media_type: str
    content: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.content)


def _findings_of(result: Union[HealthyResult, AnomalyResult]) -> tuple:
    if isinstance(result, AnomalyResult):
        return result.findings
    if isinstance(result, HealthyResult):
        return ()
    raise TypeError(f"Unsupported result type: {type(result).__name__}")


class ExportCoordinator:
    """
    Runs PNG and PDF exports.

    Holds no per-call state: every export decodes, renders and lays out
    from scratch, so concurrent calls cannot interfere with each other.
    """

    def __init__(
        self,
        renderer: Optional[OverlayRenderer] = None,
        assembler: Optional[DocumentAssembler] = None,
        writer: Optional[DocumentWriter] = None,
    ):
        self.renderer = renderer or OverlayRenderer()
        self.assembler = assembler or DocumentAssembler()
        self.writer = writer or DocumentWriter()

    async def _render(self, request: ExportRequest) -> RenderedSurface:
        handle = await load_image_async(request.image, request.filename)
        return self.renderer.render(handle, _findings_of(request.result))

    async def export_image(self, request: ExportRequest) -> ExportArtifact:
        """
        Export the annotated scan as PNG at the original resolution.

        Raises:
            ExportError: Any failure, with its original kind
        """
        name = image_filename(request.result)
        with export_context(artifact=name, format="png"):
            try:
                surface = await self._render(request)
                content = encode_png(surface)
            except ExportError as e:
                logger.error("Image export failed", error_code=e.error_code, error=e.message)
                raise

            logger.info("Image exported", overlays=surface.overlay_count, size=len(content))
        return ExportArtifact(filename=name, media_type=PNG_MEDIA_TYPE, content=content)

    async def export_document(self, request: ExportRequest) -> ExportArtifact:
        """
        Export the PDF report with the annotated scan embedded.

        Raises:
            ExportError: Any failure, with its original kind
        """
        name = document_filename(request.result)
        with export_context(artifact=name, format="pdf"):
            try:
                surface = await self._render(request)
                pages = self.assembler.assemble(surface, request.result, generated_at=datetime.now())
                content = self.writer.write(pages)
            except ExportError as e:
                logger.error("Document export failed", error_code=e.error_code, error=e.message)
                raise

            logger.info("Document exported", pages=len(pages), size=len(content))
        return ExportArtifact(filename=name, media_type=PDF_MEDIA_TYPE, content=content)


def _write_atomic(content: bytes, target: Path) -> None:
    fd, tmp_name = tempfile.mkstemp(prefix=".", suffix=".part", dir=target.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(content)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


async def save_artifact(
    artifact: ExportArtifact,
    output_dir: Optional[Path] = None
) -> Path:
    """
    Write an artifact into the output directory.

    The bytes go to a hidden temporary file that is renamed into place,
    so a failed write never leaves a partial file under the final name.

    Raises:
        EncodeFailure: If the file cannot be written
    """
    directory = Path(output_dir) if output_dir is not None else settings.output_path
    target = directory / artifact.filename
    try:
        directory.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(_write_atomic, artifact.content, target)
    except (OSError, ValueError) as e:
        logger.error("Saving export failed", path=str(target), error=str(e))
        raise EncodeFailure(f"Could not save {artifact.filename}: {e}") from e

    logger.info("Export saved", path=str(target), size=artifact.size_bytes)
    return target


# Lazy-loaded singleton
_export_coordinator: Optional[ExportCoordinator] = None


def get_export_coordinator() -> ExportCoordinator:
    """Get or create export coordinator singleton."""
    global _export_coordinator
    if _export_coordinator is None:
        _export_coordinator = ExportCoordinator()
    return _export_coordinator
