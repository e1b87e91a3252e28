"""
API routes for ScanReport.

Thin HTTP wrapper around the export engine: a scan image and its
analysis result go in, an annotated PNG or a PDF report comes out.
"""

from urllib.parse import quote

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import Response

from scanreport.api.middleware import limiter
from scanreport.config import settings
from scanreport.models.schemas import (
    ErrorResponse,
    ExportFormat,
    ExportSavedResponse,
    HealthResponse,
)
from scanreport.services.export_coordinator import (
    ExportArtifact,
    ExportRequest,
    get_export_coordinator,
    save_artifact,
)
from scanreport.utils.file_validators import file_validator
from scanreport.utils.logger import get_logger

logger = get_logger("routes")

router = APIRouter()

EXPORT_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid upload or result"},
    422: {"model": ErrorResponse, "description": "Image or text could not be processed"},
    500: {"model": ErrorResponse, "description": "Rendering or encoding failed"},
}


async def _build_request(file: UploadFile, result: str) -> ExportRequest:
    """Validate the upload and parse the analysis result."""
    content = await file.read()
    filename = file.filename or "upload"

    is_valid, error = file_validator.validate_image(content, filename)
    if not is_valid:
        raise HTTPException(status_code=400, detail=error)

    try:
        return ExportRequest.from_payload(content, result, filename=filename)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid analysis result: {e}")


def _download(artifact: ExportArtifact) -> Response:
    # Labels may be non-ASCII; headers must stay latin-1
    fallback = artifact.filename.encode("ascii", "replace").decode("ascii").replace("?", "_")
    disposition = f'attachment; filename="{fallback}"'
    if fallback != artifact.filename:
        disposition += f"; filename*=UTF-8''{quote(artifact.filename)}"
    return Response(
        content=artifact.content,
        media_type=artifact.media_type,
        headers={"Content-Disposition": disposition}
    )


# =============================================================================
# Health Check
# =============================================================================

@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["System"],
    summary="Health check endpoint"
)
async def health_check():
    """Check if the service is healthy and running."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version
    )


# =============================================================================
# Exports
# =============================================================================

@router.post(
    "/export/image",
    tags=["Export"],
    summary="Export the annotated scan as PNG",
    response_class=Response,
    responses=EXPORT_RESPONSES
)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def export_image(
    request: Request,
    file: UploadFile = File(..., description="Original scan image"),
    result: str = Form(..., description="Analysis result as JSON")
):
    """
    Draw every finding onto the scan at its original resolution.

    A healthy result returns the scan without overlays.
    """
    export_request = await _build_request(file, result)
    artifact = await get_export_coordinator().export_image(export_request)
    return _download(artifact)


@router.post(
    "/export/document",
    tags=["Export"],
    summary="Export the PDF report",
    response_class=Response,
    responses=EXPORT_RESPONSES
)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def export_document(
    request: Request,
    file: UploadFile = File(..., description="Original scan image"),
    result: str = Form(..., description="Analysis result as JSON")
):
    """
    Build the paginated report: title, annotated scan, summary, one block
    per finding and the disclaimer.
    """
    export_request = await _build_request(file, result)
    artifact = await get_export_coordinator().export_document(export_request)
    return _download(artifact)


@router.post(
    "/export/save",
    response_model=ExportSavedResponse,
    tags=["Export"],
    summary="Export and save to the output directory",
    responses=EXPORT_RESPONSES
)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def export_and_save(
    request: Request,
    file: UploadFile = File(..., description="Original scan image"),
    result: str = Form(..., description="Analysis result as JSON"),
    format: ExportFormat = Form(ExportFormat.PDF, description="png or pdf")
):
    """Run an export and write the artifact under the configured output directory."""
    export_request = await _build_request(file, result)
    coordinator = get_export_coordinator()

    if format == ExportFormat.PNG:
        artifact = await coordinator.export_image(export_request)
    else:
        artifact = await coordinator.export_document(export_request)

    path = await save_artifact(artifact)

    logger.info("Export saved via API", artifact=artifact.filename, format=format.value)

    return ExportSavedResponse(
        filename=artifact.filename,
        path=str(path),
        media_type=artifact.media_type,
        size_bytes=artifact.size_bytes
    )
