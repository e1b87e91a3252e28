"""
Pydantic schemas for ScanReport.

Defines the diagnostic result data model consumed by the export engine
and the request/response models for the API endpoints.
"""

import json
import math
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


# =============================================================================
# Enums
# =============================================================================

class ResultStatus(str, Enum):
    """Diagnostic outcome reported by the inference service."""
    HEALTHY = "healthy"
    ANOMALY_DETECTED = "anomaly_detected"


class ExportFormat(str, Enum):
    """Supported export formats."""
    PNG = "png"
    PDF = "pdf"


# =============================================================================
# Diagnostic Results
# =============================================================================

def _finite_or_zero(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


class BoundingBox(BaseModel):
    """
    Finding region in native image pixel space.

    Upstream data is not guaranteed to be inside the image. Values are
    coerced to finite numbers and extents to >= 0 so that drawing can only
    clip or overflow, never fail.
    """

    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @field_validator("x", "y", mode="before")
    @classmethod
    def _coerce_origin(cls, value: Any) -> float:
        return _finite_or_zero(value)

    @field_validator("width", "height", mode="before")
    @classmethod
    def _coerce_extent(cls, value: Any) -> float:
        return max(0.0, _finite_or_zero(value))

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


class Finding(BaseModel):
    """One localized abnormality: label, description and bounding box."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    label: str = Field(description="Short name of the finding")
    description: str = Field(default="", description="Clinical description")
    bounding_box: BoundingBox = Field(
        default_factory=BoundingBox,
        alias="boundingBox",
        description="Region in original image pixels"
    )

    @field_validator("label", "description", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return "" if value is None else str(value)


class HealthyResult(BaseModel):
    """Analysis outcome with no findings."""

    model_config = ConfigDict(frozen=True)

    status: Literal["healthy"] = "healthy"
    summary: str = Field(default="No abnormalities detected.")


class AnomalyResult(BaseModel):
    """Analysis outcome with one or more ordered findings."""

    model_config = ConfigDict(frozen=True)

    status: Literal["anomaly_detected"] = "anomaly_detected"
    summary: str = Field(default="")
    findings: tuple[Finding, ...] = Field(
        min_length=1,
        description="Findings in draw and listing order"
    )


AnalysisResult = Annotated[
    Union[HealthyResult, AnomalyResult],
    Field(discriminator="status")
]

_analysis_result_adapter = TypeAdapter(AnalysisResult)


def _normalize_status(raw: Any) -> str:
    return str(raw or "").strip().lower().replace("-", "_").replace(" ", "_")


def parse_analysis_result(
    payload: Union[Mapping[str, Any], str, bytes, HealthyResult, AnomalyResult]
) -> Union[HealthyResult, AnomalyResult]:
    """
    Build an AnalysisResult from raw inference output.

    Validation is deliberately minimal. An explicit "healthy" status, or a
    missing or empty findings list, yields HealthyResult. Any other payload
    with findings yields AnomalyResult.

    Args:
        payload: Result dict, JSON text, or an already parsed result

    Returns:
        HealthyResult or AnomalyResult
    """
    if isinstance(payload, (HealthyResult, AnomalyResult)):
        return payload

    if isinstance(payload, (str, bytes)):
        payload = json.loads(payload)

    if not isinstance(payload, Mapping):
        raise ValueError("Analysis result must be a JSON object")

    status = _normalize_status(payload.get("status"))
    summary = payload.get("summary")
    findings = payload.get("findings") or []

    if status == ResultStatus.HEALTHY.value or not findings:
        data: dict[str, Any] = {"status": ResultStatus.HEALTHY.value}
        if summary:
            data["summary"] = str(summary)
        return _analysis_result_adapter.validate_python(data)

    return _analysis_result_adapter.validate_python({
        "status": ResultStatus.ANOMALY_DETECTED.value,
        "summary": "" if summary is None else str(summary),
        "findings": list(findings),
    })


# =============================================================================
# Health & Status
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy")
    version: str = Field(description="Application version")
    timestamp: datetime = Field(default_factory=datetime.utcnow)


# =============================================================================
# Export Responses
# =============================================================================

class ExportSavedResponse(BaseModel):
    """Response after an export has been written to the output directory."""

    filename: str = Field(description="Derived artifact filename")
    path: str = Field(description="Location of the saved file")
    media_type: str = Field(description="MIME type of the artifact")
    size_bytes: int = Field(description="Artifact size in bytes")


# =============================================================================
# Error Responses
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(description="Error type")
    message: str = Field(description="Human-readable error message")
    error_code: str = Field(description="Machine-readable error code")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
