"""Export file naming."""

import re
from typing import Union

from scanreport.models.schemas import AnomalyResult, HealthyResult

HEALTHY_BASE_NAME = "healthy"
FALLBACK_BASE_NAME = "finding"

_SEPARATORS_RE = re.compile(r"[\s/\\]+")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")


def derive_base_name(result: Union[HealthyResult, AnomalyResult]) -> str:
    """
    Base name shared by the PNG and PDF exports of one result.

    Taken from the first finding's label: lower-cased, with runs of
    whitespace and slashes replaced by an underscore and other control
    characters dropped. Healthy results use a fixed token.
    """
    if isinstance(result, HealthyResult):
        return HEALTHY_BASE_NAME
    if isinstance(result, AnomalyResult):
        label = _SEPARATORS_RE.sub("_", result.findings[0].label.strip().lower())
        return _CONTROL_RE.sub("", label) or FALLBACK_BASE_NAME
    raise TypeError(f"Unsupported result type: {type(result).__name__}")


def image_filename(result: Union[HealthyResult, AnomalyResult]) -> str:
    return f"{derive_base_name(result)}_annotated.png"


def document_filename(result: Union[HealthyResult, AnomalyResult]) -> str:
    return f"{derive_base_name(result)}_report.pdf"
