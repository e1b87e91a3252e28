"""
Shared fixtures for ScanReport tests.
"""

import os
import tempfile

# Settings are read once on import; keep test runs quiet and isolated
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "1000")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("OUTPUT_DIR", tempfile.mkdtemp(prefix="scanreport-test-"))

import pytest
from scanreport.core.document_assembler import DocumentAssembler, DocumentStyle
from scanreport.core.image_loader import ImageHandle, load_image
from scanreport.core.overlay_renderer import OverlayRenderer, OverlayStyle
from scanreport.models.schemas import AnomalyResult, HealthyResult, parse_analysis_result

from tests.factories import make_finding, make_scan_bytes


@pytest.fixture
def scan_bytes() -> bytes:
    return make_scan_bytes()


@pytest.fixture
def scan_handle(scan_bytes) -> ImageHandle:
    return load_image(scan_bytes, "scan.png")


@pytest.fixture
def healthy_result() -> HealthyResult:
    return parse_analysis_result({"status": "healthy", "summary": "No abnormalities detected."})


@pytest.fixture
def fracture_result() -> AnomalyResult:
    return AnomalyResult(
        summary="One finding requires review.",
        findings=(make_finding(),)
    )


@pytest.fixture
def overlay_style() -> OverlayStyle:
    return OverlayStyle()


@pytest.fixture
def renderer(overlay_style) -> OverlayRenderer:
    return OverlayRenderer(overlay_style)


@pytest.fixture
def document_style() -> DocumentStyle:
    return DocumentStyle()


@pytest.fixture
def assembler(document_style) -> DocumentAssembler:
    return DocumentAssembler(document_style)
