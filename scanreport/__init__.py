"""
ScanReport - Annotated Scan Export Engine

Turns a medical scan image plus a structured diagnostic result into an
annotated PNG or a paginated PDF report.

IMPORTANT: This is NOT a diagnosis tool. Findings come from an external
inference service and must be reviewed by a clinician.
"""

__version__ = "1.0.0"
__author__ = "ScanReport Team"
