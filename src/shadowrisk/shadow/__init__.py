"""
Shadow permission detection for Shadow Risk.

This package provides:
- ShadowPermissionDetector: per-entity pattern checks with legacy points
- deduplicate_findings: organization-level collapse of repeated findings
"""

from shadowrisk.models import first_quoted_token
from shadowrisk.shadow.detector import (
    DetectionResult,
    ShadowPermissionDetector,
    deduplicate_findings,
)

__all__ = [
    "DetectionResult",
    "ShadowPermissionDetector",
    "deduplicate_findings",
    "first_quoted_token",
]
