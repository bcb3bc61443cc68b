"""
Shadow Risk - identity risk scoring and shadow permission analysis.

Turns a snapshot of AWS IAM and Google Workspace identities into per-entity
risk assessments, deduplicated shadow permission findings, an
organization-wide security posture score and a time-to-shadow timeline.
"""

from __future__ import annotations

__version__ = "0.1.0"

from shadowrisk.aggregation import SecurityScoreAggregator
from shadowrisk.config import EngineConfiguration, PatternConfig
from shadowrisk.engine import AssessmentEngine, RiskReport
from shadowrisk.normalizer import load_snapshot, normalize_snapshot
from shadowrisk.scoring import GoogleRiskScorer, RiskScorer
from shadowrisk.shadow import ShadowPermissionDetector, deduplicate_findings
from shadowrisk.timeline import ShadowTimelineProjector

__all__ = [
    "__version__",
    "AssessmentEngine",
    "EngineConfiguration",
    "GoogleRiskScorer",
    "PatternConfig",
    "RiskReport",
    "RiskScorer",
    "SecurityScoreAggregator",
    "ShadowPermissionDetector",
    "ShadowTimelineProjector",
    "deduplicate_findings",
    "load_snapshot",
    "normalize_snapshot",
]
