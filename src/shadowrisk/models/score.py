"""
Organization-wide security posture score model.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from shadowrisk.models.risk import RiskLevel


class AggregationMode(Enum):
    """
    Posture scoring modes.

    The two modes are not numerically reconcilable; callers pick one.
    """

    POINTS = "points"  # Point deduction from shadow findings
    WEIGHTED = "weighted"  # Weighted average of entity sub-scores


@dataclass(frozen=True)
class CategoryScore:
    """Score for one category of the posture breakdown."""

    category: str
    score: float
    details: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "category": self.category,
            "score": self.score,
            "details": list(self.details),
        }


@dataclass(frozen=True)
class SecurityScore:
    """
    Organization-wide security posture score.

    Attributes:
        overall_score: 0-100, where 100 is most secure
        risk_tier: Risk tier derived from the overall score
        category_breakdown: Per-category scores
        recommendations: Remediation recommendations
        mode: Aggregation mode that produced the score
        trend_percent: Change against the previous score, None when unknown
    """

    overall_score: int
    risk_tier: RiskLevel
    category_breakdown: tuple[CategoryScore, ...]
    recommendations: tuple[str, ...]
    mode: AggregationMode
    trend_percent: float | None = None

    @property
    def has_trend(self) -> bool:
        """Check if a trend could be computed."""
        return self.trend_percent is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "overall_score": self.overall_score,
            "risk_tier": self.risk_tier.value,
            "mode": self.mode.value,
            "category_breakdown": [c.to_dict() for c in self.category_breakdown],
            "recommendations": list(self.recommendations),
            "trend_percent": self.trend_percent,
        }
