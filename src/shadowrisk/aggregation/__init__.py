"""
Security posture score aggregation for Shadow Risk.

This package provides:
- SecurityScoreAggregator: points and weighted posture scoring
- trend_percent: change against a previous score
"""

from shadowrisk.aggregation.aggregator import (
    CATEGORY_RECOMMENDATIONS,
    SecurityScoreAggregator,
    clamp_score,
    round_half_up,
    trend_percent,
)

__all__ = [
    "CATEGORY_RECOMMENDATIONS",
    "SecurityScoreAggregator",
    "clamp_score",
    "round_half_up",
    "trend_percent",
]
