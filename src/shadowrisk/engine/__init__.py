"""
Assessment engine for Shadow Risk.
"""

from shadowrisk.engine.runner import AssessmentEngine, EntityResult, RiskReport

__all__ = [
    "AssessmentEngine",
    "EntityResult",
    "RiskReport",
]
