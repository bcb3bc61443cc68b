"""
Per-entity risk scoring for Shadow Risk.

This package provides:
- RiskScorer: sub-score based scoring of AWS users and roles
- GoogleRiskScorer: additive point scoring of Google Workspace users
- Policy classification and trust policy helpers
"""

from shadowrisk.scoring.google import GoogleRiskScorer, google_subscores
from shadowrisk.scoring.permissions import (
    classify_policy_names,
    permission_level,
    permission_subscore,
    policy_permission_score,
)
from shadowrisk.scoring.scorer import RiskScorer
from shadowrisk.scoring.trust import (
    has_trusted_principal,
    parse_trust_policy,
    trusted_principal_types,
)

__all__ = [
    "GoogleRiskScorer",
    "RiskScorer",
    "classify_policy_names",
    "google_subscores",
    "has_trusted_principal",
    "parse_trust_policy",
    "permission_level",
    "permission_subscore",
    "policy_permission_score",
    "trusted_principal_types",
]
