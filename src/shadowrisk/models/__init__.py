"""
Data models for Shadow Risk.

This package provides the canonical identity entity variants and the
derived records produced by a scoring run:

- IdentityEntity: UserEntity, RoleEntity, GoogleUserEntity
- RiskAssessment / GoogleRiskAssessment: per-entity risk
- ShadowFinding: shadow permission findings
- TimelineEvent / TimelineResult: time-to-shadow projection
- SecurityScore: organization posture score
"""

from shadowrisk.models.entity import (
    ENTITY_TYPES,
    AccessKey,
    AccessKeyStatus,
    EntityKind,
    EntityRef,
    GoogleUserEntity,
    IdentityEntity,
    Policy,
    PolicyType,
    Provider,
    RoleEntity,
    UserEntity,
    activity_signal,
    days_since,
)
from shadowrisk.models.risk import (
    AwsRiskScore,
    GoogleRiskAssessment,
    GoogleRiskScore,
    PermissionLevel,
    RiskAssessment,
    RiskLevel,
    Severity,
    ShadowCategory,
    ShadowFinding,
    SubScores,
    first_quoted_token,
)
from shadowrisk.models.score import (
    AggregationMode,
    CategoryScore,
    SecurityScore,
)
from shadowrisk.models.timeline import (
    FactorsSnapshot,
    TimelineEvent,
    TimelineEventType,
    TimelineResult,
    TimelineSummary,
)

__all__ = [
    # Entities
    "ENTITY_TYPES",
    "AccessKey",
    "AccessKeyStatus",
    "EntityKind",
    "EntityRef",
    "GoogleUserEntity",
    "IdentityEntity",
    "Policy",
    "PolicyType",
    "Provider",
    "RoleEntity",
    "UserEntity",
    "activity_signal",
    "days_since",
    # Risk
    "AwsRiskScore",
    "GoogleRiskAssessment",
    "GoogleRiskScore",
    "PermissionLevel",
    "RiskAssessment",
    "RiskLevel",
    "Severity",
    "ShadowCategory",
    "ShadowFinding",
    "SubScores",
    "first_quoted_token",
    # Score
    "AggregationMode",
    "CategoryScore",
    "SecurityScore",
    # Timeline
    "FactorsSnapshot",
    "TimelineEvent",
    "TimelineEventType",
    "TimelineResult",
    "TimelineSummary",
]
