"""
Risk assessment data models for Shadow Risk.

Defines risk levels, sub-scores, the two provider-specific score scales and
the shadow permission findings produced by the detector.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from shadowrisk.models.entity import EntityKind, Provider

SUBSCORE_MIN = 0
SUBSCORE_MAX = 5


class RiskLevel(Enum):
    """Normalized risk level shared across providers."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Numeric rank for comparison (higher = more risky)."""
        ranks = {
            RiskLevel.LOW: 1,
            RiskLevel.MEDIUM: 2,
            RiskLevel.HIGH: 3,
            RiskLevel.CRITICAL: 4,
        }
        return ranks[self]

    def __gt__(self, other: "RiskLevel") -> bool:
        return self.rank > other.rank

    def __ge__(self, other: "RiskLevel") -> bool:
        return self.rank >= other.rank

    def __lt__(self, other: "RiskLevel") -> bool:
        return self.rank < other.rank

    def __le__(self, other: "RiskLevel") -> bool:
        return self.rank <= other.rank

    @classmethod
    def from_total(cls, total: int) -> RiskLevel:
        """Map an AWS-scale total (0-15) to a risk level."""
        if total <= 4:
            return cls.LOW
        if total <= 9:
            return cls.MEDIUM
        if total <= 14:
            return cls.HIGH
        return cls.CRITICAL

    @classmethod
    def from_posture(cls, score: float) -> RiskLevel:
        """Map a 0-100 posture score (100 = most secure) to a risk tier."""
        if score >= 80:
            return cls.LOW
        if score >= 60:
            return cls.MEDIUM
        if score >= 40:
            return cls.HIGH
        return cls.CRITICAL


class Severity(Enum):
    """Severity of a finding or timeline event."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def from_string(cls, value: str) -> Severity:
        """
        Create Severity from string value.

        Args:
            value: String representation (case-insensitive)

        Returns:
            Matching Severity enum value

        Raises:
            ValueError: If value is not a valid severity
        """
        value_lower = value.lower()
        for severity in cls:
            if severity.value == value_lower:
                return severity
        raise ValueError(f"Invalid severity: {value}")


class PermissionLevel(Enum):
    """Coarse permission classification derived from policy names."""

    ADMIN = "admin"
    FULL_ACCESS = "full-access"
    READ_ONLY = "read-only"
    CUSTOM = "custom"

    @property
    def is_elevated(self) -> bool:
        """Check if the level grants administrator or full access."""
        return self in (PermissionLevel.ADMIN, PermissionLevel.FULL_ACCESS)


class ShadowCategory(Enum):
    """Categories of shadow permission findings."""

    UNUSED_ACCOUNT = "unused_account"
    OLD_ACCESS_KEY = "old_access_key"
    FORGOTTEN_POLICY = "forgotten_policy"
    UNUSED_SERVICE = "unused_service"
    LEGACY_POLICY = "legacy_policy"
    EXCESSIVE_PERMISSIONS = "excessive_permissions"


def _clamp_subscore(value: int) -> int:
    return max(SUBSCORE_MIN, min(SUBSCORE_MAX, int(value)))


@dataclass(frozen=True)
class SubScores:
    """
    The three independent sub-scores of an entity, each in [0, 5].

    Attributes:
        recency: Recency-of-use sub-score
        permission: Permission breadth sub-score
        identity: Identity context (orphaned/inactive) sub-score
    """

    recency: int = 0
    permission: int = 0
    identity: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "recency", _clamp_subscore(self.recency))
        object.__setattr__(self, "permission", _clamp_subscore(self.permission))
        object.__setattr__(self, "identity", _clamp_subscore(self.identity))

    @property
    def total(self) -> int:
        """Sum of the three sub-scores (0-15)."""
        return self.recency + self.permission + self.identity

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary."""
        return {
            "recency": self.recency,
            "permission": self.permission,
            "identity": self.identity,
        }


@dataclass(frozen=True, eq=True)
class AwsRiskScore:
    """
    Risk score on the AWS entity scale (sum of sub-scores, 0-15).

    Raw values are only meaningful against other AwsRiskScore values;
    compare ``risk_level`` when crossing provider boundaries.
    """

    subscores: SubScores

    @property
    def value(self) -> int:
        return self.subscores.total

    @property
    def risk_level(self) -> RiskLevel:
        return RiskLevel.from_total(self.value)

    def __lt__(self, other: AwsRiskScore) -> bool:
        if not isinstance(other, AwsRiskScore):
            return NotImplemented
        return self.value < other.value


@dataclass(frozen=True, eq=True)
class GoogleRiskScore:
    """
    Risk score on the Google Workspace additive point scale.

    Attributes:
        points: Total points
        contributions: Points contributed by each factor, in detection order
    """

    points: int
    contributions: tuple[tuple[str, int], ...] = ()

    @property
    def value(self) -> int:
        return self.points

    @property
    def risk_level(self) -> RiskLevel:
        if self.points >= 15:
            return RiskLevel.CRITICAL
        if self.points >= 10:
            return RiskLevel.HIGH
        if self.points >= 5:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def __lt__(self, other: GoogleRiskScore) -> bool:
        if not isinstance(other, GoogleRiskScore):
            return NotImplemented
        return self.points < other.points


_QUOTED = re.compile(r'"([^"]*)"')


def first_quoted_token(text: str) -> str | None:
    """
    Extract the first double-quoted token from free text.

    Args:
        text: Finding details

    Returns:
        Text between the first pair of double quotes, or None
    """
    match = _QUOTED.search(text or "")
    return match.group(1) if match else None


@dataclass(frozen=True)
class ShadowFinding:
    """
    A shadow permission finding.

    Attributes:
        category: Finding category
        severity: Severity level
        description: Short title
        details: Free text naming the triggering entity, policy or key in quotes
        entity_name: Entity the finding was raised for
    """

    category: ShadowCategory
    severity: Severity
    description: str
    details: str
    entity_name: str = ""

    @property
    def dedup_key(self) -> tuple[ShadowCategory, str | None]:
        """Key used for organization-level deduplication."""
        return (self.category, first_quoted_token(self.details))

    def to_dict(self) -> dict[str, Any]:
        """Convert finding to dictionary."""
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "description": self.description,
            "details": self.details,
            "entity_name": self.entity_name,
        }


@dataclass(frozen=True)
class RiskAssessment:
    """
    Risk assessment of an AWS user or role.

    Attributes:
        entity_name: Assessed entity
        kind: Entity kind
        provider: Entity provider
        risk_score: Score on the AWS scale
        factors: Human-readable reasons, in detection order
        shadow_findings: Findings attached by the caller, if any
    """

    entity_name: str
    kind: EntityKind
    provider: Provider
    risk_score: AwsRiskScore
    factors: tuple[str, ...] = ()
    shadow_findings: tuple[ShadowFinding, ...] = ()

    @property
    def subscores(self) -> SubScores:
        return self.risk_score.subscores

    @property
    def score(self) -> int:
        return self.risk_score.value

    @property
    def risk_level(self) -> RiskLevel:
        return self.risk_score.risk_level

    def with_findings(self, findings: list[ShadowFinding]) -> RiskAssessment:
        """Return a copy carrying the given shadow findings."""
        return RiskAssessment(
            entity_name=self.entity_name,
            kind=self.kind,
            provider=self.provider,
            risk_score=self.risk_score,
            factors=self.factors,
            shadow_findings=tuple(findings),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert assessment to dictionary."""
        return {
            "entity_name": self.entity_name,
            "kind": self.kind.value,
            "provider": self.provider.value,
            "scale": "aws",
            "risk_level": self.risk_level.value,
            "score": self.score,
            "subscores": self.subscores.to_dict(),
            "factors": list(self.factors),
            "shadow_findings": [f.to_dict() for f in self.shadow_findings],
        }


@dataclass(frozen=True)
class GoogleRiskAssessment:
    """
    Risk assessment of a Google Workspace user.

    ``risk_score`` is on the Google point scale. ``subscores`` holds the
    provider-agnostic sub-scores used by weighted posture aggregation; they
    do not determine ``risk_level``.
    """

    entity_name: str
    risk_score: GoogleRiskScore
    subscores: SubScores = field(default_factory=SubScores)
    factors: tuple[str, ...] = ()
    shadow_findings: tuple[ShadowFinding, ...] = ()

    kind = EntityKind.USER
    provider = Provider.GOOGLE

    @property
    def score(self) -> int:
        return self.risk_score.value

    @property
    def risk_level(self) -> RiskLevel:
        return self.risk_score.risk_level

    def with_findings(self, findings: list[ShadowFinding]) -> GoogleRiskAssessment:
        """Return a copy carrying the given shadow findings."""
        return GoogleRiskAssessment(
            entity_name=self.entity_name,
            risk_score=self.risk_score,
            subscores=self.subscores,
            factors=self.factors,
            shadow_findings=tuple(findings),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert assessment to dictionary."""
        return {
            "entity_name": self.entity_name,
            "kind": self.kind.value,
            "provider": self.provider.value,
            "scale": "google",
            "risk_level": self.risk_level.value,
            "score": self.score,
            "contributions": dict(self.risk_score.contributions),
            "subscores": self.subscores.to_dict(),
            "factors": list(self.factors),
            "shadow_findings": [f.to_dict() for f in self.shadow_findings],
        }
