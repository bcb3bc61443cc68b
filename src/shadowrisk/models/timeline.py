"""
Time-to-shadow timeline models for Shadow Risk.

A timeline event projects when an entity is likely to degrade into a
shadow permission risk, given the facts observed at projection time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from shadowrisk.models.entity import EntityRef
from shadowrisk.models.risk import PermissionLevel, Severity


class TimelineEventType(Enum):
    """Types of projected timeline events."""

    SHADOW_RISK = "shadow_risk"
    PERMISSION_EXPIRY = "permission_expiry"
    ACTIVITY_THRESHOLD = "activity_threshold"
    MFA_EXPIRY = "mfa_expiry"


@dataclass(frozen=True)
class FactorsSnapshot:
    """
    Facts about the entity captured when the event was projected.

    Attributes:
        last_activity: Most recent activity, if any
        permission_level: Permission classification
        mfa_status: Whether MFA (or 2SV) is enabled
        inactivity_days: Days since last activity (0 when never used)
        risk_factors: Short reasons behind the event
    """

    last_activity: datetime | None
    permission_level: PermissionLevel
    mfa_status: bool
    inactivity_days: int
    risk_factors: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "last_activity": (
                self.last_activity.isoformat() if self.last_activity else None
            ),
            "permission_level": self.permission_level.value,
            "mfa_status": self.mfa_status,
            "inactivity_days": self.inactivity_days,
            "risk_factors": list(self.risk_factors),
        }


@dataclass(frozen=True)
class TimelineEvent:
    """
    A projected shadow-risk event.

    Attributes:
        event_id: Stable identifier derived from the entity and event type
        entity_ref: Entity the event concerns
        event_type: Type of event
        severity: Event severity
        estimated_date: When the risk is expected to materialize
        confidence: Confidence percentage (0-100)
        description: Short description
        details: Longer explanation
        recommendations: Suggested remediation steps
        factors_snapshot: Facts at projection time
    """

    event_id: str
    entity_ref: EntityRef
    event_type: TimelineEventType
    severity: Severity
    estimated_date: datetime
    confidence: int
    description: str
    details: str
    recommendations: tuple[str, ...]
    factors_snapshot: FactorsSnapshot

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary."""
        return {
            "id": self.event_id,
            "entity": self.entity_ref.to_dict(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "estimated_date": self.estimated_date.isoformat(),
            "confidence": self.confidence,
            "description": self.description,
            "details": self.details,
            "recommendations": list(self.recommendations),
            "factors": self.factors_snapshot.to_dict(),
        }


@dataclass(frozen=True)
class TimelineSummary:
    """Tallies of projected events by severity and horizon."""

    total_events: int = 0
    critical_events: int = 0
    high_risk_events: int = 0
    medium_risk_events: int = 0
    low_risk_events: int = 0
    next_30_days: int = 0
    next_90_days: int = 0
    next_180_days: int = 0

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary."""
        return {
            "total_events": self.total_events,
            "critical_events": self.critical_events,
            "high_risk_events": self.high_risk_events,
            "medium_risk_events": self.medium_risk_events,
            "low_risk_events": self.low_risk_events,
            "next_30_days": self.next_30_days,
            "next_90_days": self.next_90_days,
            "next_180_days": self.next_180_days,
        }


@dataclass(frozen=True)
class TimelineResult:
    """
    Result of a timeline projection run.

    Attributes:
        summary: Event tallies
        events: Events sorted ascending by estimated date
        generated_at: The run's "now"
    """

    summary: TimelineSummary
    events: tuple[TimelineEvent, ...] = field(default_factory=tuple)
    generated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "generated_at": (
                self.generated_at.isoformat() if self.generated_at else None
            ),
            "summary": self.summary.to_dict(),
            "events": [e.to_dict() for e in self.events],
        }
