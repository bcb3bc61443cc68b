"""
Time-to-shadow timeline projection.

Extrapolates each entity's current inactivity, MFA and permission facts into
dated future events estimating when it is likely to become a shadow
permission risk. Every date is ``now`` plus a fixed offset, so no event is
ever dated before the projection run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Sequence

from shadowrisk.config import EngineConfiguration
from shadowrisk.models import (
    ENTITY_TYPES,
    EntityKind,
    EntityRef,
    FactorsSnapshot,
    IdentityEntity,
    Severity,
    TimelineEvent,
    TimelineEventType,
    TimelineResult,
    TimelineSummary,
    activity_signal,
    days_since,
)
from shadowrisk.normalizer import UnknownEntityKindError
from shadowrisk.scoring import permission_level

logger = logging.getLogger(__name__)

SUMMARY_HORIZONS = (30, 90, 180)
FILTER_HORIZONS = (7, 30, 90, 180)


@dataclass(frozen=True)
class _ActivityRule:
    """Inactivity band and the event it projects."""

    min_days_exclusive: int
    offset_days: int
    severity: Severity
    confidence: int
    description: str


# Bands are checked in order; the first whose lower bound is exceeded applies.
USER_ACTIVITY_RULES = (
    _ActivityRule(180, 7, Severity.CRITICAL, 95, "User already inactive - immediate shadow risk"),
    _ActivityRule(90, 30, Severity.HIGH, 85, "User approaching shadow risk due to inactivity"),
    _ActivityRule(30, 60, Severity.MEDIUM, 70, "User may become shadow risk if inactivity continues"),
)

ROLE_ACTIVITY_RULES = (
    _ActivityRule(180, 14, Severity.CRITICAL, 80, "Role may become shadow risk due to inactivity"),
    _ActivityRule(90, 45, Severity.HIGH, 80, "Role may become shadow risk due to inactivity"),
    _ActivityRule(30, 90, Severity.MEDIUM, 80, "Role may become shadow risk due to inactivity"),
)


class ShadowTimelineProjector:
    """
    Projects time-to-shadow events for a batch of entities.

    Example:
        >>> projector = ShadowTimelineProjector()
        >>> result = projector.project(entities, now=now)
        >>> result.summary.next_30_days
        3
    """

    def __init__(self, config: EngineConfiguration | None = None):
        """
        Initialize the projector.

        Args:
            config: Engine configuration (defaults used if None)
        """
        self.config = config or EngineConfiguration()

    def project(
        self, entities: Iterable[IdentityEntity], now: datetime | None = None
    ) -> TimelineResult:
        """
        Project timeline events for all entities.

        Events are merged and sorted ascending by estimated date; ties keep
        entity-then-event insertion order.

        Args:
            entities: Entities to project
            now: Projection run time (defaults to the current time)

        Returns:
            TimelineResult with summary and sorted events
        """
        now = now or datetime.now(timezone.utc)

        events: list[TimelineEvent] = []
        for entity in entities:
            events.extend(self.project_entity(entity, now))

        # list.sort is stable
        events.sort(key=lambda e: e.estimated_date)

        logger.debug(f"Projected {len(events)} timeline events")
        return TimelineResult(
            summary=summarize(events, now),
            events=tuple(events),
            generated_at=now,
        )

    def project_entity(
        self, entity: IdentityEntity, now: datetime
    ) -> list[TimelineEvent]:
        """
        Project the events of a single entity, in insertion order.

        Raises:
            UnknownEntityKindError: If the entity is not a known variant
        """
        if not isinstance(entity, ENTITY_TYPES):
            raise UnknownEntityKindError(type(entity).__name__)

        is_role = entity.kind == EntityKind.ROLE
        noun = "Role" if is_role else "User"
        prefix = "role" if is_role else "user"
        signal = activity_signal(entity)
        inactivity = days_since(signal, now) if signal else 0
        level = permission_level(entity, self.config.patterns)
        ref = EntityRef.of(entity)

        def snapshot(risk_factors: tuple[str, ...], mfa: bool | None = None) -> FactorsSnapshot:
            return FactorsSnapshot(
                last_activity=signal,
                permission_level=level,
                mfa_status=entity.has_mfa if mfa is None else mfa,
                inactivity_days=inactivity,
                risk_factors=risk_factors,
            )

        events: list[TimelineEvent] = []

        if signal is None:
            events.append(
                TimelineEvent(
                    event_id=f"{prefix}-{entity.name}-never-used",
                    entity_ref=ref,
                    event_type=TimelineEventType.SHADOW_RISK,
                    severity=Severity.HIGH if is_role else Severity.CRITICAL,
                    estimated_date=now + timedelta(days=45 if is_role else 30),
                    confidence=90 if is_role else 95,
                    description=f"{noun} may become shadow risk due to inactivity",
                    details=(
                        f"{noun} {entity.name} has never been used and may become "
                        "a shadow permission risk"
                    ),
                    recommendations=(
                        (
                            "Review if role is needed",
                            "Consider removing unused role",
                            "Verify role permissions are appropriate",
                        )
                        if is_role
                        else (
                            "Review if user account is needed",
                            "Consider removing unused account",
                            "Verify if user should exist in the system",
                        )
                    ),
                    factors_snapshot=snapshot(
                        ("Never used", "No activity history", "Potential orphaned role")
                        if is_role
                        else ("Never used", "No activity history")
                    ),
                )
            )
        else:
            rules = ROLE_ACTIVITY_RULES if is_role else USER_ACTIVITY_RULES
            rule = next((r for r in rules if inactivity > r.min_days_exclusive), None)
            if rule is not None:
                events.append(
                    TimelineEvent(
                        event_id=f"{prefix}-{entity.name}-activity-{inactivity}",
                        entity_ref=ref,
                        event_type=TimelineEventType.ACTIVITY_THRESHOLD,
                        severity=rule.severity,
                        estimated_date=now + timedelta(days=rule.offset_days),
                        confidence=rule.confidence,
                        description=rule.description,
                        details=(
                            f"{noun} {entity.name} has been inactive for {inactivity} "
                            "days and may become a shadow permission risk"
                        ),
                        recommendations=(
                            (
                                "Review role usage patterns",
                                "Consider removing unused role",
                                "Verify role permissions are appropriate",
                                "Monitor role activity",
                            )
                            if is_role
                            else (
                                "Review user activity patterns",
                                "Consider removing unused account",
                                "Verify if user still needs access",
                                "Implement activity monitoring",
                            )
                        ),
                        factors_snapshot=snapshot(
                            (
                                f"Inactive for {inactivity} days",
                                "Potential orphaned role" if is_role else "No recent activity",
                            )
                        ),
                    )
                )

        if not is_role and not entity.has_mfa:
            events.append(
                TimelineEvent(
                    event_id=f"{prefix}-{entity.name}-mfa-risk",
                    entity_ref=ref,
                    event_type=TimelineEventType.MFA_EXPIRY,
                    severity=Severity.HIGH,
                    estimated_date=now + timedelta(days=60),
                    confidence=80,
                    description="MFA not enabled - security risk",
                    details=(
                        f"User {entity.name} does not have MFA enabled, increasing "
                        "shadow permission risk"
                    ),
                    recommendations=(
                        "Enable MFA for user account",
                        "Implement MFA policy enforcement",
                        "Review security requirements",
                    ),
                    factors_snapshot=snapshot(
                        ("No MFA enabled", "Security vulnerability"), mfa=False
                    ),
                )
            )

        if level.is_elevated:
            events.append(
                TimelineEvent(
                    event_id=f"{prefix}-{entity.name}-permission-risk",
                    entity_ref=ref,
                    event_type=TimelineEventType.PERMISSION_EXPIRY,
                    severity=Severity.HIGH,
                    estimated_date=now + timedelta(days=120 if is_role else 90),
                    confidence=70 if is_role else 75,
                    description=f"High-permission {noun.lower()} may become shadow risk",
                    details=(
                        f"{noun} {entity.name} has {level.value} permissions and may "
                        "become a shadow risk if not actively managed"
                    ),
                    recommendations=(
                        (
                            "Review role permissions regularly",
                            "Implement permission rotation",
                            "Monitor role usage",
                            "Consider reducing permissions if not needed",
                        )
                        if is_role
                        else (
                            "Review admin permissions regularly",
                            "Implement permission rotation",
                            "Monitor admin activity closely",
                            "Consider reducing permissions if not needed",
                        )
                    ),
                    factors_snapshot=snapshot(
                        (
                            f"{level.value} permissions",
                            "High privilege role" if is_role else "High privilege access",
                        )
                    ),
                )
            )

        return events


def summarize(events: Sequence[TimelineEvent], now: datetime) -> TimelineSummary:
    """
    Tally events by severity and by 30/90/180-day horizon.

    An event falls within a horizon of N days when its estimated date is at
    most ``now + N days``.
    """
    by_severity = {s: 0 for s in Severity}
    for event in events:
        by_severity[event.severity] += 1

    within = {
        days: sum(1 for e in events if e.estimated_date <= now + timedelta(days=days))
        for days in SUMMARY_HORIZONS
    }

    return TimelineSummary(
        total_events=len(events),
        critical_events=by_severity[Severity.CRITICAL],
        high_risk_events=by_severity[Severity.HIGH],
        medium_risk_events=by_severity[Severity.MEDIUM],
        low_risk_events=by_severity[Severity.LOW],
        next_30_days=within[30],
        next_90_days=within[90],
        next_180_days=within[180],
    )


def events_by_severity(
    events: Iterable[TimelineEvent], severity: Severity
) -> list[TimelineEvent]:
    """Get the events of one severity, preserving order."""
    return [e for e in events if e.severity == severity]


def upcoming_events(
    events: Iterable[TimelineEvent], now: datetime, days: int = 30
) -> list[TimelineEvent]:
    """Get the events estimated within ``days`` of ``now``, preserving order."""
    cutoff = now + timedelta(days=days)
    return [e for e in events if e.estimated_date <= cutoff]


def filter_events(
    events: Iterable[TimelineEvent],
    now: datetime,
    severity: Severity | None = None,
    horizon_days: int | None = None,
) -> list[TimelineEvent]:
    """
    Filter events for a timeline view.

    Args:
        events: Events to filter
        now: Projection run time
        severity: Keep only this severity
        horizon_days: Keep only events within 7, 30, 90 or 180 days

    Returns:
        Matching events, order preserved

    Raises:
        ValueError: If the horizon is not one of the supported values
    """
    if horizon_days is not None and horizon_days not in FILTER_HORIZONS:
        raise ValueError(
            f"Unsupported horizon {horizon_days}; expected one of {FILTER_HORIZONS}"
        )

    selected = list(events)
    if severity is not None:
        selected = events_by_severity(selected, severity)
    if horizon_days is not None:
        selected = upcoming_events(selected, now, horizon_days)
    return selected
