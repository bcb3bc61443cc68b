"""
Shadow permission detection.

Scans an entity's policies, access keys and activity for access that is
technically valid but practically unmonitored: unused accounts, stale keys,
forgotten or legacy policies, unused-service access and permission sprawl.

Every finding quotes the triggering entity, policy or key name in its
details so findings for the same named policy can be collapsed across
entities.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

from shadowrisk.config import EngineConfiguration
from shadowrisk.models import (
    ENTITY_TYPES,
    EntityKind,
    IdentityEntity,
    PolicyType,
    RiskLevel,
    Severity,
    ShadowCategory,
    ShadowFinding,
    activity_signal,
    days_since,
)
from shadowrisk.normalizer import UnknownEntityKindError

logger = logging.getLogger(__name__)

DAYS_PER_MONTH = 30


def _months(days: int) -> int:
    """Whole months (30-day) elapsed, rounded half up."""
    return int(days / DAYS_PER_MONTH + 0.5)


def _quoted(names: list[str]) -> str:
    return f'"{names[0]}"'


@dataclass(frozen=True)
class DetectionResult:
    """
    Result of analyzing one entity.

    Attributes:
        entity_name: Analyzed entity
        findings: Shadow findings in check order
        factors: Human-readable reasons in check order
        legacy_points: Weighted point total of the checks that fired
        legacy_risk_level: Risk level on the legacy point scale (low/medium/high)
    """

    entity_name: str
    findings: tuple[ShadowFinding, ...] = ()
    factors: tuple[str, ...] = ()
    legacy_points: int = 0
    legacy_risk_level: RiskLevel = RiskLevel.LOW

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "entity_name": self.entity_name,
            "findings": [f.to_dict() for f in self.findings],
            "factors": list(self.factors),
            "legacy_points": self.legacy_points,
            "legacy_risk_level": self.legacy_risk_level.value,
        }


@dataclass
class _Collector:
    """Accumulates the outcome of the checks for one entity."""

    entity_name: str
    findings: list[ShadowFinding] = field(default_factory=list)
    factors: list[str] = field(default_factory=list)
    points: int = 0

    def factor(self, text: str, points: int) -> None:
        self.factors.append(text)
        self.points += points

    def finding(
        self,
        category: ShadowCategory,
        severity: Severity,
        description: str,
        details: str,
    ) -> None:
        self.findings.append(
            ShadowFinding(
                category=category,
                severity=severity,
                description=description,
                details=details,
                entity_name=self.entity_name,
            )
        )


class ShadowPermissionDetector:
    """
    Detects shadow permission patterns on identity entities.

    Checks run in a fixed order so factor lists read consistently:
    unused account, MFA, administrator, power user, full-service access,
    inline policies, old access keys, forgotten policies, unused services,
    legacy policies and policy count.
    """

    def __init__(self, config: EngineConfiguration | None = None):
        """
        Initialize the detector.

        Args:
            config: Engine configuration (defaults used if None)
        """
        self.config = config or EngineConfiguration()

    def detect(
        self, entity: IdentityEntity, now: datetime | None = None
    ) -> list[ShadowFinding]:
        """
        Detect shadow permission findings for one entity.

        Args:
            entity: Entity to inspect
            now: Detection run time (defaults to the current time)

        Returns:
            Findings in check order
        """
        return list(self.analyze(entity, now).findings)

    def analyze(
        self, entity: IdentityEntity, now: datetime | None = None
    ) -> DetectionResult:
        """
        Run every check on one entity.

        Args:
            entity: Entity to inspect
            now: Detection run time (defaults to the current time)

        Returns:
            DetectionResult with findings, factors and legacy points

        Raises:
            UnknownEntityKindError: If the entity is not a known variant
        """
        if not isinstance(entity, ENTITY_TYPES):
            raise UnknownEntityKindError(type(entity).__name__)

        now = now or datetime.now(timezone.utc)
        thresholds = self.config.thresholds
        weights = self.config.legacy_weights
        patterns = self.config.patterns
        out = _Collector(entity.name)
        policy_names = [p.name for p in entity.policies]

        # 1. Unused account
        signal = activity_signal(entity)
        unused = False
        if signal is None:
            unused = True
            age = _months(days_since(entity.created_at, now))
            out.factor("Account has never been used", weights.unused_account * 2)
            out.finding(
                ShadowCategory.UNUSED_ACCOUNT,
                Severity.HIGH,
                "Unused Account",
                f'"{entity.name}" has never been used since creation ({age} months ago). '
                "Unused accounts should be removed.",
            )
        elif days_since(signal, now) > thresholds.unused_account_days:
            unused = True
            months = _months(days_since(signal, now))
            out.factor(f"Account unused for {months} months", weights.unused_account * 2)
            out.finding(
                ShadowCategory.UNUSED_ACCOUNT,
                Severity.HIGH,
                "Unused Account",
                f'"{entity.name}" has not been used for {months} months. '
                "Unused accounts should be removed.",
            )

        # 2. MFA (factor only, users only)
        if entity.kind == EntityKind.USER and not entity.has_mfa:
            out.factor("MFA is not enabled", weights.mfa_disabled)

        # 3. Administrator access
        admin = [
            n for n in policy_names
            if any(k in n for k in patterns.administrator_keywords)
        ]
        if admin:
            out.factor("Has administrator access", weights.admin_access)
            out.finding(
                ShadowCategory.EXCESSIVE_PERMISSIONS,
                Severity.HIGH,
                "Administrator Access",
                f"Policy {_quoted(admin)} grants administrator access",
            )

        # 4. Power user access
        power = [
            n for n in policy_names
            if any(k in n for k in patterns.power_user_keywords)
        ]
        if power:
            out.factor("Has power user access", weights.power_user_access)
            out.finding(
                ShadowCategory.EXCESSIVE_PERMISSIONS,
                Severity.MEDIUM,
                "Power User Access",
                f"Policy {_quoted(power)} grants power user access",
            )

        # 5. Full service access
        full_service = [
            n for n in policy_names
            if any(p in n for p in patterns.high_risk_policies)
        ]
        if full_service:
            out.factor(
                f"Has full access to {len(full_service)} services",
                weights.full_service_access,
            )
            # quote a name the admin and power user checks have not claimed
            unclaimed = [n for n in full_service if n not in admin and n not in power]
            token = unclaimed[0] if unclaimed else f"{full_service[0]} (full service)"
            out.finding(
                ShadowCategory.EXCESSIVE_PERMISSIONS,
                Severity.MEDIUM,
                "Full Service Access",
                f"Has full access to {len(full_service)} services, "
                f'including "{token}"',
            )

        # 6. Inline policies (factor only)
        inline = [p for p in entity.policies if p.policy_type == PolicyType.INLINE]
        if inline:
            out.factor(f"Has {len(inline)} inline policies", weights.inline_policies)

        # 7. Old access keys
        old_keys = [
            k.id for k in entity.access_keys
            if days_since(k.created_at, now) > thresholds.old_access_key_days
        ]
        if old_keys:
            out.factor(f"Has {len(old_keys)} old access keys", weights.old_access_key)
            out.finding(
                ShadowCategory.OLD_ACCESS_KEY,
                Severity.MEDIUM,
                "Old Access Keys",
                f"{len(old_keys)} access keys are older than "
                f"{_months(thresholds.old_access_key_days)} months, "
                f"including {_quoted(old_keys)}",
            )

        # 8. Forgotten policies
        forgotten = [
            p.name for p in entity.policies
            if days_since(p.updated_at, now) > thresholds.forgotten_policy_days
        ]
        if forgotten:
            out.factor(
                f"{len(forgotten)} policies not reviewed in over a year",
                weights.forgotten_policy,
            )
            out.finding(
                ShadowCategory.FORGOTTEN_POLICY,
                Severity.HIGH,
                "Forgotten Policies",
                f"{len(forgotten)} policies haven't been reviewed in over "
                f"{thresholds.forgotten_policy_days} days, including {_quoted(forgotten)}",
            )

        # 9. Unused services
        unused_services = [
            n for n in policy_names
            if any(s in n for s in patterns.unused_services)
        ]
        if unused_services:
            out.factor(
                f"Has access to {len(unused_services)} unused services",
                weights.unused_service,
            )
            out.finding(
                ShadowCategory.UNUSED_SERVICE,
                Severity.MEDIUM,
                "Unused Service Access",
                f"Has access to {len(unused_services)} services that appear to be "
                f"unused, including {_quoted(unused_services)}",
            )

        # 10. Legacy policies (exact names)
        legacy = [n for n in policy_names if n in patterns.legacy_policies]
        if legacy:
            out.factor(f"Has {len(legacy)} legacy policies", weights.legacy_policy)
            out.finding(
                ShadowCategory.LEGACY_POLICY,
                Severity.MEDIUM,
                "Legacy Policies",
                f"{len(legacy)} legacy policies that should be reviewed, "
                f"including {_quoted(legacy)}",
            )

        # 11. Policy count
        total = len(policy_names)
        if total > thresholds.max_policies:
            out.factor(f"Has {total} total policies", weights.excessive_permissions)
            out.finding(
                ShadowCategory.EXCESSIVE_PERMISSIONS,
                Severity.HIGH,
                "Excessive Permissions",
                f'"{entity.name}" has {total} policies, '
                "which may indicate excessive permissions",
            )

        return DetectionResult(
            entity_name=entity.name,
            findings=tuple(out.findings),
            factors=tuple(out.factors),
            legacy_points=out.points,
            legacy_risk_level=self._legacy_level(out.points, unused),
        )

    def detect_batch(
        self, entities: Iterable[IdentityEntity], now: datetime | None = None
    ) -> list[list[ShadowFinding]]:
        """
        Detect findings for each entity of a batch.

        Args:
            entities: Entities to inspect
            now: Detection run time, shared by every entity

        Returns:
            Per-entity findings, in input order
        """
        now = now or datetime.now(timezone.utc)
        return [self.detect(entity, now) for entity in entities]

    def organization_findings(
        self, entities: Iterable[IdentityEntity], now: datetime | None = None
    ) -> list[ShadowFinding]:
        """Organization-level findings: the batch's findings, deduplicated."""
        batch = self.detect_batch(entities, now)
        return deduplicate_findings(f for findings in batch for f in findings)

    @staticmethod
    def _legacy_level(points: int, unused: bool) -> RiskLevel:
        # An unused account is high risk whatever else fired
        if unused or points >= 8:
            return RiskLevel.HIGH
        if points >= 4:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW


def deduplicate_findings(findings: Iterable[ShadowFinding]) -> list[ShadowFinding]:
    """
    Drop findings whose (category, first quoted token) was already seen.

    The first occurrence is kept and order is preserved, so applying this to
    an already deduplicated list returns it unchanged.

    Args:
        findings: Findings, typically from several entities

    Returns:
        Deduplicated findings
    """
    seen: set[tuple[ShadowCategory, str | None]] = set()
    unique: list[ShadowFinding] = []
    for finding in findings:
        key = finding.dedup_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(finding)

    logger.debug(f"Deduplicated findings to {len(unique)} unique entries")
    return unique
