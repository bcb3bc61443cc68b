"""
Security posture score aggregation.

Rolls per-entity results into an organization-wide 0-100 posture score
(100 = most secure). Two modes exist and are never mixed:

- points: baseline 100 minus deductions for shadow findings, with a
  permission-sprawl penalty
- weighted: 100 minus the weighted average of entity sub-scores, scaled
  from 0-5 to 0-100
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from shadowrisk.config import AggregationConfig, EngineConfiguration
from shadowrisk.models import (
    AggregationMode,
    CategoryScore,
    IdentityEntity,
    RiskLevel,
    SecurityScore,
    Severity,
    ShadowCategory,
    ShadowFinding,
    SubScores,
)
from shadowrisk.scoring import RiskScorer

logger = logging.getLogger(__name__)

SCORE_MIN = 0
SCORE_MAX = 100
SUBSCORE_SCALE = 100 / 5

CATEGORY_RECOMMENDATIONS: dict[ShadowCategory, str] = {
    ShadowCategory.UNUSED_ACCOUNT: "Remove or disable accounts with no recent activity",
    ShadowCategory.OLD_ACCESS_KEY: "Rotate access keys older than 6 months",
    ShadowCategory.FORGOTTEN_POLICY: "Review policies that have not been updated in over a year",
    ShadowCategory.UNUSED_SERVICE: "Remove access to services that are not in use",
    ShadowCategory.LEGACY_POLICY: "Replace legacy managed policies with scoped alternatives",
    ShadowCategory.EXCESSIVE_PERMISSIONS: "Reduce administrator and full access grants to least privilege",
}

SPRAWL_RECOMMENDATION = "Consolidate policies to reduce permission sprawl"


def round_half_up(value: float, digits: int = 0) -> float:
    """Round half away from zero, unlike the built-in banker's rounding."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def clamp_score(value: float) -> int:
    """Round and clamp a posture score to [0, 100]."""
    return int(max(SCORE_MIN, min(SCORE_MAX, round_half_up(value))))


def trend_percent(score: float, previous_score: float | None) -> float | None:
    """
    Percentage change against a previous score.

    Args:
        score: Current score
        previous_score: Previous score, if known

    Returns:
        Change rounded to one decimal, or None when there is no usable
        previous score (absent or zero)
    """
    if previous_score is None or previous_score == 0:
        return None
    return round_half_up((score - previous_score) / previous_score * 100, 1)


class SecurityScoreAggregator:
    """
    Computes the organization-wide security posture score.

    Example:
        >>> aggregator = SecurityScoreAggregator()
        >>> score = aggregator.aggregate(findings, entities, previous_score=80)
        >>> score.overall_score, score.trend_percent
        (75, -6.3)
    """

    def __init__(
        self,
        config: EngineConfiguration | None = None,
        scorer: RiskScorer | None = None,
    ):
        """
        Initialize the aggregator.

        Args:
            config: Engine configuration (defaults used if None)
            scorer: Scorer used for weighted mode sub-scores
        """
        self.config = config or EngineConfiguration()
        self.scorer = scorer or RiskScorer(self.config)

    @property
    def settings(self) -> AggregationConfig:
        return self.config.aggregation

    def compute(
        self,
        mode: AggregationMode,
        findings: Sequence[ShadowFinding],
        entities: Sequence[IdentityEntity],
        previous_score: float | None = None,
        now: datetime | None = None,
    ) -> SecurityScore:
        """
        Compute the posture score in the given mode.

        Args:
            mode: Aggregation mode
            findings: Shadow findings (points mode)
            entities: Entities of the run
            previous_score: Previous overall score for the trend
            now: Scoring run time (weighted mode)

        Returns:
            SecurityScore labelled with the mode used
        """
        if mode == AggregationMode.POINTS:
            return self.aggregate(findings, entities, previous_score)
        if mode == AggregationMode.WEIGHTED:
            return self.aggregate_weighted(entities, now, previous_score)
        raise ValueError(f"Unknown aggregation mode: {mode}")

    def aggregate(
        self,
        findings: Sequence[ShadowFinding],
        entities: Sequence[IdentityEntity],
        previous_score: float | None = None,
    ) -> SecurityScore:
        """
        Point deduction score from shadow findings.

        Starts at 100, deducts per high and medium finding and applies the
        sprawl penalty when findings per entity exceed the configured ratios.

        Args:
            findings: Shadow findings
            entities: Entities the findings were raised for
            previous_score: Previous overall score for the trend

        Returns:
            SecurityScore
        """
        settings = self.settings
        severities = Counter(f.severity for f in findings)
        high_deduction = severities[Severity.HIGH] * settings.high_deduction
        medium_deduction = severities[Severity.MEDIUM] * settings.medium_deduction

        sprawl_penalty = 0
        ratio = None
        if entities:
            ratio = len(findings) / len(entities)
            if ratio > settings.sprawl_severe_ratio:
                sprawl_penalty = settings.sprawl_severe_penalty
            elif ratio > settings.sprawl_moderate_ratio:
                sprawl_penalty = settings.sprawl_moderate_penalty

        overall = clamp_score(
            SCORE_MAX - high_deduction - medium_deduction - sprawl_penalty
        )

        breakdown = self._category_breakdown(findings)
        recommendations = [CATEGORY_RECOMMENDATIONS[category] for category, _ in breakdown]
        categories = [score for _, score in breakdown]
        if sprawl_penalty:
            categories.append(
                CategoryScore(
                    category="permission_sprawl",
                    score=float(SCORE_MAX - sprawl_penalty),
                    details=(f"{ratio:.1f} findings per entity",),
                )
            )
            recommendations.append(SPRAWL_RECOMMENDATION)

        logger.debug(
            f"Points aggregation: -{high_deduction} high, -{medium_deduction} medium, "
            f"-{sprawl_penalty} sprawl -> {overall}"
        )

        return SecurityScore(
            overall_score=overall,
            risk_tier=RiskLevel.from_posture(overall),
            category_breakdown=tuple(categories),
            recommendations=tuple(recommendations),
            mode=AggregationMode.POINTS,
            trend_percent=trend_percent(overall, previous_score),
        )

    def aggregate_weighted(
        self,
        entities: Sequence[IdentityEntity],
        now: datetime | None = None,
        previous_score: float | None = None,
        subscores: Iterable[SubScores] | None = None,
    ) -> SecurityScore:
        """
        Weighted average score from entity sub-scores.

        ``100 - (0.30 x recency + 0.40 x permission + 0.30 x identity) x 20``
        over the averaged sub-scores. With no entities the score is 100.

        Args:
            entities: Entities of the run
            now: Scoring run time (defaults to the current time)
            previous_score: Previous overall score for the trend
            subscores: Precomputed sub-scores, one per entity

        Returns:
            SecurityScore
        """
        now = now or datetime.now(timezone.utc)
        settings = self.settings
        if subscores is None:
            scores = [self.scorer.subscores(e, now) for e in entities]
        else:
            scores = list(subscores)

        count = len(scores)
        if count:
            avg_recency = sum(s.recency for s in scores) / count
            avg_permission = sum(s.permission for s in scores) / count
            avg_identity = sum(s.identity for s in scores) / count
        else:
            avg_recency = avg_permission = avg_identity = 0.0

        weighted = SCORE_MAX - (
            avg_recency * settings.recency_weight
            + avg_permission * settings.permission_weight
            + avg_identity * settings.identity_weight
        ) * SUBSCORE_SCALE
        overall = clamp_score(weighted)

        breakdown = (
            CategoryScore(
                category="Activity Score",
                score=round_half_up(SCORE_MAX - avg_recency * SUBSCORE_SCALE, 1),
                details=(
                    f"Average last used score: {avg_recency:.1f}/5",
                    _band(
                        avg_recency,
                        3,
                        "High number of inactive entities",
                        "Some entities showing inactivity",
                        "Good activity levels across entities",
                    ),
                ),
            ),
            CategoryScore(
                category="Permission Score",
                score=round_half_up(SCORE_MAX - avg_permission * SUBSCORE_SCALE, 1),
                details=(
                    f"Average permission score: {avg_permission:.1f}/5",
                    _band(
                        avg_permission,
                        4,
                        "Excessive permissions detected",
                        "Moderate permission levels",
                        "Good permission management",
                    ),
                ),
            ),
            CategoryScore(
                category="Identity Context Score",
                score=round_half_up(SCORE_MAX - avg_identity * SUBSCORE_SCALE, 1),
                details=(
                    f"Average identity context score: {avg_identity:.1f}/5",
                    _band(
                        avg_identity,
                        4,
                        "Critical identity management issues",
                        "Identity management needs improvement",
                        "Good identity management practices",
                    ),
                ),
            ),
        )

        recommendations: list[str] = []
        if avg_recency >= 3:
            recommendations.append(
                "Review and remove unused IAM entities (no activity in 90+ days)"
            )
        elif avg_recency >= 2:
            recommendations.append(
                "Monitor IAM entities with no recent activity (31-90 days)"
            )
        if avg_permission >= 4:
            recommendations.append(
                "Review and reduce excessive permissions (administrator/full access)"
            )
        elif avg_permission >= 2:
            recommendations.append(
                "Audit write/modify permissions and implement least privilege"
            )
        if avg_identity >= 4:
            recommendations.append(
                "Address orphaned roles and users (no trust policy or inactive access keys)"
            )
        elif avg_identity >= 2:
            recommendations.append("Enable MFA for users and review inactive accounts")

        logger.debug(
            f"Weighted aggregation over {count} entities: recency={avg_recency:.2f}, "
            f"permission={avg_permission:.2f}, identity={avg_identity:.2f} -> {overall}"
        )

        return SecurityScore(
            overall_score=overall,
            risk_tier=RiskLevel.from_posture(overall),
            category_breakdown=breakdown,
            recommendations=tuple(recommendations),
            mode=AggregationMode.WEIGHTED,
            trend_percent=trend_percent(overall, previous_score),
        )

    def _category_breakdown(
        self, findings: Sequence[ShadowFinding]
    ) -> list[tuple[ShadowCategory, CategoryScore]]:
        settings = self.settings
        entries: list[tuple[ShadowCategory, CategoryScore]] = []
        for category in ShadowCategory:
            in_category = [f for f in findings if f.category == category]
            if not in_category:
                continue
            high = sum(1 for f in in_category if f.severity == Severity.HIGH)
            medium = sum(1 for f in in_category if f.severity == Severity.MEDIUM)
            deduction = high * settings.high_deduction + medium * settings.medium_deduction
            entries.append(
                (
                    category,
                    CategoryScore(
                        category=category.value,
                        score=float(clamp_score(SCORE_MAX - deduction)),
                        details=(
                            f"{len(in_category)} findings",
                            f"{high} high, {medium} medium severity",
                        ),
                    ),
                )
            )
        return entries


def _band(value: float, high_at: float, high: str, moderate: str, good: str) -> str:
    """Pick the breakdown message for an averaged sub-score."""
    if value >= high_at:
        return high
    if value >= 2:
        return moderate
    return good
