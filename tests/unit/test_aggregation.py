"""
Unit tests for security posture score aggregation.
"""

import pytest

from shadowrisk.aggregation import (
    CATEGORY_RECOMMENDATIONS,
    SecurityScoreAggregator,
    clamp_score,
    round_half_up,
    trend_percent,
)
from shadowrisk.models import (
    AggregationMode,
    RiskLevel,
    RoleEntity,
    Severity,
    ShadowCategory,
    ShadowFinding,
    SubScores,
    UserEntity,
)

from conftest import NOW, VALID_TRUST_POLICY, days_ago, make_policy


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def aggregator(config) -> SecurityScoreAggregator:
    """Create an aggregator with default configuration."""
    return SecurityScoreAggregator(config)


def findings_of(severity, count, category=ShadowCategory.UNUSED_ACCOUNT):
    """Create distinct findings of one severity."""
    return [
        ShadowFinding(category, severity, "Test", f'"entity-{i}" test', f"entity-{i}")
        for i in range(count)
    ]


@pytest.fixture
def orphaned_admin() -> UserEntity:
    """Create a user scoring 5 on every sub-score."""
    return UserEntity(
        name="ghost-admin",
        created_at=days_ago(300),
        policies=(make_policy("AdministratorAccess"),),
    )


@pytest.fixture
def clean_role() -> RoleEntity:
    """Create a role scoring 0 on every sub-score."""
    return RoleEntity(
        name="reader",
        created_at=days_ago(300),
        last_used_at=days_ago(3),
        policies=(make_policy("ReadOnlyAccess"),),
        trust_policy_raw=VALID_TRUST_POLICY,
    )


# =============================================================================
# Helpers
# =============================================================================


class TestRounding:
    """Tests for rounding helpers."""

    def test_round_half_up(self):
        """Test halves round away from zero."""
        assert round_half_up(2.5) == 3.0
        assert round_half_up(0.5) == 1.0
        assert round_half_up(-6.25, 1) == -6.3
        assert round_half_up(12.345, 2) == 12.35

    def test_clamp_score(self):
        """Test scores are clamped to [0, 100]."""
        assert clamp_score(-40) == 0
        assert clamp_score(140) == 100
        assert clamp_score(74.5) == 75

    def test_trend_percent(self):
        """Test the trend is a one-decimal percentage change."""
        assert trend_percent(100, 80) == 25.0
        assert trend_percent(75, 80) == -6.3
        assert trend_percent(50, 50) == 0.0

    def test_trend_without_previous(self):
        """Test missing or zero previous scores give no trend."""
        assert trend_percent(70, None) is None
        assert trend_percent(70, 0) is None


# =============================================================================
# Points mode
# =============================================================================


class TestPointsAggregation:
    """Tests for point deduction aggregation."""

    def test_empty_is_perfect(self, aggregator):
        """Test no findings and no entities scores 100 with a trend."""
        score = aggregator.aggregate([], [], previous_score=80)
        assert score.overall_score == 100
        assert score.risk_tier == RiskLevel.LOW
        assert score.trend_percent == 25.0
        assert score.mode == AggregationMode.POINTS
        assert score.category_breakdown == ()
        assert score.recommendations == ()

    def test_deductions(self, aggregator, active_user):
        """Test high and medium findings deduct 10 and 5 points."""
        findings = findings_of(Severity.HIGH, 2) + findings_of(
            Severity.MEDIUM, 1, ShadowCategory.LEGACY_POLICY
        )
        entities = [active_user] * 3
        score = aggregator.aggregate(findings, entities, previous_score=80)
        assert score.overall_score == 75
        assert score.risk_tier == RiskLevel.MEDIUM
        assert score.trend_percent == -6.3

    def test_low_findings_are_free(self, aggregator, active_user):
        """Test low severity findings do not deduct points."""
        score = aggregator.aggregate(findings_of(Severity.LOW, 3), [active_user])
        assert score.overall_score == 100

    def test_clamped_at_zero(self, aggregator, active_user):
        """Test an avalanche of findings bottoms out at 0."""
        score = aggregator.aggregate(findings_of(Severity.HIGH, 1000), [active_user])
        assert score.overall_score == 0
        assert score.risk_tier == RiskLevel.CRITICAL

    def test_moderate_sprawl(self, aggregator, active_user):
        """Test more than five findings per entity costs 2 points."""
        score = aggregator.aggregate(findings_of(Severity.MEDIUM, 6), [active_user])
        assert score.overall_score == 100 - 30 - 2
        assert score.category_breakdown[-1].category == "permission_sprawl"
        assert score.category_breakdown[-1].details == ("6.0 findings per entity",)
        assert score.recommendations[-1] == (
            "Consolidate policies to reduce permission sprawl"
        )

    def test_severe_sprawl(self, aggregator, active_user):
        """Test more than ten findings per entity costs 5 points."""
        score = aggregator.aggregate(findings_of(Severity.LOW, 11), [active_user])
        assert score.overall_score == 95

    def test_no_sprawl_without_entities(self, aggregator):
        """Test the sprawl ratio is skipped when there are no entities."""
        score = aggregator.aggregate(findings_of(Severity.LOW, 20), [])
        assert score.overall_score == 100

    def test_category_breakdown(self, aggregator, active_user):
        """Test breakdown and recommendations follow the categories present."""
        findings = findings_of(Severity.HIGH, 1, ShadowCategory.FORGOTTEN_POLICY) + (
            findings_of(Severity.MEDIUM, 2, ShadowCategory.OLD_ACCESS_KEY)
        )
        score = aggregator.aggregate(findings, [active_user] * 3)
        assert [c.category for c in score.category_breakdown] == [
            "old_access_key",
            "forgotten_policy",
        ]
        assert score.category_breakdown[0].score == 90.0
        assert score.category_breakdown[0].details == (
            "2 findings",
            "0 high, 2 medium severity",
        )
        assert score.recommendations == (
            CATEGORY_RECOMMENDATIONS[ShadowCategory.OLD_ACCESS_KEY],
            CATEGORY_RECOMMENDATIONS[ShadowCategory.FORGOTTEN_POLICY],
        )

    def test_monotonic_in_findings(self, aggregator, active_user):
        """Test adding findings never raises the score."""
        scores = [
            aggregator.aggregate(findings_of(Severity.HIGH, n), [active_user] * 20).overall_score
            for n in range(0, 15)
        ]
        assert scores == sorted(scores, reverse=True)

    def test_configured_deductions(self, config, active_user):
        """Test deductions come from configuration."""
        config.aggregation.high_deduction = 20
        score = SecurityScoreAggregator(config).aggregate(
            findings_of(Severity.HIGH, 2), [active_user] * 2
        )
        assert score.overall_score == 60


# =============================================================================
# Weighted mode
# =============================================================================


class TestWeightedAggregation:
    """Tests for weighted sub-score aggregation."""

    def test_no_entities(self, aggregator):
        """Test an empty organization scores 100."""
        score = aggregator.aggregate_weighted([], NOW)
        assert score.overall_score == 100
        assert score.mode == AggregationMode.WEIGHTED
        assert score.recommendations == ()

    def test_worst_entity(self, aggregator, orphaned_admin):
        """Test an entity at 5/5/5 drives the score to 0."""
        score = aggregator.aggregate_weighted([orphaned_admin], NOW, previous_score=40)
        assert score.overall_score == 0
        assert score.risk_tier == RiskLevel.CRITICAL
        assert score.trend_percent == -100.0
        assert score.recommendations == (
            "Review and remove unused IAM entities (no activity in 90+ days)",
            "Review and reduce excessive permissions (administrator/full access)",
            "Address orphaned roles and users (no trust policy or inactive access keys)",
        )

    def test_clean_entity(self, aggregator, clean_role):
        """Test an entity at 0/0/0 scores 100."""
        score = aggregator.aggregate_weighted([clean_role], NOW)
        assert score.overall_score == 100
        assert [c.details[1] for c in score.category_breakdown] == [
            "Good activity levels across entities",
            "Good permission management",
            "Good identity management practices",
        ]

    def test_average(self, aggregator, orphaned_admin, clean_role):
        """Test sub-scores are averaged across entities."""
        score = aggregator.aggregate_weighted([orphaned_admin, clean_role], NOW)
        assert score.overall_score == 50
        assert [c.category for c in score.category_breakdown] == [
            "Activity Score",
            "Permission Score",
            "Identity Context Score",
        ]
        assert score.category_breakdown[0].score == 50.0
        assert score.category_breakdown[0].details == (
            "Average last used score: 2.5/5",
            "Some entities showing inactivity",
        )
        assert score.recommendations == (
            "Monitor IAM entities with no recent activity (31-90 days)",
            "Audit write/modify permissions and implement least privilege",
            "Enable MFA for users and review inactive accounts",
        )

    def test_precomputed_subscores(self, aggregator):
        """Test precomputed sub-scores are used as given."""
        score = aggregator.aggregate_weighted(
            [], NOW, subscores=[SubScores(recency=0, permission=5, identity=0)]
        )
        # 100 - 0.40 * 5 * 20
        assert score.overall_score == 60

    def test_compute_dispatches_mode(self, aggregator, orphaned_admin):
        """Test compute labels the result with the requested mode."""
        points = aggregator.compute(AggregationMode.POINTS, [], [orphaned_admin], now=NOW)
        weighted = aggregator.compute(AggregationMode.WEIGHTED, [], [orphaned_admin], now=NOW)
        assert points.mode == AggregationMode.POINTS
        assert points.overall_score == 100
        assert weighted.mode == AggregationMode.WEIGHTED
        assert weighted.overall_score == 0

    def test_bounds(self, aggregator, orphaned_admin, clean_role, google_user):
        """Test weighted scores stay within [0, 100]."""
        score = aggregator.aggregate_weighted(
            [orphaned_admin, clean_role, google_user], NOW
        )
        assert 0 <= score.overall_score <= 100
