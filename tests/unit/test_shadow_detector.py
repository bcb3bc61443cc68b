"""
Unit tests for shadow permission detection.
"""

import pytest

from shadowrisk.models import (
    GoogleUserEntity,
    PolicyType,
    RiskLevel,
    RoleEntity,
    Severity,
    ShadowCategory,
    ShadowFinding,
    UserEntity,
)
from shadowrisk.normalizer import UnknownEntityKindError
from shadowrisk.shadow import ShadowPermissionDetector, deduplicate_findings

from conftest import NOW, VALID_TRUST_POLICY, days_ago, make_key, make_policy


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def detector(config) -> ShadowPermissionDetector:
    """Create a detector with default configuration."""
    return ShadowPermissionDetector(config)


def active_user_with(*policies, **kwargs) -> UserEntity:
    """Create a recently active MFA user holding the given policies."""
    defaults = dict(
        name="worker",
        created_at=days_ago(400),
        last_used_at=days_ago(1),
        has_mfa=True,
        policies=tuple(policies),
    )
    defaults.update(kwargs)
    return UserEntity(**defaults)


def finding(category, token, severity=Severity.HIGH, entity="e") -> ShadowFinding:
    """Create a finding whose details quote the given token."""
    details = f'Something about "{token}"' if token is not None else "No quoted token"
    return ShadowFinding(category, severity, "Test", details, entity)


# =============================================================================
# Individual checks
# =============================================================================


class TestUnusedAccount:
    """Tests for the unused account check."""

    def test_never_used(self, detector, orphaned_user):
        """Test never-used accounts quote the entity and their age."""
        findings = detector.detect(orphaned_user, NOW)
        assert len(findings) == 1
        assert findings[0].category == ShadowCategory.UNUSED_ACCOUNT
        assert findings[0].severity == Severity.HIGH
        assert findings[0].details == (
            '"ghost" has never been used since creation (7 months ago). '
            "Unused accounts should be removed."
        )
        assert findings[0].entity_name == "ghost"

    def test_stale_account(self, detector):
        """Test accounts idle past the threshold quote months of inactivity."""
        user = active_user_with(last_used_at=days_ago(120))
        findings = detector.detect(user, NOW)
        assert findings[0].details.startswith('"worker" has not been used for 4 months.')

    def test_threshold_is_exclusive(self, detector):
        """Test exactly 90 idle days is not yet unused."""
        assert detector.detect(active_user_with(last_used_at=days_ago(90)), NOW) == []

    def test_key_use_counts_as_activity(self, detector):
        """Test access key use keeps an account in use."""
        user = active_user_with(
            last_used_at=None, access_keys=(make_key(last_used_days_ago=2),)
        )
        assert detector.detect(user, NOW) == []

    def test_configurable_threshold(self, config):
        """Test the inactivity threshold comes from configuration."""
        config.thresholds.unused_account_days = 30
        findings = ShadowPermissionDetector(config).detect(
            active_user_with(last_used_at=days_ago(45)), NOW
        )
        assert [f.category for f in findings] == [ShadowCategory.UNUSED_ACCOUNT]


class TestPolicyChecks:
    """Tests for policy based checks."""

    def test_administrator_access(self, detector):
        """Test admin and full-service findings keep distinct dedup keys."""
        findings = detector.detect(
            active_user_with(make_policy("AdministratorAccess")), NOW
        )
        assert [(f.category, f.severity) for f in findings] == [
            (ShadowCategory.EXCESSIVE_PERMISSIONS, Severity.HIGH),
            (ShadowCategory.EXCESSIVE_PERMISSIONS, Severity.MEDIUM),
        ]
        assert findings[0].details == 'Policy "AdministratorAccess" grants administrator access'
        assert findings[1].details == (
            'Has full access to 1 services, including "AdministratorAccess (full service)"'
        )
        assert findings[0].dedup_key != findings[1].dedup_key

    def test_full_service_quotes_unclaimed_policy(self, detector):
        """Test full-service findings quote a policy not already flagged as admin."""
        user = active_user_with(
            make_policy("AdministratorAccess"), make_policy("AmazonS3FullAccess")
        )
        findings = detector.detect(user, NOW)
        assert findings[1].details == (
            'Has full access to 2 services, including "AmazonS3FullAccess"'
        )

    def test_power_user(self, detector):
        """Test power user policies raise a medium finding."""
        findings = detector.detect(active_user_with(make_policy("PowerUserAccess")), NOW)
        assert findings[0].description == "Power User Access"
        assert findings[0].severity == Severity.MEDIUM

    def test_forgotten_policy(self, detector):
        """Test policies not updated for over 360 days."""
        user = active_user_with(make_policy("team-policy", updated_days_ago=400))
        findings = detector.detect(user, NOW)
        assert len(findings) == 1
        assert findings[0].category == ShadowCategory.FORGOTTEN_POLICY
        assert findings[0].severity == Severity.HIGH
        assert findings[0].details == (
            "1 policies haven't been reviewed in over 360 days, "
            'including "team-policy"'
        )

    def test_unused_service(self, detector):
        """Test access to rarely used services."""
        findings = detector.detect(
            active_user_with(make_policy("AmazonSageMakerFullAccess")), NOW
        )
        assert [f.category for f in findings] == [ShadowCategory.UNUSED_SERVICE]
        assert '"AmazonSageMakerFullAccess"' in findings[0].details

    def test_legacy_policy_exact_name(self, detector):
        """Test legacy policies match by exact name only."""
        exact = detector.detect(
            active_user_with(make_policy("AWSCloudTrailFullAccess")), NOW
        )
        assert [f.category for f in exact] == [ShadowCategory.LEGACY_POLICY]

        prefixed = detector.detect(
            active_user_with(make_policy("AWSCloudTrailFullAccess-v2")), NOW
        )
        assert prefixed == []

    def test_policy_count(self, detector):
        """Test more than five policies flags excessive permissions."""
        policies = [make_policy(f"custom-{i}") for i in range(6)]
        findings = detector.detect(active_user_with(*policies), NOW)
        assert len(findings) == 1
        assert findings[0].details == (
            '"worker" has 6 policies, which may indicate excessive permissions'
        )

    def test_five_policies_is_fine(self, detector):
        """Test exactly five policies does not trigger."""
        policies = [make_policy(f"custom-{i}") for i in range(5)]
        assert detector.detect(active_user_with(*policies), NOW) == []


class TestAccessKeys:
    """Tests for the old access key check."""

    def test_old_key(self, detector):
        """Test keys older than 180 days are flagged."""
        user = active_user_with(
            access_keys=(
                make_key("AKIANEW", created_days_ago=10),
                make_key("AKIAOLD", created_days_ago=200),
            )
        )
        findings = detector.detect(user, NOW)
        assert len(findings) == 1
        assert findings[0].category == ShadowCategory.OLD_ACCESS_KEY
        assert findings[0].severity == Severity.MEDIUM
        assert findings[0].details == (
            '1 access keys are older than 6 months, including "AKIAOLD"'
        )


# =============================================================================
# Legacy points and factors
# =============================================================================


class TestAnalyze:
    """Tests for per-entity analysis results."""

    def test_unused_account_is_high(self, detector, orphaned_user):
        """Test unused accounts weigh double and force high legacy risk."""
        result = detector.analyze(orphaned_user, NOW)
        assert result.factors == ("Account has never been used", "MFA is not enabled")
        assert result.legacy_points == 7
        assert result.legacy_risk_level == RiskLevel.HIGH

    def test_factor_only_checks(self, detector):
        """Test MFA and inline policies add factors without findings."""
        user = active_user_with(
            make_policy("inline-logs", policy_type=PolicyType.INLINE), has_mfa=False
        )
        result = detector.analyze(user, NOW)
        assert result.findings == ()
        assert result.factors == ("MFA is not enabled", "Has 1 inline policies")
        assert result.legacy_points == 3
        assert result.legacy_risk_level == RiskLevel.LOW

    def test_medium_legacy_level(self, detector):
        """Test four or more points give medium legacy risk."""
        result = detector.analyze(
            active_user_with(make_policy("PowerUserAccess"), has_mfa=False), NOW
        )
        # MFA 1 + power user 3 + full service 2
        assert result.legacy_points == 6
        assert result.legacy_risk_level == RiskLevel.MEDIUM

    def test_roles_have_no_mfa_factor(self, detector):
        """Test the MFA check only applies to users."""
        role = RoleEntity(
            name="svc",
            created_at=days_ago(100),
            last_used_at=days_ago(1),
            trust_policy_raw=VALID_TRUST_POLICY,
        )
        result = detector.analyze(role, NOW)
        assert result.factors == ()
        assert result.legacy_points == 0

    def test_google_user_unused(self, detector):
        """Test Google users get the unused account check."""
        user = GoogleUserEntity(name="g@example.com", created_at=days_ago(60), has_mfa=True)
        findings = detector.detect(user, NOW)
        assert [f.category for f in findings] == [ShadowCategory.UNUSED_ACCOUNT]
        assert findings[0].dedup_key == (ShadowCategory.UNUSED_ACCOUNT, "g@example.com")

    def test_unknown_entity(self, detector):
        """Test unknown entity variants are rejected."""
        with pytest.raises(UnknownEntityKindError):
            detector.analyze({"name": "alice"}, NOW)

    def test_to_dict(self, detector, orphaned_user):
        """Test result serialization."""
        data = detector.analyze(orphaned_user, NOW).to_dict()
        assert data["legacy_risk_level"] == "high"
        assert data["findings"][0]["category"] == "unused_account"


# =============================================================================
# Organization level deduplication
# =============================================================================


class TestOrganizationFindings:
    """Tests for cross-entity deduplication."""

    def test_shared_admin_policy_collapses(self, detector):
        """Test two admins sharing a policy yield one finding per check."""
        users = [
            active_user_with(make_policy("AdministratorAccess"), name="admin-a"),
            active_user_with(make_policy("AdministratorAccess"), name="admin-b"),
        ]
        findings = detector.organization_findings(users, NOW)
        assert [(f.description, f.entity_name) for f in findings] == [
            ("Administrator Access", "admin-a"),
            ("Full Service Access", "admin-a"),
        ]
        assert {f.category for f in findings} == {ShadowCategory.EXCESSIVE_PERMISSIONS}

    def test_one_entity_keeps_admin_and_full_service(self, detector):
        """Test distinct checks on one admin policy both survive deduplication."""
        user = active_user_with(make_policy("AdministratorAccess"))
        findings = detector.organization_findings([user], NOW)
        assert [f.severity for f in findings] == [Severity.HIGH, Severity.MEDIUM]

    def test_distinct_unused_accounts_kept(self, detector):
        """Test unused account findings quote distinct entity names."""
        users = [
            UserEntity(name="idle-1", created_at=days_ago(100)),
            UserEntity(name="idle-2", created_at=days_ago(100)),
        ]
        findings = detector.organization_findings(users, NOW)
        assert [f.entity_name for f in findings] == ["idle-1", "idle-2"]

    def test_detect_batch_order(self, detector, orphaned_user, active_user):
        """Test batch detection preserves input order."""
        batch = detector.detect_batch([active_user, orphaned_user], NOW)
        assert batch[0] == []
        assert batch[1][0].entity_name == "ghost"


class TestDeduplicateFindings:
    """Tests for deduplicate_findings."""

    def test_first_occurrence_wins(self):
        """Test the first finding per key is kept, in order."""
        findings = [
            finding(ShadowCategory.LEGACY_POLICY, "A", entity="x"),
            finding(ShadowCategory.LEGACY_POLICY, "B", entity="x"),
            finding(ShadowCategory.LEGACY_POLICY, "A", entity="y"),
            finding(ShadowCategory.FORGOTTEN_POLICY, "A", entity="y"),
        ]
        result = deduplicate_findings(findings)
        assert [(f.category, f.entity_name) for f in result] == [
            (ShadowCategory.LEGACY_POLICY, "x"),
            (ShadowCategory.LEGACY_POLICY, "x"),
            (ShadowCategory.FORGOTTEN_POLICY, "y"),
        ]

    def test_idempotent(self):
        """Test deduplicating twice changes nothing."""
        findings = [
            finding(ShadowCategory.UNUSED_ACCOUNT, "a"),
            finding(ShadowCategory.UNUSED_ACCOUNT, "a"),
            finding(ShadowCategory.UNUSED_SERVICE, "b"),
        ]
        once = deduplicate_findings(findings)
        assert deduplicate_findings(once) == once

    def test_unquoted_findings_share_key(self):
        """Test findings without a quoted token collapse per category."""
        findings = [
            finding(ShadowCategory.OLD_ACCESS_KEY, None),
            finding(ShadowCategory.OLD_ACCESS_KEY, None),
        ]
        assert len(deduplicate_findings(findings)) == 1

    def test_empty(self):
        """Test an empty input stays empty."""
        assert deduplicate_findings([]) == []
