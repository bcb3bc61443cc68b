"""
Sub-score branches shared by the entity scorers.

Each function returns the sub-score together with the human-readable reason
for the branch taken (None when the branch contributes nothing), so factor
lists are derived from the same decision that produced the score.
"""

from __future__ import annotations

from datetime import datetime

from shadowrisk.config import PatternConfig
from shadowrisk.models import (
    AccessKey,
    GoogleUserEntity,
    Policy,
    RoleEntity,
    days_since,
)
from shadowrisk.scoring.permissions import (
    ADMIN_PERMISSION_SCORE,
    policy_permission_score,
)
from shadowrisk.scoring.trust import parse_trust_policy, trusted_principal_types

Branch = tuple[int, str | None]

ORPHANED_SCORE = 5
INACTIVE_SCORE = 3
INACTIVE_AFTER_DAYS = 90


def recency_branch(signal: datetime | None, now: datetime, noun: str) -> Branch:
    """
    Recency sub-score from the most recent activity signal.

    Args:
        signal: Most recent activity, None if never used
        now: Scoring run time
        noun: Entity noun used in the reason ("User", "Role")

    Returns:
        (score, reason)
    """
    if signal is None:
        return 5, f"{noun} has never been used"

    days = days_since(signal, now)
    if days <= 30:
        return 0, None
    if days <= 90:
        return 2, f"{noun} last used {days} days ago"
    if days <= 180:
        return 3, f"{noun} inactive for {days} days"
    return 5, f"{noun} inactive for {days} days (over 180 days)"


def permission_branch(policies: tuple[Policy, ...], patterns: PatternConfig) -> Branch:
    """Permission sub-score: maximum policy score, naming the first top policy."""
    best_score = 0
    best_name = ""
    for policy in policies:
        score = policy_permission_score(policy.name, patterns)
        if score > best_score:
            best_score, best_name = score, policy.name

    if best_score == 0:
        return 0, None
    if best_score >= ADMIN_PERMISSION_SCORE:
        return best_score, f'Administrator or full access policy "{best_name}"'
    return best_score, f'Write-level policy "{best_name}"'


def role_identity_branch(role: RoleEntity, now: datetime) -> Branch:
    """
    Identity context for a role, from its trust policy and last use.

    An absent, unreadable or principal-less trust policy marks the role
    orphaned.
    """
    if role.trust_policy_raw is None or role.trust_policy_raw == "":
        return ORPHANED_SCORE, "Role has no trust policy (orphaned)"

    document = parse_trust_policy(role.trust_policy_raw)
    if document is None:
        return ORPHANED_SCORE, "Role trust policy is unreadable (orphaned)"
    if not trusted_principal_types(document):
        return ORPHANED_SCORE, "Role trust policy names no trusted principal (orphaned)"

    if role.last_used_at is None:
        return INACTIVE_SCORE, "Role has never been assumed"
    if days_since(role.last_used_at, now) > INACTIVE_AFTER_DAYS:
        return INACTIVE_SCORE, f"Role not assumed in the last {INACTIVE_AFTER_DAYS} days"
    return 0, None


def user_identity_branch(
    signal: datetime | None,
    has_mfa: bool,
    access_keys: tuple[AccessKey, ...] | None,
    now: datetime,
    suspended: bool = False,
) -> Branch:
    """
    Identity context for a user.

    Orphaned when the user has no active key, no MFA and no activity at all.
    Inactive when activity is absent or older than 90 days, when no access key
    is active (a user with no keys included), or when the account is
    suspended. Pass None for providers without access keys.
    """
    has_active_key = any(key.is_active for key in access_keys or ())
    if not has_active_key and not has_mfa and signal is None:
        return ORPHANED_SCORE, "No active access keys, no MFA and no activity (orphaned)"

    if signal is None:
        return INACTIVE_SCORE, "User has no recorded activity"
    if days_since(signal, now) > INACTIVE_AFTER_DAYS:
        return INACTIVE_SCORE, f"User inactive for more than {INACTIVE_AFTER_DAYS} days"
    if access_keys is not None and not has_active_key:
        return INACTIVE_SCORE, "No active access keys"
    if suspended:
        return INACTIVE_SCORE, "Account is suspended"
    return 0, None


def google_permission_branch(user: GoogleUserEntity) -> Branch:
    """Workspace administrators carry the full permission sub-score."""
    if user.has_admin_privileges:
        kind = "super" if user.is_admin else "delegated"
        return ADMIN_PERMISSION_SCORE, f"User has {kind} admin privileges"
    return 0, None
