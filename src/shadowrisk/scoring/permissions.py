"""
Policy name classification.

The permission sub-score and the permission level both come from matching
policy names against the keyword lists of a PatternConfig.
"""

from __future__ import annotations

from typing import Iterable

from shadowrisk.config import PatternConfig
from shadowrisk.models import (
    GoogleUserEntity,
    IdentityEntity,
    PermissionLevel,
    Policy,
)

ADMIN_PERMISSION_SCORE = 5
WRITE_PERMISSION_SCORE = 2


def policy_permission_score(name: str, patterns: PatternConfig) -> int:
    """
    Score a single policy name.

    Args:
        name: Policy name
        patterns: Keyword lists

    Returns:
        5 for admin/full-access/wildcard names, 2 for write names, else 0
    """
    lowered = name.lower()
    if any(keyword in lowered for keyword in patterns.admin_keywords):
        return ADMIN_PERMISSION_SCORE
    if any(keyword in lowered for keyword in patterns.write_keywords):
        return WRITE_PERMISSION_SCORE
    return 0


def permission_subscore(policies: Iterable[Policy], patterns: PatternConfig) -> int:
    """Maximum (not sum) of the policy scores, 0 without policies."""
    return max(
        (policy_permission_score(p.name, patterns) for p in policies),
        default=0,
    )


def classify_policy_names(
    names: Iterable[str], patterns: PatternConfig
) -> PermissionLevel:
    """
    Classify a set of policy names into a permission level.

    Levels are tried in priority order (admin, full-access, read-only); the
    first level with a keyword found in any name wins.
    """
    lowered = [n.lower() for n in names]
    for level in (
        PermissionLevel.ADMIN,
        PermissionLevel.FULL_ACCESS,
        PermissionLevel.READ_ONLY,
    ):
        keywords = patterns.permission_levels.get(level.value, ())
        if any(keyword in name for name in lowered for keyword in keywords):
            return level
    return PermissionLevel.CUSTOM


def permission_level(entity: IdentityEntity, patterns: PatternConfig) -> PermissionLevel:
    """
    Get the permission level of an entity.

    Google Workspace administrators (super or delegated) are ``admin``; other
    Google users hold no policies and are ``custom``.
    """
    if isinstance(entity, GoogleUserEntity):
        if entity.has_admin_privileges:
            return PermissionLevel.ADMIN
        return PermissionLevel.CUSTOM
    return classify_policy_names((p.name for p in entity.policies), patterns)
