"""
AWS IAM record normalization.

Maps the user and role records supplied by the AWS collector into
UserEntity and RoleEntity. Both the collector's own record shape and the
raw IAM PascalCase shapes (as returned by GetAccountAuthorizationDetails)
are accepted.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from shadowrisk.models import PolicyType, RoleEntity, UserEntity
from shadowrisk.normalizer.base import (
    EPOCH,
    NormalizationError,
    parse_access_key,
    parse_flag,
    parse_policy,
    parse_timestamp,
    pick,
)


def _collect_policies(
    record: Mapping[str, Any],
    inline_key: str,
    created_at: datetime,
) -> tuple:
    policies = [
        parse_policy(p, created_at)
        for p in (pick(record, "policies", "Policies", default=[]) or [])
    ]
    # Raw IAM listings split inline and attached policies
    policies.extend(
        parse_policy(p, created_at, default_type=PolicyType.INLINE)
        for p in (record.get(inline_key) or [])
    )
    policies.extend(
        parse_policy(p, created_at, default_type=PolicyType.MANAGED)
        for p in (record.get("AttachedManagedPolicies") or [])
    )
    return tuple(policies)


def _created_at(record: Mapping[str, Any], fallback: datetime | None) -> datetime:
    created = parse_timestamp(
        pick(record, "created_at", "createdAt", "createDate", "CreateDate")
    )
    return created or fallback or EPOCH


def normalize_aws_user(
    record: Mapping[str, Any],
    fallback_created_at: datetime | None = None,
) -> UserEntity:
    """
    Normalize an AWS IAM user record.

    Args:
        record: Collector record (name, createdAt, lastUsed, policies, hasMfa, accessKeys)
        fallback_created_at: Creation time to use when the record has none

    Returns:
        UserEntity

    Raises:
        NormalizationError: If the record has no user name
    """
    name = pick(record, "name", "userName", "user_name", "UserName")
    if not name:
        raise NormalizationError("AWS user record has no name")

    created_at = _created_at(record, fallback_created_at)

    mfa = pick(record, "has_mfa", "hasMfa", "hasMFA")
    if mfa is None:
        mfa = bool(record.get("MFADevices"))

    keys = pick(record, "access_keys", "accessKeys", "AccessKeyMetadata", default=[]) or []

    return UserEntity(
        name=str(name),
        created_at=created_at,
        last_used_at=parse_timestamp(
            pick(
                record,
                "last_used_at",
                "lastUsedAt",
                "lastUsed",
                "last_used",
                "PasswordLastUsed",
            )
        ),
        policies=_collect_policies(record, "UserPolicyList", created_at),
        has_mfa=parse_flag(mfa),
        access_keys=tuple(parse_access_key(k, created_at) for k in keys),
    )


def normalize_aws_role(
    record: Mapping[str, Any],
    fallback_created_at: datetime | None = None,
) -> RoleEntity:
    """
    Normalize an AWS IAM role record.

    The trust policy is kept as supplied (dict, JSON text or URL-encoded
    JSON text); the scorer decides whether it is usable.

    Raises:
        NormalizationError: If the record has no role name
    """
    name = pick(record, "name", "roleName", "role_name", "RoleName")
    if not name:
        raise NormalizationError("AWS role record has no name")

    created_at = _created_at(record, fallback_created_at)

    last_used = pick(record, "last_used_at", "lastUsedAt", "lastUsed", "last_used")
    if last_used is None:
        last_used = (record.get("RoleLastUsed") or {}).get("LastUsedDate")

    return RoleEntity(
        name=str(name),
        created_at=created_at,
        last_used_at=parse_timestamp(last_used),
        policies=_collect_policies(record, "RolePolicyList", created_at),
        trust_policy_raw=pick(
            record,
            "trust_policy_raw",
            "trustPolicyRaw",
            "trust_policy",
            "trustPolicy",
            "AssumeRolePolicyDocument",
        ),
    )
