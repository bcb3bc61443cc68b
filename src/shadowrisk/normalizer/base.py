"""
Shared helpers for mapping collaborator records to canonical entities.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping

from shadowrisk.models import AccessKey, AccessKeyStatus, Policy, PolicyType

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class NormalizationError(Exception):
    """Exception raised when a snapshot cannot be normalized."""


class UnknownProviderError(NormalizationError):
    """The snapshot names a provider the normalizer does not support."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Unknown identity provider: {provider!r}")


class UnknownEntityKindError(NormalizationError):
    """The snapshot names an entity kind the normalizer does not support."""

    def __init__(self, kind: str, provider: str | None = None):
        self.kind = kind
        self.provider = provider
        where = f" for provider {provider!r}" if provider else ""
        super().__init__(f"Unknown entity kind{where}: {kind!r}")


def pick(record: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """
    Get the first present, non-None value among alternative keys.

    Collectors may hand over snake_case, camelCase or IAM PascalCase records;
    callers list every accepted spelling.
    """
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return default


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a collaborator timestamp into an aware UTC datetime.

    Args:
        value: datetime, ISO-8601 string (``Z`` suffix allowed) or None

    Returns:
        Aware datetime, or None when absent or unparseable
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.warning(f"Ignoring unparseable timestamp: {value!r}")
            return None
    else:
        logger.warning(f"Ignoring timestamp of type {type(value).__name__}")
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_flag(value: Any) -> bool:
    """Interpret a collaborator boolean, treating absent values as False."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


def parse_policy(
    record: Mapping[str, Any],
    fallback_date: datetime,
    default_type: PolicyType = PolicyType.MANAGED,
) -> Policy:
    """
    Map a policy record to a Policy.

    Missing dates fall back to ``fallback_date`` (the owner's creation time),
    which is what the IAM listing APIs imply for attached policies.
    """
    raw_type = str(pick(record, "type", "policy_type", "policyType", default="")).lower()
    try:
        policy_type = PolicyType(raw_type) if raw_type else default_type
    except ValueError:
        policy_type = default_type

    created = parse_timestamp(
        pick(record, "created_at", "createdAt", "createDate", "CreateDate")
    ) or fallback_date
    updated = parse_timestamp(
        pick(record, "updated_at", "updatedAt", "updateDate", "UpdateDate")
    ) or created

    return Policy(
        name=str(pick(record, "name", "PolicyName", "policyName", default="")),
        policy_type=policy_type,
        created_at=created,
        updated_at=updated,
        description=pick(record, "description", "Description"),
    )


def parse_access_key(record: Mapping[str, Any], fallback_date: datetime) -> AccessKey:
    """Map an access key record to an AccessKey."""
    last_used_raw = pick(record, "last_used_at", "lastUsedAt", "lastUsed")
    if last_used_raw is None:
        nested = record.get("AccessKeyLastUsed") or {}
        last_used_raw = nested.get("LastUsedDate")

    raw_status = str(pick(record, "status", "Status", default="active"))
    try:
        status = AccessKeyStatus.from_string(raw_status)
    except ValueError:
        logger.warning(f"Unknown access key status {raw_status!r}, treating as inactive")
        status = AccessKeyStatus.INACTIVE

    return AccessKey(
        id=str(pick(record, "id", "AccessKeyId", "accessKeyId", default="")),
        created_at=parse_timestamp(
            pick(record, "created_at", "createdAt", "createDate", "CreateDate")
        ) or fallback_date,
        status=status,
        last_used_at=parse_timestamp(last_used_raw),
    )
