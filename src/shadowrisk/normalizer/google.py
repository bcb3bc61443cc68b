"""
Google Workspace record normalization.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping

from shadowrisk.models import GoogleUserEntity, Provider
from shadowrisk.normalizer.base import (
    EPOCH,
    NormalizationError,
    parse_flag,
    parse_timestamp,
    pick,
)


def parse_last_login(value: Any) -> datetime | None:
    """
    Parse a Google ``lastLoginTime``.

    The directory API reports users who never logged in with the epoch
    (``1970-01-01T00:00:00.000Z``); that is mapped to None.
    """
    parsed = parse_timestamp(value)
    if parsed is None or parsed.date() == EPOCH.date():
        return None
    return parsed


def normalize_google_user(
    record: Mapping[str, Any],
    correlated_providers: Iterable[Provider] = (),
    fallback_created_at: datetime | None = None,
) -> GoogleUserEntity:
    """
    Normalize a Google Workspace user record.

    Args:
        record: Directory API user (primaryEmail, lastLoginTime, suspended, ...)
        correlated_providers: Other providers where this identity holds access
        fallback_created_at: Creation time to use when the record has none

    Returns:
        GoogleUserEntity

    Raises:
        NormalizationError: If the record has no email
    """
    email = pick(record, "email", "primaryEmail", "primary_email", "name")
    if not email:
        raise NormalizationError("Google user record has no primary email")

    created_at = parse_timestamp(
        pick(record, "created_at", "createdAt", "creationTime", "creation_time")
    ) or fallback_created_at or EPOCH

    mailbox = pick(record, "is_mailbox_setup", "isMailboxSetup")

    return GoogleUserEntity(
        name=str(email),
        created_at=created_at,
        last_used_at=parse_last_login(
            pick(record, "last_login_time", "lastLoginTime", "last_used_at")
        ),
        has_mfa=parse_flag(
            pick(record, "is_enrolled_in_2sv", "isEnrolledIn2Sv", "has_mfa")
        ),
        suspended=parse_flag(record.get("suspended")),
        is_admin=parse_flag(pick(record, "is_admin", "isAdmin")),
        is_delegated_admin=parse_flag(
            pick(record, "is_delegated_admin", "isDelegatedAdmin")
        ),
        is_mailbox_setup=True if mailbox is None else parse_flag(mailbox),
        change_password_at_next_login=parse_flag(
            pick(record, "change_password_at_next_login", "changePasswordAtNextLogin")
        ),
        correlated_providers=tuple(correlated_providers),
    )
