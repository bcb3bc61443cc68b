"""
Snapshot normalization and loading.

A snapshot is the pre-fetched identity inventory of one scoring run:

    {
        "aws": {"users": [...], "roles": [...]},
        "google": {"users": [...]},
    }

Unknown providers or entity kinds reject the whole snapshot.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from typing import Any, Mapping

import yaml

from shadowrisk.models import IdentityEntity, Provider
from shadowrisk.normalizer.aws import normalize_aws_role, normalize_aws_user
from shadowrisk.normalizer.base import (
    NormalizationError,
    UnknownEntityKindError,
    UnknownProviderError,
    pick,
)
from shadowrisk.normalizer.google import normalize_google_user

logger = logging.getLogger(__name__)

SUPPORTED_KINDS: dict[str, tuple[str, ...]] = {
    "aws": ("users", "roles"),
    "google": ("users",),
}

_KIND_ALIASES = {"user": "users", "role": "roles"}


class SnapshotLoadError(Exception):
    """Exception raised when a snapshot file cannot be loaded."""

    def __init__(self, message: str, source_path: str | None = None):
        self.source_path = source_path
        prefix = f"{source_path}: " if source_path else ""
        super().__init__(f"{prefix}{message}")


def _provider(value: str) -> Provider:
    try:
        return Provider(value.lower())
    except ValueError:
        raise UnknownProviderError(value) from None


def _kind(provider: Provider, kind: str) -> str:
    kind = _KIND_ALIASES.get(kind.lower(), kind.lower())
    if kind not in SUPPORTED_KINDS[provider.value]:
        raise UnknownEntityKindError(kind, provider.value)
    return kind


def normalize_record(
    record: Mapping[str, Any],
    provider: str,
    kind: str,
    fallback_created_at: datetime | None = None,
) -> IdentityEntity:
    """
    Normalize a single collaborator record.

    Args:
        record: Collaborator record
        provider: Provider name (aws, google)
        kind: Entity kind (user/users, role/roles)
        fallback_created_at: Creation time to use when the record has none

    Returns:
        Canonical entity

    Raises:
        UnknownProviderError: If the provider is not supported
        UnknownEntityKindError: If the kind is not supported for the provider
    """
    prov = _provider(provider)
    kind = _kind(prov, kind)

    if prov == Provider.AWS and kind == "users":
        return normalize_aws_user(record, fallback_created_at)
    if prov == Provider.AWS and kind == "roles":
        return normalize_aws_role(record, fallback_created_at)
    return normalize_google_user(record, fallback_created_at=fallback_created_at)


def _correlation_keys(name: str) -> set[str]:
    lowered = name.strip().lower()
    keys = {lowered}
    if "@" in lowered:
        keys.add(lowered.split("@", 1)[0])
    return keys


def normalize_snapshot(
    snapshot: Mapping[str, Any],
    fallback_created_at: datetime | None = None,
) -> list[IdentityEntity]:
    """
    Normalize a provider snapshot into canonical entities.

    Entities are returned in input order: AWS users, AWS roles, then Google
    users. A Google user whose primary email, or its local part, matches an
    AWS user name is flagged as also holding AWS access.

    Args:
        snapshot: Mapping of provider -> kind -> list of records
        fallback_created_at: Creation time for records that carry none

    Returns:
        List of canonical entities

    Raises:
        UnknownProviderError: If the snapshot names an unsupported provider
        UnknownEntityKindError: If a provider section names an unsupported kind
        NormalizationError: If a record is missing its identifier
    """
    if not isinstance(snapshot, Mapping):
        raise NormalizationError("Snapshot must be a mapping of providers")

    # Validate the whole layout before mapping anything
    sections: dict[Provider, dict[str, list]] = {}
    for provider_name, section in snapshot.items():
        provider = _provider(str(provider_name))
        if section is None:
            continue
        if not isinstance(section, Mapping):
            raise NormalizationError(f"Provider section {provider_name!r} must be a mapping")
        kinds: dict[str, list] = {}
        for kind_name, records in section.items():
            kind = _kind(provider, str(kind_name))
            kinds[kind] = list(records or [])
        sections[provider] = kinds

    entities: list[IdentityEntity] = []

    aws = sections.get(Provider.AWS, {})
    aws_users = [normalize_aws_user(r, fallback_created_at) for r in aws.get("users", [])]
    aws_roles = [normalize_aws_role(r, fallback_created_at) for r in aws.get("roles", [])]
    entities.extend(aws_users)
    entities.extend(aws_roles)

    aws_user_keys: set[str] = set()
    for user in aws_users:
        aws_user_keys |= _correlation_keys(user.name)

    for record in sections.get(Provider.GOOGLE, {}).get("users", []):
        email = str(pick(record, "email", "primaryEmail", "primary_email", "name", default=""))
        correlated = (
            (Provider.AWS,)
            if email and _correlation_keys(email) & aws_user_keys
            else ()
        )
        entities.append(
            normalize_google_user(
                record,
                correlated_providers=correlated,
                fallback_created_at=fallback_created_at,
            )
        )

    logger.debug(
        f"Normalized snapshot: {len(aws_users)} AWS users, {len(aws_roles)} AWS roles, "
        f"{len(entities) - len(aws_users) - len(aws_roles)} Google users"
    )
    return entities


def load_snapshot(path: str) -> dict[str, Any]:
    """
    Load a snapshot file (JSON or YAML).

    Args:
        path: Path to the snapshot file

    Returns:
        Raw snapshot mapping

    Raises:
        SnapshotLoadError: If the file cannot be read or parsed
    """
    path = os.path.expanduser(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.endswith(".json"):
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except OSError as e:
        raise SnapshotLoadError(f"Cannot read snapshot: {e}", path) from e
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise SnapshotLoadError(f"Invalid snapshot: {e}", path) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SnapshotLoadError("Snapshot must be a mapping of providers", path)
    return data
