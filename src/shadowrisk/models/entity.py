"""
Canonical identity entity model for Shadow Risk.

Provider-specific records (AWS IAM users and roles, Google Workspace users)
are mapped into one of the closed set of entity variants defined here so the
scoring, detection and projection components stay provider-agnostic.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Union


class EntityKind(Enum):
    """Kind of identity entity."""

    USER = "user"
    ROLE = "role"


class Provider(Enum):
    """Identity providers supported by the normalizer."""

    AWS = "aws"
    GOOGLE = "google"


class PolicyType(Enum):
    """How a policy is attached to an entity."""

    INLINE = "inline"
    MANAGED = "managed"


class AccessKeyStatus(Enum):
    """Status of a programmatic access key."""

    ACTIVE = "active"
    INACTIVE = "inactive"

    @classmethod
    def from_string(cls, value: str) -> AccessKeyStatus:
        """
        Create AccessKeyStatus from string value.

        Args:
            value: String representation (case-insensitive)

        Returns:
            Matching AccessKeyStatus enum value

        Raises:
            ValueError: If value is not a valid status
        """
        value_lower = value.lower()
        for status in cls:
            if status.value == value_lower:
                return status
        raise ValueError(f"Invalid access key status: {value}")


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class Policy:
    """
    A permission policy attached to an entity.

    Attributes:
        name: Policy name
        policy_type: Inline or managed
        created_at: When the policy was created
        updated_at: When the policy was last updated
        description: Optional description
    """

    name: str
    policy_type: PolicyType
    created_at: datetime
    updated_at: datetime
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert policy to dictionary."""
        return {
            "name": self.name,
            "type": self.policy_type.value,
            "description": self.description,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class AccessKey:
    """
    A programmatic access key belonging to a user.

    Attributes:
        id: Access key identifier
        created_at: When the key was created
        status: Active or inactive
        last_used_at: Last time the key was used, if ever
    """

    id: str
    created_at: datetime
    status: AccessKeyStatus = AccessKeyStatus.ACTIVE
    last_used_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        """Check if the key is active."""
        return self.status == AccessKeyStatus.ACTIVE

    def to_dict(self) -> dict[str, Any]:
        """Convert access key to dictionary."""
        return {
            "id": self.id,
            "created_at": self.created_at.isoformat(),
            "status": self.status.value,
            "last_used_at": _iso(self.last_used_at),
        }


@dataclass(frozen=True)
class UserEntity:
    """
    An AWS IAM user.

    Attributes:
        name: User name
        created_at: When the user was created
        last_used_at: Last console sign-in, if ever
        policies: Inline and managed policies attached to the user
        has_mfa: Whether an MFA device is registered
        access_keys: Programmatic access keys
    """

    name: str
    created_at: datetime
    last_used_at: datetime | None = None
    policies: tuple[Policy, ...] = ()
    has_mfa: bool = False
    access_keys: tuple[AccessKey, ...] = ()

    kind = EntityKind.USER
    provider = Provider.AWS

    def to_dict(self) -> dict[str, Any]:
        """Convert entity to dictionary."""
        return {
            "kind": self.kind.value,
            "provider": self.provider.value,
            "name": self.name,
            "created_at": self.created_at.isoformat(),
            "last_used_at": _iso(self.last_used_at),
            "policies": [p.to_dict() for p in self.policies],
            "has_mfa": self.has_mfa,
            "access_keys": [k.to_dict() for k in self.access_keys],
        }


@dataclass(frozen=True)
class RoleEntity:
    """
    An AWS IAM role.

    Roles carry no MFA and no access keys; their ownership signal is the
    trust policy, kept here as the opaque document supplied by the collector.
    """

    name: str
    created_at: datetime
    last_used_at: datetime | None = None
    policies: tuple[Policy, ...] = ()
    trust_policy_raw: Any = None

    kind = EntityKind.ROLE
    provider = Provider.AWS

    @property
    def has_mfa(self) -> bool:
        return False

    @property
    def access_keys(self) -> tuple[AccessKey, ...]:
        return ()

    def to_dict(self) -> dict[str, Any]:
        """Convert entity to dictionary."""
        return {
            "kind": self.kind.value,
            "provider": self.provider.value,
            "name": self.name,
            "created_at": self.created_at.isoformat(),
            "last_used_at": _iso(self.last_used_at),
            "policies": [p.to_dict() for p in self.policies],
            "has_mfa": False,
            "has_trust_policy": self.trust_policy_raw is not None,
        }


@dataclass(frozen=True)
class GoogleUserEntity:
    """
    A Google Workspace user.

    Attributes:
        name: Primary email address
        created_at: Creation time (the directory API may not provide it)
        last_used_at: Last login time; None when the user never logged in
        has_mfa: Enrolled in 2-Step Verification
        suspended: Account is suspended
        is_admin: Super administrator
        is_delegated_admin: Delegated administrator
        is_mailbox_setup: Mailbox has been provisioned
        change_password_at_next_login: Forced password change pending
        correlated_providers: Other providers where the same identity holds access
    """

    name: str
    created_at: datetime
    last_used_at: datetime | None = None
    has_mfa: bool = False
    suspended: bool = False
    is_admin: bool = False
    is_delegated_admin: bool = False
    is_mailbox_setup: bool = True
    change_password_at_next_login: bool = False
    correlated_providers: tuple[Provider, ...] = ()

    kind = EntityKind.USER
    provider = Provider.GOOGLE

    @property
    def policies(self) -> tuple[Policy, ...]:
        return ()

    @property
    def access_keys(self) -> tuple[AccessKey, ...]:
        return ()

    @property
    def has_admin_privileges(self) -> bool:
        """Check if the user holds any administrator privilege."""
        return self.is_admin or self.is_delegated_admin

    def to_dict(self) -> dict[str, Any]:
        """Convert entity to dictionary."""
        return {
            "kind": self.kind.value,
            "provider": self.provider.value,
            "name": self.name,
            "created_at": self.created_at.isoformat(),
            "last_used_at": _iso(self.last_used_at),
            "has_mfa": self.has_mfa,
            "suspended": self.suspended,
            "is_admin": self.is_admin,
            "is_delegated_admin": self.is_delegated_admin,
            "is_mailbox_setup": self.is_mailbox_setup,
            "change_password_at_next_login": self.change_password_at_next_login,
            "correlated_providers": [p.value for p in self.correlated_providers],
        }


IdentityEntity = Union[UserEntity, RoleEntity, GoogleUserEntity]

ENTITY_TYPES: tuple[type, ...] = (UserEntity, RoleEntity, GoogleUserEntity)


@dataclass(frozen=True)
class EntityRef:
    """Lightweight reference to an entity, carried by derived records."""

    name: str
    kind: EntityKind
    provider: Provider

    @classmethod
    def of(cls, entity: IdentityEntity) -> EntityRef:
        """Build a reference for an entity."""
        return cls(name=entity.name, kind=entity.kind, provider=entity.provider)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "kind": self.kind.value,
            "provider": self.provider.value,
        }


def activity_signal(entity: IdentityEntity) -> datetime | None:
    """
    Get the most recent activity timestamp for an entity.

    For AWS users this is the latest of console use and any access key use;
    for roles and Google users it is ``last_used_at`` alone.

    Args:
        entity: Entity to inspect

    Returns:
        Most recent activity time, or None if the entity was never used
    """
    if isinstance(entity, UserEntity):
        candidates = [entity.last_used_at] + [
            key.last_used_at for key in entity.access_keys
        ]
        used = [c for c in candidates if c is not None]
        return max(used) if used else None
    return entity.last_used_at


def days_since(value: datetime, now: datetime) -> int:
    """Whole days elapsed between ``value`` and ``now`` (never negative)."""
    return max(0, (now - value).days)


