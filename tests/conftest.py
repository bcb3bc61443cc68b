"""
Pytest configuration and fixtures for Shadow Risk tests.

This module provides common fixtures used across unit tests. Every fixture
is built relative to a fixed run time so results never depend on the clock.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from shadowrisk.config import EngineConfiguration
from shadowrisk.models import (
    AccessKey,
    AccessKeyStatus,
    GoogleUserEntity,
    Policy,
    PolicyType,
    RoleEntity,
    UserEntity,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

VALID_TRUST_POLICY = {
    "Version": "2012-10-17",
    "Statement": [
        {
            "Effect": "Allow",
            "Principal": {"Service": "ec2.amazonaws.com"},
            "Action": "sts:AssumeRole",
        }
    ],
}


def days_ago(days: int) -> datetime:
    """Return NOW minus the given number of days."""
    return NOW - timedelta(days=days)


def make_policy(
    name: str,
    policy_type: PolicyType = PolicyType.MANAGED,
    updated_days_ago: int = 10,
) -> Policy:
    """Build a policy last updated the given number of days before NOW."""
    return Policy(
        name=name,
        policy_type=policy_type,
        created_at=days_ago(updated_days_ago + 30),
        updated_at=days_ago(updated_days_ago),
    )


def make_key(
    key_id: str = "AKIAEXAMPLE",
    created_days_ago: int = 30,
    last_used_days_ago: int | None = 1,
    status: AccessKeyStatus = AccessKeyStatus.ACTIVE,
) -> AccessKey:
    """Build an access key relative to NOW."""
    return AccessKey(
        id=key_id,
        created_at=days_ago(created_days_ago),
        status=status,
        last_used_at=days_ago(last_used_days_ago) if last_used_days_ago is not None else None,
    )


# Sample data fixtures


@pytest.fixture
def now() -> datetime:
    """Return the fixed run time."""
    return NOW


@pytest.fixture
def config() -> EngineConfiguration:
    """Return a default engine configuration running sequentially."""
    config = EngineConfiguration()
    config.execution.max_workers = 1
    return config


@pytest.fixture
def active_user() -> UserEntity:
    """Return a recently active user with MFA and a read-only policy."""
    return UserEntity(
        name="alice",
        created_at=days_ago(400),
        last_used_at=days_ago(2),
        policies=(make_policy("ReadOnlyAccess"),),
        has_mfa=True,
        access_keys=(make_key(),),
    )


@pytest.fixture
def orphaned_user() -> UserEntity:
    """Return a never-used user without MFA or access keys."""
    return UserEntity(
        name="ghost",
        created_at=days_ago(200),
        last_used_at=None,
        policies=(),
        has_mfa=False,
        access_keys=(),
    )


@pytest.fixture
def healthy_role() -> RoleEntity:
    """Return a role with a valid trust policy, used 10 days ago."""
    return RoleEntity(
        name="app-reader",
        created_at=days_ago(300),
        last_used_at=days_ago(10),
        policies=(make_policy("ReadOnlyAccess"),),
        trust_policy_raw=json.dumps(VALID_TRUST_POLICY),
    )


@pytest.fixture
def never_used_role() -> RoleEntity:
    """Return a role that has never been assumed."""
    return RoleEntity(
        name="legacy-deployer",
        created_at=days_ago(500),
        last_used_at=None,
        policies=(make_policy("ReadOnlyAccess"),),
        trust_policy_raw=VALID_TRUST_POLICY,
    )


@pytest.fixture
def google_user() -> GoogleUserEntity:
    """Return an active Google Workspace user enrolled in 2SV."""
    return GoogleUserEntity(
        name="bob@example.com",
        created_at=days_ago(300),
        last_used_at=days_ago(3),
        has_mfa=True,
    )


@pytest.fixture
def sample_snapshot() -> dict[str, Any]:
    """Return a raw provider snapshot in collector record shapes."""
    return {
        "aws": {
            "users": [
                {
                    "userName": "alice",
                    "createDate": "2023-01-01T00:00:00Z",
                    "lastUsed": "2024-05-30T00:00:00Z",
                    "hasMFA": True,
                    "policies": [
                        {
                            "name": "ReadOnlyAccess",
                            "type": "managed",
                            "createDate": "2023-01-01T00:00:00Z",
                            "updateDate": "2024-01-01T00:00:00Z",
                        }
                    ],
                    "accessKeys": [
                        {
                            "AccessKeyId": "AKIAALICE",
                            "Status": "Active",
                            "CreateDate": "2024-03-01T00:00:00Z",
                        }
                    ],
                },
                {
                    "userName": "carol",
                    "createDate": "2022-01-01T00:00:00Z",
                    "hasMFA": False,
                    "policies": [
                        {
                            "name": "AdministratorAccess",
                            "type": "managed",
                            "createDate": "2022-01-01T00:00:00Z",
                            "updateDate": "2022-01-01T00:00:00Z",
                        }
                    ],
                },
            ],
            "roles": [
                {
                    "roleName": "app-reader",
                    "createDate": "2023-06-01T00:00:00Z",
                    "lastUsed": "2024-05-20T00:00:00Z",
                    "trustPolicy": json.dumps(VALID_TRUST_POLICY),
                    "policies": [{"name": "ReadOnlyAccess", "type": "managed"}],
                }
            ],
        },
        "google": {
            "users": [
                {
                    "primaryEmail": "carol@example.com",
                    "lastLoginTime": "1970-01-01T00:00:00.000Z",
                    "isAdmin": False,
                    "isEnrolledIn2Sv": False,
                    "isMailboxSetup": True,
                },
                {
                    "primaryEmail": "dave@example.com",
                    "lastLoginTime": "2024-05-31T08:00:00.000Z",
                    "isAdmin": True,
                    "isEnrolledIn2Sv": True,
                    "isMailboxSetup": True,
                },
            ]
        },
    }
