"""
Entity model normalizer for Shadow Risk.

Maps provider-specific records (AWS IAM users and roles, Google Workspace
users) into the canonical entity variants consumed by the scoring engine.
"""

from shadowrisk.normalizer.base import (
    NormalizationError,
    UnknownEntityKindError,
    UnknownProviderError,
    parse_timestamp,
)
from shadowrisk.normalizer.aws import normalize_aws_role, normalize_aws_user
from shadowrisk.normalizer.google import normalize_google_user, parse_last_login
from shadowrisk.normalizer.snapshot import (
    SnapshotLoadError,
    load_snapshot,
    normalize_record,
    normalize_snapshot,
)

__all__ = [
    "NormalizationError",
    "SnapshotLoadError",
    "UnknownEntityKindError",
    "UnknownProviderError",
    "load_snapshot",
    "normalize_aws_role",
    "normalize_aws_user",
    "normalize_google_user",
    "normalize_record",
    "normalize_snapshot",
    "parse_last_login",
    "parse_timestamp",
]
