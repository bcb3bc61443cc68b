"""
Policy classification patterns for Shadow Risk.

All keyword lists consulted by the scorer, detector and projector live in a
single versioned PatternConfig so every component classifies policies from
the same source.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

DEFAULT_PATTERNS_PATH = Path(__file__).parent / "default_patterns.yaml"

PERMISSION_LEVEL_ORDER = ("admin", "full-access", "read-only")


class ConfigurationError(Exception):
    """Exception raised when configuration is invalid or cannot be loaded."""

    def __init__(self, message: str, source_path: str | None = None):
        self.source_path = source_path
        prefix = f"{source_path}: " if source_path else ""
        super().__init__(f"{prefix}{message}")


def _as_tuple(data: dict[str, Any], key: str) -> tuple[str, ...]:
    value = data.get(key, [])
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ConfigurationError(f"'{key}' must be a list of strings")
    return tuple(str(v) for v in value)


@dataclass(frozen=True)
class PatternConfig:
    """
    Named keyword lists used to classify policies.

    Attributes:
        version: Version label of the pattern set
        admin_keywords: Lower-case substrings scoring 5 on the permission sub-score
        write_keywords: Lower-case substrings scoring 2 on the permission sub-score
        administrator_keywords: Substrings flagging an administrator policy
        power_user_keywords: Substrings flagging a power-user policy
        high_risk_policies: Substrings flagging full-service access
        unused_services: Substrings flagging access to rarely used services
        legacy_policies: Exact names of legacy policies
        permission_levels: Keywords per permission level (admin, full-access, read-only)
    """

    version: str = "unversioned"
    admin_keywords: tuple[str, ...] = ()
    write_keywords: tuple[str, ...] = ()
    administrator_keywords: tuple[str, ...] = ()
    power_user_keywords: tuple[str, ...] = ()
    high_risk_policies: tuple[str, ...] = ()
    unused_services: tuple[str, ...] = ()
    legacy_policies: tuple[str, ...] = ()
    permission_levels: dict[str, tuple[str, ...]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "version": self.version,
            "admin_keywords": list(self.admin_keywords),
            "write_keywords": list(self.write_keywords),
            "administrator_keywords": list(self.administrator_keywords),
            "power_user_keywords": list(self.power_user_keywords),
            "high_risk_policies": list(self.high_risk_policies),
            "unused_services": list(self.unused_services),
            "legacy_policies": list(self.legacy_policies),
            "permission_levels": {
                level: list(words) for level, words in self.permission_levels.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PatternConfig:
        """
        Create from dictionary.

        Raises:
            ConfigurationError: If a list is malformed or a permission level is unknown
        """
        if not isinstance(data, dict):
            raise ConfigurationError("pattern configuration must be a mapping")

        levels_raw = data.get("permission_levels") or {}
        if not isinstance(levels_raw, dict):
            raise ConfigurationError("'permission_levels' must be a mapping")
        unknown = set(levels_raw) - set(PERMISSION_LEVEL_ORDER)
        if unknown:
            raise ConfigurationError(
                f"Unknown permission levels: {', '.join(sorted(unknown))}"
            )

        return cls(
            version=str(data.get("version", "unversioned")),
            admin_keywords=tuple(k.lower() for k in _as_tuple(data, "admin_keywords")),
            write_keywords=tuple(k.lower() for k in _as_tuple(data, "write_keywords")),
            administrator_keywords=_as_tuple(data, "administrator_keywords"),
            power_user_keywords=_as_tuple(data, "power_user_keywords"),
            high_risk_policies=_as_tuple(data, "high_risk_policies"),
            unused_services=_as_tuple(data, "unused_services"),
            legacy_policies=_as_tuple(data, "legacy_policies"),
            permission_levels={
                level: tuple(k.lower() for k in _as_tuple(levels_raw, level))
                for level in PERMISSION_LEVEL_ORDER
                if level in levels_raw
            },
        )

    @classmethod
    def from_file(cls, path: str) -> PatternConfig:
        """
        Load patterns from a YAML (or JSON) file.

        Args:
            path: Path to the pattern file

        Returns:
            PatternConfig instance

        Raises:
            ConfigurationError: If the file cannot be read or parsed
        """
        path = os.path.expanduser(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigurationError(f"Cannot read pattern file: {e}", path) from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid pattern file: {e}", path) from e

        try:
            return cls.from_dict(data)
        except ConfigurationError as e:
            raise ConfigurationError(str(e), path) from e


@lru_cache(maxsize=1)
def default_patterns() -> PatternConfig:
    """Get the packaged default pattern set."""
    return PatternConfig.from_file(str(DEFAULT_PATTERNS_PATH))
