"""
Engine configuration for Shadow Risk.

Provides configuration management for detection thresholds, legacy risk
weights, Google Workspace point values, aggregation and execution options.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from shadowrisk.config.patterns import (
    ConfigurationError,
    PatternConfig,
    default_patterns,
)
from shadowrisk.models.score import AggregationMode


@dataclass
class DetectionThresholds:
    """Thresholds used by the shadow permission detector."""

    unused_account_days: int = 90  # 3 months
    old_access_key_days: int = 180  # 6 months
    forgotten_policy_days: int = 360  # 12 months
    max_policies: int = 5

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "unused_account_days": self.unused_account_days,
            "old_access_key_days": self.old_access_key_days,
            "forgotten_policy_days": self.forgotten_policy_days,
            "max_policies": self.max_policies,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DetectionThresholds:
        """Create from dictionary."""
        try:
            return cls(
                unused_account_days=int(data.get("unused_account_days", 90)),
                old_access_key_days=int(data.get("old_access_key_days", 180)),
                forgotten_policy_days=int(data.get("forgotten_policy_days", 360)),
                max_policies=int(data.get("max_policies", 5)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid detection threshold: {e}") from e


@dataclass
class LegacyRiskWeights:
    """Point weights of the per-check legacy risk score."""

    mfa_disabled: int = 1
    admin_access: int = 4
    power_user_access: int = 3
    full_service_access: int = 2
    inline_policies: int = 2
    unused_account: int = 3  # Doubled when applied
    old_access_key: int = 2
    forgotten_policy: int = 3
    unused_service: int = 2
    legacy_policy: int = 2
    excessive_permissions: int = 3

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return dict(self.__dict__)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LegacyRiskWeights:
        """Create from dictionary."""
        defaults = cls()
        unknown = set(data) - set(defaults.__dict__)
        if unknown:
            raise ConfigurationError(
                f"Unknown legacy weights: {', '.join(sorted(unknown))}"
            )
        try:
            return cls(**{k: int(v) for k, v in data.items()})
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid legacy weight: {e}") from e


@dataclass
class GoogleRiskPoints:
    """Additive point values of the Google Workspace risk scale."""

    never_logged_in: int = 3
    suspended: int = 2
    admin_privileges: int = 2
    change_password_required: int = 1
    mailbox_not_setup: int = 1
    no_two_step_verification: int = 1
    correlated_provider_access: int = 3  # Per correlated provider
    correlated_while_never_logged_in: int = 2

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return dict(self.__dict__)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GoogleRiskPoints:
        """Create from dictionary."""
        defaults = cls()
        unknown = set(data) - set(defaults.__dict__)
        if unknown:
            raise ConfigurationError(
                f"Unknown Google risk points: {', '.join(sorted(unknown))}"
            )
        try:
            return cls(**{k: int(v) for k, v in data.items()})
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid Google risk points: {e}") from e


@dataclass
class AggregationConfig:
    """Configuration for posture score aggregation."""

    default_mode: AggregationMode = AggregationMode.POINTS
    high_deduction: int = 10
    medium_deduction: int = 5
    sprawl_severe_ratio: float = 10.0
    sprawl_severe_penalty: int = 5
    sprawl_moderate_ratio: float = 5.0
    sprawl_moderate_penalty: int = 2
    recency_weight: float = 0.30
    permission_weight: float = 0.40
    identity_weight: float = 0.30

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "default_mode": self.default_mode.value,
            "high_deduction": self.high_deduction,
            "medium_deduction": self.medium_deduction,
            "sprawl_severe_ratio": self.sprawl_severe_ratio,
            "sprawl_severe_penalty": self.sprawl_severe_penalty,
            "sprawl_moderate_ratio": self.sprawl_moderate_ratio,
            "sprawl_moderate_penalty": self.sprawl_moderate_penalty,
            "recency_weight": self.recency_weight,
            "permission_weight": self.permission_weight,
            "identity_weight": self.identity_weight,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AggregationConfig:
        """Create from dictionary."""
        try:
            mode = AggregationMode(data.get("default_mode", "points"))
        except ValueError as e:
            raise ConfigurationError(f"Unknown aggregation mode: {e}") from e
        try:
            return cls(
                default_mode=mode,
                high_deduction=int(data.get("high_deduction", 10)),
                medium_deduction=int(data.get("medium_deduction", 5)),
                sprawl_severe_ratio=float(data.get("sprawl_severe_ratio", 10.0)),
                sprawl_severe_penalty=int(data.get("sprawl_severe_penalty", 5)),
                sprawl_moderate_ratio=float(data.get("sprawl_moderate_ratio", 5.0)),
                sprawl_moderate_penalty=int(data.get("sprawl_moderate_penalty", 2)),
                recency_weight=float(data.get("recency_weight", 0.30)),
                permission_weight=float(data.get("permission_weight", 0.40)),
                identity_weight=float(data.get("identity_weight", 0.30)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid aggregation setting: {e}") from e


@dataclass
class ExecutionConfig:
    """Configuration for batch execution."""

    max_workers: int = 4  # 1 = score sequentially

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"max_workers": self.max_workers}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExecutionConfig:
        """Create from dictionary."""
        try:
            max_workers = int(data.get("max_workers", 4))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid max_workers: {e}") from e
        if max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1")
        return cls(max_workers=max_workers)


@dataclass
class EngineConfiguration:
    """
    Complete engine configuration.

    This is the main configuration class that contains all settings
    for running Shadow Risk assessments.
    """

    name: str = "default"
    patterns: PatternConfig = field(default_factory=default_patterns)
    thresholds: DetectionThresholds = field(default_factory=DetectionThresholds)
    legacy_weights: LegacyRiskWeights = field(default_factory=LegacyRiskWeights)
    google_points: GoogleRiskPoints = field(default_factory=GoogleRiskPoints)
    aggregation: AggregationConfig = field(default_factory=AggregationConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "patterns": self.patterns.to_dict(),
            "thresholds": self.thresholds.to_dict(),
            "legacy_weights": self.legacy_weights.to_dict(),
            "google_points": self.google_points.to_dict(),
            "aggregation": self.aggregation.to_dict(),
            "execution": self.execution.to_dict(),
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineConfiguration:
        """
        Create from dictionary.

        Sections that are absent fall back to their defaults; the pattern
        section replaces the packaged defaults entirely when present.
        """
        if not isinstance(data, dict):
            raise ConfigurationError("configuration must be a mapping")
        patterns = (
            PatternConfig.from_dict(data["patterns"])
            if data.get("patterns")
            else default_patterns()
        )
        return cls(
            name=data.get("name", "default"),
            patterns=patterns,
            thresholds=DetectionThresholds.from_dict(data.get("thresholds", {})),
            legacy_weights=LegacyRiskWeights.from_dict(data.get("legacy_weights", {})),
            google_points=GoogleRiskPoints.from_dict(data.get("google_points", {})),
            aggregation=AggregationConfig.from_dict(data.get("aggregation", {})),
            execution=ExecutionConfig.from_dict(data.get("execution", {})),
        )

    @classmethod
    def from_json(cls, json_str: str) -> EngineConfiguration:
        """Create from JSON string."""
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def from_file(cls, path: str) -> EngineConfiguration:
        """
        Load configuration from a JSON or YAML file.

        Raises:
            ConfigurationError: If the file cannot be read or parsed
        """
        path = os.path.expanduser(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                if path.endswith(".json"):
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration: {e}", path) from e
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}", path) from e
        return cls.from_dict(data)

    def save(self, path: str) -> None:
        """Save configuration to a JSON or YAML file."""
        path = os.path.expanduser(path)
        Path(path).parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            if path.endswith(".json"):
                json.dump(self.to_dict(), f, indent=2)
            else:
                yaml.safe_dump(self.to_dict(), f, default_flow_style=False)


def load_config_from_env() -> EngineConfiguration:
    """
    Load configuration from environment variables.

    Environment variables:
        SHADOWRISK_CONFIG_FILE: Path to configuration file
        SHADOWRISK_PATTERNS_FILE: Path to a pattern file overriding the defaults
        SHADOWRISK_MAX_WORKERS: Worker count for batch scoring
        SHADOWRISK_AGGREGATION_MODE: Default aggregation mode (points, weighted)

    Returns:
        EngineConfiguration instance
    """
    config_file = os.getenv("SHADOWRISK_CONFIG_FILE")
    if config_file and os.path.exists(config_file):
        config = EngineConfiguration.from_file(config_file)
    else:
        config = EngineConfiguration()

    patterns_file = os.getenv("SHADOWRISK_PATTERNS_FILE")
    if patterns_file:
        config.patterns = PatternConfig.from_file(patterns_file)

    max_workers = os.getenv("SHADOWRISK_MAX_WORKERS")
    if max_workers:
        config.execution = ExecutionConfig.from_dict({"max_workers": max_workers})

    mode = os.getenv("SHADOWRISK_AGGREGATION_MODE")
    if mode:
        try:
            config.aggregation.default_mode = AggregationMode(mode.lower())
        except ValueError as e:
            raise ConfigurationError(f"Unknown aggregation mode: {mode}") from e

    return config
