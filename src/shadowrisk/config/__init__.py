"""
Configuration management for Shadow Risk.

Provides configuration classes for policy classification patterns,
detection thresholds, scoring weights and execution options.
"""

from shadowrisk.config.patterns import (
    ConfigurationError,
    PatternConfig,
    default_patterns,
)
from shadowrisk.config.engine_config import (
    AggregationConfig,
    DetectionThresholds,
    EngineConfiguration,
    ExecutionConfig,
    GoogleRiskPoints,
    LegacyRiskWeights,
    load_config_from_env,
)

__all__ = [
    "AggregationConfig",
    "ConfigurationError",
    "DetectionThresholds",
    "EngineConfiguration",
    "ExecutionConfig",
    "GoogleRiskPoints",
    "LegacyRiskWeights",
    "PatternConfig",
    "default_patterns",
    "load_config_from_env",
]
