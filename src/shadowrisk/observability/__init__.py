"""
Observability for Shadow Risk.

Provides structured logging for assessment runs.
"""

from shadowrisk.observability.logging import (
    HumanReadableFormatter,
    ShadowLogger,
    StructuredFormatter,
    configure_logging,
    get_logger,
)

__all__ = [
    "HumanReadableFormatter",
    "ShadowLogger",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
]
