"""
Role trust policy parsing.

IAM hands trust policies back as URL-encoded JSON text; collectors may also
pass the decoded text or an already-parsed document. Anything that cannot be
read as a statement list naming a principal is treated as an orphaned role.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import unquote

logger = logging.getLogger(__name__)

TRUSTED_PRINCIPAL_TYPES = ("Service", "AWS", "Federated")


def parse_trust_policy(raw: Any) -> dict[str, Any] | None:
    """
    Parse a raw trust policy document.

    Args:
        raw: dict, JSON text or URL-encoded JSON text

    Returns:
        Parsed document, or None when absent or unreadable
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str):
        logger.debug(f"Unsupported trust policy type: {type(raw).__name__}")
        return None

    try:
        document = json.loads(unquote(raw))
    except ValueError as e:
        logger.debug(f"Unparseable trust policy: {e}")
        return None

    return document if isinstance(document, dict) else None


def trusted_principal_types(document: dict[str, Any] | None) -> list[str]:
    """
    List the principal types named by a trust policy's statements.

    Args:
        document: Parsed trust policy

    Returns:
        Principal types (Service, AWS, Federated) in statement order
    """
    if not document:
        return []

    statements = document.get("Statement", [])
    if isinstance(statements, dict):
        statements = [statements]
    if not isinstance(statements, list):
        return []

    found: list[str] = []
    for statement in statements:
        if not isinstance(statement, dict):
            continue
        principals = statement.get("Principal")
        # a bare "*" principal names no type and leaves the role unowned
        if not isinstance(principals, dict):
            continue
        for principal_type in TRUSTED_PRINCIPAL_TYPES:
            if principals.get(principal_type) and principal_type not in found:
                found.append(principal_type)
    return found


def has_trusted_principal(raw: Any) -> bool:
    """Check if a raw trust policy names at least one trusted principal."""
    return bool(trusted_principal_types(parse_trust_policy(raw)))
