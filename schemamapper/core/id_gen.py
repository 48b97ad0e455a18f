"""Prefixed UUID v7 identifiers for sessions, schemas, statements and references."""

import re

from uuid_extensions import uuid7

STATEMENT_PREFIX = "stmt_"
REFERENCE_PREFIX = "ref_"
SCHEMA_PREFIX = "sch_"
SESSION_PREFIX = "ses_"

_HEX32 = re.compile(r"^[0-9a-f]{32}$")


def generate_id(prefix: str = "") -> str:
    """Generate a UUID v7 string with optional prefix.

    Args:
        prefix: one of the ``*_PREFIX`` constants, or "" for a bare id

    Returns:
        String like "stmt_01926f4e8b7d7a8e9c0d1e2f3a4b5c6d" (no hyphens)
    """
    uid = uuid7().hex
    return f"{prefix}{uid}" if prefix else uid


def is_generated_id(value: str, prefix: str = "") -> bool:
    """Check that ``value`` has the shape produced by ``generate_id(prefix)``."""
    if not value.startswith(prefix):
        return False
    return bool(_HEX32.match(value[len(prefix):]))
