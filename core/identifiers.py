# ============================================================================
# IDENTIFIER VALIDATION
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Foundation - Plain identifier grammar
# PURPOSE: Reject names that would need quoting in generated DDL
# CREATED: 19 OCT 2026
# ============================================================================
"""
Identifier validation.

Generated migration scripts embed table, column, trigger and function
names unquoted, so every name must already be a plain lower-case
PostgreSQL identifier.
"""

import re
from typing import Optional

from core.exceptions import InvalidIdentifier

# Unquoted PostgreSQL identifiers that need no case folding
IDENTIFIER_PATTERN = re.compile(r"^[a-z_][a-z0-9_]*$")
MAX_IDENTIFIER_LENGTH = 63


def validate_identifier(value, field: Optional[str] = None) -> str:
    """
    Validate a plain lower-case identifier.

    Args:
        value: Candidate name
        field: Optional field label for the error message

    Returns:
        The identifier as str

    Raises:
        InvalidIdentifier: If the name needs quoting or is too long
    """
    if not isinstance(value, str):
        raise InvalidIdentifier(repr(value), field=field)
    if not IDENTIFIER_PATTERN.match(value) or len(value) > MAX_IDENTIFIER_LENGTH:
        raise InvalidIdentifier(value, field=field)
    return value


__all__ = ["IDENTIFIER_PATTERN", "MAX_IDENTIFIER_LENGTH", "validate_identifier"]
