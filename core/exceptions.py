# ============================================================================
# EXCEPTIONS
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Foundation - Error kinds raised by the schema engine
# PURPOSE: Typed errors for conflicting or invalid partition topology
# CREATED: 19 OCT 2026
# ============================================================================
"""
Error kinds for pg-morph.

Every error is raised synchronously to the immediate caller. Nothing here
is retried and nothing is rolled back: the caller's transaction boundary
undoes partially applied statements.

Driver failures are not wrapped. ``NativeStoreError`` is the psycopg base
exception, re-exported so callers can catch it without importing psycopg.
"""

from typing import Optional

import psycopg

NativeStoreError = psycopg.Error


class PgMorphError(Exception):
    """Base exception for schema engine operations."""

    def __init__(self, message: str, operation: str = None, entity: str = None):
        self.operation = operation
        self.entity = entity
        super().__init__(message)


class InvalidIdentifier(PgMorphError):
    """Raised when a table, column or object name is not a plain identifier."""

    def __init__(self, value: str, field: Optional[str] = None):
        self.value = value
        self.field = field
        label = f"{field} " if field else ""
        super().__init__(
            f"Invalid {label}identifier {value!r}: expected lower-case letters, "
            f"digits and underscores, starting with a letter or underscore",
            operation="validate",
            entity=value,
        )


class DuplicatePartition(PgMorphError):
    """Raised when a routing branch for the partition already exists."""

    def __init__(self, partition_table: str, function_name: str):
        self.partition_table = partition_table
        self.function_name = function_name
        super().__init__(
            f"Condition for {partition_table} table already exists in "
            f"trigger function {function_name}()",
            operation="add_partition",
            entity=partition_table,
        )


class ConflictingBaseTable(PgMorphError):
    """Raised when an unrelated object occupies the base table name."""

    def __init__(self, base_table: str, reason: str = ""):
        self.base_table = base_table
        self.reason = reason
        message = f"Table {base_table} already exists and is not a compatible base table"
        if reason:
            message += f": {reason}"
        super().__init__(message, operation="rename_to_base_table", entity=base_table)


class MissingTriggerFunction(PgMorphError):
    """Raised when removing a partition that has no routing branch."""

    def __init__(self, function_name: str, partition_table: Optional[str] = None):
        self.function_name = function_name
        self.partition_table = partition_table
        if partition_table:
            message = (
                f"Trigger function {function_name}() has no condition "
                f"for {partition_table} table"
            )
        else:
            message = f"There is no such function {function_name}()"
        super().__init__(message, operation="remove_partition", entity=function_name)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "NativeStoreError",
    "PgMorphError",
    "InvalidIdentifier",
    "DuplicatePartition",
    "ConflictingBaseTable",
    "MissingTriggerFunction",
]
