# ============================================================================
# BASE REPOSITORY - ERROR HANDLING AND VALIDATION PATTERNS
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Infrastructure - Base repository patterns
# PURPOSE: Common validation, error handling, and logging for catalog access
# CREATED: 19 OCT 2026
# ============================================================================
"""
Base Repository Patterns

Abstract base class that provides common infrastructure for the catalog
and the partition registry:
- Consistent error logging with context managers
- Topology transition validation
- Standardized logging

Driver errors are logged with context and re-raised unchanged; callers
catch psycopg.Error (NativeStoreError) directly.
"""

import logging
from abc import ABC
from contextlib import contextmanager
from typing import Any, Dict, Optional

from core.contracts import TopologyState
from core.exceptions import PgMorphError


class ValidationError(PgMorphError):
    """Raised when a topology transition is not allowed."""

    def __init__(self, message: str, field: str = None, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(message, operation="validate", entity=field)


class BaseRepository(ABC):
    """
    Abstract base repository with common patterns.

    Provides:
    - Error context manager for consistent error logging
    - Topology transition validation
    - Standardized logging

    Subclasses implement storage-specific operations.
    """

    def __init__(self):
        """Initialize base repository."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.logger.debug(f"{self.__class__.__name__} initialized")

    @contextmanager
    def _error_context(self, operation: str, entity_id: Optional[str] = None):
        """
        Context manager for consistent error logging.

        All exceptions are logged with the operation and entity before
        being re-raised unchanged.

        Args:
            operation: Human-readable description of the operation
            entity_id: Optional entity identifier for context

        Example:
            with self._error_context("relation lookup", name):
                cur.execute(query, params)
        """
        try:
            yield
        except PgMorphError:
            raise
        except Exception as e:
            error_msg = f"{operation} failed"
            if entity_id:
                error_msg += f" for {entity_id}"
            self.logger.error(f"{error_msg}: {e}")
            raise

    def _validate_transition(
        self,
        current: TopologyState,
        new: TopologyState,
        allowed_transitions: Dict[TopologyState, set],
    ) -> None:
        """
        Validate a topology transition against the allowed transitions map.

        Raises:
            ValidationError: If the transition is not allowed
        """
        allowed = allowed_transitions.get(current, set())
        if new not in allowed:
            raise ValidationError(
                f"Invalid topology transition: {current.value} -> {new.value}. "
                f"Allowed from {current.value}: {sorted(s.value for s in allowed)}",
                field="topology",
                value=f"{current.value} -> {new.value}",
            )

    def _log_operation(
        self,
        success: bool,
        operation: str,
        entity_id: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Log operation result with consistent formatting.

        Format:
            Success: "operation: entity_id | details"
            Failure: "operation failed: entity_id | details"
        """
        if success:
            msg = f"{operation}: {entity_id}"
        else:
            msg = f"{operation} failed: {entity_id}"

        if details:
            msg += f" | {details}"

        if success:
            self.logger.info(msg)
        else:
            self.logger.warning(msg)


# ============================================================================
# TOPOLOGY TRANSITION RULES
# ============================================================================

TOPOLOGY_TRANSITIONS = {
    TopologyState.NO_PROXY: {TopologyState.SINGLE_PARTITION_PROXY},
    TopologyState.SINGLE_PARTITION_PROXY: {
        TopologyState.MULTI_PARTITION_PROXY,
        TopologyState.NO_PROXY,
    },
    TopologyState.MULTI_PARTITION_PROXY: {
        TopologyState.MULTI_PARTITION_PROXY,
        TopologyState.SINGLE_PARTITION_PROXY,
    },
}


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "BaseRepository",
    "ValidationError",
    "TOPOLOGY_TRANSITIONS",
]
