# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Foundation - Core enums shared across layers
# PURPOSE: Topology states and catalog relation kinds
# CREATED: 19 OCT 2026
# EXPORTS: TopologyState, RelationKind, MigrationOperation
# DEPENDENCIES: enum
# ============================================================================
"""
Base contracts for pg-morph.

These enums cross the boundary between the schema engine (core),
the catalog (infrastructure) and the CLI.
"""

from enum import Enum
from typing import Optional


# ============================================================================
# TOPOLOGY
# ============================================================================

class TopologyState(str, Enum):
    """
    Shape of the proxy objects for one association.

    State transitions:
        NO_PROXY -> SINGLE_PARTITION_PROXY -> MULTI_PARTITION_PROXY
        MULTI_PARTITION_PROXY -> MULTI_PARTITION_PROXY (re-synthesis only)
        MULTI_PARTITION_PROXY -> SINGLE_PARTITION_PROXY
        SINGLE_PARTITION_PROXY -> NO_PROXY (collapse)
    """
    NO_PROXY = "no_proxy"                              # Plain parent table
    SINGLE_PARTITION_PROXY = "single_partition_proxy"  # View + trigger, 1 partition
    MULTI_PARTITION_PROXY = "multi_partition_proxy"    # View + trigger, 2+ partitions

    @classmethod
    def for_count(cls, partition_count: int) -> "TopologyState":
        """Derive the state from the number of registered partitions."""
        if partition_count <= 0:
            return cls.NO_PROXY
        if partition_count == 1:
            return cls.SINGLE_PARTITION_PROXY
        return cls.MULTI_PARTITION_PROXY

    def has_proxy(self) -> bool:
        """Check if the view, trigger and function exist in this state."""
        return self is not TopologyState.NO_PROXY


class RelationKind(str, Enum):
    """
    Kind of a relation as reported by pg_class.relkind.
    """
    TABLE = "table"
    PARTITIONED_TABLE = "partitioned_table"
    VIEW = "view"
    MATERIALIZED_VIEW = "materialized_view"
    OTHER = "other"

    @classmethod
    def from_relkind(cls, relkind: Optional[str]) -> Optional["RelationKind"]:
        """Map a pg_class.relkind code to a RelationKind."""
        if relkind is None:
            return None
        return {
            "r": cls.TABLE,
            "p": cls.PARTITIONED_TABLE,
            "v": cls.VIEW,
            "m": cls.MATERIALIZED_VIEW,
        }.get(relkind, cls.OTHER)


class MigrationOperation(str, Enum):
    """Operations the adapter applies to an association."""
    ADD = "add"
    REMOVE = "remove"


__all__ = ["TopologyState", "RelationKind", "MigrationOperation"]
