# ============================================================================
# PARTITION REGISTRY MODEL
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Domain model - Persisted PartitionSet membership
# PURPOSE: One row per registered partition, ordered by position
# CREATED: 19 OCT 2026
# ============================================================================
"""
Partition Registry Model

Persists which partitions are attached to which association, in
registration order. The registry replaces recovering the PartitionSet by
parsing generated trigger source.

Maps to: public.pg_morph_partitions (schema and table are configurable,
see RegistryDefaults)
"""

from datetime import datetime, timezone
from typing import ClassVar, Dict, List

from pydantic import BaseModel, Field

from core.models.partition import Partition


class PartitionRecord(BaseModel):
    """
    Registry row for one partition.
    """

    # SQL DDL METADATA
    __sql_table__: ClassVar[str] = "pg_morph_partitions"
    __sql_schema__: ClassVar[str] = "public"
    __sql_primary_key__: ClassVar[List[str]] = ["parent_table", "column_name", "child_table"]
    __sql_foreign_keys__: ClassVar[Dict[str, str]] = {}
    __sql_indexes__: ClassVar[List] = [
        ("idx_pg_morph_partitions_order", ["parent_table", "column_name", "position"]),
    ]

    parent_table: str = Field(..., max_length=63)
    column_name: str = Field(..., max_length=63)
    child_table: str = Field(..., max_length=63)
    type_tag: str = Field(..., max_length=255)
    partition_table: str = Field(..., max_length=63)
    position: int = Field(..., ge=0, description="Registration order within the association")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": False}

    @classmethod
    def from_partition(cls, partition: Partition, position: int) -> "PartitionRecord":
        """Build a registry row for a partition at a given position."""
        return cls(
            parent_table=partition.association.parent_table,
            column_name=partition.association.column,
            child_table=partition.child_table,
            type_tag=partition.type_tag,
            partition_table=partition.table_name,
            position=position,
        )


__all__ = ["PartitionRecord"]
