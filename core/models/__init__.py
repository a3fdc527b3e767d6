# ============================================================================
# MODELS MODULE
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Model exports
# PURPOSE: Central export point for all Pydantic models
# CREATED: 19 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

Models that are persisted define SQL metadata via __sql_* ClassVar
attributes for DDL generation (see PydanticToSQL).
"""

from core.models.partition import Association, Partition
from core.models.registry import PartitionRecord

__all__ = [
    "Association",
    "Partition",
    "PartitionRecord",
]
