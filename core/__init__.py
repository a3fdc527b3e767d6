# ============================================================================
# CORE MODULE
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Core module initialization
# PURPOSE: Export contracts, models, naming and the schema engine
# CREATED: 19 OCT 2026
# ============================================================================

from core.contracts import TopologyState, RelationKind, MigrationOperation
from core.exceptions import (
    NativeStoreError,
    PgMorphError,
    InvalidIdentifier,
    DuplicatePartition,
    ConflictingBaseTable,
    MissingTriggerFunction,
)
from core.models import Association, Partition, PartitionRecord
from core.naming import NameResolver, NamingStrategy, InflectNamingStrategy
from core.schema import TriggerBodySynthesizer, PydanticToSQL
from core.polymorphic import Polymorphic, MigrationPlan, load_partitions

__all__ = [
    # Enums
    "TopologyState",
    "RelationKind",
    "MigrationOperation",
    # Errors
    "NativeStoreError",
    "PgMorphError",
    "InvalidIdentifier",
    "DuplicatePartition",
    "ConflictingBaseTable",
    "MissingTriggerFunction",
    # Models
    "Association",
    "Partition",
    "PartitionRecord",
    # Engine
    "NameResolver",
    "NamingStrategy",
    "InflectNamingStrategy",
    "TriggerBodySynthesizer",
    "PydanticToSQL",
    "Polymorphic",
    "MigrationPlan",
    "load_partitions",
]
