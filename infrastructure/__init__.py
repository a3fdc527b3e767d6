# ============================================================================
# INFRASTRUCTURE MODULE
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Infrastructure - Database access and migration application
# PURPOSE: Catalog reads, locking, registry deployment and the adapter
# CREATED: 19 OCT 2026
# ============================================================================
"""
Infrastructure module for pg-morph.

Provides:
- PostgresCatalog: Live catalog reads and script execution
- PolymorphicAdapter: add/remove partition entry points
- RegistryInitializer: Deploy the partition registry from Pydantic models
- LockService: Per-association advisory locks
- PostgreSQLRepository: Connections with managed identity support

Usage:
    from infrastructure import PolymorphicAdapter, PostgreSQLRepository

    with PostgreSQLRepository().transaction() as conn:
        adapter = PolymorphicAdapter.for_connection(conn)
        adapter.add_polymorphic_foreign_key("likes", "comments", column="likeable")
"""

from infrastructure.base_repository import (
    BaseRepository,
    ValidationError,
    TOPOLOGY_TRANSITIONS,
)
from infrastructure.catalog import (
    Catalog,
    PostgresCatalog,
)
from infrastructure.locking import (
    LockService,
    LockNotAcquired,
)
from infrastructure.postgresql import (
    PostgreSQLRepository,
)
from infrastructure.database_initializer import (
    RegistryInitializer,
    InitializationResult,
    StepResult,
)
from infrastructure.adapter import (
    PolymorphicAdapter,
    MigrationResult,
)

__all__ = [
    # Base
    'BaseRepository',
    'ValidationError',
    'TOPOLOGY_TRANSITIONS',
    # Catalog
    'Catalog',
    'PostgresCatalog',
    # Locking
    'LockService',
    'LockNotAcquired',
    # PostgreSQL
    'PostgreSQLRepository',
    # Registry Initialization
    'RegistryInitializer',
    'InitializationResult',
    'StepResult',
    # Adapter
    'PolymorphicAdapter',
    'MigrationResult',
]
