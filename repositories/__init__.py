# ============================================================================
# REPOSITORIES MODULE
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Core - Database access layer
# PURPOSE: Partition registry persistence
# CREATED: 19 OCT 2026
# ============================================================================
"""
Repositories Module

Provides database access for the partition registry.
Uses psycopg3 with a caller-owned connection.

Usage:
    from infrastructure import PostgreSQLRepository
    from repositories import PartitionRepository

    with PostgreSQLRepository().transaction() as conn:
        registry = PartitionRepository(conn)
        records = registry.list_for(association)
"""

from .database import mask_connection_string, registry_table
from .partition_repo import PartitionRepository

__all__ = [
    "mask_connection_string",
    "registry_table",
    "PartitionRepository",
]
