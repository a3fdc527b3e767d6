# ============================================================================
# DATABASE CONSTANTS
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Core - Registry identifiers and connection helpers
# PURPOSE: Qualified registry table name and log-safe connection strings
# CREATED: 19 OCT 2026
# ============================================================================
"""
Database Constants

Connections come from infrastructure.postgresql.PostgreSQLRepository;
migrations are short, single-connection operations, so there is no pool.

Usage:
    from repositories.database import registry_table

    sql.SQL("SELECT * FROM {}").format(registry_table())
"""

from typing import Optional

from psycopg import sql as psycopg_sql

from core.config import RegistryDefaults, get_defaults


def mask_connection_string(conninfo: str) -> str:
    """Strip credentials from a connection string for logging."""
    if "@" in conninfo:
        # URL format
        return conninfo.split("@")[-1]
    if "password=" in conninfo:
        # Key-value format
        head, _, tail = conninfo.partition("password=")
        rest = tail.split(" ", 1)[1] if " " in tail else ""
        return f"{head}password=*** {rest}".strip()
    return conninfo


# ============================================================================
# REGISTRY TABLE
# ============================================================================

def registry_table(defaults: Optional[RegistryDefaults] = None) -> psycopg_sql.Identifier:
    """
    Qualified registry table identifier.

    Use with psycopg sql.SQL().format() for injection-safe queries.
    """
    defaults = defaults or get_defaults().registry
    return psycopg_sql.Identifier(defaults.schema_name, defaults.table_name)


__all__ = [
    "mask_connection_string",
    "registry_table",
]
