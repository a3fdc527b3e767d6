# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for naming, registry and migration behaviour
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Defaults

Provides sensible defaults for polymorphic partition management.
These can be overridden via environment variables or per-call arguments.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides
- Type-safe access
"""

import os
from dataclasses import dataclass, field
from typing import Optional


def _env_flag(name: str, default: bool) -> bool:
    """Read a boolean environment flag ("true"/"false", "1"/"0")."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class NamingDefaults:
    """
    Defaults for derived object names.

    The logical table is renamed to <parent>_<base_table_suffix> when the
    first partition is attached.
    """
    base_table_suffix: str = "base"
    primary_key: str = "id"

    def base_table_for(self, parent_table: str) -> str:
        """Storage table name for a logical parent table."""
        return f"{parent_table}_{self.base_table_suffix}"

    @classmethod
    def from_env(cls) -> "NamingDefaults":
        """Create from environment variables."""
        return cls(
            base_table_suffix=os.getenv("PG_MORPH_BASE_SUFFIX", "base"),
            primary_key=os.getenv("PG_MORPH_PRIMARY_KEY", "id"),
        )


@dataclass(frozen=True)
class RegistryDefaults:
    """
    Defaults for the partition registry table.

    The registry persists PartitionSet membership so it never has to be
    recovered from generated trigger source.
    """
    schema_name: str = "public"
    table_name: str = "pg_morph_partitions"
    enabled: bool = True

    @classmethod
    def from_env(cls) -> "RegistryDefaults":
        """Create from environment variables."""
        return cls(
            schema_name=os.getenv("PG_MORPH_REGISTRY_SCHEMA", "public"),
            table_name=os.getenv("PG_MORPH_REGISTRY_TABLE", "pg_morph_partitions"),
            enabled=_env_flag("PG_MORPH_REGISTRY", True),
        )


@dataclass(frozen=True)
class MigrationDefaults:
    """
    Defaults for applying generated scripts.
    """
    # Transaction-level advisory lock per association
    advisory_lock: bool = True
    lock_namespace: str = "pg_morph"

    @classmethod
    def from_env(cls) -> "MigrationDefaults":
        """Create from environment variables."""
        return cls(
            advisory_lock=_env_flag("PG_MORPH_ADVISORY_LOCK", True),
            lock_namespace=os.getenv("PG_MORPH_LOCK_NAMESPACE", "pg_morph"),
        )


# ============================================================================
# GLOBAL DEFAULTS INSTANCE
# ============================================================================

@dataclass
class Defaults:
    """Container for all default configurations."""
    naming: NamingDefaults = field(default_factory=NamingDefaults)
    registry: RegistryDefaults = field(default_factory=RegistryDefaults)
    migration: MigrationDefaults = field(default_factory=MigrationDefaults)

    @classmethod
    def from_env(cls) -> "Defaults":
        """Create all defaults from environment variables."""
        return cls(
            naming=NamingDefaults.from_env(),
            registry=RegistryDefaults.from_env(),
            migration=MigrationDefaults.from_env(),
        )


_defaults: Optional[Defaults] = None


def get_defaults() -> Defaults:
    """Get global defaults instance."""
    global _defaults
    if _defaults is None:
        _defaults = Defaults.from_env()
    return _defaults


def reset_defaults() -> None:
    """Reset defaults (for testing)."""
    global _defaults
    _defaults = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "NamingDefaults",
    "RegistryDefaults",
    "MigrationDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
