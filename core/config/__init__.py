# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for pg-morph.
"""

from core.config.defaults import (
    NamingDefaults,
    RegistryDefaults,
    MigrationDefaults,
    Defaults,
    get_defaults,
    reset_defaults,
)

__all__ = [
    "NamingDefaults",
    "RegistryDefaults",
    "MigrationDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
