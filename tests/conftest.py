# ============================================================================
# SHARED TEST FIXTURES
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Tests - Fixtures shared across modules
# PURPOSE: Isolate tests from PG_MORPH_* environment overrides
# CREATED: 19 OCT 2026
# ============================================================================

import pytest

from core.config import reset_defaults

_ENV_VARS = [
    "PG_MORPH_BASE_SUFFIX",
    "PG_MORPH_PRIMARY_KEY",
    "PG_MORPH_REGISTRY",
    "PG_MORPH_REGISTRY_SCHEMA",
    "PG_MORPH_REGISTRY_TABLE",
    "PG_MORPH_ADVISORY_LOCK",
    "PG_MORPH_LOCK_NAMESPACE",
    "LOG_FORMAT",
]


@pytest.fixture(autouse=True)
def _clean_defaults(monkeypatch):
    """Every test starts from built-in defaults."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_defaults()
    yield
    reset_defaults()
