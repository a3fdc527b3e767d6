# ============================================================================
# REGISTRY INITIALIZER TESTS
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Tests - Registry deployment workflow
# PURPOSE: Verify step results for dry runs, deployment and failures
# CREATED: 19 OCT 2026
# ============================================================================
"""
RegistryInitializer Tests

Run with:
    pytest tests/test_registry_initializer.py -v
"""

from unittest.mock import MagicMock

import psycopg

from core.config import RegistryDefaults
from infrastructure.database_initializer import RegistryInitializer


def _make_conn(registry_present=True):
    """Mock connection answering the version query, then to_regclass."""
    conn = MagicMock()
    cursor = conn.cursor.return_value.__enter__.return_value
    cursor.fetchone.side_effect = [
        {"version": "PostgreSQL 16.2 on x86_64-pc-linux-gnu", "db": "app"},
        {"oid": "public.pg_morph_partitions" if registry_present else None},
    ]
    return conn, cursor


def _step(result, name):
    return next(s for s in result.steps if s.name == name)


class TestInitializeAll:

    def test_deploys_and_verifies(self):
        conn, cursor = _make_conn()
        result = RegistryInitializer(conn).initialize_all()
        assert result.success is True
        assert [s.status for s in result.steps] == ["success", "success", "success"]
        # version query + 3 DDL statements + to_regclass
        assert cursor.execute.call_count == 5
        conn.commit.assert_not_called()

    def test_dry_run(self):
        conn, cursor = _make_conn()
        result = RegistryInitializer(conn).initialize_all(dry_run=True)
        assert result.success is True
        assert result.dry_run is True
        deploy = _step(result, "deploy_registry")
        assert deploy.message == "[DRY RUN] Would execute 3 statements"
        assert 'CREATE TABLE IF NOT EXISTS "public"."pg_morph_partitions"' in deploy.details["sql"]
        assert _step(result, "verify_registry").status == "skipped"
        assert cursor.execute.call_count == 1

    def test_connection_failure(self):
        conn = MagicMock()
        conn.cursor.side_effect = psycopg.OperationalError("connection refused")
        result = RegistryInitializer(conn).initialize_all()
        assert result.success is False
        assert len(result.steps) == 1
        assert "connection refused" in result.errors[0]

    def test_deploy_failure(self):
        conn, cursor = _make_conn()
        cursor.execute.side_effect = [
            None,
            psycopg.errors.InsufficientPrivilege("permission denied for schema public"),
        ]
        result = RegistryInitializer(conn).initialize_all()
        assert result.success is False
        assert _step(result, "deploy_registry").status == "failed"
        assert any("permission denied" in e for e in result.errors)

    def test_verification_failure_is_warning(self):
        conn, _ = _make_conn(registry_present=False)
        result = RegistryInitializer(conn).initialize_all()
        assert result.success is True
        assert result.warnings

    def test_summary(self):
        conn, _ = _make_conn()
        data = RegistryInitializer(conn).initialize_all(dry_run=True).to_dict()
        assert data["registry_table"] == "public.pg_morph_partitions"
        assert data["summary"]["total_steps"] == 3


class TestRendering:

    def test_render_ddl_custom_location(self):
        initializer = RegistryInitializer(
            MagicMock(), RegistryDefaults(schema_name="meta", table_name="parts")
        )
        script = initializer.render_ddl()
        assert script.splitlines()[0] == 'CREATE SCHEMA IF NOT EXISTS "meta";'
        assert '"meta"."parts"' in script
        assert initializer.qualified_name == "meta.parts"

    def test_dry_run_through_initializer(self):
        conn, _ = _make_conn()
        assert RegistryInitializer(conn).initialize_all(dry_run=True).dry_run is True
