# ============================================================================
# REGISTRY INITIALIZER - INFRASTRUCTURE AS CODE
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Infrastructure - Registry deployment orchestrator
# PURPOSE: Bootstrap the partition registry table from its Pydantic model
# CREATED: 19 OCT 2026
# ============================================================================
"""
RegistryInitializer - Infrastructure as Code for the partition registry.

Provides a standardized workflow for deploying the registry:
1. Connection test
2. Schema + table + index creation from PartitionRecord
3. Verification that the table is present

The Pydantic model is the SINGLE SOURCE OF TRUTH for the table.
DDL is generated via PydanticToSQL.generate_all(); every statement is
IF NOT EXISTS, so initialization is idempotent.

Usage:
    from infrastructure import RegistryInitializer

    with connect() as conn:
        result = RegistryInitializer(conn).initialize_all()

    # Dry run (show SQL without executing)
    result = initializer.initialize_all(dry_run=True)
"""

import logging
import traceback
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone

from psycopg.rows import dict_row

from core.config import RegistryDefaults, get_defaults
from core.schema.ddl_utils import render
from core.schema.sql_generator import PydanticToSQL

logger = logging.getLogger(__name__)


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass
class StepResult:
    """Result of a single initialization step."""
    name: str
    status: str  # 'success', 'failed', 'skipped'
    message: str = ""
    error: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class InitializationResult:
    """Complete result of registry initialization."""
    registry_table: str
    timestamp: str
    success: bool
    dry_run: bool = False
    steps: List[StepResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "registry_table": self.registry_table,
            "timestamp": self.timestamp,
            "success": self.success,
            "dry_run": self.dry_run,
            "steps": [
                {
                    "name": s.name,
                    "status": s.status,
                    "message": s.message,
                    "error": s.error,
                    "details": s.details
                }
                for s in self.steps
            ],
            "errors": self.errors,
            "warnings": self.warnings,
            "summary": {
                "total_steps": len(self.steps),
                "successful": len([s for s in self.steps if s.status == "success"]),
                "failed": len([s for s in self.steps if s.status == "failed"]),
                "skipped": len([s for s in self.steps if s.status == "skipped"])
            }
        }


# ============================================================================
# REGISTRY INITIALIZER
# ============================================================================

class RegistryInitializer:
    """
    Registry deployment orchestrator.

    All operations are idempotent (safe to run multiple times). DDL runs
    on the caller's connection; the caller commits.
    """

    def __init__(self, conn, defaults: Optional[RegistryDefaults] = None):
        """
        Args:
            conn: Open psycopg connection
            defaults: Registry location (default from environment)
        """
        self.conn = conn
        self.defaults = defaults or get_defaults().registry
        self.qualified_name = f"{self.defaults.schema_name}.{self.defaults.table_name}"

    # ========================================================================
    # DDL GENERATION (Pydantic is the source of truth)
    # ========================================================================

    def generate_ddl_statements(self) -> List:
        """
        Generate DDL statements from the PartitionRecord model.

        Returns:
            List of sql.Composed DDL statements
        """
        generator = PydanticToSQL(
            schema_name=self.defaults.schema_name,
            table_name=self.defaults.table_name,
        )
        return generator.generate_all()

    def render_ddl(self) -> str:
        """DDL as one script, for dry runs and review."""
        return "\n".join(render(stmt) + ";" for stmt in self.generate_ddl_statements())

    # ========================================================================
    # WORKFLOW
    # ========================================================================

    def initialize_all(self, dry_run: bool = False) -> InitializationResult:
        """
        Deploy the partition registry.

        Args:
            dry_run: If True, log SQL but don't execute

        Returns:
            InitializationResult with detailed step results
        """
        result = InitializationResult(
            registry_table=self.qualified_name,
            timestamp=datetime.now(timezone.utc).isoformat(),
            success=False,
            dry_run=dry_run,
        )

        logger.info("=" * 70)
        logger.info("PG-MORPH - REGISTRY INITIALIZATION")
        logger.info(f"   Table: {self.qualified_name}")
        logger.info(f"   Mode: {'DRY RUN' if dry_run else 'EXECUTE'}")
        logger.info("=" * 70)

        try:
            # Step 1: Test connection
            step_result = self._test_connection()
            result.steps.append(step_result)
            if step_result.status == "failed":
                result.errors.append(f"Connection failed: {step_result.error}")
                return result

            # Step 2: Deploy registry
            step_result = self._deploy_registry(dry_run=dry_run)
            result.steps.append(step_result)
            if step_result.status == "failed":
                result.errors.append(f"Registry deployment failed: {step_result.error}")

            # Step 3: Verify installation
            if dry_run:
                result.steps.append(StepResult(
                    name="verify_registry",
                    status="skipped",
                    message="Skipped in dry run",
                ))
            else:
                step_result = self._verify_registry()
                result.steps.append(step_result)
                if step_result.status == "failed":
                    result.warnings.append(f"Verification issue: {step_result.error}")

            # Determine overall success
            critical_failures = [
                s for s in result.steps
                if s.status == "failed" and s.name != "verify_registry"
            ]
            result.success = len(critical_failures) == 0

        except Exception as e:
            logger.error(f"Initialization failed: {e}")
            logger.error(traceback.format_exc())
            result.errors.append(str(e))
            result.success = False

        # Log summary
        summary = result.to_dict()["summary"]
        logger.info("=" * 70)
        logger.info(f"INITIALIZATION {'COMPLETE' if result.success else 'FAILED'}")
        logger.info(f"   Steps: {summary['successful']} succeeded, {summary['failed']} failed")
        if result.errors:
            logger.warning(f"   Errors: {result.errors}")
        logger.info("=" * 70)

        return result

    def _test_connection(self) -> StepResult:
        """Test database connection."""
        step = StepResult(name="test_connection", status="pending")

        logger.info("Step: Testing database connection...")

        try:
            with self.conn.cursor(row_factory=dict_row) as cur:
                cur.execute("SELECT version() AS version, current_database() AS db")
                row = cur.fetchone()

            step.status = "success"
            step.message = f"Connected to {row['db']}"
            step.details = {
                "version": row["version"][:50] + "...",
                "database": row["db"],
            }

        except Exception as e:
            step.status = "failed"
            step.error = str(e)
            step.message = f"Connection failed: {e}"
            logger.error(f"Connection test failed: {e}")

        logger.info(f"   Result: {step.status} - {step.message}")
        return step

    def _deploy_registry(self, dry_run: bool = False) -> StepResult:
        """Deploy the registry table using the PydanticToSQL generator."""
        step = StepResult(name="deploy_registry", status="pending")

        logger.info(f"Step: Deploying {self.qualified_name}...")

        try:
            statements = self.generate_ddl_statements()
            logger.info(f"   Generated {len(statements)} DDL statements from Pydantic models")

            if dry_run:
                for i, stmt in enumerate(statements, 1):
                    logger.info(f"   [{i}] {render(stmt)[:80]}...")

                step.status = "success"
                step.message = f"[DRY RUN] Would execute {len(statements)} statements"
                step.details = {"statements_count": len(statements), "sql": self.render_ddl()}
                return step

            with self.conn.cursor() as cur:
                for stmt in statements:
                    cur.execute(stmt)

            step.status = "success"
            step.message = f"Deployed {len(statements)} statements"
            step.details = {
                "statements_executed": len(statements),
                "schema": self.defaults.schema_name,
            }

        except Exception as e:
            step.status = "failed"
            step.error = str(e)
            step.message = f"Registry deployment failed: {e}"
            logger.error(f"Registry deployment failed: {e}")
            logger.error(traceback.format_exc())

        logger.info(f"   Result: {step.status} - {step.message}")
        return step

    def _verify_registry(self) -> StepResult:
        """Verify the registry table exists."""
        step = StepResult(name="verify_registry", status="pending")

        logger.info("Step: Verifying registry...")

        try:
            with self.conn.cursor(row_factory=dict_row) as cur:
                cur.execute("SELECT to_regclass(%s) AS oid", (self.qualified_name,))
                row = cur.fetchone()

            if row and row["oid"]:
                step.status = "success"
                step.message = f"{self.qualified_name} exists"
            else:
                step.status = "failed"
                step.error = f"Missing table: {self.qualified_name}"
                step.message = "Verification failed: registry table missing"

        except Exception as e:
            step.status = "failed"
            step.error = str(e)
            step.message = f"Verification failed: {e}"

        logger.info(f"   Result: {step.status} - {step.message}")
        return step


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    'RegistryInitializer',
    'InitializationResult',
    'StepResult',
]
