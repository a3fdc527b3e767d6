# ============================================================================
# POLYMORPHIC ADAPTER
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Infrastructure - Migration entry points
# PURPOSE: Apply partition add/remove scripts and keep the registry in step
# CREATED: 19 OCT 2026
# ============================================================================
"""
Polymorphic Adapter

Migration-facing entry points. Each call:

    1. takes the association's advisory lock (transaction-scoped)
    2. plans the script from live catalog state
    3. validates the topology transition
    4. executes the script on the caller's connection
    5. registers / unregisters the partition in the same transaction

The adapter never commits. Wrap calls in ``conn.transaction()`` so a
failed statement rolls back the whole migration, registry row included.

Usage:
    with connect() as conn, conn.transaction():
        adapter = PolymorphicAdapter.for_connection(conn)
        result = adapter.add_polymorphic_foreign_key(
            "likes", "comments", column="likeable"
        )
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.config import Defaults, get_defaults
from core.contracts import MigrationOperation, TopologyState
from core.exceptions import NativeStoreError, PgMorphError
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models.partition import Association
from core.naming import NameResolver, NamingStrategy
from core.polymorphic import MigrationPlan, Polymorphic, load_partitions
from infrastructure.base_repository import BaseRepository, TOPOLOGY_TRANSITIONS

logger = get_logger("infrastructure.adapter", ComponentType.ADAPTER)


@dataclass
class MigrationResult:
    """Outcome of one add/remove call."""
    association: str
    child_table: str
    partition_table: str
    operation: MigrationOperation
    state_before: TopologyState
    state_after: TopologyState
    statements: List[str] = field(default_factory=list)
    executed: bool = False
    registry_updated: bool = False

    @property
    def sql(self) -> str:
        return "\n".join(self.statements)

    @classmethod
    def from_plan(cls, plan: MigrationPlan) -> "MigrationResult":
        return cls(
            association=plan.partition.association.key,
            child_table=plan.partition.child_table,
            partition_table=plan.partition.table_name,
            operation=plan.operation,
            state_before=plan.state_before,
            state_after=plan.state_after,
            statements=list(plan.statements),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "association": self.association,
            "child_table": self.child_table,
            "partition_table": self.partition_table,
            "operation": self.operation.value,
            "state_before": self.state_before.value,
            "state_after": self.state_after.value,
            "statements": self.statements,
            "executed": self.executed,
            "registry_updated": self.registry_updated,
        }


class PolymorphicAdapter(BaseRepository):
    """
    Applies partition migrations through a Catalog.
    """

    def __init__(
        self,
        catalog,
        registry=None,
        locks=None,
        naming: Optional[NamingStrategy] = None,
        defaults: Optional[Defaults] = None,
    ):
        """
        Args:
            catalog: Catalog that reads live state and executes scripts
            registry: Optional PartitionRepository on the same connection
            locks: Optional LockService on the same connection
            naming: Optional strategy for type tags
            defaults: Configuration (default from environment)
        """
        super().__init__()
        self.catalog = catalog
        self.registry = registry
        self.locks = locks
        self.naming = naming
        self.defaults = defaults or get_defaults()

    @classmethod
    def for_connection(
        cls,
        conn,
        naming: Optional[NamingStrategy] = None,
        defaults: Optional[Defaults] = None,
    ) -> "PolymorphicAdapter":
        """
        Wire catalog, registry and locks onto one psycopg connection.

        The registry is only used once it has been deployed (see
        RegistryInitializer); until then the PartitionSet comes from the
        trigger function.
        """
        from infrastructure.catalog import PostgresCatalog
        from infrastructure.locking import LockService
        from repositories.partition_repo import PartitionRepository

        defaults = defaults or get_defaults()
        registry = None
        if defaults.registry.enabled:
            candidate = PartitionRepository(conn, defaults.registry)
            if candidate.exists():
                registry = candidate
        locks = None
        if defaults.migration.advisory_lock:
            locks = LockService(conn, namespace=defaults.migration.lock_namespace)

        return cls(
            PostgresCatalog(conn),
            registry=registry,
            locks=locks,
            naming=naming,
            defaults=defaults,
        )

    # =========================================================================
    # MIGRATIONS
    # =========================================================================

    def add_polymorphic_foreign_key(
        self,
        parent_table: str,
        child_table: str,
        column: str,
        base_table: Optional[str] = None,
        type_tag: Optional[str] = None,
        dry_run: bool = False,
        lock: bool = True,
    ) -> MigrationResult:
        """
        Attach a partition for child_table to the parent's association.

        Raises:
            DuplicatePartition: If the partition already routes rows
            ConflictingBaseTable: If the base table name is occupied
            NativeStoreError: If PostgreSQL rejects a statement
        """
        poly = self._polymorphic(parent_table, child_table, column, base_table, type_tag)
        with log_context(
            parent_table=poly.parent_table,
            child_table=poly.child_table,
            column=poly.column_name,
            operation=MigrationOperation.ADD.value,
        ):
            with self._boundary("add partition", poly.proxy_table):
                self._lock(poly.association, dry_run, lock)
                plan = poly.plan_add()
                self._validate_transition(plan.state_before, plan.state_after, TOPOLOGY_TRANSITIONS)
                result = MigrationResult.from_plan(plan)
                if dry_run:
                    logger.info(f"Dry run: {len(plan.statements)} statements for {poly.proxy_table}")
                    return result

                self.catalog.execute(plan.sql)
                result.executed = True
                if self.registry is not None:
                    self._register(plan)
                    result.registry_updated = True

            log_checkpoint("partition_added", result.to_dict())
            return result

    def remove_polymorphic_foreign_key(
        self,
        parent_table: str,
        child_table: str,
        column: str,
        base_table: Optional[str] = None,
        drop_partition_table: bool = True,
        dry_run: bool = False,
        lock: bool = True,
    ) -> MigrationResult:
        """
        Detach child_table's partition; collapse the proxy if it was the last.

        Raises:
            MissingTriggerFunction: If the partition has no routing branch
            NativeStoreError: If PostgreSQL rejects a statement
        """
        poly = self._polymorphic(parent_table, child_table, column, base_table)
        with log_context(
            parent_table=poly.parent_table,
            child_table=poly.child_table,
            column=poly.column_name,
            operation=MigrationOperation.REMOVE.value,
        ):
            with self._boundary("remove partition", poly.proxy_table):
                self._lock(poly.association, dry_run, lock)
                plan = poly.plan_remove(drop_partition_table=drop_partition_table)
                self._validate_transition(plan.state_before, plan.state_after, TOPOLOGY_TRANSITIONS)
                result = MigrationResult.from_plan(plan)
                if dry_run:
                    logger.info(f"Dry run: {len(plan.statements)} statements for {poly.proxy_table}")
                    return result

                self.catalog.execute(plan.sql)
                result.executed = True
                if self.registry is not None:
                    result.registry_updated = self.registry.unregister(plan.partition)

            checkpoint = "proxy_collapsed" if result.state_after == TopologyState.NO_PROXY else "partition_removed"
            log_checkpoint(checkpoint, result.to_dict())
            return result

    # =========================================================================
    # STATUS
    # =========================================================================

    def status(
        self,
        parent_table: str,
        column: str,
        base_table: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Current topology of an association.

        Returns:
            Dict with association, state, partitions and where the
            PartitionSet was read from ('registry', 'trigger' or None)
        """
        association = Association(
            parent_table=parent_table,
            column=column,
            base_table=base_table or self.defaults.naming.base_table_for(parent_table),
            primary_key=self.defaults.naming.primary_key,
        )
        names = NameResolver(self.naming)
        partitions, source = load_partitions(
            self.catalog, association, names, registry=self.registry
        )
        state = TopologyState.for_count(len(partitions))
        return {
            "association": association.key,
            "parent_table": association.parent_table,
            "base_table": association.base_table,
            "state": state.value,
            "source": source,
            "trigger": names.trigger_name(association) if state.has_proxy() else None,
            "function": names.trigger_function_name(association) if state.has_proxy() else None,
            "partitions": [
                {
                    "child_table": p.child_table,
                    "partition_table": p.table_name,
                    "type_tag": p.type_tag,
                }
                for p in partitions
            ],
        }

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _polymorphic(
        self,
        parent_table: str,
        child_table: str,
        column: str,
        base_table: Optional[str] = None,
        type_tag: Optional[str] = None,
    ) -> Polymorphic:
        return Polymorphic(
            self.catalog,
            parent_table,
            child_table,
            column=column,
            base_table=base_table or self.defaults.naming.base_table_for(parent_table),
            type_tag=type_tag,
            primary_key=self.defaults.naming.primary_key,
            registry=self.registry,
            naming=self.naming,
        )

    def _register(self, plan: MigrationPlan) -> None:
        """
        Record an added partition.

        A PartitionSet that was read from trigger source is adopted whole,
        so the registry never shadows partitions it did not know about.
        """
        association = plan.partition.association
        registered = self.registry.list_for(association)
        if len(registered) == len(plan.before):
            self.registry.register(plan.partition)
        else:
            self.registry.replace(association, plan.after)

    def _lock(self, association: Association, dry_run: bool, lock: bool) -> None:
        if self.locks is None or dry_run or not lock:
            return
        self.locks.acquire_association_lock(association)

    @contextmanager
    def _boundary(self, operation: str, entity_id: str):
        """Log engine and driver errors once, with association context."""
        try:
            yield
        except PgMorphError as e:
            logger.error(f"{operation} rejected for {entity_id}: {e}")
            raise
        except NativeStoreError as e:
            logger.error(f"{operation} failed in PostgreSQL for {entity_id}: {e}")
            raise


__all__ = ["PolymorphicAdapter", "MigrationResult"]
