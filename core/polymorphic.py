# ============================================================================
# POLYMORPHIC TOPOLOGY MANAGER
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Core - Partition add/remove orchestration
# PURPOSE: Decide proxy topology changes and emit ordered DDL scripts
# CREATED: 19 OCT 2026
# EXPORTS: Polymorphic, MigrationPlan, load_partitions
# DEPENDENCIES: psycopg (via ddl_utils)
# ============================================================================
"""
Polymorphic Topology Manager.

One Polymorphic instance handles one partition, i.e. one
(parent table, child table, discriminator column) triple. Every operation
re-reads the live PartitionSet and object existence from the Catalog; no
state is cached between calls.

Layout while proxied (``likes`` with partitions for comments and posts):

    likes_base        ordinary table, the original ``likes`` renamed
    likes_comments    INHERITS (likes_base), CHECK likeable_type = 'Comment'
    likes_posts       INHERITS (likes_base), CHECK likeable_type = 'Post'
    likes             VIEW AS SELECT * FROM likes_base
    likes_likeable_insert_trigger  INSTEAD OF INSERT ON likes
    likes_likeable_fun             routes NEW rows by likeable_type

Topology states follow the partition count:

    NO_PROXY                 0 partitions, likes is a plain table
    SINGLE_PARTITION_PROXY   1 partition
    MULTI_PARTITION_PROXY    2+ partitions

Removing the last partition collapses the proxy: trigger, function and view
are dropped and likes_base is renamed back to likes.

Usage:
    poly = Polymorphic(catalog, "likes", "comments", column="likeable")
    catalog.execute(poly.add_sql())
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from core.contracts import MigrationOperation, RelationKind, TopologyState
from core.exceptions import ConflictingBaseTable, MissingTriggerFunction
from core.models.partition import Association, Partition
from core.naming import NameResolver, NamingStrategy
from core.schema.ddl_utils import TableBuilder, ViewBuilder, render
from core.schema.trigger_synthesizer import TriggerBodySynthesizer

logger = logging.getLogger(__name__)


PARTITION_SOURCE_REGISTRY = "registry"
PARTITION_SOURCE_TRIGGER = "trigger"


def load_partitions(
    catalog,
    association: Association,
    names: NameResolver,
    registry=None,
) -> Tuple[List[Partition], Optional[str]]:
    """
    Live PartitionSet of an association, in registration order.

    Registry rows win; without them the set is recovered from the
    deployed trigger function.

    Returns:
        (partitions, source) where source is 'registry', 'trigger' or
        None when the association has no partitions
    """
    if registry is not None:
        records = registry.list_for(association)
        if records:
            partitions = [
                names.partition(association, r.child_table, type_tag=r.type_tag)
                for r in records
            ]
            return partitions, PARTITION_SOURCE_REGISTRY

    source = catalog.current_trigger_source(names.trigger_function_name(association))
    if not source:
        return [], None
    synthesizer = TriggerBodySynthesizer(names)
    partitions = synthesizer.partitions_from_source(association, source)
    return partitions, (PARTITION_SOURCE_TRIGGER if partitions else None)


@dataclass
class MigrationPlan:
    """Ordered statements for one add/remove, with the PartitionSet around it."""
    operation: MigrationOperation
    partition: Partition
    before: List[Partition] = field(default_factory=list)
    after: List[Partition] = field(default_factory=list)
    statements: List[str] = field(default_factory=list)

    @property
    def state_before(self) -> TopologyState:
        return TopologyState.for_count(len(self.before))

    @property
    def state_after(self) -> TopologyState:
        return TopologyState.for_count(len(self.after))

    @property
    def sql(self) -> str:
        return "\n".join(self.statements)


class Polymorphic:
    """
    Topology manager for one partition of a polymorphic association.
    """

    def __init__(
        self,
        catalog,
        parent_table: str,
        child_table: str,
        column: str,
        base_table: Optional[str] = None,
        type_tag: Optional[str] = None,
        primary_key: Optional[str] = None,
        registry=None,
        naming: Optional[NamingStrategy] = None,
    ):
        """
        Args:
            catalog: Catalog used for every live read
            parent_table: Logical table, e.g. 'likes'
            child_table: Referenced table, e.g. 'comments'
            column: Discriminator stem, e.g. 'likeable'
            base_table: Storage table name (default '<parent>_base')
            type_tag: Discriminator value (default from the naming strategy)
            primary_key: Key column of parent and child (default 'id')
            registry: Optional PartitionRepository holding PartitionSet rows
            naming: Optional strategy for type tags
        """
        self.catalog = catalog
        self.registry = registry
        self.names = NameResolver(naming)
        self.synthesizer = TriggerBodySynthesizer(self.names)
        self.association = Association(
            parent_table=parent_table,
            column=column,
            base_table=base_table or "",
            primary_key=primary_key or "",
        )
        self.partition = self.names.partition(self.association, child_table, type_tag)

    # =========================================================================
    # NAMES
    # =========================================================================

    @property
    def parent_table(self) -> str:
        return self.association.parent_table

    @property
    def child_table(self) -> str:
        return self.partition.child_table

    @property
    def column_name(self) -> str:
        return self.association.column

    @property
    def base_table(self) -> str:
        return self.association.base_table

    @property
    def proxy_table(self) -> str:
        return self.partition.table_name

    @property
    def type(self) -> str:
        return self.partition.type_tag

    @property
    def trigger_name(self) -> str:
        return self.names.trigger_name(self.association)

    @property
    def function_name(self) -> str:
        return self.names.trigger_function_name(self.association)

    # =========================================================================
    # LIVE STATE
    # =========================================================================

    def partitions(self) -> List[Partition]:
        """
        Current PartitionSet, in registration order.

        Registry rows win; without them the set is recovered from the
        deployed trigger function.
        """
        partitions, _ = load_partitions(
            self.catalog, self.association, self.names, registry=self.registry
        )
        return partitions

    def state(self) -> TopologyState:
        return TopologyState.for_count(len(self.partitions()))

    def is_registered(self, partitions: Optional[List[Partition]] = None) -> bool:
        if partitions is None:
            partitions = self.partitions()
        return any(p.child_table == self.child_table for p in partitions)

    def can_rename_to_base_table(self) -> bool:
        """
        Whether the parent table may be renamed to the base table name.

        Returns:
            True if nothing occupies the base table name, False if a
            compatible base table from an earlier partition is already there

        Raises:
            ConflictingBaseTable: If an unrelated object has the name
        """
        base = self.base_table
        if not self.catalog.table_exists(base):
            return True

        kind = self.catalog.relation_kind(base)
        if kind != RelationKind.TABLE:
            raise ConflictingBaseTable(base, f"{base} is a {kind.value if kind else 'relation'}")

        missing = [
            col for col in (self.association.id_column, self.association.type_column)
            if not self.catalog.column_exists(base, col)
        ]
        if missing:
            raise ConflictingBaseTable(base, f"missing columns {', '.join(missing)}")

        if self.catalog.relation_kind(self.parent_table) != RelationKind.VIEW:
            raise ConflictingBaseTable(base, f"{self.parent_table} is not a proxy view")

        return False

    # =========================================================================
    # ADD
    # =========================================================================

    def rename_base_table_sql(self) -> str:
        if not self.can_rename_to_base_table():
            return ""
        return render(TableBuilder.rename(self.parent_table, self.base_table))

    def create_proxy_table_sql(self) -> str:
        return render(TableBuilder.create_partition(
            table=self.proxy_table,
            base_table=self.base_table,
            type_column=self.association.type_column,
            type_tag=self.type,
            foreign_key_column=self.association.id_column,
            referenced_table=self.child_table,
            primary_key=self.association.primary_key,
        ))

    def create_base_table_view_sql(self) -> str:
        return render(ViewBuilder.create_or_replace(self.parent_table, self.base_table))

    def create_trigger_body(self) -> str:
        """
        Routing chain with this partition appended.

        Raises:
            DuplicatePartition: If this partition already has a branch
        """
        updated = self.synthesizer.append_branch(self.partitions(), self.partition)
        return self.synthesizer.render_branches(updated)

    def create_before_insert_trigger_fun_sql(self) -> str:
        updated = self.synthesizer.append_branch(self.partitions(), self.partition)
        return self.synthesizer.render_function(self.association, updated)

    def create_before_insert_trigger_sql(self) -> str:
        return self.synthesizer.render_trigger(self.association)

    def plan_add(self) -> MigrationPlan:
        """
        Ordered script attaching this partition.

        The duplicate check runs before any other catalog read, so a
        rejected add emits nothing.
        """
        before = self.partitions()
        after = self.synthesizer.append_branch(before, self.partition)

        statements = [
            self.rename_base_table_sql(),
            self.create_proxy_table_sql(),
            self.create_base_table_view_sql(),
            self.synthesizer.render_function(self.association, after),
            self.create_before_insert_trigger_sql(),
        ]
        plan = MigrationPlan(
            operation=MigrationOperation.ADD,
            partition=self.partition,
            before=before,
            after=after,
            statements=[s.strip() for s in statements if s.strip()],
        )
        logger.debug(
            f"Planned add of {self.proxy_table}: "
            f"{plan.state_before.value} -> {plan.state_after.value}"
        )
        return plan

    def add_sql(self) -> str:
        return self.plan_add().sql

    # =========================================================================
    # REMOVE
    # =========================================================================

    def _remaining(self, partitions: List[Partition]) -> List[Partition]:
        """PartitionSet after removing this partition; it must be registered."""
        if not partitions:
            raise MissingTriggerFunction(self.function_name)
        if not self.is_registered(partitions):
            raise MissingTriggerFunction(self.function_name, self.proxy_table)
        return self.synthesizer.remove_branch(partitions, self.child_table)

    def _remove_trigger_sql(self, remaining: List[Partition]) -> str:
        if remaining:
            return self.synthesizer.render_function(self.association, remaining)
        return self.synthesizer.render_drop(self.association)

    def _remove_view_sql(self, remaining: List[Partition]) -> str:
        if remaining:
            return ""
        return render(ViewBuilder.drop(self.parent_table))

    def _rename_back_sql(self, remaining: List[Partition]) -> str:
        if remaining:
            return ""
        return render(TableBuilder.rename(self.base_table, self.parent_table))

    def remove_before_insert_trigger_sql(self) -> str:
        """
        Re-synthesized function without this partition, or the trigger and
        function teardown when it was the last one.
        """
        return self._remove_trigger_sql(self._remaining(self.partitions()))

    def remove_proxy_table(self) -> str:
        return render(TableBuilder.drop_if_exists(self.proxy_table))

    def remove_base_table_view_sql(self) -> str:
        """DROP VIEW when this is the last partition, else an empty string."""
        return self._remove_view_sql(self._remaining(self.partitions()))

    def rename_base_table_back_sql(self) -> str:
        return self._rename_back_sql(self._remaining(self.partitions()))

    def plan_remove(self, drop_partition_table: bool = True) -> MigrationPlan:
        """
        Ordered script detaching this partition.

        Args:
            drop_partition_table: Also drop the partition's storage; when
                False only its route is removed
        """
        before = self.partitions()
        after = self._remaining(before)

        statements = [
            self._remove_trigger_sql(after),
            self.remove_proxy_table() if drop_partition_table else "",
            self._remove_view_sql(after),
            self._rename_back_sql(after),
        ]
        plan = MigrationPlan(
            operation=MigrationOperation.REMOVE,
            partition=self.partition,
            before=before,
            after=after,
            statements=[s.strip() for s in statements if s.strip()],
        )
        logger.debug(
            f"Planned removal of {self.proxy_table}: "
            f"{plan.state_before.value} -> {plan.state_after.value}"
        )
        return plan

    def remove_sql(self, drop_partition_table: bool = True) -> str:
        return self.plan_remove(drop_partition_table=drop_partition_table).sql


__all__ = [
    "Polymorphic",
    "MigrationPlan",
    "load_partitions",
    "PARTITION_SOURCE_REGISTRY",
    "PARTITION_SOURCE_TRIGGER",
]
