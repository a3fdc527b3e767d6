# ============================================================================
# PARTITION REPOSITORY
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Domain - Partition registry CRUD
# PURPOSE: Persist PartitionSet membership in registration order
# CREATED: 19 OCT 2026
# ============================================================================
"""
Partition Repository

CRUD operations for the partition registry table.
All SQL uses psycopg sql.SQL composition for injection safety.

The repository shares the caller's connection and never commits, so
registry rows change in the same transaction as the DDL they describe.
"""

from typing import Any, Dict, List, Optional

from psycopg import sql
from psycopg.rows import dict_row

from core.config import RegistryDefaults, get_defaults
from core.models.partition import Association, Partition
from core.models.registry import PartitionRecord
from infrastructure.base_repository import BaseRepository
from .database import registry_table


class PartitionRepository(BaseRepository):
    """Repository for PartitionRecord rows."""

    def __init__(self, conn, defaults: Optional[RegistryDefaults] = None):
        super().__init__()
        self.conn = conn
        self.defaults = defaults or get_defaults().registry
        self.table = registry_table(self.defaults)

    def exists(self) -> bool:
        """Whether the registry table has been deployed."""
        qualified = f"{self.defaults.schema_name}.{self.defaults.table_name}"
        with self._error_context("registry lookup", qualified):
            with self.conn.cursor(row_factory=dict_row) as cur:
                cur.execute("SELECT to_regclass(%s) AS oid", (qualified,))
                row = cur.fetchone()
        return bool(row and row["oid"])

    def list_for(self, association: Association) -> List[PartitionRecord]:
        """
        Registered partitions of an association, in registration order.

        Returns an empty list when the registry table is not deployed.
        """
        if not self.exists():
            return []
        with self._error_context("list partitions", association.key):
            with self.conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    sql.SQL("""
                        SELECT * FROM {}
                        WHERE parent_table = %s AND column_name = %s
                        ORDER BY position, created_at
                    """).format(self.table),
                    (association.parent_table, association.column),
                )
                rows = cur.fetchall()
        return [self._row_to_model(row) for row in rows]

    def list_all(self) -> List[PartitionRecord]:
        """Every registered partition across associations."""
        if not self.exists():
            return []
        with self._error_context("list partitions"):
            with self.conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    sql.SQL("""
                        SELECT * FROM {}
                        ORDER BY parent_table, column_name, position
                    """).format(self.table),
                )
                rows = cur.fetchall()
        return [self._row_to_model(row) for row in rows]

    def register(self, partition: Partition) -> PartitionRecord:
        """
        Append a partition at the next position of its association.

        Re-registering an existing child updates its tag and table in place.
        """
        assoc = partition.association
        with self._error_context("register partition", partition.table_name):
            with self.conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    sql.SQL("""
                        SELECT COALESCE(MAX(position) + 1, 0) AS next_position
                        FROM {}
                        WHERE parent_table = %s AND column_name = %s
                    """).format(self.table),
                    (assoc.parent_table, assoc.column),
                )
                position = cur.fetchone()["next_position"]
                record = PartitionRecord.from_partition(partition, position)
                cur.execute(
                    sql.SQL("""
                        INSERT INTO {} (
                            parent_table, column_name, child_table,
                            type_tag, partition_table, position, created_at
                        ) VALUES (
                            %(parent_table)s, %(column_name)s, %(child_table)s,
                            %(type_tag)s, %(partition_table)s, %(position)s, %(created_at)s
                        )
                        ON CONFLICT (parent_table, column_name, child_table) DO UPDATE
                        SET type_tag = EXCLUDED.type_tag,
                            partition_table = EXCLUDED.partition_table
                    """).format(self.table),
                    record.model_dump(),
                )
        self._log_operation(True, "Registered partition", partition.table_name, {"position": position})
        return record

    def unregister(self, partition: Partition) -> bool:
        """
        Remove a partition's row.

        Returns:
            True if a row was deleted
        """
        assoc = partition.association
        with self._error_context("unregister partition", partition.table_name):
            with self.conn.cursor() as cur:
                cur.execute(
                    sql.SQL("""
                        DELETE FROM {}
                        WHERE parent_table = %s AND column_name = %s AND child_table = %s
                    """).format(self.table),
                    (assoc.parent_table, assoc.column, partition.child_table),
                )
                deleted = cur.rowcount > 0
        self._log_operation(deleted, "Unregistered partition", partition.table_name)
        return deleted

    def replace(self, association: Association, partitions: List[Partition]) -> List[PartitionRecord]:
        """
        Rewrite an association's rows as the given PartitionSet.

        Used to adopt a PartitionSet that so far only existed in trigger
        source. Positions restart at 0 in list order.
        """
        records = [PartitionRecord.from_partition(p, i) for i, p in enumerate(partitions)]
        with self._error_context("replace partitions", association.key):
            with self.conn.cursor() as cur:
                cur.execute(
                    sql.SQL("""
                        DELETE FROM {}
                        WHERE parent_table = %s AND column_name = %s
                    """).format(self.table),
                    (association.parent_table, association.column),
                )
                if records:
                    cur.executemany(
                        sql.SQL("""
                            INSERT INTO {} (
                                parent_table, column_name, child_table,
                                type_tag, partition_table, position, created_at
                            ) VALUES (
                                %(parent_table)s, %(column_name)s, %(child_table)s,
                                %(type_tag)s, %(partition_table)s, %(position)s, %(created_at)s
                            )
                        """).format(self.table),
                        [r.model_dump() for r in records],
                    )
        self._log_operation(True, "Replaced partitions", association.key, {"count": len(records)})
        return records

    def _row_to_model(self, row: Dict[str, Any]) -> PartitionRecord:
        """Convert a database row to a PartitionRecord instance."""
        return PartitionRecord(
            parent_table=row["parent_table"],
            column_name=row["column_name"],
            child_table=row["child_table"],
            type_tag=row["type_tag"],
            partition_table=row["partition_table"],
            position=row["position"],
            created_at=row["created_at"],
        )


__all__ = ["PartitionRepository"]
