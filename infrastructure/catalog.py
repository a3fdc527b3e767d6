# ============================================================================
# CATALOG
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Infrastructure - Live catalog reads and statement execution
# PURPOSE: The narrow database interface the schema engine depends on
# CREATED: 19 OCT 2026
# ============================================================================
"""
Catalog

The schema engine never talks to the driver directly. It consumes this
interface:

    table_exists(name)                  relation of any kind with that name
    relation_kind(name)                 table / view / ... or None
    column_exists(table, column)
    current_trigger_source(function)    pg_proc.prosrc or None
    execute(sql)                        raises psycopg.Error unchanged

PostgresCatalog implements it over a caller-supplied psycopg connection.
It never commits or rolls back: statements run inside whatever transaction
the caller has open.

Usage:
    with psycopg.connect(dsn) as conn:
        catalog = PostgresCatalog(conn)
        with conn.transaction():
            catalog.execute(poly.add_sql())
"""

from abc import abstractmethod
from typing import Optional

from psycopg import sql
from psycopg.rows import dict_row

from core.contracts import RelationKind
from infrastructure.base_repository import BaseRepository


class Catalog(BaseRepository):
    """
    Abstract catalog collaborator.
    """

    @abstractmethod
    def relation_kind(self, name: str) -> Optional[RelationKind]:
        """Kind of the relation with this name, None if absent."""

    @abstractmethod
    def column_exists(self, table: str, column: str) -> bool:
        """Whether table has a column with this name."""

    @abstractmethod
    def current_trigger_source(self, function_name: str) -> Optional[str]:
        """Stored body of the trigger function, None if absent."""

    @abstractmethod
    def execute(self, statement: str) -> None:
        """Execute a script of one or more statements."""

    def table_exists(self, name: str) -> bool:
        """Whether any relation (table or view) has this name."""
        return self.relation_kind(name) is not None


class PostgresCatalog(Catalog):
    """
    Catalog over a psycopg connection.

    Lookups are restricted to one schema (default 'public').
    """

    def __init__(self, conn, schema: str = "public"):
        """
        Args:
            conn: Open psycopg connection; the caller owns its transaction
            schema: Schema the association's objects live in
        """
        super().__init__()
        self.conn = conn
        self.schema = schema

    def _fetch_one(self, query: sql.Composable, params: tuple) -> Optional[dict]:
        with self.conn.cursor(row_factory=dict_row) as cur:
            cur.execute(query, params)
            return cur.fetchone()

    def relation_kind(self, name: str) -> Optional[RelationKind]:
        with self._error_context("relation lookup", name):
            row = self._fetch_one(
                sql.SQL("""
                    SELECT c.relkind
                    FROM pg_catalog.pg_class c
                    JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
                    WHERE n.nspname = %s
                      AND c.relname = %s
                """),
                (self.schema, name),
            )
        if row is None:
            return None
        relkind = row["relkind"]
        if isinstance(relkind, bytes):
            relkind = relkind.decode()
        return RelationKind.from_relkind(relkind)

    def column_exists(self, table: str, column: str) -> bool:
        with self._error_context("column lookup", f"{table}.{column}"):
            row = self._fetch_one(
                sql.SQL("""
                    SELECT 1 AS present
                    FROM information_schema.columns
                    WHERE table_schema = %s
                      AND table_name = %s
                      AND column_name = %s
                """),
                (self.schema, table, column),
            )
        return row is not None

    def current_trigger_source(self, function_name: str) -> Optional[str]:
        with self._error_context("trigger function lookup", function_name):
            row = self._fetch_one(
                sql.SQL("""
                    SELECT p.prosrc
                    FROM pg_catalog.pg_proc p
                    JOIN pg_catalog.pg_namespace n ON n.oid = p.pronamespace
                    WHERE n.nspname = %s
                      AND p.proname = %s
                    LIMIT 1
                """),
                (self.schema, function_name),
            )
        return row["prosrc"] if row else None

    def execute(self, statement: str) -> None:
        """
        Execute a generated script.

        No parameters are passed, so the script may hold several
        statements and '%' in RAISE messages is sent verbatim.
        """
        if not statement or not statement.strip():
            return
        with self._error_context("script execution"):
            with self.conn.cursor() as cur:
                cur.execute(statement)
        self.logger.debug(f"Executed script ({len(statement)} chars)")


__all__ = ["Catalog", "PostgresCatalog"]
