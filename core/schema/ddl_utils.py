# ============================================================================
# DDL UTILITIES
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Core - DRY utilities for SQL DDL generation
# PURPOSE: Table, view, trigger and index builders using psycopg.sql
# CREATED: 19 OCT 2026
# EXPORTS: TableBuilder, ViewBuilder, TriggerBuilder, IndexBuilder, SchemaUtils
# DEPENDENCIES: psycopg
# ============================================================================
"""
DDL Utilities - Shared SQL Generation Patterns.

Two families of builders live here:

1. Script builders (TableBuilder, ViewBuilder, TriggerBuilder) produce the
   statements of a partition migration script. Their output is a stable
   text contract (``DROP VIEW likes;``), so names are validated against
   the plain-identifier grammar and embedded unquoted.
2. Registry builders (IndexBuilder, SchemaUtils) produce statements that
   are only ever executed. They use sql.Identifier quoting.

All methods return psycopg.sql.Composed objects; ``render()`` turns a
script statement into text.

Usage:
    from core.schema.ddl_utils import TableBuilder, render

    stmt = TableBuilder.drop_if_exists('likes_comments')
    render(stmt)  # 'DROP TABLE IF EXISTS likes_comments;'
"""

from typing import Iterable, List, Optional, Sequence, Union

from psycopg import sql

from core.identifiers import IDENTIFIER_PATTERN, validate_identifier


# ============================================================================
# IDENTIFIERS AND LITERALS
# ============================================================================

def ident(value: str) -> sql.SQL:
    """Validated identifier as a bare SQL fragment."""
    return sql.SQL(validate_identifier(value))


def quote_literal(value: str) -> sql.SQL:
    """Single-quoted string literal with embedded quotes doubled."""
    return sql.SQL("'" + value.replace("'", "''") + "'")


def render(statement: Union[sql.Composable, str, None]) -> str:
    """
    Render a script statement to text.

    Script builders only compose sql.SQL fragments, which render without a
    connection.
    """
    if statement is None:
        return ""
    if isinstance(statement, str):
        return statement
    return statement.as_string(None)


def render_script(statements: Iterable[Union[sql.Composable, str, None]]) -> str:
    """Render and join statements, skipping empty ones."""
    parts = [render(stmt).strip() for stmt in statements]
    return "\n".join(part for part in parts if part)


# ============================================================================
# TABLE BUILDER
# ============================================================================

class TableBuilder:
    """
    Builder for table-level script statements.
    """

    @staticmethod
    def rename(table: str, new_name: str) -> sql.Composed:
        """ALTER TABLE ... RENAME TO ..."""
        return sql.SQL("ALTER TABLE {table} RENAME TO {new_name};").format(
            table=ident(table),
            new_name=ident(new_name),
        )

    @staticmethod
    def drop_if_exists(table: str) -> sql.Composed:
        """DROP TABLE IF EXISTS ..."""
        return sql.SQL("DROP TABLE IF EXISTS {table};").format(table=ident(table))

    @staticmethod
    def create_partition(
        table: str,
        base_table: str,
        type_column: str,
        type_tag: str,
        foreign_key_column: str,
        referenced_table: str,
        primary_key: str = "id",
    ) -> sql.Composed:
        """
        Create a partition table inheriting from the base table.

        The CHECK constraint pins the discriminator value, the foreign key
        restores referential integrity against the child table.
        """
        return sql.SQL("""
CREATE TABLE IF NOT EXISTS {table} (
  CHECK ({type_column} = {type_tag}),
  PRIMARY KEY ({primary_key}),
  FOREIGN KEY ({fk_column}) REFERENCES {referenced_table}({primary_key})
) INHERITS ({base_table});""").format(
            table=ident(table),
            type_column=ident(type_column),
            type_tag=quote_literal(type_tag),
            primary_key=ident(primary_key),
            fk_column=ident(foreign_key_column),
            referenced_table=ident(referenced_table),
            base_table=ident(base_table),
        )


# ============================================================================
# VIEW BUILDER
# ============================================================================

class ViewBuilder:
    """
    Builder for view script statements.
    """

    @staticmethod
    def create_or_replace(view: str, source_table: str) -> sql.Composed:
        """CREATE OR REPLACE VIEW ... AS SELECT * FROM ..."""
        return sql.SQL("CREATE OR REPLACE VIEW {view} AS SELECT * FROM {source};").format(
            view=ident(view),
            source=ident(source_table),
        )

    @staticmethod
    def drop(view: str) -> sql.Composed:
        """DROP VIEW ..."""
        return sql.SQL("DROP VIEW {view};").format(view=ident(view))


# ============================================================================
# TRIGGER BUILDER
# ============================================================================

class TriggerBuilder:
    """
    Builder for trigger and trigger-function script statements.
    """

    @staticmethod
    def drop_trigger(trigger_name: str, table: str) -> sql.Composed:
        """DROP TRIGGER IF EXISTS ... ON ..."""
        return sql.SQL("DROP TRIGGER IF EXISTS {name} ON {table};").format(
            name=ident(trigger_name),
            table=ident(table),
        )

    @staticmethod
    def instead_of_insert(
        trigger_name: str,
        table: str,
        function_name: str,
    ) -> List[sql.Composed]:
        """
        Create an INSTEAD OF INSERT row trigger on a view.

        Returns DROP + CREATE for idempotency.
        """
        create_stmt = sql.SQL("""
CREATE TRIGGER {name}
  INSTEAD OF INSERT ON {table}
  FOR EACH ROW EXECUTE PROCEDURE {function}();""").format(
            name=ident(trigger_name),
            table=ident(table),
            function=ident(function_name),
        )
        return [TriggerBuilder.drop_trigger(trigger_name, table), create_stmt]

    @staticmethod
    def drop_function(function_name: str) -> sql.Composed:
        """DROP FUNCTION IF EXISTS ...()"""
        return sql.SQL("DROP FUNCTION IF EXISTS {function}();").format(
            function=ident(function_name),
        )


# ============================================================================
# INDEX BUILDER
# ============================================================================

class IndexBuilder:
    """
    Builder for PostgreSQL index DDL statements.

    All methods are static and return sql.Composed objects.
    """

    @staticmethod
    def _normalize_columns(columns: Union[str, Sequence[str]]) -> List[str]:
        """Convert single column or sequence to list."""
        if isinstance(columns, str):
            return [columns]
        return list(columns)

    @staticmethod
    def _generate_index_name(
        table: str,
        columns: List[str],
        prefix: str = 'idx',
    ) -> str:
        """Generate conventional index name."""
        return f"{prefix}_{table}_{'_'.join(columns)}"

    @staticmethod
    def btree(
        schema: str,
        table: str,
        columns: Union[str, Sequence[str]],
        name: Optional[str] = None
    ) -> sql.Composed:
        """
        Create B-tree index.

        Args:
            schema: Schema name
            table: Table name
            columns: Column name(s) to index
            name: Optional custom index name

        Returns:
            sql.Composed CREATE INDEX statement
        """
        cols = IndexBuilder._normalize_columns(columns)
        idx_name = name or IndexBuilder._generate_index_name(table, cols)

        return sql.SQL("CREATE INDEX IF NOT EXISTS {name} ON {schema}.{table} ({columns})").format(
            name=sql.Identifier(idx_name),
            schema=sql.Identifier(schema),
            table=sql.Identifier(table),
            columns=sql.SQL(", ").join(sql.Identifier(c) for c in cols),
        )


# ============================================================================
# SCHEMA UTILITIES
# ============================================================================

class SchemaUtils:
    """
    Utility methods for schema-level DDL operations.
    """

    @staticmethod
    def create_schema(schema: str) -> sql.Composed:
        """Create schema if missing."""
        return sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(schema))


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    'IDENTIFIER_PATTERN',
    'validate_identifier',
    'ident',
    'quote_literal',
    'render',
    'render_script',
    'TableBuilder',
    'ViewBuilder',
    'TriggerBuilder',
    'IndexBuilder',
    'SchemaUtils',
]
