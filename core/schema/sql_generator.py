# ============================================================================
# PYDANTIC TO SQL GENERATOR
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Core - DDL generation from Pydantic models
# PURPOSE: Generate the partition registry DDL from PartitionRecord
# CREATED: 19 OCT 2026
# EXPORTS: PydanticToSQL
# DEPENDENCIES: pydantic, psycopg
# ============================================================================
"""
Pydantic to PostgreSQL Schema Generator.

Generates PostgreSQL DDL statements from Pydantic models.
The PartitionRecord model is the SINGLE SOURCE OF TRUTH for the registry
table layout.

Model Metadata Convention:
    Models define SQL metadata via ClassVar attributes:
    - __sql_table__: Table name
    - __sql_schema__: Schema name
    - __sql_primary_key__: Primary key column(s) - string or list
    - __sql_foreign_keys__: Dict of {column: "schema.table(column)"}
    - __sql_indexes__: List of index definitions

Usage:
    generator = PydanticToSQL(schema_name="public")
    for stmt in generator.generate_all():
        cursor.execute(stmt)
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Type, Union, get_args, get_origin

from annotated_types import MaxLen
from psycopg import sql
from pydantic import BaseModel
from pydantic.fields import FieldInfo

from core.schema.ddl_utils import IndexBuilder, SchemaUtils

logger = logging.getLogger(__name__)


class PydanticToSQL:
    """
    Convert Pydantic models to PostgreSQL DDL statements.

    Analyzes Pydantic models with __sql_* metadata and generates
    corresponding PostgreSQL CREATE TABLE statements.
    """

    TYPE_MAP = {
        str: "VARCHAR",
        int: "INTEGER",
        float: "DOUBLE PRECISION",
        bool: "BOOLEAN",
        datetime: "TIMESTAMPTZ",
        dict: "JSONB",
        list: "JSONB",
    }

    def __init__(self, schema_name: Optional[str] = None, table_name: Optional[str] = None):
        """
        Initialize the generator.

        Args:
            schema_name: Overrides the model's __sql_schema__
            table_name: Overrides the model's __sql_table__ (registry only)
        """
        self.schema_name = schema_name
        self.table_name = table_name

    # =========================================================================
    # METADATA EXTRACTION
    # =========================================================================

    @staticmethod
    def get_model_metadata(model: Type[BaseModel]) -> Dict[str, Any]:
        """
        Extract SQL DDL metadata from a Pydantic model.

        Looks for __sql_* ClassVar attributes.
        """
        def get_attr(name: str, default=None):
            return getattr(model, f"__{name}", default)

        metadata = {
            "table": get_attr("sql_table__"),
            "schema": get_attr("sql_schema__", "public"),
            "primary_key": get_attr("sql_primary_key__", []),
            "foreign_keys": get_attr("sql_foreign_keys__", {}),
            "indexes": get_attr("sql_indexes__", []),
        }

        if isinstance(metadata["primary_key"], str):
            metadata["primary_key"] = [metadata["primary_key"]]

        return metadata

    def _resolve_names(self, model: Type[BaseModel]) -> Dict[str, Any]:
        meta = self.get_model_metadata(model)
        if self.schema_name:
            meta["schema"] = self.schema_name
        if self.table_name:
            meta["table"] = self.table_name
        return meta

    # =========================================================================
    # TYPE CONVERSION
    # =========================================================================

    def python_type_to_sql(self, field_type: Type, field_info: FieldInfo) -> str:
        """
        Convert Python type to PostgreSQL type.

        Args:
            field_type: Python type from Pydantic model
            field_info: Pydantic field information

        Returns:
            PostgreSQL type string
        """
        actual_type = field_type
        origin = get_origin(field_type)

        # Unwrap Optional
        if origin is Union:
            args = [a for a in get_args(field_type) if a is not type(None)]
            actual_type = args[0] if args else str
        elif origin in (dict, list):
            return "JSONB"

        if actual_type == str:
            for constraint in field_info.metadata or []:
                if isinstance(constraint, MaxLen):
                    return f"VARCHAR({constraint.max_length})"
            return "VARCHAR"

        return self.TYPE_MAP.get(actual_type, "JSONB")

    @staticmethod
    def _is_optional(field_type: Type) -> bool:
        return get_origin(field_type) is Union and type(None) in get_args(field_type)

    # =========================================================================
    # TABLE GENERATION
    # =========================================================================

    def generate_table(self, model: Type[BaseModel]) -> sql.Composed:
        """
        Generate CREATE TABLE DDL from a Pydantic model.

        Args:
            model: Pydantic model with __sql_* metadata

        Returns:
            sql.Composed CREATE TABLE statement
        """
        meta = self._resolve_names(model)
        table_name = meta["table"]
        schema_name = meta["schema"]
        primary_key = meta["primary_key"]

        if not table_name:
            raise ValueError(f"Model {model.__name__} missing __sql_table__ attribute")

        logger.debug(f"Generating table {schema_name}.{table_name} from {model.__name__}")

        columns = []
        for field_name, field_info in model.model_fields.items():
            field_type = field_info.annotation
            column_parts = [
                sql.Identifier(field_name),
                sql.SQL(" "),
                sql.SQL(self.python_type_to_sql(field_type, field_info)),
            ]

            if not self._is_optional(field_type) and field_name not in primary_key:
                column_parts.append(sql.SQL(" NOT NULL"))

            if field_name == "created_at":
                column_parts.append(sql.SQL(" DEFAULT NOW()"))

            columns.append(sql.SQL("").join(column_parts))

        constraints = []
        if primary_key:
            constraints.append(sql.SQL("PRIMARY KEY ({})").format(
                sql.SQL(", ").join(sql.Identifier(col) for col in primary_key)
            ))

        for fk_column, fk_reference in meta["foreign_keys"].items():
            match = re.match(r"(\w+)\.(\w+)\((\w+)\)", fk_reference)
            if match:
                ref_schema, ref_table, ref_column = match.groups()
                constraints.append(
                    sql.SQL("FOREIGN KEY ({}) REFERENCES {}.{} ({}) ON DELETE CASCADE").format(
                        sql.Identifier(fk_column),
                        sql.Identifier(ref_schema),
                        sql.Identifier(ref_table),
                        sql.Identifier(ref_column)
                    )
                )

        return sql.SQL("CREATE TABLE IF NOT EXISTS {}.{} ({})").format(
            sql.Identifier(schema_name),
            sql.Identifier(table_name),
            sql.SQL(", ").join(columns + constraints)
        )

    # =========================================================================
    # INDEX GENERATION
    # =========================================================================

    def generate_indexes(self, model: Type[BaseModel]) -> List[sql.Composed]:
        """
        Generate CREATE INDEX statements from a model's __sql_indexes__.

        Index entries are tuples: (name, columns).
        """
        meta = self._resolve_names(model)
        result = []

        for idx_def in meta.get("indexes", []):
            if not isinstance(idx_def, tuple) or len(idx_def) < 2:
                continue
            name, columns = idx_def[0], idx_def[1]
            if self.table_name:
                name = name.replace(self.get_model_metadata(model)["table"], self.table_name)
            result.append(IndexBuilder.btree(
                meta["schema"], meta["table"], columns,
                name=name,
            ))

        return result

    # =========================================================================
    # COMPLETE SCHEMA GENERATION
    # =========================================================================

    def generate_all(self) -> List[sql.Composed]:
        """
        Generate complete DDL for the partition registry.

        Returns:
            List of sql.Composed statements ready for execution
        """
        from core.models.registry import PartitionRecord

        meta = self._resolve_names(PartitionRecord)
        statements = [SchemaUtils.create_schema(meta["schema"])]
        statements.append(self.generate_table(PartitionRecord))
        statements.extend(self.generate_indexes(PartitionRecord))

        logger.info(f"Generated {len(statements)} DDL statements for {meta['schema']}.{meta['table']}")
        return statements


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ['PydanticToSQL']
