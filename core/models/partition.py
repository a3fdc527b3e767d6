# ============================================================================
# ASSOCIATION & PARTITION MODELS
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Domain model - Polymorphic association identity
# PURPOSE: Immutable identity of an association and its partitions
# CREATED: 19 OCT 2026
# ============================================================================
"""
Association and Partition Models

An Association identifies one polymorphic relation: the logical parent
table readers query (``likes``) and the discriminator stem (``likeable``,
expanded to ``likeable_id`` / ``likeable_type``).

A Partition is one (association, child table) pair backed by the physical
table ``<parent>_<child>`` that stores rows whose type tag matches the
child.

Example:
    assoc = Association(parent_table="likes", column="likeable")
    assoc.base_table   # 'likes_base'
    assoc.type_column  # 'likeable_type'
"""

from typing import Any, Dict

from pydantic import BaseModel, Field, field_validator, model_validator

from core.config import get_defaults
from core.identifiers import validate_identifier


class Association(BaseModel):
    """
    Polymorphic association identity.

    Immutable once constructed; every derived object name comes from it.
    """

    parent_table: str = Field(..., description="Logical table visible to readers")
    column: str = Field(..., description="Discriminator stem, e.g. 'likeable'")
    base_table: str = Field(
        default="",
        description="Storage table the parent is renamed to while proxied",
    )
    primary_key: str = Field(default="", description="Primary key of parent and child tables")

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def _fill_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        naming = get_defaults().naming
        if not data.get("base_table") and data.get("parent_table"):
            data["base_table"] = naming.base_table_for(data["parent_table"])
        if not data.get("primary_key"):
            data["primary_key"] = naming.primary_key
        return data

    @field_validator("parent_table", "column", "base_table", "primary_key")
    @classmethod
    def _plain_identifier(cls, value: str, info) -> str:
        return validate_identifier(value, field=info.field_name)

    @model_validator(mode="after")
    def _distinct_base_table(self) -> "Association":
        if self.base_table == self.parent_table:
            raise ValueError("base_table must differ from parent_table")
        return self

    @property
    def id_column(self) -> str:
        """Foreign key half of the discriminator pair."""
        return f"{self.column}_id"

    @property
    def type_column(self) -> str:
        """Type tag half of the discriminator pair."""
        return f"{self.column}_type"

    @property
    def key(self) -> str:
        """Stable identity string, used for locks and logging."""
        return f"{self.parent_table}.{self.column}"

    def __str__(self) -> str:
        return self.key


class Partition(BaseModel):
    """
    One partition of an association.

    Built by NameResolver.partition(); table_name and type_tag are the
    resolved names at construction time.
    """

    association: Association
    child_table: str = Field(..., description="Referenced table, e.g. 'comments'")
    table_name: str = Field(..., description="Physical table, e.g. 'likes_comments'")
    type_tag: str = Field(..., min_length=1, description="Discriminator value, e.g. 'Comment'")

    model_config = {"frozen": True}

    @field_validator("child_table", "table_name")
    @classmethod
    def _plain_identifier(cls, value: str, info) -> str:
        return validate_identifier(value, field=info.field_name)

    def to_log_dict(self) -> Dict[str, str]:
        """Context fields for structured logging."""
        return {
            "parent_table": self.association.parent_table,
            "column": self.association.column,
            "child_table": self.child_table,
            "partition_table": self.table_name,
        }


__all__ = ["Association", "Partition"]
