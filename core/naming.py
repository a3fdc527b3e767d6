# ============================================================================
# NAME RESOLVER
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Core - Canonical object names
# PURPOSE: Derive partition, trigger, function and view names; type tags
# CREATED: 19 OCT 2026
# EXPORTS: NamingStrategy, InflectNamingStrategy, NameResolver
# DEPENDENCIES: inflect
# ============================================================================
"""
Name Resolver.

Pure, deterministic mapping from an Association (and a child table) to the
names of every generated database object:

    partition table     likes_comments
    trigger             likes_likeable_insert_trigger
    trigger function    likes_likeable_fun
    view                likes

The discriminator type tag written by the application ("Comment" for
"comments") comes from a pluggable NamingStrategy. It is embedded as a
literal in the trigger function, so it must match what the application
stores; that is a caller contract and is not validated here.
"""

import re
from abc import ABC, abstractmethod
from typing import Optional

import inflect

from core.models.partition import Association, Partition


# ============================================================================
# NAMING STRATEGIES
# ============================================================================

class NamingStrategy(ABC):
    """Maps a child table name to the discriminator type tag."""

    @abstractmethod
    def type_tag(self, child_table: str) -> str:
        """Type tag for rows referencing child_table."""


class InflectNamingStrategy(NamingStrategy):
    """
    Singularize and camel-case the child table name.

    Only the last underscore-separated word is singularized:
        comments    -> Comment
        blog_posts  -> BlogPost
        people      -> Person
    """

    def __init__(self, engine: Optional[inflect.engine] = None):
        self._engine = engine or inflect.engine()

    def singularize(self, word: str) -> str:
        """Singular form of a word; singular input is returned unchanged."""
        singular = self._engine.singular_noun(word)
        return singular if singular else word

    def type_tag(self, child_table: str) -> str:
        words = [w for w in child_table.split("_") if w]
        if not words:
            return child_table
        words[-1] = self.singularize(words[-1])
        return "".join(w[:1].upper() + w[1:] for w in words)


class ExplicitNamingStrategy(NamingStrategy):
    """
    Fixed child-table-to-tag mapping with a fallback strategy.

    Used for irregular names the inflection rules get wrong.
    """

    def __init__(self, tags: dict, fallback: Optional[NamingStrategy] = None):
        self.tags = dict(tags)
        self.fallback = fallback or InflectNamingStrategy()

    def type_tag(self, child_table: str) -> str:
        if child_table in self.tags:
            return self.tags[child_table]
        return self.fallback.type_tag(child_table)


# ============================================================================
# NAME RESOLVER
# ============================================================================

class NameResolver:
    """
    Canonical names for all objects generated for an association.
    """

    TRIGGER_SUFFIX = "insert_trigger"
    FUNCTION_SUFFIX = "fun"

    def __init__(self, naming: Optional[NamingStrategy] = None):
        self.naming = naming or InflectNamingStrategy()

    @staticmethod
    def partition_table(assoc: Association, child_table: str) -> str:
        return f"{assoc.parent_table}_{child_table}"

    @classmethod
    def trigger_name(cls, assoc: Association) -> str:
        return f"{assoc.parent_table}_{assoc.column}_{cls.TRIGGER_SUFFIX}"

    @classmethod
    def trigger_function_name(cls, assoc: Association) -> str:
        return f"{assoc.parent_table}_{assoc.column}_{cls.FUNCTION_SUFFIX}"

    @staticmethod
    def view_name(assoc: Association) -> str:
        return assoc.parent_table

    @staticmethod
    def base_table(assoc: Association) -> str:
        return assoc.base_table

    def type_tag(self, child_table: str) -> str:
        return self.naming.type_tag(child_table)

    def partition(
        self,
        assoc: Association,
        child_table: str,
        type_tag: Optional[str] = None,
    ) -> Partition:
        """Resolve the Partition for a child table."""
        return Partition(
            association=assoc,
            child_table=child_table,
            table_name=self.partition_table(assoc, child_table),
            type_tag=type_tag or self.type_tag(child_table),
        )

    @staticmethod
    def child_from_partition_table(assoc: Association, table_name: str) -> Optional[str]:
        """Recover the child table from a partition table name."""
        match = re.match(rf"^{re.escape(assoc.parent_table)}_(\w+)$", table_name)
        return match.group(1) if match else None


__all__ = [
    "NamingStrategy",
    "InflectNamingStrategy",
    "ExplicitNamingStrategy",
    "NameResolver",
]
