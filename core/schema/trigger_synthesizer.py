# ============================================================================
# TRIGGER BODY SYNTHESIZER
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Core - Routing trigger generation
# PURPOSE: Render the IF/ELSIF routing chain, its function and trigger
# CREATED: 19 OCT 2026
# EXPORTS: TriggerBodySynthesizer, Branch
# DEPENDENCIES: psycopg
# ============================================================================
"""
Trigger Body Synthesizer.

Produces the PL/pgSQL that routes inserts on the parent view to the
partition matching the row's type tag:

    CREATE OR REPLACE FUNCTION likes_likeable_fun() RETURNS TRIGGER AS $$
      BEGIN
        IF (NEW.likeable_type = 'Comment') THEN
          INSERT INTO likes_comments VALUES (NEW.*);
        ELSIF (NEW.likeable_type = 'Post') THEN
          INSERT INTO likes_posts VALUES (NEW.*);
        ELSE
          RAISE EXCEPTION 'Wrong "likeable_type"="%" used. ...', NEW.likeable_type;
        END IF;
      RETURN NEW;
      END; $$ LANGUAGE plpgsql;

Branch order is PartitionSet order. Nothing is sorted, so a partition that
is removed and added again moves to the end.

The synthesizer can also read a stored function body back into branches,
which is how schemas created without the partition registry are adopted.
"""

import re
from typing import List, NamedTuple, Sequence

from psycopg import sql

from core.exceptions import DuplicatePartition
from core.models.partition import Association, Partition
from core.naming import NameResolver
from core.schema.ddl_utils import TriggerBuilder, ident, quote_literal, render, render_script


class Branch(NamedTuple):
    """One routing branch recovered from a function body."""
    type_tag: str
    table_name: str


_BRANCH_PATTERN = re.compile(
    r"(?:ELS)?IF\s*\(\s*NEW\.(?P<column>\w+)\s*=\s*'(?P<tag>(?:[^']|'')*)'\s*\)\s*THEN\s*"
    r"INSERT\s+INTO\s+(?P<table>\w+)\s+VALUES\s*\(\s*NEW\.\*\s*\)\s*;",
    re.IGNORECASE,
)


class TriggerBodySynthesizer:
    """
    Renders routing trigger SQL for an association's PartitionSet.
    """

    def __init__(self, names: NameResolver = None):
        self.names = names or NameResolver()

    # =========================================================================
    # BRANCHES
    # =========================================================================

    def render_branches(self, partitions: Sequence[Partition]) -> str:
        """
        Render the IF/ELSIF chain, one branch per partition.

        Returns an empty string for an empty PartitionSet.
        """
        branches = []
        for index, partition in enumerate(partitions):
            keyword = "IF" if index == 0 else "ELSIF"
            branches.append(sql.SQL(
                "{keyword} (NEW.{type_column} = {tag}) THEN\n"
                "  INSERT INTO {table} VALUES (NEW.*);"
            ).format(
                keyword=sql.SQL(keyword),
                type_column=ident(partition.association.type_column),
                tag=quote_literal(partition.type_tag),
                table=ident(partition.table_name),
            ))
        return render_script(branches)

    def append_branch(
        self,
        partitions: Sequence[Partition],
        partition: Partition,
    ) -> List[Partition]:
        """
        PartitionSet with a new partition appended.

        Raises:
            DuplicatePartition: If the child or its table already has a branch
        """
        for existing in partitions:
            if (existing.child_table == partition.child_table
                    or existing.table_name == partition.table_name):
                raise DuplicatePartition(
                    partition.table_name,
                    self.names.trigger_function_name(partition.association),
                )
        return list(partitions) + [partition]

    @staticmethod
    def remove_branch(partitions: Sequence[Partition], child_table: str) -> List[Partition]:
        """PartitionSet without the given child, order preserved."""
        return [p for p in partitions if p.child_table != child_table]

    # =========================================================================
    # FUNCTION AND TRIGGER
    # =========================================================================

    def render_function(self, assoc: Association, partitions: Sequence[Partition]) -> str:
        """
        Render CREATE OR REPLACE FUNCTION wrapping the routing chain.

        Unmatched type tags fall through to RAISE EXCEPTION so that rows
        are never silently dropped.
        """
        if not partitions:
            raise ValueError(f"No partitions to route for {assoc}")

        function_name = self.names.trigger_function_name(assoc)
        message = (
            f'Wrong "{assoc.type_column}"="%" used. Create proper partition table '
            f'and update {function_name} function'
        )

        return render(sql.SQL("""
CREATE OR REPLACE FUNCTION {function}() RETURNS TRIGGER AS $$
  BEGIN
    {branches}
    ELSE
      RAISE EXCEPTION {message}, NEW.{type_column};
    END IF;
  RETURN NEW;
  END; $$ LANGUAGE plpgsql;""").format(
            function=ident(function_name),
            branches=sql.SQL(self.render_branches(partitions)),
            message=quote_literal(message),
            type_column=ident(assoc.type_column),
        ))

    def render_trigger(self, assoc: Association) -> str:
        """DROP + CREATE of the INSTEAD OF INSERT trigger on the parent view."""
        return render_script(TriggerBuilder.instead_of_insert(
            self.names.trigger_name(assoc),
            self.names.view_name(assoc),
            self.names.trigger_function_name(assoc),
        ))

    def render_drop(self, assoc: Association) -> str:
        """Drop the trigger, then its function."""
        return render_script([
            TriggerBuilder.drop_trigger(
                self.names.trigger_name(assoc),
                self.names.view_name(assoc),
            ),
            TriggerBuilder.drop_function(self.names.trigger_function_name(assoc)),
        ])

    # =========================================================================
    # PARSING
    # =========================================================================

    @staticmethod
    def parse_branches(assoc: Association, source: str) -> List[Branch]:
        """
        Recover routing branches from a stored function body.

        Only branches on this association's type column are returned, in
        source order.
        """
        if not source:
            return []
        branches = []
        for match in _BRANCH_PATTERN.finditer(source):
            if match.group("column") != assoc.type_column:
                continue
            branches.append(Branch(
                type_tag=match.group("tag").replace("''", "'"),
                table_name=match.group("table"),
            ))
        return branches

    def partitions_from_source(self, assoc: Association, source: str) -> List[Partition]:
        """PartitionSet recovered from a stored function body."""
        partitions = []
        for branch in self.parse_branches(assoc, source):
            child = self.names.child_from_partition_table(assoc, branch.table_name)
            if child is None:
                continue
            partitions.append(self.names.partition(assoc, child, type_tag=branch.type_tag))
        return partitions


__all__ = ["TriggerBodySynthesizer", "Branch"]
