# ============================================================================
# POLYMORPHIC TOPOLOGY MANAGER TESTS
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Tests - Add/remove script generation
# PURPOSE: Verify topology transitions, statement order and error kinds
# CREATED: 19 OCT 2026
# ============================================================================
"""
Polymorphic Tests

The catalog is a MagicMock answering from in-memory dicts, so every test
states the live schema it starts from.

Run with:
    pytest tests/test_polymorphic.py -v
"""

from unittest.mock import MagicMock

import pydantic
import pytest

from core.contracts import MigrationOperation, RelationKind, TopologyState
from core.exceptions import (
    ConflictingBaseTable,
    DuplicatePartition,
    InvalidIdentifier,
    MissingTriggerFunction,
)
from core.models.partition import Association
from core.models.registry import PartitionRecord
from core.naming import NameResolver
from core.polymorphic import (
    PARTITION_SOURCE_REGISTRY,
    PARTITION_SOURCE_TRIGGER,
    Polymorphic,
    load_partitions,
)
from core.schema.trigger_synthesizer import TriggerBodySynthesizer


# ============================================================================
# HELPERS
# ============================================================================

def _squash(text):
    return " ".join(text.split())


def _make_catalog(trigger_source=None, relations=None, columns=None):
    """
    Create a mock Catalog.

    Args:
        trigger_source: Body returned for the routing function
        relations: name -> RelationKind
        columns: table -> iterable of column names
    """
    relations = {"likes": RelationKind.TABLE} if relations is None else relations
    columns = columns or {}
    catalog = MagicMock()
    catalog.relation_kind.side_effect = lambda name: relations.get(name)
    catalog.table_exists.side_effect = lambda name: name in relations
    catalog.column_exists.side_effect = lambda table, column: column in columns.get(table, ())
    catalog.current_trigger_source.return_value = trigger_source
    return catalog


def _proxied_catalog(*children):
    """Catalog for 'likes' already proxied with partitions for children."""
    assoc = Association(parent_table="likes", column="likeable")
    names = NameResolver()
    partitions = [names.partition(assoc, child) for child in children]
    relations = {
        "likes": RelationKind.VIEW,
        "likes_base": RelationKind.TABLE,
    }
    for partition in partitions:
        relations[partition.table_name] = RelationKind.TABLE
    return _make_catalog(
        trigger_source=TriggerBodySynthesizer(names).render_function(assoc, partitions),
        relations=relations,
        columns={"likes_base": ("id", "likeable_id", "likeable_type")},
    )


def _make_poly(catalog, child_table="comments", **kwargs):
    return Polymorphic(catalog, "likes", child_table, column="likeable", **kwargs)


def _make_record(child_table, type_tag, position):
    return PartitionRecord(
        parent_table="likes",
        column_name="likeable",
        child_table=child_table,
        type_tag=type_tag,
        partition_table=f"likes_{child_table}",
        position=position,
    )


# ============================================================================
# CONSTRUCTION
# ============================================================================

class TestConstruction:

    def test_derived_names(self):
        poly = _make_poly(_make_catalog())
        assert poly.parent_table == "likes"
        assert poly.child_table == "comments"
        assert poly.column_name == "likeable"
        assert poly.base_table == "likes_base"
        assert poly.proxy_table == "likes_comments"
        assert poly.type == "Comment"
        assert poly.trigger_name == "likes_likeable_insert_trigger"
        assert poly.function_name == "likes_likeable_fun"

    def test_base_table_override(self):
        poly = _make_poly(_make_catalog(), base_table="likes_storage")
        assert poly.base_table == "likes_storage"

    def test_explicit_type_tag(self):
        poly = _make_poly(_make_catalog(), type_tag="Remark")
        assert poly.type == "Remark"

    @pytest.mark.parametrize("parent, child, column", [
        ("Likes", "comments", "likeable"),
        ("likes", "comments; DROP TABLE x", "likeable"),
        ("likes", "comments", "likeable-type"),
        ("likes", "", "likeable"),
    ])
    def test_invalid_identifiers_rejected(self, parent, child, column):
        with pytest.raises(InvalidIdentifier):
            Polymorphic(_make_catalog(), parent, child, column=column)

    def test_base_table_equal_to_parent_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            _make_poly(_make_catalog(), base_table="likes")

    def test_no_catalog_reads_on_construction(self):
        catalog = _make_catalog()
        _make_poly(catalog)
        catalog.current_trigger_source.assert_not_called()
        catalog.relation_kind.assert_not_called()


# ============================================================================
# ADD
# ============================================================================

class TestAddFirstPartition:

    def test_statement_order(self):
        plan = _make_poly(_make_catalog()).plan_add()
        assert plan.operation == MigrationOperation.ADD
        assert len(plan.statements) == 5
        assert plan.statements[0] == "ALTER TABLE likes RENAME TO likes_base;"
        assert plan.statements[1].startswith("CREATE TABLE IF NOT EXISTS likes_comments")
        assert plan.statements[2] == "CREATE OR REPLACE VIEW likes AS SELECT * FROM likes_base;"
        assert plan.statements[3].startswith("CREATE OR REPLACE FUNCTION likes_likeable_fun()")
        assert plan.statements[4].startswith("DROP TRIGGER IF EXISTS likes_likeable_insert_trigger")

    def test_partition_table_ddl(self):
        sql_text = _make_poly(_make_catalog()).create_proxy_table_sql()
        assert _squash(sql_text) == (
            "CREATE TABLE IF NOT EXISTS likes_comments ( "
            "CHECK (likeable_type = 'Comment'), "
            "PRIMARY KEY (id), "
            "FOREIGN KEY (likeable_id) REFERENCES comments(id) "
            ") INHERITS (likes_base);"
        )

    def test_topology_transition(self):
        plan = _make_poly(_make_catalog()).plan_add()
        assert plan.state_before == TopologyState.NO_PROXY
        assert plan.state_after == TopologyState.SINGLE_PARTITION_PROXY

    def test_single_branch_function(self):
        plan = _make_poly(_make_catalog()).plan_add()
        function = _squash(plan.statements[3])
        assert function.count("INSERT INTO") == 1
        assert "IF (NEW.likeable_type = 'Comment') THEN INSERT INTO likes_comments" in function
        assert "ELSE RAISE EXCEPTION" in function

    def test_custom_base_table(self):
        plan = _make_poly(_make_catalog(), base_table="likes_storage").plan_add()
        assert plan.statements[0] == "ALTER TABLE likes RENAME TO likes_storage;"
        assert "INHERITS (likes_storage)" in _squash(plan.statements[1])
        assert plan.statements[2] == "CREATE OR REPLACE VIEW likes AS SELECT * FROM likes_storage;"

    def test_add_sql_joins_statements(self):
        poly = _make_poly(_make_catalog())
        assert poly.add_sql() == "\n".join(poly.plan_add().statements)


class TestAddSecondPartition:

    def test_no_rename(self):
        plan = _make_poly(_proxied_catalog("comments"), child_table="posts").plan_add()
        assert not any("RENAME" in s for s in plan.statements)
        assert plan.statements[0].startswith("CREATE TABLE IF NOT EXISTS likes_posts")

    def test_rename_sql_empty_when_base_exists(self):
        poly = _make_poly(_proxied_catalog("comments"), child_table="posts")
        assert poly.rename_base_table_sql() == ""

    def test_function_appends_branch(self):
        plan = _make_poly(_proxied_catalog("comments"), child_table="posts").plan_add()
        function = _squash(plan.statements[2])
        assert (
            "IF (NEW.likeable_type = 'Comment') THEN INSERT INTO likes_comments VALUES (NEW.*); "
            "ELSIF (NEW.likeable_type = 'Post') THEN INSERT INTO likes_posts VALUES (NEW.*);"
        ) in function

    def test_topology_transition(self):
        plan = _make_poly(_proxied_catalog("comments"), child_table="posts").plan_add()
        assert plan.state_before == TopologyState.SINGLE_PARTITION_PROXY
        assert plan.state_after == TopologyState.MULTI_PARTITION_PROXY

    def test_third_partition_stays_multi(self):
        plan = _make_poly(_proxied_catalog("comments", "posts"), child_table="photos").plan_add()
        assert plan.state_before == TopologyState.MULTI_PARTITION_PROXY
        assert plan.state_after == TopologyState.MULTI_PARTITION_PROXY
        assert [p.child_table for p in plan.after] == ["comments", "posts", "photos"]

    def test_create_trigger_body(self):
        body = _make_poly(_proxied_catalog("comments"), child_table="posts").create_trigger_body()
        assert _squash(body).startswith("IF (NEW.likeable_type = 'Comment')")
        assert "ELSIF (NEW.likeable_type = 'Post')" in body

    def test_re_added_partition_moves_to_end(self):
        plan = _make_poly(_proxied_catalog("posts"), child_table="comments").plan_add()
        assert [p.child_table for p in plan.after] == ["posts", "comments"]


class TestAddDuplicate:

    def test_duplicate_raises(self):
        with pytest.raises(DuplicatePartition) as exc_info:
            _make_poly(_proxied_catalog("comments", "posts")).plan_add()
        assert str(exc_info.value) == (
            "Condition for likes_comments table already exists in "
            "trigger function likes_likeable_fun()"
        )

    def test_duplicate_reads_nothing_else(self):
        catalog = _proxied_catalog("comments")
        with pytest.raises(DuplicatePartition):
            _make_poly(catalog).plan_add()
        catalog.table_exists.assert_not_called()
        catalog.relation_kind.assert_not_called()
        catalog.execute.assert_not_called()


class TestConflictingBaseTable:

    def test_base_name_is_view(self):
        catalog = _make_catalog(relations={
            "likes": RelationKind.TABLE,
            "likes_base": RelationKind.VIEW,
        })
        with pytest.raises(ConflictingBaseTable) as exc_info:
            _make_poly(catalog).plan_add()
        assert exc_info.value.base_table == "likes_base"

    def test_base_name_is_index(self):
        # Indexes, sequences and composite types all map to OTHER
        catalog = _make_catalog(relations={
            "likes": RelationKind.TABLE,
            "likes_base": RelationKind.OTHER,
        })
        with pytest.raises(ConflictingBaseTable) as exc_info:
            _make_poly(catalog).plan_add()
        assert exc_info.value.base_table == "likes_base"
        catalog.execute.assert_not_called()

    def test_base_table_missing_discriminator(self):
        catalog = _make_catalog(
            relations={"likes": RelationKind.VIEW, "likes_base": RelationKind.TABLE},
            columns={"likes_base": ("id", "likeable_id")},
        )
        with pytest.raises(ConflictingBaseTable) as exc_info:
            _make_poly(catalog).plan_add()
        assert "likeable_type" in str(exc_info.value)

    def test_parent_is_not_a_view(self):
        catalog = _make_catalog(
            relations={"likes": RelationKind.TABLE, "likes_base": RelationKind.TABLE},
            columns={"likes_base": ("likeable_id", "likeable_type")},
        )
        with pytest.raises(ConflictingBaseTable):
            _make_poly(catalog).plan_add()

    def test_compatible_base_table_is_reused(self):
        catalog = _make_catalog(
            relations={"likes": RelationKind.VIEW, "likes_base": RelationKind.TABLE},
            columns={"likes_base": ("likeable_id", "likeable_type")},
        )
        assert _make_poly(catalog).can_rename_to_base_table() is False

    def test_free_base_name(self):
        assert _make_poly(_make_catalog()).can_rename_to_base_table() is True


# ============================================================================
# REMOVE
# ============================================================================

class TestRemoveNonLast:

    def test_statements(self):
        plan = _make_poly(_proxied_catalog("comments", "posts")).plan_remove()
        assert plan.operation == MigrationOperation.REMOVE
        assert len(plan.statements) == 2
        function = _squash(plan.statements[0])
        assert function.startswith("CREATE OR REPLACE FUNCTION likes_likeable_fun()")
        assert "likes_comments" not in function
        assert "IF (NEW.likeable_type = 'Post') THEN INSERT INTO likes_posts" in function
        assert plan.statements[1] == "DROP TABLE IF EXISTS likes_comments;"

    def test_topology_transition(self):
        plan = _make_poly(_proxied_catalog("comments", "posts")).plan_remove()
        assert plan.state_before == TopologyState.MULTI_PARTITION_PROXY
        assert plan.state_after == TopologyState.SINGLE_PARTITION_PROXY

    def test_view_and_rename_untouched(self):
        poly = _make_poly(_proxied_catalog("comments", "posts"))
        assert poly.remove_base_table_view_sql() == ""
        assert poly.rename_base_table_back_sql() == ""

    def test_order_of_remaining_preserved(self):
        plan = _make_poly(_proxied_catalog("posts", "comments", "photos")).plan_remove()
        assert [p.child_table for p in plan.after] == ["posts", "photos"]


class TestRemoveLast:

    def test_collapse_script(self):
        sql_text = _make_poly(_proxied_catalog("comments")).remove_sql()
        assert _squash(sql_text) == (
            "DROP TRIGGER IF EXISTS likes_likeable_insert_trigger ON likes; "
            "DROP FUNCTION IF EXISTS likes_likeable_fun(); "
            "DROP TABLE IF EXISTS likes_comments; "
            "DROP VIEW likes; "
            "ALTER TABLE likes_base RENAME TO likes;"
        )

    def test_topology_transition(self):
        plan = _make_poly(_proxied_catalog("comments")).plan_remove()
        assert plan.state_before == TopologyState.SINGLE_PARTITION_PROXY
        assert plan.state_after == TopologyState.NO_PROXY
        assert plan.after == []

    def test_drop_view_only_for_last(self):
        poly = _make_poly(_proxied_catalog("comments"))
        assert poly.remove_base_table_view_sql() == "DROP VIEW likes;"
        assert poly.rename_base_table_back_sql() == "ALTER TABLE likes_base RENAME TO likes;"

    def test_keep_partition_table(self):
        plan = _make_poly(_proxied_catalog("comments")).plan_remove(drop_partition_table=False)
        assert not any("DROP TABLE" in s for s in plan.statements)
        assert "DROP VIEW likes;" in plan.statements


class TestRemoveMissing:

    def test_no_function(self):
        with pytest.raises(MissingTriggerFunction) as exc_info:
            _make_poly(_make_catalog()).plan_remove()
        assert str(exc_info.value) == "There is no such function likes_likeable_fun()"

    def test_child_not_routed(self):
        with pytest.raises(MissingTriggerFunction) as exc_info:
            _make_poly(_proxied_catalog("posts")).plan_remove()
        assert exc_info.value.partition_table == "likes_comments"

    def test_remove_trigger_sql_raises_too(self):
        with pytest.raises(MissingTriggerFunction):
            _make_poly(_make_catalog()).remove_before_insert_trigger_sql()

    def test_remove_proxy_table_needs_no_reads(self):
        catalog = _make_catalog()
        assert _make_poly(catalog).remove_proxy_table() == "DROP TABLE IF EXISTS likes_comments;"
        catalog.current_trigger_source.assert_not_called()


# ============================================================================
# PARTITION SET SOURCE
# ============================================================================

class TestPartitionSource:

    def test_registry_wins(self):
        catalog = _proxied_catalog("comments")
        registry = MagicMock()
        registry.list_for.return_value = [
            _make_record("posts", "Post", 0),
            _make_record("photos", "Picture", 1),
        ]
        poly = _make_poly(catalog, child_table="videos", registry=registry)
        partitions = poly.partitions()
        assert [p.child_table for p in partitions] == ["posts", "photos"]
        assert partitions[1].type_tag == "Picture"
        catalog.current_trigger_source.assert_not_called()

    def test_empty_registry_falls_back_to_trigger(self):
        catalog = _proxied_catalog("comments")
        registry = MagicMock()
        registry.list_for.return_value = []
        poly = _make_poly(catalog, child_table="posts", registry=registry)
        assert [p.child_table for p in poly.partitions()] == ["comments"]

    def test_load_partitions_sources(self):
        assoc = Association(parent_table="likes", column="likeable")
        names = NameResolver()

        partitions, source = load_partitions(_proxied_catalog("comments"), assoc, names)
        assert source == PARTITION_SOURCE_TRIGGER
        assert len(partitions) == 1

        registry = MagicMock()
        registry.list_for.return_value = [_make_record("posts", "Post", 0)]
        _, source = load_partitions(_make_catalog(), assoc, names, registry=registry)
        assert source == PARTITION_SOURCE_REGISTRY

        partitions, source = load_partitions(_make_catalog(), assoc, names)
        assert partitions == []
        assert source is None

    def test_state(self):
        assert _make_poly(_make_catalog()).state() == TopologyState.NO_PROXY
        assert _make_poly(_proxied_catalog("posts")).state() == TopologyState.SINGLE_PARTITION_PROXY

    def test_is_registered(self):
        assert _make_poly(_proxied_catalog("comments")).is_registered() is True
        assert _make_poly(_proxied_catalog("posts")).is_registered() is False
