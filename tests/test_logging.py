# ============================================================================
# STRUCTURED LOGGING TESTS
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Tests - Logging context and formatters
# PURPOSE: Verify context nesting, formatter output and checkpoints
# CREATED: 19 OCT 2026
# ============================================================================
"""
Structured Logging Tests

Run with:
    pytest tests/test_logging.py -v
"""

import json
import logging

from core.logging import (
    HumanFormatter,
    StructuredFormatter,
    configure_logging,
    get_current_context,
    get_logger,
    log_checkpoint,
    log_context,
)


def _make_record(message="Applying script", **attrs):
    record = logging.LogRecord(
        name="infrastructure.adapter",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


class TestLogContext:

    def test_empty_by_default(self):
        assert get_current_context().to_dict() == {}

    def test_nesting_merges_and_restores(self):
        with log_context(parent_table="likes", column="likeable"):
            with log_context(child_table="comments", operation="add"):
                context = get_current_context().to_dict()
                assert context == {
                    "parent_table": "likes",
                    "column": "likeable",
                    "child_table": "comments",
                    "operation": "add",
                }
            assert "child_table" not in get_current_context().to_dict()
        assert get_current_context().to_dict() == {}

    def test_extra_fields(self):
        with log_context(extra={"dry_run": True}):
            assert get_current_context().to_dict() == {"dry_run": True}


class TestFormatters:

    def test_human_includes_association(self):
        with log_context(parent_table="likes", column="likeable", child_table="comments", operation="add"):
            line = HumanFormatter().format(_make_record())
        assert "[assoc=likes.likeable, child=comments, op=add]" in line
        assert line.endswith("Applying script")

    def test_structured_is_json(self):
        with log_context(parent_table="likes"):
            line = StructuredFormatter().format(_make_record(extra={"statements": 5}))
        data = json.loads(line)
        assert data["level"] == "INFO"
        assert data["message"] == "Applying script"
        assert data["context"] == {"parent_table": "likes"}
        assert data["data"] == {"statements": 5}

    def test_configure_json_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        configure_logging("DEBUG")
        root = logging.getLogger()
        try:
            assert root.level == logging.DEBUG
            assert isinstance(root.handlers[0].formatter, StructuredFormatter)
        finally:
            for handler in root.handlers[:]:
                root.removeHandler(handler)
            root.setLevel(logging.WARNING)


class TestContextLogger:

    def test_context_attached_to_record(self, caplog):
        logger = get_logger("tests.logging")
        with caplog.at_level(logging.INFO, logger="tests.logging"):
            with log_context(parent_table="likes"):
                logger.info("hello", extra={"statements": 2})
        record = caplog.records[-1]
        assert record.extra == {"statements": 2, "parent_table": "likes"}


class TestCheckpoint:

    def test_checkpoint_record(self, caplog):
        with caplog.at_level(logging.INFO, logger="checkpoint"):
            with log_context(parent_table="likes", operation="remove"):
                log_checkpoint("proxy_collapsed", {"partition_table": "likes_comments"})
        record = caplog.records[-1]
        assert record.getMessage() == "CHECKPOINT: proxy_collapsed"
        assert record.extra["checkpoint"] == "proxy_collapsed"
        assert record.extra["parent_table"] == "likes"
        assert record.extra["data"] == {"partition_table": "likes_comments"}
