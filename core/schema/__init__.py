# ============================================================================
# SCHEMA MODULE
# ============================================================================
# EPOCH: 1 - POLYMORPHIC PARTITIONS
# STATUS: Core - SQL generation
# PURPOSE: DDL builders, routing trigger synthesis, registry DDL
# CREATED: 19 OCT 2026
# ============================================================================

from core.schema.ddl_utils import (
    TableBuilder,
    ViewBuilder,
    TriggerBuilder,
    IndexBuilder,
    SchemaUtils,
    render,
    render_script,
)
from core.schema.sql_generator import PydanticToSQL
from core.schema.trigger_synthesizer import TriggerBodySynthesizer, Branch

__all__ = [
    # Generators
    "PydanticToSQL",
    "TriggerBodySynthesizer",
    "Branch",
    # Utilities
    "TableBuilder",
    "ViewBuilder",
    "TriggerBuilder",
    "IndexBuilder",
    "SchemaUtils",
    "render",
    "render_script",
]
