"""
autocrud - CRUD REST endpoints inferred from relational table metadata.

At startup every exposed table is described once; the resulting models then
serve GET/POST/PUT/DELETE endpoints whose SQL is built from the column
metadata, including the aggregated rows of declared relationships and
attributes which are mapped back into nested collections.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from autocrud.config import Settings, get_settings
from autocrud.domain import (
    Attribute,
    ColumnSpec,
    ExecutionFailure,
    InvalidModelInput,
    Model,
    ModelBuilder,
    QueryBuilder,
    RelationValidationFailure,
    Relationship,
    Statement,
    TableSchema,
    UnknownRelation,
    map_row,
)
from autocrud.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Model engine
    "Attribute",
    "ColumnSpec",
    "Model",
    "ModelBuilder",
    "QueryBuilder",
    "Relationship",
    "Statement",
    "TableSchema",
    "map_row",
    # Errors
    "ExecutionFailure",
    "InvalidModelInput",
    "RelationValidationFailure",
    "UnknownRelation",
    # Logging
    "configure_logging",
    "get_logger",
]
