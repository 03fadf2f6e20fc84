"""
Domain package for autocrud.

Schema descriptors, link descriptors, the statement builder, the row mapper
and the Model that ties them together. Nothing here opens a connection; all
I/O goes through the StatementExecutor handed to each Model.
"""

from autocrud.domain.errors import (
    AutoCrudError,
    ExecutionFailure,
    InvalidModelInput,
    ManifestError,
    RelationValidationFailure,
    UnknownRelation,
    UnknownTable,
)
from autocrud.domain.links import Attribute, LinkDescriptor, Relationship
from autocrud.domain.model import Model, ModelBuilder
from autocrud.domain.query_builder import QueryBuilder, Statement
from autocrud.domain.row_mapper import map_row, parse_relation_collection
from autocrud.domain.schema import ColumnSpec, TableSchema

__all__ = [
    "Attribute",
    "AutoCrudError",
    "ColumnSpec",
    "ExecutionFailure",
    "InvalidModelInput",
    "LinkDescriptor",
    "ManifestError",
    "Model",
    "ModelBuilder",
    "QueryBuilder",
    "RelationValidationFailure",
    "Relationship",
    "Statement",
    "TableSchema",
    "UnknownRelation",
    "UnknownTable",
    "map_row",
    "parse_relation_collection",
]
