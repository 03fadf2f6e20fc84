"""
Infrastructure package for autocrud.

Centralizes database concerns: the async connection pool, the statement
executor and information_schema introspection. Keep this layer focused on
I/O and resource management, decoupled from the model engine.
"""

from autocrud.infrastructure.db_factory import (
    PoolManager,
    build_dsn,
    get_sync_connection,
)
from autocrud.infrastructure.executor import PsycopgExecutor, StatementExecutor
from autocrud.infrastructure.introspection import SchemaIntrospector

__all__ = [
    "PoolManager",
    "PsycopgExecutor",
    "SchemaIntrospector",
    "StatementExecutor",
    "build_dsn",
    "get_sync_connection",
]
