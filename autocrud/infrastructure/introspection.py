"""
Schema introspection against information_schema.

Produces DESCRIBE-shaped rows (Field/Type/Null/Key/Default/Extra) so the
domain layer sees the same column metadata whatever store it runs on.
"""

from __future__ import annotations

from typing import List

from psycopg import sql

from autocrud.domain.errors import UnknownTable
from autocrud.domain.query_builder import Statement
from autocrud.domain.schema import ColumnSpec, TableSchema
from autocrud.infrastructure.executor import StatementExecutor
from autocrud.utils.logging import get_logger

log = get_logger(__name__)

_DESCRIBE_SQL = sql.SQL(
    """
    SELECT c.column_name::text AS "Field",
           c.data_type::text AS "Type",
           c.is_nullable::text AS "Null",
           CASE WHEN pk.column_name IS NOT NULL THEN 'PRI' ELSE '' END AS "Key",
           c.column_default::text AS "Default",
           CASE
               WHEN c.is_identity = 'YES' OR left(c.column_default, 8) = 'nextval('
               THEN 'auto_increment'
               ELSE ''
           END AS "Extra"
    FROM information_schema.columns AS c
    LEFT JOIN (
        SELECT kcu.column_name
        FROM information_schema.table_constraints AS tc
        JOIN information_schema.key_column_usage AS kcu
          ON kcu.constraint_name = tc.constraint_name
         AND kcu.table_schema = tc.table_schema
         AND kcu.table_name = tc.table_name
        WHERE tc.constraint_type = 'PRIMARY KEY'
          AND tc.table_schema = {schema}
          AND tc.table_name = {table}
    ) AS pk ON pk.column_name = c.column_name
    WHERE c.table_schema = {schema}
      AND c.table_name = {table}
    ORDER BY c.ordinal_position
    """
)

_TABLES_SQL = sql.SQL(
    """
    SELECT table_name::text AS table_name
    FROM information_schema.tables
    WHERE table_schema = {schema}
      AND table_type = 'BASE TABLE'
    ORDER BY table_name
    """
)


class SchemaIntrospector:
    """Describe tables of one database schema through an executor."""

    def __init__(self, executor: StatementExecutor, schema: str = "public") -> None:
        self.executor = executor
        self.schema = schema

    def describe_statement(self, table_name: str) -> Statement:
        query = _DESCRIBE_SQL.format(schema=sql.Placeholder("schema"), table=sql.Placeholder("table"))
        return Statement(query, {"schema": self.schema, "table": table_name})

    async def describe(self, table_name: str) -> TableSchema:
        """
        Column metadata of ``table_name``.

        Raises
        ------
        UnknownTable
            If the table has no columns in the configured schema.
        """
        rows = await self.executor.fetch(self.describe_statement(table_name))
        if not rows:
            raise UnknownTable(table_name)

        schema = TableSchema(
            table_name=table_name,
            columns=tuple(ColumnSpec.from_describe(row) for row in rows),
        )
        log.debug(
            f"Described {table_name}",
            extra={"table": table_name, "columns": list(schema.column_names)},
        )
        return schema

    async def list_tables(self) -> List[str]:
        query = _TABLES_SQL.format(schema=sql.Placeholder("schema"))
        rows = await self.executor.fetch(Statement(query, {"schema": self.schema}))
        return [row["table_name"] for row in rows]


__all__ = ["SchemaIntrospector"]
