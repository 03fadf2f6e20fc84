"""
Execution adapter: runs Statements against PostgreSQL.

The model engine only depends on the StatementExecutor protocol; the psycopg
implementation borrows a pooled connection per statement, so each statement
commits on its own. Driver errors are wrapped in ExecutionFailure and never
retried here.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Protocol, runtime_checkable

import psycopg
from psycopg.rows import dict_row

from autocrud.domain.errors import ExecutionFailure
from autocrud.domain.query_builder import Statement
from autocrud.infrastructure.db_factory import PoolManager
from autocrud.utils.logging import get_logger

log = get_logger(__name__)


@runtime_checkable
class StatementExecutor(Protocol):
    """
    What the model engine needs from the database.
    """

    async def fetch(self, statement: Statement) -> List[Dict[str, Any]]:
        """Run a read and return rows keyed by column alias."""
        ...

    async def execute(self, statement: Statement) -> int:
        """Run a write and return the affected row count."""
        ...


class PsycopgExecutor:
    """StatementExecutor backed by a psycopg AsyncConnectionPool."""

    def __init__(self, pools: PoolManager) -> None:
        self.pools = pools

    async def fetch(self, statement: Statement) -> List[Dict[str, Any]]:
        start = time.perf_counter()
        try:
            async with self.pools.connection() as conn:
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(statement.query, statement.params)
                    rows = await cur.fetchall()
        except psycopg.Error as exc:
            raise self._failure(statement, exc) from exc

        self._log(statement, start, rows=len(rows))
        return rows

    async def execute(self, statement: Statement) -> int:
        start = time.perf_counter()
        try:
            async with self.pools.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(statement.query, statement.params)
                    affected = cur.rowcount
        except psycopg.Error as exc:
            raise self._failure(statement, exc) from exc

        self._log(statement, start, rowcount=affected)
        return affected

    @staticmethod
    def _failure(statement: Statement, exc: psycopg.Error) -> ExecutionFailure:
        text = statement.as_string()
        log.error("Statement failed", extra={"sql": text, "error": str(exc)})
        return ExecutionFailure(text, exc)

    @staticmethod
    def _log(statement: Statement, start: float, **extra: Any) -> None:
        if not log.isEnabledFor(logging.DEBUG):
            return
        duration_ms = (time.perf_counter() - start) * 1000
        log.debug(
            f"SQL {duration_ms:.1f}ms: {statement.as_string()}",
            extra={"duration_ms": round(duration_ms, 2), **extra},
        )


__all__ = ["PsycopgExecutor", "StatementExecutor"]
