"""
Error taxonomy for autocrud.

Caller input problems (InvalidModelInput, UnknownRelation,
RelationValidationFailure) are kept distinct from storage faults
(ExecutionFailure) even though the HTTP layer currently reports all of them
as a 500 with the raw message.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence


class AutoCrudError(Exception):
    """Base class for every error raised by autocrud."""


class InvalidModelInput(AutoCrudError):
    """A create payload is missing required columns."""

    def __init__(self, missing_fields: Sequence[str]) -> None:
        self.missing_fields = list(missing_fields)
        super().__init__(f"Missing required fields: {', '.join(self.missing_fields)}")


class UnknownRelation(AutoCrudError):
    def __init__(self, relation_name: str, entity_name: str) -> None:
        self.relation_name = relation_name
        self.entity_name = entity_name
        super().__init__(f"Relation {relation_name} not found on {entity_name}")


class RelationValidationFailure(AutoCrudError):
    """A relation or attribute payload does not fit its link table."""

    def __init__(
        self, relation_name: str, message: str, columns: Optional[Iterable[str]] = None
    ) -> None:
        self.relation_name = relation_name
        self.columns = sorted(columns or [])
        detail = f" ({', '.join(self.columns)})" if self.columns else ""
        super().__init__(f"Invalid data for {relation_name}: {message}{detail}")


class ExecutionFailure(AutoCrudError):
    """The execution adapter could not run a statement."""

    def __init__(self, statement: str, cause: BaseException) -> None:
        self.statement = statement
        self.cause = cause
        super().__init__(str(cause) or type(cause).__name__)


class UnknownTable(AutoCrudError):
    def __init__(self, table_name: str) -> None:
        self.table_name = table_name
        super().__init__(f"Table {table_name} does not exist or has no columns")


class ManifestError(AutoCrudError):
    """The table manifest could not be read or validated."""


__all__ = [
    "AutoCrudError",
    "InvalidModelInput",
    "UnknownRelation",
    "RelationValidationFailure",
    "ExecutionFailure",
    "UnknownTable",
    "ManifestError",
]
