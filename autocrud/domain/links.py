"""
Relationship and attribute descriptors.

Both describe a table that points back at a "senior" entity through an
``id_<senior>`` column. A Relationship is a link table that may also point at
a "children" table through ``id_<child>``; an Attribute is a dependent table
owned directly by the senior entity.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple

from autocrud.domain.errors import RelationValidationFailure
from autocrud.domain.schema import TableSchema
from autocrud.utils.naming import to_singular


def foreign_key_for(entity_name: str) -> str:
    return f"id_{entity_name}"


@dataclass(frozen=True)
class LinkDescriptor:
    """Common shape of relationships and attributes."""

    kind: ClassVar[str] = "link"

    table_name: str
    schema: TableSchema
    senior_name: str

    def __post_init__(self) -> None:
        if not self.schema.has_column(self.foreign_key):
            raise RelationValidationFailure(
                self.table_name,
                f"link table has no '{self.foreign_key}' column",
            )

    @property
    def foreign_key(self) -> str:
        return foreign_key_for(self.senior_name)

    @property
    def ordering_key(self) -> Tuple[str, ...]:
        """Columns that order aggregated rows uniquely; empty when only ctid is usable."""
        return self.schema.primary_key_columns

    @property
    def writable_columns(self) -> Tuple[str, ...]:
        # Composite-key members are caller-supplied; only generated keys are read-only.
        return tuple(
            column.name
            for column in self.schema.columns
            if not (column.is_primary_key and column.is_generated)
        )

    @property
    def required_columns(self) -> Tuple[str, ...]:
        # The senior key is stamped by the owning model, never by the caller.
        return tuple(
            name for name in self.schema.required_columns if name != self.foreign_key
        )

    def validate_data_for_create(self, rows: Any) -> None:
        """
        Check a replacement payload for this link table.

        Raises
        ------
        RelationValidationFailure
            If the payload is not a list of objects, carries columns the link
            table does not accept, or omits required link-table columns.
        """
        if isinstance(rows, (str, bytes)) or not isinstance(rows, Sequence):
            raise RelationValidationFailure(self.table_name, "expected a list of objects")

        allowed = set(self.writable_columns)
        for row in rows:
            if not isinstance(row, Mapping):
                raise RelationValidationFailure(self.table_name, "expected a list of objects")

            unknown = set(row) - allowed
            if unknown:
                raise RelationValidationFailure(
                    self.table_name, "unknown or read-only columns", unknown
                )

            missing = [name for name in self.required_columns if name not in row]
            if missing:
                raise RelationValidationFailure(
                    self.table_name, "missing required columns", missing
                )

    def sign(self, rows: Sequence[Mapping[str, Any]], senior_id: Any) -> List[Dict[str, Any]]:
        """Copy the rows, stamping each with the senior entity's id."""
        return [{**row, self.foreign_key: senior_id} for row in rows]


@dataclass(frozen=True)
class Relationship(LinkDescriptor):
    kind: ClassVar[str] = "relationship"

    children: Optional[TableSchema] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.children is not None and not self.schema.has_column(self.children_key):
            raise RelationValidationFailure(
                self.table_name,
                f"link table has no '{self.children_key}' column",
            )

    @property
    def children_name(self) -> Optional[str]:
        if self.children is None:
            return None
        return to_singular(self.children.table_name)

    @property
    def children_key(self) -> Optional[str]:
        name = self.children_name
        return foreign_key_for(name) if name else None


@dataclass(frozen=True)
class Attribute(LinkDescriptor):
    kind: ClassVar[str] = "attribute"


__all__ = ["Attribute", "LinkDescriptor", "Relationship", "foreign_key_for"]
