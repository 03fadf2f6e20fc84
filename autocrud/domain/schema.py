"""
Schema descriptors for autocrud.

A TableSchema is the typed, immutable result of describing a table once at
startup: an ordered tuple of ColumnSpec entries shaped like a DESCRIBE row.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field, model_validator

PRIMARY_KEY_MARKER = "PRI"
AUTO_INCREMENT = "auto_increment"
DEFAULT_PRIMARY_KEY = "id"


class ColumnSpec(BaseModel):
    """
    Metadata of a single column.
    """

    name: str = Field(..., min_length=1, description="Column name.")
    type: str = Field("text", description="Database type name.")
    nullable: bool = Field(True, description="Whether NULL is accepted.")
    key: str = Field("", description="'PRI' for primary-key columns.")
    default: Optional[str] = Field(None, description="Default expression, if any.")
    extra: str = Field("", description="Extra flags such as 'auto_increment'.")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
    }

    @property
    def is_primary_key(self) -> bool:
        return self.key == PRIMARY_KEY_MARKER

    @property
    def is_generated(self) -> bool:
        return AUTO_INCREMENT in self.extra

    @property
    def is_required(self) -> bool:
        """Non-nullable, no default, and not filled in by the database."""
        return not self.nullable and self.default is None and not self.is_generated

    @classmethod
    def from_describe(cls, row: Dict[str, Any]) -> "ColumnSpec":
        """Build from a DESCRIBE-shaped row (Field/Type/Null/Key/Default/Extra)."""
        return cls(
            name=row["Field"],
            type=row.get("Type") or "text",
            nullable=row.get("Null", "YES") == "YES",
            key=row.get("Key") or "",
            default=row.get("Default"),
            extra=row.get("Extra") or "",
        )


class TableSchema(BaseModel):
    """
    Ordered column metadata of one table.
    """

    table_name: str = Field(..., min_length=1)
    columns: Tuple[ColumnSpec, ...] = Field(default_factory=tuple)

    model_config = {
        "frozen": True,
    }

    @model_validator(mode="after")
    def _unique_column_names(self) -> "TableSchema":
        seen = set()
        for column in self.columns:
            if column.name in seen:
                raise ValueError(f"Duplicate column '{column.name}' in {self.table_name}")
            seen.add(column.name)
        return self

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    @property
    def primary_key_columns(self) -> Tuple[str, ...]:
        """Every ``PRI`` column, in table order; several for a composite key."""
        return tuple(column.name for column in self.columns if column.is_primary_key)

    @property
    def primary_key(self) -> str:
        keys = self.primary_key_columns
        return keys[0] if keys else DEFAULT_PRIMARY_KEY

    @property
    def has_primary_key(self) -> bool:
        return bool(self.primary_key_columns)

    @property
    def required_columns(self) -> Tuple[str, ...]:
        return tuple(column.name for column in self.columns if column.is_required)

    def has_column(self, name: str) -> bool:
        return name in self.column_names

    def column(self, name: str) -> ColumnSpec:
        for column in self.columns:
            if column.name == name:
                return column
        raise KeyError(name)


__all__ = [
    "AUTO_INCREMENT",
    "ColumnSpec",
    "DEFAULT_PRIMARY_KEY",
    "PRIMARY_KEY_MARKER",
    "TableSchema",
]
