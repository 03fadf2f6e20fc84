"""
Table manifest: which tables to expose and how they link together.

Example ``autocrud.yaml``::

    tables:
      - name: users
        relationships:
          - table: user_roles
            children: roles
        attributes:
          - user_addresses
      - name: roles
"""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from autocrud.domain.errors import ManifestError


class RelationshipEntry(BaseModel):
    table: str = Field(..., min_length=1, description="Link table name.")
    children: Optional[str] = Field(None, description="Table the link rows point to.")

    model_config = {"frozen": True, "extra": "forbid"}


class TableEntry(BaseModel):
    name: str = Field(..., min_length=1, description="Table to expose.")
    relationships: List[RelationshipEntry] = Field(default_factory=list)
    attributes: List[str] = Field(default_factory=list)

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("relationships", mode="before")
    @classmethod
    def _accept_bare_names(cls, value: object) -> object:
        # "- user_roles" is shorthand for "- table: user_roles"
        if isinstance(value, list):
            return [{"table": item} if isinstance(item, str) else item for item in value]
        return value


class Manifest(BaseModel):
    tables: List[TableEntry] = Field(default_factory=list)

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("tables")
    @classmethod
    def _unique_tables(cls, value: List[TableEntry]) -> List[TableEntry]:
        names = [entry.name for entry in value]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"tables declared more than once: {', '.join(duplicates)}")
        return value

    @classmethod
    def for_tables(cls, names: Iterable[str]) -> "Manifest":
        """Expose every table in ``names`` with no links."""
        return cls(tables=[TableEntry(name=name) for name in names])

    def table_names(self) -> List[str]:
        return [entry.name for entry in self.tables]


def load_manifest(path: Union[str, Path]) -> Manifest:
    """
    Read and validate a YAML manifest.

    Raises
    ------
    ManifestError
        If the file is missing, is not valid YAML, or does not match the schema.
    """
    manifest_path = Path(path)
    try:
        raw = yaml.safe_load(manifest_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ManifestError(f"Cannot read manifest {manifest_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ManifestError(f"Invalid YAML in {manifest_path}: {exc}") from exc

    try:
        return Manifest.model_validate(raw or {})
    except ValidationError as exc:
        raise ManifestError(f"Invalid manifest {manifest_path}: {exc}") from exc


__all__ = ["Manifest", "RelationshipEntry", "TableEntry", "load_manifest"]
