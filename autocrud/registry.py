"""
Startup assembly of every exposed Model.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from autocrud.domain.model import Introspector, Model, ModelBuilder
from autocrud.domain.schema import TableSchema
from autocrud.infrastructure.executor import StatementExecutor
from autocrud.infrastructure.introspection import SchemaIntrospector
from autocrud.manifest import Manifest
from autocrud.utils.logging import get_logger

log = get_logger(__name__)


async def build_models(
    manifest: Manifest,
    introspector: Introspector,
    executor: StatementExecutor,
) -> List[Model]:
    """
    Describe every declared table, attach its links and finalize the models.

    Tables are described first so relationship children resolve to the same
    schema objects; a child table that is not itself exposed is described on
    demand.
    """
    schemas: Dict[str, TableSchema] = {}
    for entry in manifest.tables:
        schemas[entry.name] = await introspector(entry.name)

    async def children_schema(name: Optional[str]) -> Optional[TableSchema]:
        if name is None:
            return None
        if name not in schemas:
            schemas[name] = await introspector(name)
        return schemas[name]

    models: List[Model] = []
    for entry in manifest.tables:
        builder = ModelBuilder(schemas[entry.name], executor, introspector)
        for relationship in entry.relationships:
            await builder.add_relationship(
                relationship.table, children=await children_schema(relationship.children)
            )
        for attribute in entry.attributes:
            await builder.add_attribute(attribute)
        models.append(builder.build())

    log.info(
        f"Registered {len(models)} model(s)",
        extra={"tables": [model.table_name for model in models]},
    )
    return models


async def resolve_manifest(
    manifest: Optional[Manifest], introspector: SchemaIntrospector
) -> Manifest:
    """The given manifest, or one exposing every base table of the schema."""
    if manifest is not None:
        return manifest
    tables = await introspector.list_tables()
    log.info(
        "No manifest configured; exposing every table",
        extra={"schema": introspector.schema, "tables": tables},
    )
    return Manifest.for_tables(tables)


__all__ = ["build_models", "resolve_manifest"]
