"""
Entity definitions.

A Model is the runtime description of one exposed table: its columns, the
derived field sets and its relationships/attributes. It is assembled once at
startup by ModelBuilder and is read-only afterwards; every CRUD call receives
its data as arguments and keeps nothing on the instance.

CRUD methods issue independent statements without a surrounding
transaction. Two windows are therefore visible to concurrent callers:

* ``create`` reads the new primary key back with ``get_last()``, so an
  insert racing on the same table can be picked up instead.
* Relation updates delete every existing link row before inserting the new
  set, so readers can briefly observe no link rows at all.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Tuple,
    Union,
)

from autocrud.domain.errors import ExecutionFailure, InvalidModelInput, UnknownRelation
from autocrud.domain.links import Attribute, LinkDescriptor, Relationship
from autocrud.domain.query_builder import CREATED_AT, UPDATED_AT, QueryBuilder
from autocrud.domain.row_mapper import map_row
from autocrud.domain.schema import ColumnSpec, TableSchema
from autocrud.utils.logging import get_logger, log_link_registered
from autocrud.utils.naming import capitalize, to_singular

if TYPE_CHECKING:
    from autocrud.infrastructure.executor import StatementExecutor

log = get_logger(__name__)

Introspector = Callable[[str], Awaitable[TableSchema]]
LinkPayload = Tuple[LinkDescriptor, List[Dict[str, Any]]]


class Model:
    """
    One exposed table and its CRUD operations.

    Build instances with :class:`ModelBuilder`.
    """

    __slots__ = (
        "name",
        "capitalized_name",
        "table_name",
        "schema",
        "fields",
        "plain_fields",
        "updateable_fields",
        "required_fields",
        "has_created_at_timestamp",
        "has_updated_at_timestamp",
        "relations",
        "attributes",
        "executor",
        "_frozen",
    )

    def __init__(
        self,
        schema: TableSchema,
        executor: "StatementExecutor",
        relations: Optional[Mapping[str, Relationship]] = None,
        attributes: Optional[Mapping[str, Attribute]] = None,
    ) -> None:
        self.name = to_singular(schema.table_name)
        self.capitalized_name = capitalize(self.name)
        self.table_name = schema.table_name
        self.schema = schema
        self.executor = executor

        self.fields: Tuple[ColumnSpec, ...] = schema.columns
        self.plain_fields: Tuple[str, ...] = schema.column_names
        self.has_created_at_timestamp = CREATED_AT in self.plain_fields
        self.has_updated_at_timestamp = UPDATED_AT in self.plain_fields
        self.updateable_fields: Tuple[str, ...] = tuple(
            name for name in self.plain_fields if name not in (schema.primary_key, CREATED_AT)
        )
        self.required_fields: Tuple[str, ...] = schema.required_columns

        self.relations: Mapping[str, Relationship] = MappingProxyType(dict(relations or {}))
        self.attributes: Mapping[str, Attribute] = MappingProxyType(dict(attributes or {}))
        self._frozen = True

    def __setattr__(self, key: str, value: Any) -> None:
        if getattr(self, "_frozen", False):
            raise AttributeError(f"{type(self).__name__} is read-only once built")
        object.__setattr__(self, key, value)

    def __repr__(self) -> str:
        return f"<Model {self.table_name} links={list(self.links)}>"

    @property
    def primary_key(self) -> str:
        return self.schema.primary_key

    @property
    def links(self) -> Mapping[str, LinkDescriptor]:
        """Relations and attributes together, in declaration order."""
        return {**self.relations, **self.attributes}

    # ------------------------------------------------------------- payloads

    def get_valid_fields(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        return {name: data[name] for name in self.updateable_fields if name in data}

    def get_missing_required_fields(self, fields: Mapping[str, Any]) -> List[str]:
        # timestamps are stamped by the statement builder
        return [
            name
            for name in self.required_fields
            if name not in fields and name not in (CREATED_AT, UPDATED_AT)
        ]

    def get_relations_to_update(self, data: Mapping[str, Any]) -> List[LinkPayload]:
        """
        Link payloads present in ``data``, validated.

        Raises
        ------
        UnknownRelation
            For a list-valued key that is neither a column nor a declared link.
        RelationValidationFailure
            If a payload does not fit its link table.
        """
        links = self.links
        payloads: List[LinkPayload] = []

        for key, value in data.items():
            if key in links:
                link = links[key]
                link.validate_data_for_create(value)
                payloads.append((link, [dict(row) for row in value]))
            elif isinstance(value, list) and key not in self.plain_fields:
                raise UnknownRelation(key, self.name)

        return payloads

    # ------------------------------------------------------------------ CRUD

    async def get(self, id: Any = None) -> Union[Optional[Dict[str, Any]], List[Dict[str, Any]]]:
        """
        Read one entity (or None) when ``id`` is given, else every entity.
        """
        rows = await self.executor.fetch(QueryBuilder(self).get(id))
        link_names = list(self.links)
        result = [map_row(row, link_names) for row in rows]

        if id is not None:
            return result[0] if result else None
        return result

    async def get_last(self) -> Optional[Dict[str, Any]]:
        rows = await self.executor.fetch(QueryBuilder(self).get_last())
        return rows[0] if rows else None

    async def create(self, data: Optional[Mapping[str, Any]] = None) -> Optional[Dict[str, Any]]:
        data = dict(data or {})
        fields = self.get_valid_fields(data)
        relations = self.get_relations_to_update(data)

        missing = self.get_missing_required_fields(fields)
        if missing:
            raise InvalidModelInput(missing)

        await self.executor.execute(QueryBuilder(self).create(fields))
        last = await self.get_last()
        if last is None:
            raise ExecutionFailure(
                QueryBuilder(self).get_last().as_string(),
                LookupError(f"Inserted {self.name} could not be read back"),
            )
        new_id = last[self.primary_key]

        for link, rows in relations:
            await self.assign_relation_data(link, link.sign(rows, new_id))

        log.debug(f"Created {self.name} {new_id}", extra={"table": self.table_name, "id": new_id})
        return await self.get(new_id)

    async def update(
        self, id: Any, data: Optional[Mapping[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        data = dict(data or {})
        data.pop(self.primary_key, None)
        fields = self.get_valid_fields(data)
        relations = self.get_relations_to_update(data)

        if fields:
            await self.executor.execute(QueryBuilder(self).update(id, fields))

        for link, rows in relations:
            await self.override_existing_relation_entries(id, link, link.sign(rows, id))

        return await self.get(id)

    async def delete(self, id: Any) -> Dict[str, bool]:
        """
        Delete the entity row only. Link rows referencing it are left in place.
        """
        await self.executor.execute(QueryBuilder(self).delete(id))
        return {"success": True}

    async def override_existing_relation_entries(
        self, id: Any, relation: LinkDescriptor, rows: List[Dict[str, Any]]
    ) -> None:
        """Full replace: drop every link row of ``id``, then insert ``rows``."""
        await self.executor.execute(QueryBuilder(self).delete_existing_relation(id, relation))
        await self.assign_relation_data(relation, rows)

    async def assign_relation_data(
        self, relation: LinkDescriptor, rows: List[Dict[str, Any]]
    ) -> None:
        for statement in QueryBuilder(self).create_relation_entries(relation, rows):
            await self.executor.execute(statement)


class ModelBuilder:
    """
    Collects a table's links and produces the finished, read-only Model.

    Each ``add_*`` call describes the link table once through ``introspector``.
    """

    def __init__(
        self,
        schema: TableSchema,
        executor: "StatementExecutor",
        introspector: Introspector,
    ) -> None:
        self.schema = schema
        self.executor = executor
        self.introspector = introspector
        self.name = to_singular(schema.table_name)
        self._relations: Dict[str, Relationship] = {}
        self._attributes: Dict[str, Attribute] = {}
        self._built = False

    def _check_open(self) -> None:
        if self._built:
            raise RuntimeError(f"Model {self.schema.table_name} is already built")

    async def add_relationship(
        self, relation_name: str, children: Optional[TableSchema] = None
    ) -> "ModelBuilder":
        self._check_open()
        link_schema = await self.introspector(relation_name)
        self._relations[relation_name] = Relationship(
            table_name=relation_name,
            schema=link_schema,
            senior_name=self.name,
            children=children,
        )
        log_link_registered(Relationship.kind, relation_name, self.name)
        return self

    async def add_attribute(self, attribute_name: str) -> "ModelBuilder":
        self._check_open()
        link_schema = await self.introspector(attribute_name)
        self._attributes[attribute_name] = Attribute(
            table_name=attribute_name,
            schema=link_schema,
            senior_name=self.name,
        )
        log_link_registered(Attribute.kind, attribute_name, self.name)
        return self

    def build(self) -> Model:
        self._check_open()
        self._built = True
        return Model(
            self.schema,
            self.executor,
            relations=self._relations,
            attributes=self._attributes,
        )


__all__ = ["Introspector", "Model", "ModelBuilder"]
