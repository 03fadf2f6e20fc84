"""
Statement builder for autocrud.

Turns a Model (plus an optional id / field map) into a Statement: a
``psycopg.sql`` template and its bound parameters. Identifiers are always
quoted through ``sql.Identifier`` and values always travel as parameters.

The read statement returns one "flattened join row" per entity: own columns
as-is, and every column of every link table aggregated with ``string_agg``
under a ``<link_table>.<column>`` alias (``<link_table>.<child>.<column>``
for the children table of a relationship). Commas and backslashes inside
values are escaped so ``autocrud.domain.row_mapper`` can split reliably.
"""

from __future__ import annotations

from typing import (
    TYPE_CHECKING,
    Any,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from psycopg import sql
from psycopg.types.json import Jsonb

from autocrud.domain.links import LinkDescriptor, Relationship
from autocrud.domain.schema import TableSchema

if TYPE_CHECKING:
    from autocrud.domain.model import Model

CREATED_AT = "created_at"
UPDATED_AT = "updated_at"
AGGREGATE_SEPARATOR = ","
_CHILD_ALIAS = "child"
_JSON_TYPES = ("json", "jsonb")


class Statement(NamedTuple):
    """A SQL template with its bound parameters."""

    query: sql.Composable
    params: Union[Tuple[Any, ...], Mapping[str, Any]] = ()

    def as_string(self) -> str:
        return self.query.as_string()


def adapt_value(schema: TableSchema, column: str, value: Any) -> Any:
    """Wrap JSON-shaped values so psycopg sends them as jsonb."""
    if isinstance(value, dict):
        return Jsonb(value)
    if isinstance(value, list) and schema.has_column(column):
        if schema.column(column).type.lower() in _JSON_TYPES:
            return Jsonb(value)
    return value


def _encoded(column: sql.Composable) -> sql.Composable:
    """Text form of a column, with the aggregate separator escaped; NULL becomes ''."""
    return sql.SQL("COALESCE(replace(replace({}::text, {}, {}), {}, {}), '')").format(
        column,
        sql.Literal("\\"),
        sql.Literal("\\\\"),
        sql.Literal(AGGREGATE_SEPARATOR),
        sql.Literal("\\" + AGGREGATE_SEPARATOR),
    )


def _aggregate(column: sql.Composable, order_by: sql.Composable, alias: str) -> sql.Composable:
    return sql.SQL("string_agg({}, {} ORDER BY {}) AS {}").format(
        _encoded(column), sql.Literal(AGGREGATE_SEPARATOR), order_by, sql.Identifier(alias)
    )


class QueryBuilder:
    """
    Build statements for one Model. Stateless apart from the model it reads.
    """

    def __init__(self, model: "Model") -> None:
        self.model = model

    @property
    def _table(self) -> sql.Identifier:
        return sql.Identifier(self.model.table_name)

    @property
    def _pk(self) -> sql.Identifier:
        return sql.Identifier(self.model.primary_key)

    # ------------------------------------------------------------------ reads

    def get(self, id: Any = None) -> Statement:
        """
        Select own columns plus the aggregated columns of every link.

        With an id, only the matching entity is selected.
        """
        table = self.model.table_name
        fields: List[sql.Composable] = [sql.SQL("{}.*").format(self._table)]
        joins: List[sql.Composable] = []

        for index, link in enumerate(self.model.links.values()):
            alias = f"link_{index}"
            aggregated, lateral = self._link_subquery(link, alias)
            fields.extend(
                sql.SQL("{} AS {}").format(
                    sql.Identifier(alias, name), sql.Identifier(f"{link.table_name}.{name}")
                )
                for name in aggregated
            )
            joins.append(lateral)

        query = sql.SQL("SELECT {} FROM {}").format(sql.SQL(", ").join(fields), self._table)
        if joins:
            query = query + sql.SQL(" ") + sql.SQL(" ").join(joins)

        params: Tuple[Any, ...] = ()
        if id is not None:
            query = query + sql.SQL(" WHERE {} = {}").format(
                sql.Identifier(table, self.model.primary_key), sql.Placeholder()
            )
            params = (id,)

        query = query + sql.SQL(" ORDER BY {}").format(
            sql.Identifier(table, self.model.primary_key)
        )
        return Statement(query, params)

    def _link_subquery(
        self, link: LinkDescriptor, alias: str
    ) -> Tuple[List[str], sql.Composable]:
        """
        LATERAL subquery aggregating one link table for the current entity row.

        Every aggregate shares the same ORDER BY on a unique key so that the
        i-th segment of each column belongs to the same link row.
        """
        link_table = link.table_name
        if link.ordering_key:
            order_by: sql.Composable = sql.SQL(", ").join(
                sql.Identifier(link_table, name) for name in link.ordering_key
            )
        else:
            order_by = sql.SQL("{}.ctid").format(sql.Identifier(link_table))

        names: List[str] = []
        aggregates: List[sql.Composable] = []
        for column in link.schema.column_names:
            names.append(column)
            aggregates.append(_aggregate(sql.Identifier(link_table, column), order_by, column))

        child_join: Optional[sql.Composable] = None
        if isinstance(link, Relationship) and link.children is not None:
            child_name = link.children_name
            for column in link.children.column_names:
                name = f"{child_name}.{column}"
                names.append(name)
                aggregates.append(
                    _aggregate(sql.Identifier(_CHILD_ALIAS, column), order_by, name)
                )
            child_join = sql.SQL(" LEFT JOIN {} AS {} ON {} = {}").format(
                sql.Identifier(link.children.table_name),
                sql.Identifier(_CHILD_ALIAS),
                sql.Identifier(_CHILD_ALIAS, link.children.primary_key),
                sql.Identifier(link_table, link.children_key),
            )

        lateral = sql.SQL(
            "LEFT JOIN LATERAL (SELECT {aggregates} FROM {link}{child_join}"
            " WHERE {foreign_key} = {senior_key}) AS {alias} ON TRUE"
        ).format(
            aggregates=sql.SQL(", ").join(aggregates),
            link=sql.Identifier(link_table),
            child_join=child_join or sql.SQL(""),
            foreign_key=sql.Identifier(link_table, link.foreign_key),
            senior_key=sql.Identifier(self.model.table_name, self.model.primary_key),
            alias=sql.Identifier(alias),
        )
        return names, lateral

    def get_last(self) -> Statement:
        query = sql.SQL("SELECT * FROM {} ORDER BY {} DESC LIMIT 1").format(
            self._table, self._pk
        )
        return Statement(query)

    # ----------------------------------------------------------------- writes

    def create(self, fields: Mapping[str, Any]) -> Statement:
        """INSERT of the given (already filtered) fields; timestamps default to now()."""
        schema = self.model.schema
        columns: List[sql.Composable] = []
        values: List[sql.Composable] = []
        params: List[Any] = []

        for name, value in fields.items():
            columns.append(sql.Identifier(name))
            values.append(sql.Placeholder())
            params.append(adapt_value(schema, name, value))

        for stamp, present in (
            (CREATED_AT, self.model.has_created_at_timestamp),
            (UPDATED_AT, self.model.has_updated_at_timestamp),
        ):
            if present and stamp not in fields:
                columns.append(sql.Identifier(stamp))
                values.append(sql.SQL("now()"))

        if not columns:
            return Statement(sql.SQL("INSERT INTO {} DEFAULT VALUES").format(self._table))

        query = sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
            self._table, sql.SQL(", ").join(columns), sql.SQL(", ").join(values)
        )
        return Statement(query, tuple(params))

    def update(self, id: Any, fields: Mapping[str, Any]) -> Statement:
        schema = self.model.schema
        assignments: List[sql.Composable] = []
        params: List[Any] = []

        for name, value in fields.items():
            assignments.append(
                sql.SQL("{} = {}").format(sql.Identifier(name), sql.Placeholder())
            )
            params.append(adapt_value(schema, name, value))

        if self.model.has_updated_at_timestamp and UPDATED_AT not in fields:
            assignments.append(sql.SQL("{} = now()").format(sql.Identifier(UPDATED_AT)))

        query = sql.SQL("UPDATE {} SET {} WHERE {} = {}").format(
            self._table, sql.SQL(", ").join(assignments), self._pk, sql.Placeholder()
        )
        params.append(id)
        return Statement(query, tuple(params))

    def delete(self, id: Any) -> Statement:
        query = sql.SQL("DELETE FROM {} WHERE {} = {}").format(
            self._table, self._pk, sql.Placeholder()
        )
        return Statement(query, (id,))

    def delete_existing_relation(self, id: Any, relation: LinkDescriptor) -> Statement:
        query = sql.SQL("DELETE FROM {} WHERE {} = {}").format(
            sql.Identifier(relation.table_name),
            sql.Identifier(relation.foreign_key),
            sql.Placeholder(),
        )
        return Statement(query, (id,))

    def create_relation_entries(
        self, relation: LinkDescriptor, rows: Sequence[Mapping[str, Any]]
    ) -> List[Statement]:
        """One INSERT per link row."""
        statements: List[Statement] = []
        for row in rows:
            query = sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
                sql.Identifier(relation.table_name),
                sql.SQL(", ").join(sql.Identifier(name) for name in row),
                sql.SQL(", ").join([sql.Placeholder()] * len(row)),
            )
            params = tuple(adapt_value(relation.schema, name, value) for name, value in row.items())
            statements.append(Statement(query, params))
        return statements


__all__ = ["AGGREGATE_SEPARATOR", "QueryBuilder", "Statement", "adapt_value"]
