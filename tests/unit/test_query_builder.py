from __future__ import annotations

from psycopg.types.json import Jsonb

from autocrud.domain.links import Attribute
from autocrud.domain.model import Model
from autocrud.domain.query_builder import QueryBuilder
from autocrud.domain.schema import ColumnSpec, TableSchema


def _plain_table() -> Model:
    schema = TableSchema(
        table_name="tags",
        columns=(
            ColumnSpec(name="id", key="PRI", nullable=False, extra="auto_increment"),
            ColumnSpec(name="label"),
            ColumnSpec(name="meta", type="jsonb"),
        ),
    )
    return Model(schema, executor=None)  # type: ignore[arg-type]


def test_get_without_links_selects_own_columns(plain_user_model: Model) -> None:
    statement = QueryBuilder(plain_user_model).get()

    assert statement.as_string() == 'SELECT "users".* FROM "users" ORDER BY "users"."id"'
    assert statement.params == ()


def test_get_by_id_filters_on_primary_key_with_bound_parameter(plain_user_model: Model) -> None:
    statement = QueryBuilder(plain_user_model).get("1")

    assert statement.as_string() == (
        'SELECT "users".* FROM "users" WHERE "users"."id" = %s ORDER BY "users"."id"'
    )
    assert statement.params == ("1",)


def test_get_aggregates_every_link_column_under_dotted_aliases(user_model: Model) -> None:
    text = QueryBuilder(user_model).get().as_string()

    for alias in (
        "user_roles.id",
        "user_roles.id_user",
        "user_roles.id_role",
        "user_roles.role.id",
        "user_roles.role.name",
        "user_addresses.id",
        "user_addresses.city",
        "user_addresses.zip",
    ):
        assert f'AS "{alias}"' in text

    assert text.count("LEFT JOIN LATERAL") == 2
    assert 'WHERE "user_roles"."id_user" = "users"."id"' in text
    assert 'WHERE "user_addresses"."id_user" = "users"."id"' in text
    assert 'LEFT JOIN "roles" AS "child" ON "child"."id" = "user_roles"."id_role"' in text


def test_get_orders_every_aggregate_of_a_link_by_the_same_key(user_model: Model) -> None:
    text = QueryBuilder(user_model).get().as_string()

    # 3 link columns + 2 children columns, all ordered by the link primary key
    assert text.count('ORDER BY "user_roles"."id")') == 5
    assert text.count('ORDER BY "user_addresses"."id")') == 4


def test_get_falls_back_to_ctid_for_link_tables_without_primary_key(
    users_schema: TableSchema,
) -> None:
    notes = TableSchema(
        table_name="user_notes",
        columns=(ColumnSpec(name="id_user", nullable=False), ColumnSpec(name="body")),
    )
    model = Model(
        users_schema,
        executor=None,  # type: ignore[arg-type]
        attributes={
            "user_notes": Attribute(table_name="user_notes", schema=notes, senior_name="user")
        },
    )

    text = QueryBuilder(model).get().as_string()

    assert text.count('ORDER BY "user_notes".ctid') == 2


def test_get_last_reads_newest_row(plain_user_model: Model) -> None:
    statement = QueryBuilder(plain_user_model).get_last()

    assert statement.as_string() == 'SELECT * FROM "users" ORDER BY "id" DESC LIMIT 1'


def test_create_binds_values_in_column_order_and_stamps_timestamps(
    plain_user_model: Model,
) -> None:
    statement = QueryBuilder(plain_user_model).create({"name": "Ann", "email": "ann@example.com"})

    assert statement.as_string() == (
        'INSERT INTO "users" ("name", "email", "created_at", "updated_at") '
        "VALUES (%s, %s, now(), now())"
    )
    assert statement.params == ("Ann", "ann@example.com")


def test_create_keeps_caller_supplied_timestamp(plain_user_model: Model) -> None:
    statement = QueryBuilder(plain_user_model).create({"name": "Ann", "updated_at": "2024-01-01"})

    assert statement.as_string() == (
        'INSERT INTO "users" ("name", "updated_at", "created_at") VALUES (%s, %s, now())'
    )


def test_create_with_no_fields_uses_default_values() -> None:
    statement = QueryBuilder(_plain_table()).create({})

    assert statement.as_string() == 'INSERT INTO "tags" DEFAULT VALUES'
    assert statement.params == ()


def test_values_are_never_interpolated() -> None:
    hostile = "x'); DROP TABLE tags; --"
    statement = QueryBuilder(_plain_table()).create({"label": hostile})

    assert hostile not in statement.as_string()
    assert statement.params == (hostile,)


def test_json_values_are_wrapped_for_jsonb() -> None:
    statement = QueryBuilder(_plain_table()).create({"meta": {"color": "red"}})

    (param,) = statement.params
    assert isinstance(param, Jsonb)
    assert param.obj == {"color": "red"}


def test_update_sets_every_field_and_filters_on_primary_key(plain_user_model: Model) -> None:
    statement = QueryBuilder(plain_user_model).update("1", {"name": "Bea"})

    assert statement.as_string() == (
        'UPDATE "users" SET "name" = %s, "updated_at" = now() WHERE "id" = %s'
    )
    assert statement.params == ("Bea", "1")


def test_delete_filters_on_primary_key(plain_user_model: Model) -> None:
    statement = QueryBuilder(plain_user_model).delete(3)

    assert statement.as_string() == 'DELETE FROM "users" WHERE "id" = %s'
    assert statement.params == (3,)


def test_delete_existing_relation_targets_senior_foreign_key(user_model: Model) -> None:
    relation = user_model.relations["user_roles"]
    statement = QueryBuilder(user_model).delete_existing_relation(5, relation)

    assert statement.as_string() == 'DELETE FROM "user_roles" WHERE "id_user" = %s'
    assert statement.params == (5,)


def test_create_relation_entries_emits_one_insert_per_row(user_model: Model) -> None:
    relation = user_model.relations["user_roles"]
    statements = QueryBuilder(user_model).create_relation_entries(
        relation, [{"id_role": 1, "id_user": 5}, {"id_role": 2, "id_user": 5}]
    )

    assert [s.as_string() for s in statements] == [
        'INSERT INTO "user_roles" ("id_role", "id_user") VALUES (%s, %s)',
        'INSERT INTO "user_roles" ("id_role", "id_user") VALUES (%s, %s)',
    ]
    assert [s.params for s in statements] == [(1, 5), (2, 5)]


def test_composite_key_link_orders_by_every_key_column(tagged_user_model: Model) -> None:
    text = QueryBuilder(tagged_user_model).get().as_string()

    # 3 link columns + 2 children columns
    assert text.count('ORDER BY "user_tags"."id_user", "user_tags"."id_tag")') == 5
    assert 'ORDER BY "user_tags"."id_user")' not in text
    assert 'WHERE "user_tags"."id_user" = "users"."id"' in text
    assert 'LEFT JOIN "tags" AS "child" ON "child"."id" = "user_tags"."id_tag"' in text
    for alias in ("user_tags.id_user", "user_tags.id_tag", "user_tags.note", "user_tags.tag.label"):
        assert f'AS "{alias}"' in text
