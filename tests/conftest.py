"""
Pytest configuration for autocrud.

Provides fixtures for:
- Table schemas and models wired to a scripted fake executor (unit tests)
- Database connection management and the demo schema (integration tests)
"""

from __future__ import annotations

import os
from collections import deque
from typing import Any, Deque, Dict, Generator, List, Tuple

import psycopg
import pytest

from autocrud.config import Settings
from autocrud.domain.links import Attribute, Relationship
from autocrud.domain.model import Model
from autocrud.domain.query_builder import Statement
from autocrud.domain.schema import ColumnSpec, TableSchema
from autocrud.infrastructure.db_factory import build_dsn


class FakeExecutor:
    """
    StatementExecutor double: records every statement and answers reads
    from a queue of scripted result sets (empty once the queue runs dry).
    """

    def __init__(self, *responses: List[Dict[str, Any]]) -> None:
        self.responses: Deque[List[Dict[str, Any]]] = deque(responses)
        self.calls: List[Tuple[str, Statement]] = []

    def queue(self, *responses: List[Dict[str, Any]]) -> None:
        self.responses.extend(responses)

    async def fetch(self, statement: Statement) -> List[Dict[str, Any]]:
        self.calls.append(("fetch", statement))
        return self.responses.popleft() if self.responses else []

    async def execute(self, statement: Statement) -> int:
        self.calls.append(("execute", statement))
        return 1

    @property
    def executed(self) -> List[Statement]:
        return [statement for kind, statement in self.calls if kind == "execute"]

    @property
    def fetched(self) -> List[Statement]:
        return [statement for kind, statement in self.calls if kind == "fetch"]

    def executed_sql(self) -> List[str]:
        return [statement.as_string() for statement in self.executed]


def _pk(name: str = "id") -> ColumnSpec:
    return ColumnSpec(
        name=name,
        type="integer",
        nullable=False,
        key="PRI",
        default=f"nextval('{name}_seq'::regclass)",
        extra="auto_increment",
    )


@pytest.fixture
def users_schema() -> TableSchema:
    return TableSchema(
        table_name="users",
        columns=(
            _pk(),
            ColumnSpec(name="name", type="text", nullable=False),
            ColumnSpec(name="email", type="text", nullable=True),
            ColumnSpec(name="created_at", type="timestamp with time zone", nullable=False),
            ColumnSpec(name="updated_at", type="timestamp with time zone", nullable=True),
        ),
    )


@pytest.fixture
def roles_schema() -> TableSchema:
    return TableSchema(
        table_name="roles",
        columns=(_pk(), ColumnSpec(name="name", type="text", nullable=False)),
    )


@pytest.fixture
def user_roles_schema() -> TableSchema:
    return TableSchema(
        table_name="user_roles",
        columns=(
            _pk(),
            ColumnSpec(name="id_user", type="integer", nullable=False),
            ColumnSpec(name="id_role", type="integer", nullable=False),
        ),
    )


@pytest.fixture
def user_addresses_schema() -> TableSchema:
    return TableSchema(
        table_name="user_addresses",
        columns=(
            _pk(),
            ColumnSpec(name="id_user", type="integer", nullable=False),
            ColumnSpec(name="city", type="text", nullable=False),
            ColumnSpec(name="zip", type="text", nullable=True),
        ),
    )


@pytest.fixture
def tags_schema() -> TableSchema:
    return TableSchema(
        table_name="tags",
        columns=(_pk(), ColumnSpec(name="label", type="text", nullable=False)),
    )


@pytest.fixture
def user_tags_schema() -> TableSchema:
    """Plain many-to-many link: PRIMARY KEY (id_user, id_tag), no surrogate id."""
    return TableSchema(
        table_name="user_tags",
        columns=(
            ColumnSpec(name="id_user", type="integer", nullable=False, key="PRI"),
            ColumnSpec(name="id_tag", type="integer", nullable=False, key="PRI"),
            ColumnSpec(name="note", type="text", nullable=True),
        ),
    )


@pytest.fixture
def schemas(
    users_schema: TableSchema,
    roles_schema: TableSchema,
    user_roles_schema: TableSchema,
    user_addresses_schema: TableSchema,
    tags_schema: TableSchema,
    user_tags_schema: TableSchema,
) -> Dict[str, TableSchema]:
    return {
        schema.table_name: schema
        for schema in (
            users_schema,
            roles_schema,
            user_roles_schema,
            user_addresses_schema,
            tags_schema,
            user_tags_schema,
        )
    }


@pytest.fixture
def fake_introspector(schemas: Dict[str, TableSchema]):
    """Async introspector over the schema fixtures; records requested tables."""
    requested: List[str] = []

    async def describe(table_name: str) -> TableSchema:
        requested.append(table_name)
        return schemas[table_name]

    describe.requested = requested  # type: ignore[attr-defined]
    return describe


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def user_model(
    executor: FakeExecutor,
    users_schema: TableSchema,
    roles_schema: TableSchema,
    user_roles_schema: TableSchema,
    user_addresses_schema: TableSchema,
) -> Model:
    """users with a user_roles relationship (children: roles) and a user_addresses attribute."""
    return Model(
        users_schema,
        executor,
        relations={
            "user_roles": Relationship(
                table_name="user_roles",
                schema=user_roles_schema,
                senior_name="user",
                children=roles_schema,
            )
        },
        attributes={
            "user_addresses": Attribute(
                table_name="user_addresses",
                schema=user_addresses_schema,
                senior_name="user",
            )
        },
    )


@pytest.fixture
def tagged_user_model(
    executor: FakeExecutor,
    users_schema: TableSchema,
    tags_schema: TableSchema,
    user_tags_schema: TableSchema,
) -> Model:
    """users with a user_tags relationship keyed on (id_user, id_tag), children: tags."""
    return Model(
        users_schema,
        executor,
        relations={
            "user_tags": Relationship(
                table_name="user_tags",
                schema=user_tags_schema,
                senior_name="user",
                children=tags_schema,
            )
        },
    )


@pytest.fixture
def plain_user_model(executor: FakeExecutor, users_schema: TableSchema) -> Model:
    return Model(users_schema, executor)


# --------------------------------------------------------------------------
# Integration fixtures
# --------------------------------------------------------------------------


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "autocrud"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return build_dsn(test_settings)


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped autocommit connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn, autocommit=True)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def demo_schema(db_connection: psycopg.Connection, test_dsn: str) -> Generator[str, None, None]:
    """
    Fresh demo tables (users, roles, user_roles, user_addresses) with seeded roles.
    """
    from scripts.seed_demo import _create_schema, _drop_schema, _seed_roles

    _drop_schema(test_dsn)
    _create_schema(test_dsn)
    _seed_roles(test_dsn)
    yield test_dsn
    _drop_schema(test_dsn)
