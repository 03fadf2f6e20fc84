"""
Demo schema creation and seeding for autocrud.

Creates the tables referenced by ``autocrud.example.yaml`` (users, roles and
their user_roles / user_addresses link tables) and inserts a few roles. Link
tables deliberately carry no foreign-key constraints: entity deletes do not
cascade and leave their link rows in place.
"""

from __future__ import annotations

import sys
import time
from typing import Sequence

from psycopg import sql
import typer

from autocrud.infrastructure.db_factory import build_dsn, get_sync_connection

app = typer.Typer(help="Create and seed the autocrud demo schema in Postgres.")

DEMO_TABLES = ("user_addresses", "user_roles", "users", "roles")
DEFAULT_ROLES = ("admin", "editor", "viewer")

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ
);

CREATE TABLE IF NOT EXISTS roles (
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS user_roles (
    id SERIAL PRIMARY KEY,
    id_user INTEGER NOT NULL,
    id_role INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS user_addresses (
    id SERIAL PRIMARY KEY,
    id_user INTEGER NOT NULL,
    city TEXT NOT NULL,
    zip TEXT
);
"""


def _build_dsn(dsn_override: str | None) -> str:
    if dsn_override:
        return dsn_override
    return build_dsn()


def _drop_schema(dsn: str, tables: Sequence[str] = DEMO_TABLES) -> None:
    with get_sync_connection(dsn) as conn:
        with conn.cursor() as cur:
            for table in tables:
                cur.execute(
                    sql.SQL("DROP TABLE IF EXISTS {}").format(sql.Identifier(table))
                )
        conn.commit()


def _create_schema(dsn: str) -> None:
    with get_sync_connection(dsn) as conn:
        with conn.cursor() as cur:
            cur.execute(_SCHEMA_SQL)
        conn.commit()


def _seed_roles(dsn: str, roles: Sequence[str] = DEFAULT_ROLES) -> int:
    with get_sync_connection(dsn) as conn:
        with conn.cursor() as cur:
            cur.executemany("INSERT INTO roles (name) VALUES (%s)", [(role,) for role in roles])
        conn.commit()
    return len(roles)


def _truncate(dsn: str, tables: Sequence[str] = DEMO_TABLES) -> None:
    with get_sync_connection(dsn) as conn:
        with conn.cursor() as cur:
            cur.execute(
                sql.SQL("TRUNCATE TABLE {} RESTART IDENTITY").format(
                    sql.SQL(", ").join(sql.Identifier(t) for t in tables)
                )
            )
        conn.commit()


@app.command()
def main(
    dsn: str | None = typer.Option(
        None,
        "--dsn",
        help="Optional DSN override for Postgres.",
    ),
    reset: bool = typer.Option(
        False,
        "--reset",
        help="Drop the demo tables before creating them.",
    ),
    no_seed: bool = typer.Option(
        False,
        "--no-seed",
        help="Only create the tables; skip inserting roles.",
    ),
) -> None:
    """
    Create the demo tables and optionally seed the roles table.
    """
    start = time.perf_counter()
    conn_dsn = _build_dsn(dsn)

    if reset:
        typer.echo(f"Dropping {', '.join(DEMO_TABLES)}...")
        _drop_schema(conn_dsn)

    _create_schema(conn_dsn)
    typer.echo("Demo schema ready.")

    if no_seed:
        typer.echo("Skipping seed (no-seed flag set).")
        return

    seeded = _seed_roles(conn_dsn)
    typer.echo(f"Seeded {seeded} roles in {time.perf_counter() - start:.2f}s.")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
