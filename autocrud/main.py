from __future__ import annotations

import asyncio
import json
import sys
from typing import Optional

import typer
import uvicorn

from autocrud.config import get_settings
from autocrud.infrastructure.db_factory import PoolManager
from autocrud.infrastructure.executor import PsycopgExecutor
from autocrud.infrastructure.introspection import SchemaIntrospector
from autocrud.utils.logging import configure_logging

app = typer.Typer(help="autocrud: REST endpoints inferred from table metadata.")


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} "
        f"schema={settings.db_schema} | "
        f"pool=({settings.db_pool_min_size},{settings.db_pool_max_size}) | "
        f"manifest={settings.api_manifest or '<all tables>'} | "
        f"listen={settings.api_host}:{settings.api_port}"
    )


async def _describe(table: str) -> list:
    settings = get_settings()
    pools = PoolManager(settings)
    await pools.open()
    try:
        introspector = SchemaIntrospector(PsycopgExecutor(pools), schema=settings.db_schema)
        schema = await introspector.describe(table)
    finally:
        await pools.close()
    return [column.model_dump() for column in schema.columns]


@app.command()
def describe(table: str = typer.Argument(..., help="Table to introspect.")) -> None:
    """
    Print the column metadata autocrud sees for a table.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    typer.echo(json.dumps(asyncio.run(_describe(table)), indent=2))


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Override API_HOST."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Override API_PORT."),
    manifest: Optional[str] = typer.Option(
        None, "--manifest", "-m", help="YAML manifest of exposed tables (overrides API_MANIFEST)."
    ),
) -> None:
    """
    Describe the configured tables and serve their CRUD endpoints.
    """
    from autocrud.api.app import create_app

    settings = get_settings()
    if manifest:
        settings = settings.model_copy(update={"api_manifest": manifest})
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    uvicorn.run(
        create_app(settings),
        host=host or settings.api_host,
        port=port or settings.api_port,
        log_config=None,
    )


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
