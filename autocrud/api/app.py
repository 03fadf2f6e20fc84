"""
FastAPI application factory.

Routes depend on the live database schema, so they are generated inside the
lifespan: open the pool, describe the tables, build the models, then wire
their endpoints. Any startup failure aborts the application.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from fastapi import FastAPI

from autocrud.api.routes import RouteGenerator
from autocrud.config import Settings, get_settings
from autocrud.domain.model import Model
from autocrud.infrastructure.db_factory import PoolManager
from autocrud.infrastructure.executor import PsycopgExecutor
from autocrud.infrastructure.introspection import SchemaIntrospector
from autocrud.manifest import Manifest, load_manifest
from autocrud.registry import build_models, resolve_manifest
from autocrud.utils.logging import configure_logging, get_logger

log = get_logger(__name__)


def register_models(app: FastAPI, models: List[Model]) -> None:
    generator = RouteGenerator(app)
    for model in models:
        generator.generate(model)
    app.state.models = {model.table_name: model for model in models}


def create_app(
    settings: Optional[Settings] = None,
    manifest: Optional[Manifest] = None,
    dsn_override: Optional[str] = None,
) -> FastAPI:
    """
    Build the application. Table discovery happens at startup, not here.
    """
    settings = settings or get_settings()
    if manifest is None and settings.api_manifest:
        manifest = load_manifest(settings.api_manifest)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(level=settings.log_level, json_logs=settings.log_json)
        pools = PoolManager(settings, dsn_override=dsn_override)
        await pools.open()
        try:
            executor = PsycopgExecutor(pools)
            introspector = SchemaIntrospector(executor, schema=settings.db_schema)
            effective = await resolve_manifest(manifest, introspector)
            models = await build_models(effective, introspector.describe, executor)
            register_models(app, models)
            log.info(
                "autocrud ready",
                extra={"app_env": settings.app_env, "models": len(models)},
            )
            yield
        finally:
            await pools.close()

    return FastAPI(title="autocrud", lifespan=lifespan)


__all__ = ["create_app", "register_models"]
