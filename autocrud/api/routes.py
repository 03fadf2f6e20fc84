"""
Route generation: five CRUD endpoints per Model.

Status codes follow the published contract: validation errors are not
distinguished from storage failures and both answer 500 with the raw error
message as a plain-text body.
"""

from __future__ import annotations

from typing import Any, Dict, Union

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, PlainTextResponse

from autocrud.domain.model import Model
from autocrud.utils.logging import get_logger, log_route

log = get_logger(__name__)

NOT_FOUND_BODY = {"success": False, "status": "Not found"}


def _json(data: Any) -> JSONResponse:
    return JSONResponse(content=jsonable_encoder(data))


def _server_error(exc: Exception, model: Model, action: str) -> PlainTextResponse:
    log.exception(
        f"{action} on {model.table_name} failed",
        extra={"table": model.table_name, "action": action, "error_type": type(exc).__name__},
    )
    return PlainTextResponse(str(exc), status_code=500)


async def _read_payload(request: Request) -> Dict[str, Any]:
    body = await request.body()
    if not body:
        return {}
    payload = await request.json()
    if not isinstance(payload, dict):
        raise ValueError("Request body must be a JSON object")
    return payload


class RouteGenerator:
    """
    Wire GET/GET-by-id/POST/PUT/DELETE handlers for each Model onto an app.
    """

    def __init__(self, app: Union[FastAPI, APIRouter]) -> None:
        self.app = app

    def generate(self, model: Model) -> None:
        log.info(f"{model.capitalized_name} endpoints:", extra={"table": model.table_name})
        self.generate_get_routes(model)
        self.generate_put_routes(model)
        self.generate_post_routes(model)
        self.generate_delete_routes(model)

    def generate_get_routes(self, model: Model) -> None:
        collection_path = f"/{model.table_name}"
        item_path = f"/{model.table_name}/{{id}}"

        async def list_entities() -> Response:
            try:
                return _json(await model.get())
            except Exception as exc:  # noqa: BLE001 - every failure answers 500
                return _server_error(exc, model, "list")

        async def get_entity(id: str) -> Response:
            try:
                data = await model.get(id)
                if not data:
                    return JSONResponse(status_code=404, content=NOT_FOUND_BODY)
                return _json(data)
            except Exception as exc:  # noqa: BLE001
                return _server_error(exc, model, "get")

        log_route("GET", collection_path)
        self.app.add_api_route(
            collection_path, list_entities, methods=["GET"], name=f"list_{model.table_name}"
        )
        log_route("GET", item_path)
        self.app.add_api_route(
            item_path, get_entity, methods=["GET"], name=f"get_{model.name}"
        )

    def generate_put_routes(self, model: Model) -> None:
        item_path = f"/{model.table_name}/{{id}}"

        async def update_entity(id: str, request: Request) -> Response:
            try:
                if not await model.get(id):
                    return Response(status_code=404)
                payload = await _read_payload(request)
                return _json(await model.update(id, payload))
            except Exception as exc:  # noqa: BLE001
                return _server_error(exc, model, "update")

        log_route("PUT", item_path)
        self.app.add_api_route(
            item_path, update_entity, methods=["PUT"], name=f"update_{model.name}"
        )

    def generate_post_routes(self, model: Model) -> None:
        collection_path = f"/{model.table_name}"

        async def create_entity(request: Request) -> Response:
            try:
                payload = await _read_payload(request)
                return _json(await model.create(payload))
            except Exception as exc:  # noqa: BLE001
                return _server_error(exc, model, "create")

        log_route("POST", collection_path)
        self.app.add_api_route(
            collection_path, create_entity, methods=["POST"], name=f"create_{model.name}"
        )

    def generate_delete_routes(self, model: Model) -> None:
        item_path = f"/{model.table_name}/{{id}}"

        async def delete_entity(id: str) -> Response:
            try:
                if not await model.get(id):
                    return Response(status_code=404)
                return _json(await model.delete(id))
            except Exception as exc:  # noqa: BLE001
                return _server_error(exc, model, "delete")

        log_route("DELETE", item_path)
        self.app.add_api_route(
            item_path, delete_entity, methods=["DELETE"], name=f"delete_{model.name}"
        )


__all__ = ["NOT_FOUND_BODY", "RouteGenerator"]
