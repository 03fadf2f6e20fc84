from __future__ import annotations

from typing import Any, Dict, Optional

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from autocrud.api.app import register_models
from autocrud.api.routes import NOT_FOUND_BODY
from autocrud.domain.errors import ExecutionFailure, InvalidModelInput


class InMemoryUsers:
    """Stands in for a users Model; keeps rows in a dict keyed by string id."""

    name = "user"
    capitalized_name = "User"
    table_name = "users"

    def __init__(self) -> None:
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.next_id = 1
        self.fail_with: Optional[Exception] = None

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def get(self, id: Any = None):
        self._check()
        if id is None:
            return list(self.rows.values())
        return self.rows.get(str(id))

    async def create(self, data: Dict[str, Any]):
        self._check()
        if "name" not in data:
            raise InvalidModelInput(["name"])
        row = {"id": self.next_id, "user_roles": [], **data}
        self.rows[str(self.next_id)] = row
        self.next_id += 1
        return row

    async def update(self, id: Any, data: Dict[str, Any]):
        self._check()
        self.rows[str(id)].update(data)
        return self.rows[str(id)]

    async def delete(self, id: Any):
        self._check()
        del self.rows[str(id)]
        return {"success": True}


@pytest.fixture
def users() -> InMemoryUsers:
    return InMemoryUsers()


@pytest.fixture
def client(users: InMemoryUsers) -> TestClient:
    app = FastAPI()
    register_models(app, [users])  # type: ignore[list-item]
    return TestClient(app)


def test_routes_are_registered_for_each_method(client: TestClient) -> None:
    routes = {
        (route.path, method)
        for route in client.app.routes  # type: ignore[attr-defined]
        for method in getattr(route, "methods", ())
    }

    assert {
        ("/users", "GET"),
        ("/users/{id}", "GET"),
        ("/users", "POST"),
        ("/users/{id}", "PUT"),
        ("/users/{id}", "DELETE"),
    } <= routes
    assert list(client.app.state.models) == ["users"]  # type: ignore[attr-defined]


def test_user_lifecycle(client: TestClient) -> None:
    created = client.post("/users", json={"name": "Ann", "email": "ann@example.com"})
    assert created.status_code == 200
    assert created.json() == {
        "id": 1,
        "name": "Ann",
        "email": "ann@example.com",
        "user_roles": [],
    }

    fetched = client.get("/users/1")
    assert fetched.status_code == 200
    assert fetched.json()["name"] == "Ann"

    updated = client.put("/users/1", json={"name": "Bea"})
    assert updated.status_code == 200
    assert updated.json()["name"] == "Bea"

    deleted = client.delete("/users/1")
    assert deleted.status_code == 200
    assert deleted.json() == {"success": True}

    gone = client.get("/users/1")
    assert gone.status_code == 404
    assert gone.json() == NOT_FOUND_BODY


def test_list_returns_every_entity(client: TestClient) -> None:
    client.post("/users", json={"name": "Ann"})
    client.post("/users", json={"name": "Bea"})

    response = client.get("/users")

    assert response.status_code == 200
    assert [user["name"] for user in response.json()] == ["Ann", "Bea"]


def test_validation_error_is_reported_as_plain_500(client: TestClient, users: InMemoryUsers) -> None:
    response = client.post("/users", json={"email": "nobody@example.com"})

    assert response.status_code == 500
    assert response.text == "Missing required fields: name"
    assert users.rows == {}


@pytest.mark.parametrize("method", ["put", "delete"])
def test_missing_entity_answers_404_with_empty_body(client: TestClient, method: str) -> None:
    kwargs = {"json": {"name": "x"}} if method == "put" else {}

    response = getattr(client, method)("/users/42", **kwargs)

    assert response.status_code == 404
    assert response.content == b""


def test_storage_failure_on_list_answers_500(client: TestClient, users: InMemoryUsers) -> None:
    users.fail_with = ExecutionFailure("SELECT 1", RuntimeError("connection lost"))

    response = client.get("/users")

    assert response.status_code == 500
    assert response.text == "connection lost"


def test_non_object_body_is_rejected(client: TestClient) -> None:
    response = client.post("/users", json=[{"name": "Ann"}])

    assert response.status_code == 500
    assert response.text == "Request body must be a JSON object"


def test_put_without_body_returns_entity_unchanged(client: TestClient) -> None:
    client.post("/users", json={"name": "Ann"})

    response = client.put("/users/1")

    assert response.status_code == 200
    assert response.json()["name"] == "Ann"


def test_malformed_json_answers_500(client: TestClient, users: InMemoryUsers) -> None:
    response = client.post(
        "/users", content=b"{not json", headers={"content-type": "application/json"}
    )

    assert response.status_code == 500
    assert users.rows == {}
