from __future__ import annotations

from fastapi.testclient import TestClient

from fakes import FakeBotoTable, FakeCompletion
from kings_canvas.db.dynamodb.table import DynamoTable
from kings_canvas.main import create_app
from kings_canvas.services import build_services
from kings_canvas.settings import Settings


def _client(*, dev_user: str | None = "student@kcl.ac.uk") -> TestClient:
    settings = Settings(NODE_ENV="test", DEV_USER_EMAIL=dev_user)
    table = DynamoTable(table_name="kings-canvas-test", resource=FakeBotoTable())
    services = build_services(settings, table=table, completion=FakeCompletion("[]"))
    return TestClient(create_app(settings=settings, services=services))


def test_request_id_is_generated_and_returned():
    client = _client()

    r = client.get("/")
    assert r.status_code == 200
    assert "X-Request-Id" in r.headers
    assert r.headers["X-Request-Id"]


def test_request_id_is_propagated_from_client():
    client = _client()

    r = client.get("/", headers={"X-Request-Id": "abc-123"})
    assert r.status_code == 200
    assert r.headers.get("X-Request-Id") == "abc-123"


def test_validation_errors_are_problem_json():
    client = _client()

    # Missing required body fields => pydantic validation error
    r = client.put("/api/steps", json={})
    assert r.status_code == 422
    assert r.headers.get("content-type", "").startswith("application/problem+json")
    body = r.json()
    assert body["title"] == "Validation Failed"
    assert body["status"] == 422
    assert "errors" in body and isinstance(body["errors"], list)
    assert {e["path"] for e in body["errors"]} >= {"stepId", "status"}
    assert body.get("requestId")


def test_404_is_problem_json():
    client = _client()

    r = client.get("/this-route-does-not-exist")
    assert r.status_code == 404
    assert r.headers.get("content-type", "").startswith("application/problem+json")
    body = r.json()
    assert body["status"] == 404
    assert body.get("requestId")


def test_auth_denied_is_problem_json():
    client = _client(dev_user=None)

    r = client.get("/api/steps", headers={"X-Request-Id": "req-401"})
    assert r.status_code == 401
    assert r.headers.get("content-type", "").startswith("application/problem+json")
    body = r.json()
    assert body["status"] == 401
    assert body["title"] == "Unauthorized"
    assert body.get("requestId") == "req-401"
