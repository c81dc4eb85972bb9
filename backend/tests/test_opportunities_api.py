from __future__ import annotations

import json

from fastapi.testclient import TestClient

from fakes import FakeBotoTable, FakeCompletion
from kings_canvas.ai.client import AiUpstreamError
from kings_canvas.auth.cognito import CognitoAuthError, VerifiedUser
from kings_canvas.db.dynamodb.table import DynamoTable
from kings_canvas.main import create_app
from kings_canvas.services import build_services
from kings_canvas.settings import Settings

USER = "student@kcl.ac.uk"
OTHER = {"Authorization": "Bearer other-token"}

DRAFTS = [
    {"title": "Teaching taster", "summary": "A taster.", "source": "edge_simulated", "form": "intensive", "focus": "capability"},
    {"title": "Outreach visit", "summary": "A visit.", "source": "edge_simulated", "form": "sustained", "focus": ["credibility"]},
    {"title": "Classroom volunteering", "summary": "Volunteer.", "source": "independent", "form": "evergreen", "focus": ["capital"]},
]


def _verify(token: str) -> VerifiedUser:
    if token == "other-token":
        return VerifiedUser(sub="other", username="other", email="other@kcl.ac.uk")
    raise CognitoAuthError("invalid token")


def _client(completion: FakeCompletion | None = None, *, dev_user: str | None = USER):
    settings = Settings(NODE_ENV="test", DEV_USER_EMAIL=dev_user)
    table = DynamoTable(table_name="kings-canvas-test", resource=FakeBotoTable())
    completion = completion or FakeCompletion(json.dumps(DRAFTS))
    services = build_services(settings, table=table, completion=completion)
    app = create_app(settings=settings, services=services, token_verifier=_verify)
    return TestClient(app), completion


def _create_step(client: TestClient, **fields) -> dict:
    r = client.post("/api/steps", json={"title": "Shadow a teacher", "bucket": "do-now", **fields})
    assert r.status_code == 200, r.text
    return r.json()["step"]


def test_saving_a_step_auto_generates_once():
    client, completion = _client()
    step = _create_step(client)

    r = client.get(f"/api/steps/{step['stepId']}/opportunities")
    assert r.status_code == 200
    body = r.json()
    assert body["stepId"] == step["stepId"]
    assert [o["title"] for o in body["opportunities"]] == [d["title"] for d in DRAFTS]
    assert all(o["user"] == USER and o["status"] == "suggested" for o in body["opportunities"])

    # Re-saving the same step does not regenerate.
    r = client.post("/api/steps", json={"stepId": step["stepId"], "title": "Shadow a teacher (updated)"})
    assert r.status_code == 200
    assert r.json()["step"]["title"] == "Shadow a teacher (updated)"
    assert len(completion.prompts) == 1


def test_step_save_succeeds_when_generation_fails():
    client, _ = _client(FakeCompletion(error=AiUpstreamError("AI offline")))
    step = _create_step(client)

    r = client.get(f"/api/steps/{step['stepId']}/opportunities")
    assert r.status_code == 200
    assert r.json()["opportunities"] == []


def test_suggestions_generate_only_once_accepted():
    client, completion = _client()
    r = client.post(
        "/api/steps",
        json={"intentionId": "int-1", "steps": [{"title": "Visit a school", "bucket": "do-now"}]},
    )
    assert r.status_code == 200
    (suggested,) = r.json()["steps"]
    assert suggested["status"] == "suggested"
    assert completion.prompts == []

    r = client.post(f"/api/steps/{suggested['stepId']}/opportunities/shuffle")
    assert r.status_code == 409
    assert r.headers["content-type"].startswith("application/problem+json")

    r = client.put("/api/steps", json={"stepId": suggested["stepId"], "status": "Accepted"})
    assert r.status_code == 200
    assert r.json()["step"]["status"] == "accepted"
    assert len(completion.prompts) == 1

    steps = client.get("/api/steps").json()["steps"]
    assert [s["title"] for s in steps] == ["Visit a school"]


def test_shuffle_replaces_batch_and_checks_ownership():
    client, completion = _client()
    step = _create_step(client)
    sid = step["stepId"]
    first = client.get(f"/api/steps/{sid}/opportunities").json()["opportunities"]

    assert client.post("/api/steps/missing/opportunities/shuffle").status_code == 404
    assert client.post(f"/api/steps/{sid}/opportunities/shuffle", headers=OTHER).status_code == 403
    assert client.get(f"/api/steps/{sid}/opportunities", headers=OTHER).status_code == 403

    r = client.post(f"/api/steps/{sid}/opportunities/shuffle")
    assert r.status_code == 200
    second = r.json()["opportunities"]
    assert [o["title"] for o in second] == [o["title"] for o in first]
    assert {o["id"] for o in second}.isdisjoint({o["id"] for o in first})
    assert len(client.get(f"/api/steps/{sid}/opportunities").json()["opportunities"]) == 3
    assert len(completion.prompts) == 2


def test_shuffle_maps_unexpected_failures_to_500():
    completion = FakeCompletion(json.dumps(DRAFTS))
    client, _ = _client(completion)
    step = _create_step(client)

    completion.response = {"content": "not valid json"}
    r = client.post(f"/api/steps/{step['stepId']}/opportunities/shuffle")
    assert r.status_code == 500
    assert r.json()["status"] == 500


def test_manual_generation_maps_error_status_codes():
    completion = FakeCompletion(json.dumps(DRAFTS))
    client, _ = _client(completion)
    sid = _create_step(client)["stepId"]

    r = client.post(f"/api/steps/{sid}/generate-opportunities")
    assert r.status_code == 200
    assert len(r.json()["opportunities"]) == 3

    completion.error = AiUpstreamError("AI offline")
    r = client.post(f"/api/steps/{sid}/generate-opportunities")
    assert r.status_code == 503
    assert r.json()["detail"] == "AI offline"

    completion.error = None
    completion.response = "[]"
    r = client.post(f"/api/steps/{sid}/generate-opportunities")
    assert r.status_code == 502
    assert r.headers["content-type"].startswith("application/problem+json")

    completion.response = "not valid json"
    assert client.post(f"/api/steps/{sid}/generate-opportunities").status_code == 500

    assert client.post(f"/api/steps/{sid}/generate-opportunities", headers=OTHER).status_code == 403
    assert client.post("/api/steps/missing/generate-opportunities").status_code == 404


def test_update_and_delete_opportunity():
    client, _ = _client()
    sid = _create_step(client)["stepId"]
    opp = client.get(f"/api/steps/{sid}/opportunities").json()["opportunities"][0]

    assert client.put(f"/api/opportunities/{opp['id']}", json={"status": "archived"}).status_code == 400
    assert client.put(f"/api/opportunities/{opp['id']}", json={"focus": ["unknown"]}).status_code == 400
    assert client.put(f"/api/opportunities/{opp['id']}", json={}).status_code == 400
    assert client.put(f"/api/opportunities/{opp['id']}", json={"status": "saved"}, headers=OTHER).status_code == 404

    r = client.put(f"/api/opportunities/{opp['id']}", json={"status": "Saved", "form": "Short-Form"})
    assert r.status_code == 200
    assert r.json()["opportunity"]["status"] == "saved"
    assert r.json()["opportunity"]["form"] == "short_form"

    assert client.delete(f"/api/opportunities/{opp['id']}", headers=OTHER).status_code == 404
    assert client.delete(f"/api/opportunities/{opp['id']}").status_code == 200
    assert client.delete(f"/api/opportunities/{opp['id']}").status_code == 404
    remaining = client.get(f"/api/steps/{sid}/opportunities").json()["opportunities"]
    assert opp["id"] not in {o["id"] for o in remaining}


def test_intention_title_reaches_the_prompt():
    client, completion = _client()
    r = client.put("/api/intentions", json={"intentions": [{"id": "int-1", "title": "Become a teacher"}]})
    assert r.status_code == 200
    assert client.get("/api/intentions").json()["intentions"] == [{"id": "int-1", "title": "Become a teacher"}]

    _create_step(client, intentionId="int-1")
    assert "Intention: Become a teacher" in completion.prompts[0]


def test_api_requires_a_bearer_token_without_dev_user():
    client, _ = _client(dev_user=None)

    r = client.get("/api/steps")
    assert r.status_code == 401
    assert r.headers["content-type"].startswith("application/problem+json")

    assert client.get("/api/steps", headers={"Authorization": "Bearer nope"}).status_code == 401
    assert client.get("/api/steps", headers=OTHER).status_code == 200
    assert client.get("/").status_code == 200


def test_intentions_with_wrongly_typed_fields_are_rejected():
    client, _ = _client()

    r = client.put("/api/intentions", json={"intentions": [{"id": "int-1", "title": 5}]})
    assert r.status_code == 422
    assert r.headers["content-type"].startswith("application/problem+json")
    assert [e["path"] for e in r.json()["errors"]] == ["intentions.0.title"]
    assert client.get("/api/intentions").json()["intentions"] == []


def test_steps_get_template_opportunities_without_an_openai_key():
    settings = Settings(NODE_ENV="test", DEV_USER_EMAIL=USER, OPENAI_API_KEY="")
    table = DynamoTable(table_name="kings-canvas-test", resource=FakeBotoTable())
    app = create_app(settings=settings, services=build_services(settings, table=table), token_verifier=_verify)
    client = TestClient(app)

    step = _create_step(client)
    opportunities = client.get(f"/api/steps/{step['stepId']}/opportunities").json()["opportunities"]

    assert [o["source"] for o in opportunities] == ["edge_simulated"] * 3 + ["independent"]
    assert opportunities[0]["title"] == "Join a King's Edge taster on routes into teaching"
