import pytest
from fastapi.testclient import TestClient

from task_evaluator.main import create_app
from task_evaluator.services.ai_evaluator import GeminiEvaluator
from task_evaluator.services.orchestrator import EvaluationOrchestrator
from task_evaluator.services.request_builder import RequestBuilder

from conftest import fake_genai_client


@pytest.fixture
def client(orchestrator):
    return TestClient(create_app(orchestrator=orchestrator))


def post_code(client, task="Build a card", code="const x = 1;"):
    return client.post("/api/evaluate", data={"taskName": task, "submissionType": "code", "code": code})


def test_evaluate_code(client):
    resp = post_code(client)

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    data = body["data"]
    assert data["taskName"] == "Build a card"
    assert data["submissionType"] == "code"
    assert data["code"] == "const x = 1;"
    assert data["imageUrl"] is None
    assert data["score"] == 9
    assert data["feedback"] == "Clean code"
    assert data["id"] and data["createdAt"] and data["updatedAt"]


def test_evaluate_image(client, png_bytes):
    resp = client.post(
        "/api/evaluate",
        data={"taskName": "Navbar", "submissionType": "image"},
        files={"image": ("nav.png", png_bytes, "image/png")},
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["submissionType"] == "image"
    assert data["code"] is None
    assert data["imageUrl"].endswith("-nav.png")


def test_missing_fields_are_rejected(client):
    resp = client.post("/api/evaluate", data={"submissionType": "video"})

    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == "Invalid input data."
    assert "Task name is required." in body["details"]
    assert "Submission type must be 'code' or 'image'." in body["details"]


def test_blank_code_is_rejected(client):
    resp = post_code(client, code="   ")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Code content is required for code submissions."


def test_image_required_for_image_submissions(client):
    resp = client.post("/api/evaluate", data={"taskName": "Navbar", "submissionType": "image"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "An image file is required for image submissions."


def test_non_image_upload_is_rejected(client):
    resp = client.post(
        "/api/evaluate",
        data={"taskName": "Navbar", "submissionType": "image"},
        files={"image": ("notes.txt", b"hello", "text/plain")},
    )
    assert resp.status_code == 400
    assert "Only image files" in resp.json()["error"]


def test_oversized_upload_is_rejected(client, monkeypatch):
    monkeypatch.setattr("task_evaluator.api.evaluations.settings.max_upload_bytes", 4)
    resp = client.post(
        "/api/evaluate",
        data={"taskName": "Navbar", "submissionType": "image"},
        files={"image": ("big.png", b"0123456789", "image/png")},
    )
    assert resp.status_code == 400
    assert "upload limit" in resp.json()["error"]


def test_ai_protocol_error_maps_to_500(extractor, store):
    orch = EvaluationOrchestrator(
        RequestBuilder(extractor), GeminiEvaluator(fake_genai_client("no json here")), store
    )
    resp = post_code(TestClient(create_app(orchestrator=orch)))

    assert resp.status_code == 500
    assert resp.json()["success"] is False
    assert "could not find JSON" in resp.json()["error"]
    assert store.list_all() == []


def test_history_and_lookup(client):
    first = post_code(client, task="First").json()["data"]
    second = post_code(client, task="Second").json()["data"]

    history = client.get("/api/evaluations").json()
    assert history["success"] is True
    assert [e["id"] for e in history["data"]] == [second["id"], first["id"]]

    one = client.get(f"/api/evaluations/{first['id']}")
    assert one.status_code == 200
    assert one.json()["data"]["taskName"] == "First"


def test_unknown_evaluation_is_404(client):
    resp = client.get("/api/evaluations/nope")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Evaluation not found."}


def test_unknown_route_is_404(client):
    resp = client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert resp.json()["error"].startswith("Endpoint not found")


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "OK"
    assert body["database"] == "Connected"
