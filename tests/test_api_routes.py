"""
HTTP surface tests.

A real ChatOrchestrator is injected through dependency overrides. Its providers
have no credentials and its search chain has no keys, so every answer is a
deterministic simulated response and no request leaves the process.
"""

import json

import pytest
from fastapi.testclient import TestClient

from orchestrator.core import INTERNAL_ERROR_MESSAGE
from server.app import create_app
from server import dependencies as deps

pytestmark = pytest.mark.integration


@pytest.fixture()
def app(orchestrator):
    app = create_app()

    # Clear singleton cache to avoid cross-test leakage
    if hasattr(deps.get_orchestrator, "_instance"):
        delattr(deps.get_orchestrator, "_instance")

    app.dependency_overrides[deps.get_orchestrator] = lambda: orchestrator
    return app


@pytest.fixture()
def client(app):
    return TestClient(app)


def sse_frames(response) -> list[dict]:
    frames = []
    for block in response.text.split("\n\n"):
        if block.startswith("data: "):
            frames.append(json.loads(block[len("data: "):]))
    return frames


# -------------------------------------------------------------------
# Health and middleware
# -------------------------------------------------------------------


def test_health_reports_provider_modes(client):
    r = client.get("/health")

    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "healthy"
    assert body["timestamp"].endswith("Z")
    assert body["providers"] == {"openrouter": "simulated", "mistral": "simulated", "gemini": "simulated"}


def test_request_id_is_echoed_or_generated(client):
    assert client.get("/health", headers={"X-Request-ID": "abc-123"}).headers["X-Request-ID"] == "abc-123"
    assert client.get("/health").headers["X-Request-ID"]


# -------------------------------------------------------------------
# /api/chat
# -------------------------------------------------------------------


def test_chat_unary(client):
    r = client.post("/api/chat", json={"message": "Explain recursion", "model": "gpt-5", "mode": "concise"})

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["model"] == "gpt-5"
    assert body["mode"] == "concise"
    assert body["response"].startswith("gpt-5 Response: You are GPT-5")


@pytest.mark.parametrize("payload", [{"model": "gpt-5"}, {"message": "hi"}, {"message": "", "model": "gpt-5"}])
def test_chat_missing_fields_is_400(client, payload):
    r = client.post("/api/chat", json=payload)

    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Message and model are required"}


def test_chat_invalid_mode_is_400_in_same_shape(client):
    r = client.post("/api/chat", json={"message": "hi", "model": "gpt-5", "mode": "verbose"})

    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert "mode" in body["error"]


def test_chat_internal_failure_is_500(client, orchestrator, monkeypatch):
    monkeypatch.setattr(orchestrator, "client_for", lambda model_id: 1 / 0)

    r = client.post("/api/chat", json={"message": "hi", "model": "gpt-5"})

    assert r.status_code == 500
    assert r.json() == {"success": False, "error": INTERNAL_ERROR_MESSAGE}


def test_chat_stream_is_server_sent_events(client):
    r = client.post("/api/chat", json={"message": "Explain recursion", "model": "claude-4", "stream": True})

    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/event-stream")
    assert r.headers["cache-control"] == "no-cache"
    frames = sse_frames(r)
    assert frames[-1] == {"chunk": "", "done": True}
    assert all(f["done"] is False for f in frames[:-1])
    text = "".join(f["chunk"] for f in frames[:-1])
    assert text.startswith("claude-4 Response: You are Claude 4 from Anthropic.")


def test_chat_stream_includes_search_progress(client):
    r = client.post("/api/chat", json={"message": "latest news", "model": "gpt-5", "stream": True})

    frames = sse_frames(r)
    types = [f.get("type") for f in frames if "type" in f]
    assert types[0] == "search_start"
    assert types[-1] == "search_complete"
    assert "search_result" in types


def test_chat_stream_without_search_when_disabled(client):
    r = client.post(
        "/api/chat", json={"message": "latest news", "model": "gpt-5", "stream": True, "useWebSearch": False}
    )

    assert not any("type" in f for f in sse_frames(r))


# -------------------------------------------------------------------
# /api/websearch
# -------------------------------------------------------------------


def test_websearch_returns_stub_results(client):
    r = client.post("/api/websearch", json={"query": "rust"})

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["query"] == "rust"
    assert body["results"][0]["source"] == "Fallback Search"
    assert body["searchInfo"] == {"totalResults": 1, "searchTime": 0.1}


@pytest.mark.parametrize("payload", [{}, {"query": ""}, {"query": "   "}])
def test_websearch_requires_query(client, payload):
    r = client.post("/api/websearch", json=payload)

    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Search query is required"}


def test_websearch_failure_is_500(client, orchestrator, monkeypatch):
    async def broken(query):
        raise RuntimeError("down")

    monkeypatch.setattr(orchestrator.search_chain, "search", broken)

    r = client.post("/api/websearch", json={"query": "rust"})

    assert r.status_code == 500
    assert r.json() == {"success": False, "error": "Search failed"}


def test_websearch_stream(client):
    r = client.post("/api/websearch/stream", json={"query": "rust"})

    frames = sse_frames(r)
    assert [f["type"] for f in frames][0] == "search_start"
    assert frames[-1]["type"] == "search_complete"
    assert frames[-1]["totalResults"] == 1


# -------------------------------------------------------------------
# /api/compare
# -------------------------------------------------------------------


def test_compare_unary(client):
    r = client.post("/api/compare", json={"message": "Explain recursion", "models": ["gpt-5", "gemini-2.5"]})

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert [res["model"] for res in body["results"]] == ["gpt-5", "gemini-2.5"]


@pytest.mark.parametrize("models", [["gpt-5"], ["a", "b", "c", "d", "e"]])
def test_compare_rejects_bad_model_counts(client, models):
    r = client.post("/api/compare", json={"message": "hi", "models": models})

    assert r.status_code == 400
    assert r.json()["success"] is False


def test_compare_requires_message(client):
    r = client.post("/api/compare/stream", json={"models": ["gpt-5", "claude-4"]})

    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Message and model are required"}


def test_compare_stream_tags_frames(client):
    r = client.post("/api/compare/stream", json={"message": "Explain recursion", "models": ["gpt-5", "claude-4"]})

    frames = sse_frames(r)
    for index, model in enumerate(["gpt-5", "claude-4"]):
        mine = [f for f in frames if f["index"] == index]
        assert all(f["model"] == model for f in mine)
        assert [f["done"] for f in mine].count(True) == 1
        assert mine[-1] == {"chunk": "", "done": True, "model": model, "index": index}
