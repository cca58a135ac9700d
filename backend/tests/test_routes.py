import json

import httpx
import pytest
from fastapi.testclient import TestClient

import config
from codeui import llm
from codeui.ai_models import ALL_MODELS
from codeui.errors import ConfigurationError, GenerationError
from main import app
from tests.fakes import normalized_frame, upstream_frame


class FakeCompletionStream:
    def __init__(self, chunks):
        self.chunks = chunks
        self.closed = False

    def iter_bytes(self):
        return iter(self.chunks)

    def close(self):
        self.closed = True


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def upstream(monkeypatch):
    """Replace the OpenRouter call; records requests and returns canned chunks"""
    calls = []
    streams = []
    outcome = {"chunks": [], "error": None}

    def fake_open(request):
        calls.append(request)
        if outcome["error"] is not None:
            raise outcome["error"]
        stream = FakeCompletionStream(outcome["chunks"])
        streams.append(stream)
        return stream

    monkeypatch.setattr(llm, "open_completion_stream", fake_open)
    return {"calls": calls, "streams": streams, "outcome": outcome}


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_models_lists_enabled_models(client, monkeypatch):
    monkeypatch.setattr(config, "ENABLED_AI_MODELS", None)
    response = client.get("/api/ai/models")

    body = response.json()
    assert body["count"] == len(ALL_MODELS)
    assert body["models"][0]["id"] == ALL_MODELS[0].id

    monkeypatch.setattr(config, "ENABLED_AI_MODELS", "deepseek/deepseek-r1, unknown/model")
    body = client.get("/api/ai/models").json()
    assert [m["id"] for m in body["models"]] == ["deepseek/deepseek-r1"]
    assert body["models"][0]["supports_reasoning"] is True


def test_generation_streams_normalized_frames(client, upstream):
    upstream["outcome"]["chunks"] = [
        upstream_frame(reasoning="thinking..."),
        upstream_frame(content="<!DOCTYPE html>"),
        upstream_frame(content="<html></html>"),
        b"data: [DONE]\n\n",
    ]

    response = client.post("/api/ai", json={"prompt": "A landing page", "model": "deepseek/deepseek-r1"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    assert response.text == "".join([
        normalized_frame("thinking", "thinking...").decode("utf-8"),
        normalized_frame("content", "<!DOCTYPE html>").decode("utf-8"),
        normalized_frame("content", "<html></html>").decode("utf-8"),
    ])

    request = upstream["calls"][0]
    assert request.prompt == "A landing page"
    assert request.model == "deepseek/deepseek-r1"
    assert not request.is_follow_up
    assert upstream["streams"][0].closed


def test_upstream_failure_mid_stream_becomes_error_frame(client, upstream):
    def chunks():
        yield upstream_frame(content="<div>")
        raise httpx.ReadError("connection reset by peer")

    upstream["outcome"]["chunks"] = chunks()

    response = client.post("/api/ai", json={"prompt": "x"})

    frames = [json.loads(line[len("data: "):]) for line in response.text.split("\n\n") if line]
    assert frames[0] == {"type": "content", "data": "<div>"}
    assert frames[-1]["type"] == "error"
    assert "connection reset" in frames[-1]["data"]


@pytest.mark.parametrize("body", [{}, {"prompt": ""}, {"prompt": "   "}, {"prompt": 5}])
def test_prompt_is_required(client, upstream, body):
    response = client.post("/api/ai", json=body)

    assert response.status_code == 400
    assert response.json() == {"error": "Prompt is required"}
    assert upstream["calls"] == []


def test_invalid_json_body(client, upstream):
    response = client.post("/api/ai", content=b"{broken", headers={"content-type": "application/json"})

    assert response.status_code == 400


def test_follow_up_sends_current_html(client, upstream):
    client.post(
        "/api/ai",
        json={"prompt": "Make it blue", "currentHtml": "<html></html>", "isFollowUp": True},
    )

    request = upstream["calls"][0]
    assert request.is_follow_up
    assert request.current_html == "<html></html>"


def test_put_is_always_a_follow_up(client, upstream):
    response = client.put("/api/ai", json={"prompt": "Tweak", "currentHtml": "<html></html>"})

    assert response.status_code == 200
    assert upstream["calls"][0].is_follow_up


def test_missing_api_key_is_a_server_error(client, upstream):
    upstream["outcome"]["error"] = ConfigurationError("OpenRouter API key not configured")

    response = client.post("/api/ai", json={"prompt": "x"})

    assert response.status_code == 500
    assert response.json() == {"error": "OpenRouter API key not configured"}


def test_provider_status_is_forwarded(client, upstream):
    upstream["outcome"]["error"] = GenerationError("AI service error", status_code=429)

    response = client.post("/api/ai", json={"prompt": "x"})

    assert response.status_code == 429
    assert response.json() == {"error": "AI service error"}


def test_unexpected_error_is_internal(client, upstream):
    upstream["outcome"]["error"] = KeyError("boom")

    response = client.post("/api/ai", json={"prompt": "x"})

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_validate_styles(client):
    response = client.post(
        "/api/styles/validate",
        json={"styles": {"opacity": 2, "color": "#ABC", "width": "wide", "gridArea": "main"}},
    )

    results = response.json()["results"]
    assert results["opacity"]["sanitizedValue"] == 1
    assert results["opacity"]["warning"]
    assert results["color"] == {
        "isValid": True,
        "sanitizedValue": "#aabbcc",
        "error": None,
        "warning": None,
    }
    assert not results["width"]["isValid"]
    assert results["gridArea"]["sanitizedValue"] == "main"
