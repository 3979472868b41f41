"""
Integration tests for the FastAPI application.

These tests use TestClient against the full app with the Ollama mesh
mocked at the HTTP transport level.
"""

import json

import httpx
import pytest

pytestmark = pytest.mark.integration


def ndjson_lines(response) -> list[dict]:
    return [json.loads(line) for line in response.text.splitlines() if line.strip()]


def test_root_endpoint(api_client):
    response = api_client.get("/")

    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "Streaming Inference Gateway (Test)"
    assert data["metrics"] is None


def test_health_ok(api_client):
    response = api_client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["ollama_reachable"] is True
    assert data["remote_nodes"] == 1


def test_health_degraded(api_client, fake_ollama):
    fake_ollama.routes.clear()

    data = api_client.get("/health").json()
    assert data["status"] == "degraded"
    assert data["ollama_reachable"] is False


def test_request_id_header(api_client):
    response = api_client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


class TestChat:
    def test_streams_fragments_then_stats(self, api_client, fake_ollama, chat_body):
        fake_ollama.route(
            "localhost", "/api/chat",
            lambda r: httpx.Response(200, content=chat_body("<think>plan</think>", "Hello!")),
        )

        response = api_client.post("/chat", json={"message": "hi", "temperature": 0.2})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/x-ndjson")
        lines = ndjson_lines(response)
        assert lines[0] == {"answer": None, "thought": "plan", "is_thinking": True}
        assert lines[1] == {"answer": "Hello!", "thought": None, "is_thinking": False}
        assert lines[-1]["stats"]["completion_tokens"] == 20
        assert fake_ollama.json_body()["options"]["temperature"] == 0.2

    def test_history_and_persona_forwarded(self, api_client, fake_ollama, chat_body):
        fake_ollama.route("localhost", "/api/chat", lambda r: httpx.Response(200, content=chat_body("ok")))

        api_client.post(
            "/chat",
            json={
                "message": "and now?",
                "persona": "You are a pirate.",
                "history": [
                    {"text": "first", "sender": "USER"},
                    {"text": "reply", "sender": "ASSISTANT"},
                ],
            },
        )

        messages = fake_ollama.json_body()["messages"]
        assert "You are a pirate." in messages[0]["content"]
        assert [m["content"] for m in messages[1:]] == ["first", "reply", "and now?"]

    def test_failure_is_reported_in_band(self, api_client):
        response = api_client.post("/chat", json={"message": "hi"})

        assert response.status_code == 200
        lines = ndjson_lines(response)
        assert "**Error:**" in lines[0]["answer"]
        assert lines[-1] == {"stats": None}

    def test_remote_failover(self, api_client, fake_ollama, chat_body):
        fake_ollama.route("localhost", "/api/chat", lambda r: httpx.Response(200, content=chat_body("local")))

        lines = ndjson_lines(api_client.post("/chat", json={"message": "hi", "model": "studio/qwen2.5:14b"}))

        assert "System Alert" in lines[0]["answer"]
        assert lines[1]["answer"] == "local"
        assert lines[-1]["stats"] is not None

    def test_invalid_body(self, api_client):
        assert api_client.post("/chat", json={"history": []}).status_code == 422


class TestModels:
    def test_list_models(self, api_client, fake_ollama):
        fake_ollama.route(
            "localhost", "/api/tags",
            lambda r: httpx.Response(200, json={"models": [{"name": "llava:7b", "size": 4 * 1024 ** 3}]}),
        )

        data = api_client.get("/models").json()
        assert data[0]["name"] == "llava:7b"
        assert "VISION" in data[0]["capabilities"]
        assert data[0]["role"] == "GENERAL"

    def test_list_models_unreachable_maps_to_503(self, api_client):
        response = api_client.get("/models")

        assert response.status_code == 503
        assert response.json()["error"] == "llm_unavailable"

    def test_list_models_404_maps_to_404(self, api_client, fake_ollama):
        fake_ollama.route("localhost", "/api/tags", lambda r: httpx.Response(404))

        response = api_client.get("/models")
        assert response.status_code == 404
        assert response.json()["error"] == "model_not_found"

    def test_pull_model(self, api_client, fake_ollama, ndjson_body):
        fake_ollama.route(
            "localhost", "/api/pull",
            lambda r: httpx.Response(200, content=ndjson_body({"status": "pulling"}, {"status": "success"})),
        )

        response = api_client.post("/models/pull", json={"name": "llama3.1:8b"})
        assert response.json() == {"name": "llama3.1:8b", "success": True}
        assert fake_ollama.json_body() == {"name": "llama3.1:8b", "stream": True}

    def test_unload_model(self, api_client, fake_ollama):
        fake_ollama.route("localhost", "/api/generate", lambda r: httpx.Response(200, json={}))

        response = api_client.post("/models/unload", json={"name": "llama3.1:8b"})
        assert response.json()["success"] is True
        assert fake_ollama.json_body()["keep_alive"] == 0


class TestMesh:
    def test_mesh_snapshot(self, api_client, fake_ollama):
        fake_ollama.route("localhost", "/api/tags", lambda r: httpx.Response(200, json={"models": []}))

        data = api_client.get("/mesh").json()
        assert data["connected"] is True
        assert data["nodes"][0]["name"] == "studio"
        assert data["nodes"][0]["online"] is False

    def test_scan_merges_discovered_nodes(self, api_client, fake_ollama):
        fake_ollama.route(
            "mac-studio.local", "/api/version", lambda r: httpx.Response(200, json={"version": "0.5.0"})
        )

        def own_probes():
            return [
                r for r in fake_ollama.requests
                if (r.url.host, r.url.port, r.url.path) == ("localhost", 11434, "/api/version")
            ]

        before = len(own_probes())
        data = api_client.post("/mesh/scan").json()

        assert [n["url"] for n in data["discovered"]] == ["http://mac-studio.local:11434"]
        assert [n["name"] for n in data["nodes"]] == ["studio", "Mac Studio (mDNS)"]
        # The gateway's own endpoint is skipped
        assert len(own_probes()) == before


class TestShortTasks:
    def test_title(self, api_client, fake_ollama):
        fake_ollama.route("localhost", "/api/generate", lambda r: httpx.Response(200, json={"response": '"Pirate Talk"'}))
        assert api_client.post("/title", json={"message": "talk like a pirate"}).json() == {"title": "Pirate Talk"}

    def test_summary_unavailable(self, api_client):
        data = api_client.post("/summary", json={"text": "long conversation"}).json()
        assert data == {"summary": "Context summarization unavailable."}

    def test_plan(self, api_client, fake_ollama):
        fake_ollama.route("localhost", "/api/generate", lambda r: httpx.Response(200, json={"response": '["a", "b"]'}))

        steps = api_client.post("/plan", json={"goal": "ship it"}).json()["steps"]
        assert [s["description"] for s in steps] == ["a", "b"]
        assert all(s["status"] == "PENDING" for s in steps)


def test_logs_endpoint(api_client):
    api_client.get("/health")

    events = api_client.get("/logs", params={"limit": 5}).json()
    assert 0 < len(events) <= 5
    assert {"timestamp", "level", "message", "source"} <= set(events[0])
