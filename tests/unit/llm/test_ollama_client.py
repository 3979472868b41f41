"""Unit tests for OllamaClient against httpx.MockTransport."""

import json

import httpx
import pytest

from inference_gateway.llm.exceptions import (
    AuthenticationError,
    LLMConnectionError,
    LLMGenerationError,
    ModelNotFoundError,
    ProtocolParseError,
)
from inference_gateway.llm.ollama_client import OllamaClient, parse_chat_line
from inference_gateway.models.chat_models import (
    ChatMessage,
    InferenceOptions,
    InferenceRequest,
)
from inference_gateway.models.enums import ModelCapability, Role

LOCAL = "http://localhost:11434"


@pytest.fixture
def chat_request() -> InferenceRequest:
    return InferenceRequest(
        model="llama3.1:8b",
        messages=[
            ChatMessage(role=Role.SYSTEM, content="sys"),
            ChatMessage(role=Role.USER, content="hi"),
        ],
        options=InferenceOptions(context_window=4096),
    )


def make_client(handler, **kwargs) -> OllamaClient:
    return OllamaClient(
        base_url=LOCAL,
        initial_backoff=0.0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestParseChatLine:
    def test_blank_line(self):
        assert parse_chat_line("   ") is None

    def test_content_line(self):
        chunk = parse_chat_line('{"message": {"role": "assistant", "content": "Hel"}, "done": false}')
        assert chunk.content == "Hel"
        assert not chunk.done
        assert chunk.stats is None

    def test_terminal_line_carries_stats(self):
        chunk = parse_chat_line(json.dumps({
            "done": True,
            "total_duration": 3_000_000_000,
            "load_duration": 500_000_000,
            "prompt_eval_count": 10,
            "eval_count": 50,
            "eval_duration": 2_000_000_000,
        }))
        assert chunk.done
        assert chunk.stats.total_duration_ms == 3000
        assert chunk.stats.load_duration_ms == 500
        assert chunk.stats.prompt_tokens == 10
        assert chunk.stats.completion_tokens == 50
        assert chunk.stats.tokens_per_second == 25

    def test_zero_eval_duration_gives_zero_rate(self):
        chunk = parse_chat_line('{"done": true, "eval_count": 5, "eval_duration": 0}')
        assert chunk.stats.tokens_per_second == 0

    def test_invalid_json(self):
        with pytest.raises(ProtocolParseError):
            parse_chat_line('{"message": {"content": "trunc')

    def test_non_object(self):
        with pytest.raises(ProtocolParseError):
            parse_chat_line("[1, 2]")

    def test_error_field(self):
        with pytest.raises(LLMGenerationError, match="out of memory"):
            parse_chat_line('{"error": "out of memory"}')


class TestOpenChatStream:
    @pytest.mark.asyncio
    async def test_streams_chunks_and_sends_payload(self, chat_request, chat_body):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=chat_body("Hel", "lo"))

        async with make_client(handler) as client:
            async with client.open_chat_stream(
                chat_request, base_url="http://studio.local:11434", auth_header="Bearer k"
            ) as chunks:
                received = [chunk async for chunk in chunks]

        assert seen["url"] == "http://studio.local:11434/api/chat"
        assert seen["auth"] == "Bearer k"
        assert seen["body"]["stream"] is True
        assert seen["body"]["options"]["num_ctx"] == 4096
        assert [c.content for c in received] == ["Hel", "lo", None]
        assert received[-1].done
        assert received[-1].stats.completion_tokens == 20

    @pytest.mark.asyncio
    async def test_malformed_lines_are_skipped(self, chat_request):
        body = (
            b'{"message": {"content": "a"}, "done": false}\n'
            b"not json at all\n"
            b"\n"
            b'{"message": {"content": "b"}, "done": false}\n'
            b'{"done": true}\n'
        )
        async with make_client(lambda r: httpx.Response(200, content=body)) as client:
            async with client.open_chat_stream(chat_request) as chunks:
                received = [chunk async for chunk in chunks]
        assert [c.content for c in received] == ["a", "b", None]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,exc_type",
        [(404, ModelNotFoundError), (401, AuthenticationError), (500, LLMGenerationError)],
    )
    async def test_error_status_raises_on_open(self, chat_request, status, exc_type):
        async with make_client(lambda r: httpx.Response(status, text="nope")) as client:
            with pytest.raises(exc_type):
                async with client.open_chat_stream(chat_request):
                    pass

    @pytest.mark.asyncio
    async def test_network_error_becomes_connection_error(self, chat_request):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(LLMConnectionError):
                async with client.open_chat_stream(chat_request):
                    pass


class TestShortCalls:
    @pytest.mark.asyncio
    async def test_generate_returns_response_field(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"response": "Short Title"})

        async with make_client(handler) as client:
            text = await client.generate("m", "prompt", options={"temperature": 0.0}, format="json")

        assert text == "Short Title"
        assert seen["body"] == {
            "model": "m",
            "prompt": "prompt",
            "stream": False,
            "options": {"temperature": 0.0},
            "format": "json",
        }

    @pytest.mark.asyncio
    async def test_generate_retries_then_succeeds(self):
        responses = iter([httpx.Response(503), httpx.Response(200, json={"response": "ok"})])
        async with make_client(lambda r: next(responses)) as client:
            assert await client.generate("m", "p") == "ok"

    @pytest.mark.asyncio
    async def test_list_models_tags_capabilities(self):
        tags = {
            "models": [
                {
                    "name": "llava:13b",
                    "size": 8 * 1024 ** 3,
                    "digest": "abc",
                    "details": {"family": "llama", "parameter_size": "13B", "quantization_level": "Q4_0"},
                },
                {"name": "deepseek-coder:6.7b"},
            ]
        }
        async with make_client(lambda r: httpx.Response(200, json=tags)) as client:
            models = await client.list_models()

        llava, coder = models
        assert llava.family == "llama"
        assert llava.size_gb == 8.0
        assert ModelCapability.VISION in llava.capabilities
        assert coder.family == "Unknown"
        assert ModelCapability.CODER in coder.capabilities

    @pytest.mark.asyncio
    async def test_health_check(self):
        async with make_client(lambda r: httpx.Response(200, json={"version": "0.5.0"})) as client:
            assert await client.health_check() is True

        def down(request):
            raise httpx.ConnectError("refused", request=request)

        async with make_client(down) as client:
            assert await client.health_check() is False


class TestModelManagement:
    @pytest.mark.asyncio
    async def test_provision_model_success(self, ndjson_body):
        body = ndjson_body(
            {"status": "pulling manifest"},
            {"status": "downloading", "completed": 50, "total": 100},
            {"status": "success"},
        )
        async with make_client(lambda r: httpx.Response(200, content=body)) as client:
            assert await client.provision_model("llama3.1:8b") is True

    @pytest.mark.asyncio
    async def test_provision_model_error_line_fails(self, ndjson_body):
        body = ndjson_body({"status": "pulling manifest"}, {"error": "file does not exist"})
        async with make_client(lambda r: httpx.Response(200, content=body)) as client:
            assert await client.provision_model("nope:1b") is False

    @pytest.mark.asyncio
    async def test_provision_model_ignores_partial_lines(self):
        body = b'{"status": "pulling"}\n{"status": "dow\n{"status": "success"}\n'
        async with make_client(lambda r: httpx.Response(200, content=body)) as client:
            assert await client.provision_model("llama3.1:8b") is True

    @pytest.mark.asyncio
    async def test_provision_model_retries_unavailable_start(self, ndjson_body):
        body = ndjson_body({"status": "pulling manifest"}, {"status": "success"})
        statuses = iter([503, 200])
        calls = []

        def handler(request):
            calls.append(request.url.path)
            status = next(statuses)
            return httpx.Response(status, content=body if status == 200 else b"")

        async with make_client(handler) as client:
            assert await client.provision_model("llama3.1:8b") is True
        assert calls == ["/api/pull", "/api/pull"]

    @pytest.mark.asyncio
    async def test_provision_model_gives_up_after_retries(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler, max_retries=2) as client:
            assert await client.provision_model("llama3.1:8b") is False
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_provision_model_missing_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        async with make_client(handler) as client:
            assert await client.provision_model("nope:1b") is False
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_unload_model_sends_keep_alive_zero(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={})

        async with make_client(handler) as client:
            assert await client.unload_model("llama3.1:8b") is True
        assert seen["body"] == {"model": "llama3.1:8b", "keep_alive": 0}
