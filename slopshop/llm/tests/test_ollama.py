import asyncio
import json
from contextlib import asynccontextmanager

import httpx
import pytest

from slopshop.llm.config import DEFAULT_OLLAMA_URL, OllamaConfig, SamplingParams
from slopshop.llm.errors import LLMError, LLMErrorType, ModelNotFoundError, StreamError
from slopshop.llm.ollama import OllamaClient
from slopshop.util.events import EventLogger, read_events

GENERATE_URL = f"{DEFAULT_OLLAMA_URL}/api/generate"


def make_client(**kwargs) -> OllamaClient:
    return OllamaClient(OllamaConfig(), **kwargs)


def ndjson(*payloads: dict) -> list[str]:
    return [json.dumps(p) for p in payloads]


class FakeStreamResponse:
    def __init__(self, status_code: int, lines: list[str] | None = None, body: bytes = b""):
        self.status_code = status_code
        self._lines = lines or []
        self._body = body

    async def aread(self) -> bytes:
        return self._body

    async def aiter_lines(self):
        for line in self._lines:
            yield line


class FakeClient:
    def __init__(self, response: object, state: dict):
        self._response = response
        self._state = state

    @asynccontextmanager
    async def stream(self, method: str, url: str, json: dict):
        self._state["requests"].append({"method": method, "url": url, "json": json})
        if isinstance(self._response, Exception):
            raise self._response
        yield self._response

    async def aclose(self):
        self._state["closed"] += 1


@pytest.fixture
def fake_backend(monkeypatch: pytest.MonkeyPatch):
    state: dict = {"requests": [], "closed": 0, "response": None}

    async def fake_get_client(self):
        return FakeClient(state["response"], state)

    monkeypatch.setattr(OllamaClient, "_get_client", fake_get_client)
    return state


class TestBuildRequestBody:
    def test_body_fields(self):
        client = make_client()

        body = client._build_request_body("hi", "qwen3:latest", SamplingParams(temperature=0.2, top_p=0.5))

        assert body == {
            "model": "qwen3:latest",
            "prompt": "hi",
            "stream": True,
            "options": {"temperature": 0.2, "top_p": 0.5},
        }

    def test_generate_url_strips_trailing_slash(self):
        config = OllamaConfig(url="http://gpu-box:11434/")

        assert config.generate_url == "http://gpu-box:11434/api/generate"

    def test_model_name_property(self):
        assert make_client().model_name == "qwen3:latest"


class TestClassifyError:
    def test_auth_failed(self):
        error = make_client()._classify_error(401, "unauthorized")

        assert error.error_type == LLMErrorType.AUTH_FAILED
        assert error.retryable is False

    def test_missing_model(self):
        error = make_client()._classify_error(404, '{"error":"model not found"}', model="llama3")

        assert isinstance(error, ModelNotFoundError)
        assert error.error_type == LLMErrorType.MODEL_NOT_FOUND
        assert error.model == "llama3"
        assert error.retryable is False
        assert "HTTP error 404" in str(error)
        assert "model not found" in str(error)

    def test_bad_request(self):
        error = make_client()._classify_error(400, "bad options")

        assert error.error_type == LLMErrorType.INVALID_REQUEST

    def test_missing_model_defaults_to_configured(self):
        error = make_client()._classify_error(404, "")

        assert error.details == {"model": "qwen3:latest"}

    def test_rate_limited(self):
        error = make_client()._classify_error(429, "slow down")

        assert error.error_type == LLMErrorType.RATE_LIMITED
        assert error.retryable is True

    def test_server_error_is_provider_error(self):
        error = make_client()._classify_error(500, "boom")

        assert error.error_type == LLMErrorType.PROVIDER_ERROR
        assert error.retryable is True
        assert error.details == {"status_code": 500}


class TestStreamGenerate:
    def test_streams_chunks_in_order(self, fake_backend):
        fake_backend["response"] = FakeStreamResponse(
            200,
            ndjson(
                {"response": "Hel", "done": False},
                {"response": "lo", "done": False},
                {"response": "", "done": True},
            ),
        )
        seen: list[str] = []

        text = asyncio.run(make_client().stream_generate("hi", on_chunk=seen.append))

        assert text == "Hello"
        assert seen == ["Hel", "lo"]
        assert fake_backend["closed"] == 1

    def test_request_uses_overrides(self, fake_backend):
        fake_backend["response"] = FakeStreamResponse(200, ndjson({"response": "ok", "done": True}))

        asyncio.run(
            make_client().stream_generate(
                "diff please",
                sampling=SamplingParams(temperature=0.3, top_p=0.8),
                model="qwen3-coder",
            )
        )

        request = fake_backend["requests"][0]
        assert request["method"] == "POST"
        assert request["url"] == GENERATE_URL
        assert request["json"]["model"] == "qwen3-coder"
        assert request["json"]["options"] == {"temperature": 0.3, "top_p": 0.8}

    def test_malformed_lines_skipped(self, fake_backend):
        fake_backend["response"] = FakeStreamResponse(
            200,
            ["not json", "", "[1, 2]", *ndjson({"response": "fine", "done": True})],
        )

        assert asyncio.run(make_client().stream_generate("hi")) == "fine"

    def test_stops_at_done(self, fake_backend):
        fake_backend["response"] = FakeStreamResponse(
            200,
            ndjson({"response": "a", "done": True}, {"response": "b", "done": False}),
        )

        assert asyncio.run(make_client().stream_generate("hi")) == "a"

    def test_http_error_raises(self, fake_backend):
        fake_backend["response"] = FakeStreamResponse(404, body=b'{"error":"model \'x\' not found"}')

        with pytest.raises(LLMError) as exc_info:
            asyncio.run(make_client().stream_generate("hi"))

        assert exc_info.value.error_type == LLMErrorType.MODEL_NOT_FOUND
        assert fake_backend["closed"] == 1

    def test_error_line_aborts_stream(self, fake_backend):
        fake_backend["response"] = FakeStreamResponse(
            200,
            ndjson({"response": "par", "done": False}, {"error": "out of memory"}),
        )
        seen: list[str] = []

        with pytest.raises(StreamError) as exc_info:
            asyncio.run(make_client().stream_generate("hi", on_chunk=seen.append))

        assert "out of memory" in str(exc_info.value)
        assert exc_info.value.details == {"partial_chars": 3}
        assert seen == ["par"]
        assert fake_backend["closed"] == 1

    def test_connection_error_is_network_error(self, fake_backend):
        fake_backend["response"] = httpx.ConnectError(
            "connection refused",
            request=httpx.Request("POST", GENERATE_URL),
        )

        with pytest.raises(LLMError) as exc_info:
            asyncio.run(make_client().stream_generate("hi"))

        assert exc_info.value.error_type == LLMErrorType.NETWORK_ERROR
        assert exc_info.value.retryable is True
        assert exc_info.value.details == {"url": GENERATE_URL}

    def test_timeout_is_timeout_error(self, fake_backend):
        fake_backend["response"] = httpx.ReadTimeout(
            "read timed out",
            request=httpx.Request("POST", GENERATE_URL),
        )

        with pytest.raises(LLMError) as exc_info:
            asyncio.run(make_client().stream_generate("hi"))

        assert exc_info.value.error_type == LLMErrorType.TIMEOUT

    def test_events_logged(self, fake_backend, tmp_path):
        events_file = tmp_path / "events.jsonl"
        fake_backend["response"] = FakeStreamResponse(200, ndjson({"response": "abc", "done": True}))

        asyncio.run(make_client(event_logger=EventLogger(events_file)).stream_generate("prompt"))

        records = list(read_events(events_file))
        assert [r.event_type for r in records] == ["llm_request_started", "llm_request_finished"]
        assert records[0].payload == {"model": "qwen3:latest", "prompt_chars": 6}
        assert records[1].payload["response_chars"] == 3

    def test_failure_event_logged(self, fake_backend, tmp_path):
        events_file = tmp_path / "events.jsonl"
        fake_backend["response"] = FakeStreamResponse(500, body=b"boom")

        with pytest.raises(LLMError):
            asyncio.run(make_client(event_logger=EventLogger(events_file)).stream_generate("p"))

        records = list(read_events(events_file))
        assert records[-1].event_type == "llm_request_failed"
        assert records[-1].payload["error_type"] == "provider_error"


class TestGenerate:
    def test_generate_is_synchronous(self, fake_backend):
        fake_backend["response"] = FakeStreamResponse(
            200,
            ndjson({"response": "--- a/f\n", "done": False}, {"response": "+++ b/f\n", "done": True}),
        )

        assert make_client().generate("x") == "--- a/f\n+++ b/f\n"
