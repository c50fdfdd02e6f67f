import asyncio
import json
import logging
import time
from collections.abc import Callable

import httpx

from slopshop.llm.config import OllamaConfig, SamplingParams
from slopshop.llm.errors import (
    LLMError,
    LLMErrorType,
    ModelNotFoundError,
    NetworkError,
    ProviderError,
    StreamError,
    TimeoutError,
)
from slopshop.util.events import EventLogger, NullEventLogger, NULL_EVENT_LOGGER

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[str], None]


class OllamaClient:
    """Streaming client for the Ollama `/api/generate` endpoint."""

    def __init__(
        self,
        config: OllamaConfig,
        event_logger: EventLogger | NullEventLogger | None = None,
    ):
        self.config = config
        self.event_logger = event_logger or NULL_EVENT_LOGGER

    @property
    def model_name(self) -> str:
        return self.config.model

    async def _get_client(self) -> httpx.AsyncClient:
        # One client per request; asyncio.run() gives each call its own loop.
        return httpx.AsyncClient(timeout=self.config.timeout_sec)

    def _build_request_body(
        self,
        prompt: str,
        model: str,
        sampling: SamplingParams,
    ) -> dict:
        return {
            "model": model,
            "prompt": prompt,
            "stream": True,
            "options": {
                "temperature": sampling.temperature,
                "top_p": sampling.top_p,
            },
        }

    def _classify_error(self, status_code: int, body_text: str, model: str | None = None) -> LLMError:
        message = f"HTTP error {status_code}: {body_text.strip()}"
        if status_code in (401, 403):
            return LLMError(LLMErrorType.AUTH_FAILED, message, retryable=False)
        if status_code == 404:
            return ModelNotFoundError(message, model=model or self.config.model)
        if status_code == 400:
            return LLMError(LLMErrorType.INVALID_REQUEST, message, retryable=False)
        if status_code == 429:
            return LLMError(LLMErrorType.RATE_LIMITED, message, retryable=True)
        return ProviderError(message, status_code=status_code)

    async def stream_generate(
        self,
        prompt: str,
        sampling: SamplingParams | None = None,
        model: str | None = None,
        on_chunk: ChunkCallback | None = None,
    ) -> str:
        """
        Send a prompt and stream the answer.

        Each NDJSON line's `response` text is passed to `on_chunk` as it
        arrives. Malformed lines are skipped. Reading stops at the first
        line with `done` set; a line carrying `error` aborts the stream.

        Returns:
            The full response text

        Raises:
            LLMError: On HTTP errors, in-stream errors, timeouts and
                connection failures
        """

        model = model or self.config.model
        sampling = sampling or SamplingParams()
        body = self._build_request_body(prompt, model, sampling)
        self.event_logger.log_llm_request_started(model=model, prompt_chars=len(prompt))
        started = time.monotonic()

        parts: list[str] = []
        client = await self._get_client()
        try:
            async with client.stream("POST", self.config.generate_url, json=body) as response:
                if response.status_code != 200:
                    raw = await response.aread()
                    raise self._classify_error(
                        response.status_code,
                        raw.decode("utf-8", errors="replace"),
                        model=model,
                    )

                async for line in response.aiter_lines():
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        payload = json.loads(line)
                    except json.JSONDecodeError:
                        logger.debug("Skipping malformed stream line: %s", line[:200])
                        continue
                    if not isinstance(payload, dict):
                        continue
                    if payload.get("error"):
                        raise StreamError(
                            f"model server error: {payload['error']}",
                            partial_chars=sum(len(p) for p in parts),
                        )

                    chunk = payload.get("response") or ""
                    if chunk:
                        parts.append(chunk)
                        if on_chunk is not None:
                            on_chunk(chunk)

                    if payload.get("done"):
                        break

        except httpx.TimeoutException as e:
            error = TimeoutError(
                f"request to {self.config.generate_url} timed out: {e}",
                timeout_sec=self.config.timeout_sec,
            )
            self._log_failure(error)
            raise error from e
        except httpx.RequestError as e:
            error = NetworkError(f"error sending request: {e}", url=self.config.generate_url)
            self._log_failure(error)
            raise error from e
        except LLMError as e:
            self._log_failure(e)
            raise
        finally:
            await client.aclose()

        text = "".join(parts)
        latency_ms = int((time.monotonic() - started) * 1000)
        self.event_logger.log_llm_request_finished(
            model=model,
            response_chars=len(text),
            latency_ms=latency_ms,
        )
        logger.debug("Model %s answered %d chars in %d ms", model, len(text), latency_ms)
        return text

    def _log_failure(self, error: LLMError) -> None:
        logger.error("Ollama request failed: %s", error)
        self.event_logger.log_llm_request_failed(
            error_type=error.error_type,
            message=str(error),
            retryable=error.retryable,
        )

    def generate(
        self,
        prompt: str,
        sampling: SamplingParams | None = None,
        model: str | None = None,
    ) -> str:
        return asyncio.run(self.stream_generate(prompt, sampling=sampling, model=model))
