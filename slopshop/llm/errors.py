from enum import StrEnum


class LLMErrorType(StrEnum):
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    AUTH_FAILED = "auth_failed"
    RATE_LIMITED = "rate_limited"
    INVALID_REQUEST = "invalid_request"
    MODEL_NOT_FOUND = "model_not_found"
    INVALID_RESPONSE = "invalid_response"
    PROVIDER_ERROR = "provider_error"


class LLMError(Exception):
    """
    A request to the model server failed.

    `retryable` marks failures worth another attempt (timeouts, an
    unreachable server, 429 and 5xx answers); `details` holds whatever
    context the raising site had.
    """

    def __init__(
        self,
        error_type: LLMErrorType,
        message: str,
        retryable: bool = False,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.error_type = error_type
        self.retryable = retryable
        self.details = details or {}


class TimeoutError(LLMError):
    def __init__(self, message: str, timeout_sec: float | None = None):
        super().__init__(
            LLMErrorType.TIMEOUT,
            message,
            retryable=True,
            details={"timeout_sec": timeout_sec},
        )


class NetworkError(LLMError):
    """The server could not be reached or the connection broke mid-stream."""

    def __init__(self, message: str, url: str | None = None):
        super().__init__(
            LLMErrorType.NETWORK_ERROR,
            message,
            retryable=True,
            details={"url": url},
        )


class ModelNotFoundError(LLMError):
    """Ollama answers 404 for a model that has not been pulled."""

    def __init__(self, message: str, model: str):
        super().__init__(
            LLMErrorType.MODEL_NOT_FOUND,
            message,
            retryable=False,
            details={"model": model},
        )
        self.model = model


class StreamError(LLMError):
    """The server reported an error inside a 200 stream."""

    def __init__(self, message: str, partial_chars: int = 0):
        super().__init__(
            LLMErrorType.INVALID_RESPONSE,
            message,
            retryable=False,
            details={"partial_chars": partial_chars},
        )


class ProviderError(LLMError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(
            LLMErrorType.PROVIDER_ERROR,
            message,
            retryable=True,
            details={"status_code": status_code},
        )
