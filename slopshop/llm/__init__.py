from slopshop.llm.config import DEFAULT_OLLAMA_URL, OllamaConfig, SamplingParams
from slopshop.llm.errors import LLMError, LLMErrorType, ModelNotFoundError, StreamError
from slopshop.llm.ollama import OllamaClient
from slopshop.llm.prompts import build_diff_prompt, build_prompt

__all__ = [
    "DEFAULT_OLLAMA_URL",
    "OllamaConfig",
    "SamplingParams",
    "LLMError",
    "LLMErrorType",
    "ModelNotFoundError",
    "StreamError",
    "OllamaClient",
    "build_prompt",
    "build_diff_prompt",
]
