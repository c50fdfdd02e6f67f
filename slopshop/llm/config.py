from pydantic import BaseModel, ConfigDict, Field

DEFAULT_OLLAMA_URL = "http://localhost:11434"


class SamplingParams(BaseModel):
    model_config = ConfigDict(extra="forbid")

    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    top_p: float = Field(default=0.9, gt=0.0, le=1.0)


class OllamaConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str = DEFAULT_OLLAMA_URL
    model: str = "qwen3:latest"
    diff_model: str = "qwen3-coder"
    timeout_sec: float = Field(default=300.0, gt=0)

    @property
    def generate_url(self) -> str:
        return f"{self.url.rstrip('/')}/api/generate"
