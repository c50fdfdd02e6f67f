import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field

from slopshop.llm.config import OllamaConfig, SamplingParams
from slopshop.repo.context import DEFAULT_EXCLUDE

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path(".slopshop.yaml")


def _env_truthy(name: str) -> bool:
    return os.getenv(name, "").lower() in ("1", "true", "yes", "on")


class ToolsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    command_timeout_sec: float | None = Field(default=None, gt=0)
    confine_to_repo: bool = True


class SlopShopConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ollama: OllamaConfig = Field(default_factory=OllamaConfig)
    sampling: SamplingParams = Field(default_factory=SamplingParams)
    diff_sampling: SamplingParams = Field(
        default_factory=lambda: SamplingParams(temperature=0.3, top_p=0.8)
    )
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    exclude: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDE))
    debug: bool = False
    debug_log_file: Path = Path("slopshop-debug.jsonl")


def _apply_env_overrides(config: SlopShopConfig) -> SlopShopConfig:
    if url := os.getenv("SLOPSHOP_OLLAMA_URL"):
        config.ollama.url = url
    if model := os.getenv("SLOPSHOP_MODEL"):
        config.ollama.model = model
    if diff_model := os.getenv("SLOPSHOP_DIFF_MODEL"):
        config.ollama.diff_model = diff_model
    if _env_truthy("SLOPSHOP_DEBUG"):
        config.debug = True
    timeout = os.getenv("SLOPSHOP_COMMAND_TIMEOUT_SEC")
    if timeout:
        try:
            config.tools.command_timeout_sec = float(timeout)
        except ValueError:
            logger.warning("Ignoring non-numeric SLOPSHOP_COMMAND_TIMEOUT_SEC=%r", timeout)
    return config


def load_config(path: Path | None = None) -> SlopShopConfig:
    """
    Load configuration from YAML, then apply SLOPSHOP_* environment overrides.

    With no path, `.slopshop.yaml` in the working directory is used when it
    exists; otherwise defaults apply.

    Raises:
        FileNotFoundError: An explicit path does not exist
        ValueError: The file is not a YAML mapping
        pydantic.ValidationError: The mapping has unknown or invalid keys
    """

    if path is None and DEFAULT_CONFIG_FILE.exists():
        path = DEFAULT_CONFIG_FILE

    data: dict = {}
    if path is not None:
        with open(path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Invalid config ({path}): root must be a mapping")
        data = loaded
        logger.debug("Loaded config from %s", path)

    return _apply_env_overrides(SlopShopConfig.model_validate(data))
