import asyncio
import json
import logging
import sys
from pathlib import Path

import typer
import yaml

from slopshop.config import SlopShopConfig, load_config
from slopshop.diff import DiffError, apply_diff
from slopshop.directives import execute_directives
from slopshop.llm import LLMError, OllamaClient, build_prompt
from slopshop.llm.prompts import get_prompt_version
from slopshop.repo import create_context, read_repository
from slopshop.sandbox import PathEscapeError
from slopshop.util.events import EventLogger, NullEventLogger, NULL_EVENT_LOGGER, read_events
from slopshop.util.stream import ChunkStream

logger = logging.getLogger(__name__)

app = typer.Typer(no_args_is_help = True)


@app.callback()
def main():
    """
    slopshop: let a local model read and patch a repository
    """
    pass


def _setup(config_path: Path | None, debug: bool) -> SlopShopConfig:
    try:
        config = load_config(config_path)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--config")
    if debug:
        config.debug = True

    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return config


def _event_logger(config: SlopShopConfig) -> EventLogger | NullEventLogger:
    if config.debug:
        return EventLogger(events_file=config.debug_log_file)
    return NULL_EVENT_LOGGER


def _read_input(source: Path | None) -> str:
    if source is None:
        return sys.stdin.read()
    return source.read_text(encoding="utf-8")


async def _stream_answer(
    client: OllamaClient,
    prompt: str,
    config: SlopShopConfig,
    stream: ChunkStream,
) -> str:
    async def produce() -> str:
        try:
            return await client.stream_generate(
                prompt,
                sampling=config.sampling,
                on_chunk=stream.offer,
            )
        finally:
            stream.close()

    producer = asyncio.create_task(produce())
    async for chunk in stream:
        typer.echo(chunk, nl=False)
    typer.echo()
    return await producer


@app.command("ask")
def ask_cmd(
    prompt: str = typer.Argument(..., help="Prompt to send to the model"),
    repo: Path = typer.Option(Path("."), "--repo", help="Path to repository"),
    model: str | None = typer.Option(None, "--model", help="Ollama model to use"),
    url: str | None = typer.Option(None, "--url", help="Ollama API URL"),
    temperature: float | None = typer.Option(None, "--temp", help="Sampling temperature"),
    top_p: float | None = typer.Option(None, "--top-p", help="Top-p for generation"),
    exclude: str | None = typer.Option(None, "--exclude", help="Comma-separated patterns to exclude"),
    empty_context: bool = typer.Option(False, "--empty-context", help="Send no repository files"),
    tools: bool = typer.Option(False, "--tools", help="Execute directives in the answer"),
    debug: bool = typer.Option(False, "--debug", help="Write debug events to the debug log file"),
    config_path: Path | None = typer.Option(None, "--config", help="YAML config file"),
):
    config = _setup(config_path, debug)
    if model:
        config.ollama.model = model
    if url:
        config.ollama.url = url
    if temperature is not None:
        config.sampling.temperature = temperature
    if top_p is not None:
        config.sampling.top_p = top_p
    if exclude is not None:
        config.exclude = [p.strip() for p in exclude.split(",")]
    if tools:
        config.tools.enabled = True

    events = _event_logger(config)

    if empty_context:
        context = ""
        typer.echo("Starting with empty context (no repository files loaded)")
    else:
        files = read_repository(repo, config.exclude)
        context = create_context(files)
        typer.echo(f"Found {len(files)} files ({len(context)} characters of context)")

    typer.echo(f"Using model: {config.ollama.model} at {config.ollama.url}")
    logger.debug("Prompt version %s", get_prompt_version())

    client = OllamaClient(config.ollama, event_logger=events)
    full_prompt = build_prompt(prompt, context, tools_enabled=config.tools.enabled)
    stream = ChunkStream(event_logger=events)

    try:
        response = asyncio.run(_stream_answer(client, full_prompt, config, stream))
    except LLMError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    if not config.tools.enabled:
        return

    report = execute_directives(
        response,
        repo,
        confine_to_repo=config.tools.confine_to_repo,
        command_timeout_sec=config.tools.command_timeout_sec,
        diff_generator=lambda p: client.generate(
            p,
            sampling=config.diff_sampling,
            model=config.ollama.diff_model,
        ),
        event_logger=events,
    )
    typer.echo(report.transcript)


@app.command("exec")
def exec_cmd(
    source: Path | None = typer.Argument(None, exists=True, dir_okay=False, help="Saved model response (stdin if omitted)"),
    repo: Path = typer.Option(Path("."), "--repo", help="Path to repository"),
    debug: bool = typer.Option(False, "--debug", help="Write debug events to the debug log file"),
    config_path: Path | None = typer.Option(None, "--config", help="YAML config file"),
):
    config = _setup(config_path, debug)
    events = _event_logger(config)
    client = OllamaClient(config.ollama, event_logger=events)

    report = execute_directives(
        _read_input(source),
        repo,
        confine_to_repo=config.tools.confine_to_repo,
        command_timeout_sec=config.tools.command_timeout_sec,
        diff_generator=lambda p: client.generate(
            p,
            sampling=config.diff_sampling,
            model=config.ollama.diff_model,
        ),
        event_logger=events,
    )
    typer.echo(report.transcript)


@app.command("apply-diff")
def apply_diff_cmd(
    source: Path | None = typer.Argument(None, exists=True, dir_okay=False, help="Unified diff file (stdin if omitted)"),
    repo: Path = typer.Option(Path("."), "--repo", help="Path to repository"),
    debug: bool = typer.Option(False, "--debug", help="Write debug events to the debug log file"),
    config_path: Path | None = typer.Option(None, "--config", help="YAML config file"),
):
    config = _setup(config_path, debug)

    try:
        changed = apply_diff(
            _read_input(source),
            repo,
            confine_to_repo=config.tools.confine_to_repo,
            event_logger=_event_logger(config),
        )
    except (DiffError, PathEscapeError) as exc:
        typer.echo(f"Error applying diff: {exc}", err=True)
        raise typer.Exit(code=1)

    for path in changed:
        typer.echo(f"Applied changes to: {path}")
    typer.echo(f"Files changed: {len(changed)}")


@app.command("events")
def events_cmd(
    log_file: Path = typer.Argument(Path("slopshop-debug.jsonl"), exists=True, dir_okay=False, help="Debug event log"),
    run_id: str | None = typer.Option(None, "--run", help="Only show events from this run"),
):
    """Print a debug event log, one line per event."""

    shown = 0
    for event in read_events(log_file):
        if run_id and event.run_id != run_id:
            continue
        payload = json.dumps(event.payload, default=str)
        typer.echo(f"{event.run_id} {event.step_id:>4} {event.event_type} {payload}")
        shown += 1
    typer.echo(f"Events: {shown}")
