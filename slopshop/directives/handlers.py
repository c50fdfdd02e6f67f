import logging
import os
import subprocess
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from slopshop.diff import apply_diff
from slopshop.directives.errors import ExecutionError, NoDiffGeneratorError
from slopshop.directives.models import (
    ApplyDiff,
    CreateFile,
    Directive,
    DirectiveKind,
    DirectiveResult,
    DirectiveStatus,
    GenerateDiff,
    ListDir,
    ReadFile,
    RunCommand,
    SearchFiles,
    TestCommand,
)
from slopshop.llm.prompts import build_diff_prompt
from slopshop.sandbox.filesystem import is_text_content, iter_files, resolve_repo_path
from slopshop.util.events import EventLogger, NullEventLogger, NULL_EVENT_LOGGER

logger = logging.getLogger(__name__)

DiffGenerator = Callable[[str], str]

ERROR_PREFIXES: dict[DirectiveKind, str] = {
    DirectiveKind.RUN_COMMAND: "Error executing command",
    DirectiveKind.READ_FILE: "Error reading file",
    DirectiveKind.LIST_DIR: "Error reading directory",
    DirectiveKind.TEST_COMMAND: "Command failed",
    DirectiveKind.SEARCH_FILES: "Error searching files",
    DirectiveKind.GENERATE_DIFF: "Error generating diff",
    DirectiveKind.APPLY_DIFF: "Error applying diff",
    DirectiveKind.CREATE_FILE: "Error creating file",
}


@dataclass
class DirectiveContext:
    repo_root: Path
    confine_to_repo: bool = True
    command_timeout_sec: float | None = None
    diff_generator: DiffGenerator | None = None
    event_logger: EventLogger | NullEventLogger = field(default=NULL_EVENT_LOGGER)

    def resolve(self, path: str) -> Path:
        return resolve_repo_path(self.repo_root, path, confine=self.confine_to_repo)


def _run_shell(command: str, ctx: DirectiveContext) -> str:
    """Run `command` through `sh -c` in the repo root and return combined output."""

    ctx.event_logger.log_command_started(command)
    started = time.monotonic()
    try:
        completed = subprocess.run(
            ["sh", "-c", command],
            cwd=ctx.repo_root,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=ctx.command_timeout_sec,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        ctx.event_logger.log_command_finished(command, None, time.monotonic() - started)
        output = e.output or ""
        if isinstance(output, bytes):
            output = output.decode("utf-8", errors="replace")
        raise ExecutionError(command, f"timed out after {e.timeout}s", output=output) from e
    except OSError as e:
        ctx.event_logger.log_command_finished(command, None, time.monotonic() - started)
        raise ExecutionError(command, f"failed to start: {e}") from e

    exit_code = completed.returncode
    ctx.event_logger.log_command_finished(command, exit_code, time.monotonic() - started)
    logger.debug("Command %r exited with %d", command, exit_code)
    if exit_code != 0:
        raise ExecutionError(
            command,
            f"exit status {exit_code}",
            exit_code=exit_code,
            output=completed.stdout,
        )
    return completed.stdout


def handle_run_command(directive: RunCommand, ctx: DirectiveContext) -> str:
    output = _run_shell(directive.argument, ctx)
    return f"Command executed successfully:\n{output}"


def handle_test_command(directive: TestCommand, ctx: DirectiveContext) -> str:
    output = _run_shell(directive.argument, ctx)
    return f"Command works successfully:\n{output}"


def handle_read_file(directive: ReadFile, ctx: DirectiveContext) -> str:
    path = ctx.resolve(directive.argument)
    content = path.read_text(encoding="utf-8")
    return f"File contents:\n{content}"


def handle_list_dir(directive: ListDir, ctx: DirectiveContext) -> str:
    path = ctx.resolve(directive.argument)
    lines = ["Directory contents:"]
    for entry in sorted(path.iterdir(), key=lambda p: p.name):
        try:
            stat = entry.stat()
        except OSError:
            continue
        file_type = "d" if entry.is_dir() else "f"
        lines.append(f"{file_type} {stat.st_size:8d} {entry.name}")
    return "\n".join(lines) + "\n"


def handle_search_files(directive: SearchFiles, ctx: DirectiveContext) -> str:
    root = ctx.resolve(directive.directory)
    if not root.is_dir():
        raise NotADirectoryError(f"not a directory: {directive.directory}")

    repo_root = Path(ctx.repo_root).resolve()
    lines = ["Search results:"]
    for path in iter_files(root):
        try:
            data = path.read_bytes()
        except OSError:
            continue
        if not is_text_content(data):
            continue
        if directive.pattern in data.decode("utf-8", errors="replace"):
            lines.append(f"Found in: {os.path.relpath(path, repo_root)}")
    return "\n".join(lines) + "\n"


def handle_create_file(directive: CreateFile, ctx: DirectiveContext) -> str:
    path = ctx.resolve(directive.argument)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(directive.content, encoding="utf-8")
    return f"File created successfully: {directive.argument}"


def handle_generate_diff(directive: GenerateDiff, ctx: DirectiveContext) -> str:
    if ctx.diff_generator is None:
        raise NoDiffGeneratorError()

    response = ctx.diff_generator(build_diff_prompt(directive.argument))
    if "--- a/" in response and "+++ b/" in response:
        return f"Generated diff:\n\n{response}"
    return (
        f"LLM response (may not be valid diff format):\n\n{response}\n\n"
        "Note: This may not be a valid unified diff. "
        "You can copy the content above and use APPLY_DIFF if it looks correct."
    )


def handle_apply_diff(directive: ApplyDiff, ctx: DirectiveContext) -> str:
    changed_files = apply_diff(
        directive.diff_text,
        ctx.repo_root,
        confine_to_repo=ctx.confine_to_repo,
        event_logger=ctx.event_logger,
    )
    lines = ["Diff applied successfully to the repository"]
    lines.extend(f"Changed: {path}" for path in changed_files)
    return "\n".join(lines)


HANDLERS: dict[DirectiveKind, Callable[..., str]] = {
    DirectiveKind.RUN_COMMAND: handle_run_command,
    DirectiveKind.READ_FILE: handle_read_file,
    DirectiveKind.LIST_DIR: handle_list_dir,
    DirectiveKind.TEST_COMMAND: handle_test_command,
    DirectiveKind.SEARCH_FILES: handle_search_files,
    DirectiveKind.GENERATE_DIFF: handle_generate_diff,
    DirectiveKind.APPLY_DIFF: handle_apply_diff,
    DirectiveKind.CREATE_FILE: handle_create_file,
}


def format_error(kind: DirectiveKind, error: Exception) -> str:
    text = f"{ERROR_PREFIXES[kind]}: {error}"
    if isinstance(error, ExecutionError):
        text += f"\nOutput: {error.output}"
    return text


def dispatch(index: int, directive: Directive, ctx: DirectiveContext) -> DirectiveResult:
    """
    Run the handler for one directive and capture its outcome.

    Handler failures of any kind become an ERROR result carrying the
    failure text; nothing propagates to the caller.
    """

    header = directive.describe()
    ctx.event_logger.log_directive_started(index, directive.kind, header)

    error: Exception | None = None
    output = ""
    started_at = datetime.now()

    try:
        output = HANDLERS[directive.kind](directive, ctx)
    except Exception as e:
        error = e
        output = format_error(directive.kind, e)
        logger.warning("%s directive failed: %s", directive.kind, e)

    ended_at = datetime.now()
    duration_sec = (ended_at - started_at).total_seconds()
    error_type = type(error).__name__ if error else None

    ctx.event_logger.log_directive_finished(
        index,
        directive.kind,
        DirectiveStatus.ERROR if error else DirectiveStatus.SUCCESS,
        duration_sec,
        error_type,
    )

    return DirectiveResult(
        index=index,
        kind=directive.kind,
        header=header,
        status=DirectiveStatus.ERROR if error else DirectiveStatus.SUCCESS,
        output=output,
        error_type=error_type,
        started_at=started_at,
        ended_at=ended_at,
        duration_sec=duration_sec,
    )
