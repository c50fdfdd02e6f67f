import logging
import os
from collections.abc import Iterator
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import ulid
from filelock import FileLock
from pydantic import ValidationError

from slopshop.schemas.events import Event, EventType

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHARS = 4000


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def truncate(value: Any, max_chars: int) -> Any:
    """
    Shorten long strings anywhere inside a payload, keeping head and tail.

    Dicts and lists are walked; other values pass through. A non-positive
    `max_chars` disables truncation.
    """

    if isinstance(value, dict):
        return {k: truncate(v, max_chars) for k, v in value.items()}
    if isinstance(value, list):
        return [truncate(v, max_chars) for v in value]
    if not isinstance(value, str) or max_chars <= 0 or len(value) <= max_chars:
        return value

    head = max_chars // 2
    tail = max_chars - head
    return f"{value[:head]}\n\n... [{len(value) - max_chars} chars truncated] ...\n\n{value[-tail:]}"


def append_line(path: Path, line: str) -> bool:
    """
    Append one line to `path` under a sidecar `.lock` file.

    Debug logging must never take a run down, so write failures are logged
    and reported as False.
    """

    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with FileLock(f"{path}.lock"):
            with open(path, "a", encoding="utf-8", newline="\n") as f:
                f.write(line.rstrip("\n") + "\n")
    except OSError as e:
        logger.error("Failed to write event to %s: %s", path, e)
        return False
    return True


def read_events(path: Path) -> Iterator[Event]:
    """Yield the events recorded in a debug log, skipping unreadable lines."""

    with Path(path).open(encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                yield Event.model_validate_json(line)
            except ValidationError as e:
                logger.warning("Skipping unreadable event at %s:%d: %s", path, lineno, e)


class EventLogger:
    """Writes structured debug events for one slopshop run to a JSONL file."""

    def __init__(
        self,
        events_file: Path,
        run_id: str | None = None,
        clear_existing: bool = False,
    ):
        self.run_id = run_id or str(ulid.new())
        self.events_file = Path(events_file)
        self._step_counter = 0
        self._max_chars = _env_int("SLOPSHOP_LOG_MAX_CHARS", DEFAULT_MAX_CHARS)

        if clear_existing and self.events_file.exists():
            self.events_file.unlink()
            logger.debug("Cleared existing events file %s", self.events_file)

        logger.debug("EventLogger for run %s writing to %s", self.run_id, self.events_file)

    def next_step_id(self) -> int:
        self._step_counter += 1
        return self._step_counter

    def log(self, event_type: EventType, payload: dict) -> None:
        event = Event(
            event_type=event_type,
            timestamp=datetime.now(timezone.utc),
            run_id=self.run_id,
            step_id=self.next_step_id(),
            payload=truncate(payload, self._max_chars),
        )
        append_line(self.events_file, event.model_dump_json())

    def log_directive_started(self, index: int, kind: str, argument: str) -> None:
        self.log(
            EventType.DIRECTIVE_STARTED,
            {"index": index, "kind": kind, "argument": argument},
        )

    def log_directive_finished(
        self,
        index: int,
        kind: str,
        status: str,
        duration_sec: float,
        error_type: str | None = None,
    ) -> None:
        self.log(
            EventType.DIRECTIVE_FINISHED,
            {
                "index": index,
                "kind": kind,
                "status": status,
                "duration_sec": duration_sec,
                "error_type": error_type,
            },
        )

    def log_diff_applied(self, changed_files: list[str], hunk_count: int) -> None:
        self.log(
            EventType.DIFF_APPLIED,
            {"changed_files": changed_files, "hunk_count": hunk_count},
        )

    def log_command_started(self, command: str) -> None:
        self.log(EventType.COMMAND_STARTED, {"command": command})

    def log_command_finished(self, command: str, exit_code: int | None, duration_sec: float) -> None:
        self.log(
            EventType.COMMAND_FINISHED,
            {"command": command, "exit_code": exit_code, "duration_sec": duration_sec},
        )

    def log_llm_request_started(self, model: str, prompt_chars: int) -> None:
        self.log(
            EventType.LLM_REQUEST_STARTED,
            {"model": model, "prompt_chars": prompt_chars},
        )

    def log_llm_request_finished(self, model: str, response_chars: int, latency_ms: int) -> None:
        self.log(
            EventType.LLM_REQUEST_FINISHED,
            {"model": model, "response_chars": response_chars, "latency_ms": latency_ms},
        )

    def log_llm_request_failed(self, error_type: str, message: str, retryable: bool) -> None:
        self.log(
            EventType.LLM_REQUEST_FAILED,
            {"error_type": error_type, "message": message, "retryable": retryable},
        )

    def log_chunk_dropped(self, dropped_total: int) -> None:
        self.log(EventType.CHUNK_DROPPED, {"dropped_total": dropped_total})


class NullEventLogger:
    def log_directive_started(self, index: int, kind: str, argument: str) -> None: pass
    def log_directive_finished(self, index: int, kind: str, status: str, duration_sec: float, error_type: str | None = None) -> None: pass
    def log_diff_applied(self, changed_files: list[str], hunk_count: int) -> None: pass
    def log_command_started(self, command: str) -> None: pass
    def log_command_finished(self, command: str, exit_code: int | None, duration_sec: float) -> None: pass
    def log_llm_request_started(self, model: str, prompt_chars: int) -> None: pass
    def log_llm_request_finished(self, model: str, response_chars: int, latency_ms: int) -> None: pass
    def log_llm_request_failed(self, error_type: str, message: str, retryable: bool) -> None: pass
    def log_chunk_dropped(self, dropped_total: int) -> None: pass


NULL_EVENT_LOGGER = NullEventLogger()
