import logging
from pathlib import Path

from slopshop.directives.handlers import DiffGenerator, DirectiveContext, dispatch
from slopshop.directives.models import DirectiveResult, ExecutionReport
from slopshop.directives.scanner import iter_directives
from slopshop.util.events import EventLogger, NullEventLogger, NULL_EVENT_LOGGER

logger = logging.getLogger(__name__)

TRANSCRIPT_BANNER = "Tool Execution Results:\n=====================\n\n"
NO_DIRECTIVES_MESSAGE = "No tools detected in LLM response"


def format_transcript(results: list[DirectiveResult]) -> str:
    parts = [TRANSCRIPT_BANNER]
    for result in results:
        parts.append(f"{result.kind.value}: {result.header}\n")
        parts.append(result.output)
        parts.append("\n")

    if results:
        parts.append(f"Total tools executed: {len(results)}\n")
    else:
        parts.append(f"{NO_DIRECTIVES_MESSAGE}\n")
    return "".join(parts)


def execute_directives(
    response: str,
    repo_root: Path,
    confine_to_repo: bool = True,
    command_timeout_sec: float | None = None,
    diff_generator: DiffGenerator | None = None,
    event_logger: EventLogger | NullEventLogger | None = None,
) -> ExecutionReport:
    """
    Execute every directive in a model response against `repo_root`.

    Directives run one at a time in the order they appear. A failing
    directive is recorded in the transcript and scanning continues, so
    this always returns a report.
    """

    ctx = DirectiveContext(
        repo_root=Path(repo_root),
        confine_to_repo=confine_to_repo,
        command_timeout_sec=command_timeout_sec,
        diff_generator=diff_generator,
        event_logger=event_logger or NULL_EVENT_LOGGER,
    )

    results: list[DirectiveResult] = []
    for directive in iter_directives(response):
        index = len(results) + 1
        logger.info("[%d] %s detected: %s", index, directive.kind, directive.describe()[:200])
        results.append(dispatch(index, directive, ctx))

    if results:
        logger.info("Total directives executed: %d", len(results))
    else:
        logger.info(NO_DIRECTIVES_MESSAGE)

    return ExecutionReport(results=results, transcript=format_transcript(results))
