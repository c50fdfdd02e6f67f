import logging
import re
from collections.abc import Iterator

from pydantic import TypeAdapter

from slopshop.directives.models import (
    ApplyDiff,
    CreateFile,
    Directive,
    DirectiveKind,
)

logger = logging.getLogger(__name__)

CREATE_FILE_SENTINEL = "END_FILE"
APPLY_DIFF_SENTINEL = "END_DIFF"

_SEARCH_ARGS_RE = re.compile(r"^(?P<pattern>.*\S)\s+(?P<directory>\S+)$")
_DIRECTIVE_ADAPTER: TypeAdapter[Directive] = TypeAdapter(Directive)


def _unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1]
    return text


def parse_directive_line(line: str) -> Directive | None:
    """
    Match one trimmed line against the directive prefixes.

    Returns the directive, or None when the line is prose or a
    SEARCH_FILES line without both a pattern and a directory. Payloads
    are not collected here.
    """

    line = line.strip()
    for kind in DirectiveKind:
        if not line.startswith(kind.prefix):
            continue

        remainder = line[len(kind.prefix):].strip()
        if kind == DirectiveKind.SEARCH_FILES:
            match = _SEARCH_ARGS_RE.match(remainder)
            if match is None:
                logger.debug("Skipping SEARCH_FILES without pattern and directory: %r", line)
                return None
            return _DIRECTIVE_ADAPTER.validate_python(
                {
                    "kind": kind,
                    "pattern": _unquote(match.group("pattern")),
                    "directory": match.group("directory"),
                }
            )
        return _DIRECTIVE_ADAPTER.validate_python({"kind": kind, "argument": remainder})

    return None


def _collect_payload(lines: list[str], start: int, sentinel: str) -> tuple[list[str], int]:
    """Collect raw lines from `start` up to the sentinel; return them and the resume index."""

    payload: list[str] = []
    index = start
    while index < len(lines):
        if lines[index].strip() == sentinel:
            return payload, index + 1
        payload.append(lines[index])
        index += 1

    logger.debug("No %s sentinel found, payload runs to end of input", sentinel)
    return payload, index


def iter_directives(text: str) -> Iterator[Directive]:
    """
    Yield directives from a model response in order of appearance.

    CREATE_FILE consumes the following lines verbatim up to a line that is
    exactly END_FILE; an APPLY_DIFF with nothing after the colon does the
    same up to END_DIFF. Consumed lines are never scanned as directives.
    """

    lines = text.split("\n")
    index = 0
    while index < len(lines):
        line = lines[index].strip()
        index += 1
        if not line:
            continue

        directive = parse_directive_line(line)
        if directive is None:
            continue

        if isinstance(directive, CreateFile):
            payload, index = _collect_payload(lines, index, CREATE_FILE_SENTINEL)
            directive = directive.model_copy(update={"payload": payload})
        elif isinstance(directive, ApplyDiff) and not directive.argument:
            payload, index = _collect_payload(lines, index, APPLY_DIFF_SENTINEL)
            directive = directive.model_copy(update={"payload": payload})

        yield directive


def scan_directives(text: str) -> list[Directive]:
    return list(iter_directives(text))
