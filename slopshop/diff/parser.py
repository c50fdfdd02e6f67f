import logging

from slopshop.diff.errors import HunkOrderError, PathMismatchError
from slopshop.diff.models import DiffChange, DiffHunk, DiffLine, DiffLineType

logger = logging.getLogger(__name__)

OLD_FILE_MARKER = "--- a/"
NEW_FILE_MARKER = "+++ b/"
HUNK_MARKER = "@@"


def classify_line(line: str) -> DiffLine:
    """
    Classify one hunk body line by its first character.

    `+` is an addition and `-` a removal, both without the marker. Anything
    else is context. A leading space is the unified-diff context marker and
    is dropped, so `     pass` yields `    pass`. An unprefixed line is
    kept whole.
    """

    if line.startswith("+"):
        return DiffLine(type=DiffLineType.ADDED, content=line[1:])
    if line.startswith("-"):
        return DiffLine(type=DiffLineType.REMOVED, content=line[1:])
    if line.startswith(" "):
        return DiffLine(type=DiffLineType.CONTEXT, content=line[1:])
    return DiffLine(type=DiffLineType.CONTEXT, content=line)


def _parse_int(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        return 0


def parse_range(token: str) -> tuple[int, int]:
    """
    Parse a `start[,count]` range token into (start, count).

    The count defaults to 1 when omitted. Malformed numbers parse as 0.
    """

    token = token.strip().lstrip("-+")
    start_text, sep, count_text = token.partition(",")
    start = _parse_int(start_text)
    count = _parse_int(count_text) if sep else 1
    return start, count


def parse_hunk_header(line: str) -> DiffHunk:
    """Build an empty hunk from a `@@ -a[,b] +c[,d] @@` header."""

    parts = line.split()
    old_token = parts[1] if len(parts) > 1 else ""
    new_token = parts[2] if len(parts) > 2 else ""

    old_start, old_count = parse_range(old_token)
    new_start, new_count = parse_range(new_token)
    return DiffHunk(
        old_start=old_start,
        old_count=old_count,
        new_start=new_start,
        new_count=new_count,
    )


def _check_hunk_order(change: DiffChange) -> None:
    previous: DiffHunk | None = None
    for hunk in change.hunks:
        if previous is not None:
            covered_until = previous.old_start + max(previous.old_count, 0)
            if hunk.old_start < covered_until or hunk.old_start < previous.old_start:
                raise HunkOrderError(
                    change.file_path,
                    previous.old_start,
                    previous.old_count,
                    hunk.old_start,
                )
        previous = hunk


def parse_diff(diff_text: str) -> list[DiffChange]:
    """
    Parse unified diff text into one DiffChange per file.

    The accepted subset looks like:
    ```diff
    --- a/src/main.py
    +++ b/src/main.py
    @@ -10,2 +10,3 @@
     total = 0
    +total += bonus
     return total
    ```

    Files and hunks keep the order they appear in. Blank lines are skipped,
    so a blank context or added line cannot be expressed.

    Raises:
        PathMismatchError: `+++ b/` names a different file than `--- a/`
        HunkOrderError: hunks of one file are descending or overlap
    """

    changes: list[DiffChange] = []
    current_change: DiffChange | None = None
    current_hunk: DiffHunk | None = None

    def close_change() -> None:
        nonlocal current_change, current_hunk
        if current_change is None:
            return
        if current_hunk is not None:
            current_change.hunks.append(current_hunk)
        _check_hunk_order(current_change)
        changes.append(current_change)
        current_change = None
        current_hunk = None

    for raw_line in diff_text.split("\n"):
        line = raw_line.rstrip("\r")
        if not line.strip():
            continue

        if line.startswith(OLD_FILE_MARKER):
            close_change()
            current_change = DiffChange(file_path=line[len(OLD_FILE_MARKER):].strip())
            continue

        if line.startswith(NEW_FILE_MARKER):
            new_path = line[len(NEW_FILE_MARKER):].strip()
            if current_change is not None and current_change.file_path != new_path:
                raise PathMismatchError(current_change.file_path, new_path)
            continue

        if line.startswith(HUNK_MARKER):
            if current_change is None:
                logger.debug("Ignoring hunk header outside a file section: %s", line)
                continue
            if current_hunk is not None:
                current_change.hunks.append(current_hunk)
            current_hunk = parse_hunk_header(line)
            continue

        if current_hunk is not None:
            current_hunk.lines.append(classify_line(line))

    close_change()

    logger.debug("Parsed %d file changes from unified diff", len(changes))
    return changes
