import logging
from pathlib import Path

from slopshop.diff.errors import PatchIOError
from slopshop.diff.models import DiffChange, DiffHunk
from slopshop.diff.parser import parse_diff
from slopshop.sandbox.filesystem import PathEscapeError, resolve_repo_path
from slopshop.util.events import EventLogger, NullEventLogger, NULL_EVENT_LOGGER

logger = logging.getLogger(__name__)


def apply_hunk(lines: list[str], hunk: DiffHunk) -> list[str]:
    """
    Splice one hunk into `lines` and return the new list.

    The pre-image region starts at `old_start` (1-based) and spans
    `old_count` lines. Removal past the end of the file is clamped rather
    than treated as an error. The region is replaced by the hunk's context
    and added lines.
    """

    start = min(max(hunk.old_start - 1, 0), len(lines))
    end = start
    if hunk.old_count > 0:
        end = min(start + hunk.old_count, len(lines))

    replacement = [line.content for line in hunk.lines if line.in_post_image]
    return lines[:start] + replacement + lines[end:]


def apply_hunks(lines: list[str], change: DiffChange) -> list[str]:
    # last hunk first so lower hunks keep their line numbers
    for hunk in reversed(change.hunks):
        lines = apply_hunk(lines, hunk)
    return lines


def render_lines(lines: list[str]) -> str:
    content = "\n".join(lines)
    if not content.endswith("\n"):
        content += "\n"
    return content


def apply_change_to_text(content: str, change: DiffChange) -> str:
    """Pure transform from pre-image text to post-image text."""
    return render_lines(apply_hunks(content.split("\n"), change))


def apply_file_change(
    change: DiffChange,
    repo_root: Path,
    confine_to_repo: bool = True,
) -> Path:
    """
    Read the target of `change`, apply its hunks and write the result.

    The file is decoded as raw UTF-8 and split on line feeds only, so lines
    the hunks do not touch keep their carriage returns.

    Raises:
        PatchIOError: the file cannot be read or written
        PathEscapeError: the path leaves `repo_root` while confined
    """

    path = resolve_repo_path(repo_root, change.file_path, confine=confine_to_repo)

    try:
        content = path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise PatchIOError(change.file_path, f"failed to read file: {e}") from e

    updated = apply_change_to_text(content, change)

    try:
        path.write_bytes(updated.encode("utf-8"))
    except OSError as e:
        raise PatchIOError(change.file_path, f"failed to write file: {e}") from e

    logger.info("Applied %d hunk(s) to %s", len(change.hunks), change.file_path)
    return path


def apply_diff(
    diff_text: str,
    repo_root: Path,
    confine_to_repo: bool = True,
    event_logger: EventLogger | NullEventLogger | None = None,
) -> list[str]:
    """
    Parse `diff_text` and apply every file change in order.

    Stops at the first file that fails; files written before it are left
    as they are. Returns the paths of the changed files.

    Raises:
        ParseError: the diff text is structurally invalid
        PatchIOError: a target file could not be read or written
        PathEscapeError: a target path leaves `repo_root` while confined
    """

    events = event_logger or NULL_EVENT_LOGGER
    changes = parse_diff(diff_text)
    changed_files: list[str] = []

    for change in changes:
        try:
            apply_file_change(change, repo_root, confine_to_repo=confine_to_repo)
        except (PatchIOError, PathEscapeError):
            logger.error("Diff application stopped at %s", change.file_path)
            raise
        changed_files.append(change.file_path)

    events.log_diff_applied(changed_files=changed_files, hunk_count=sum(len(c.hunks) for c in changes))
    return changed_files
