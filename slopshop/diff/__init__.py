"""Unified diff parsing and line-number based hunk application."""

from .apply import (
    apply_change_to_text,
    apply_diff,
    apply_file_change,
    apply_hunk,
    apply_hunks,
    render_lines,
)
from .errors import (
    DiffError,
    HunkOrderError,
    ParseError,
    PatchIOError,
    PathMismatchError,
)
from .models import DiffChange, DiffHunk, DiffLine, DiffLineType
from .parser import classify_line, parse_diff, parse_hunk_header, parse_range

__all__ = [
    "DiffChange",
    "DiffHunk",
    "DiffLine",
    "DiffLineType",
    "DiffError",
    "ParseError",
    "PathMismatchError",
    "HunkOrderError",
    "PatchIOError",
    "classify_line",
    "parse_range",
    "parse_hunk_header",
    "parse_diff",
    "apply_hunk",
    "apply_hunks",
    "render_lines",
    "apply_change_to_text",
    "apply_file_change",
    "apply_diff",
]
