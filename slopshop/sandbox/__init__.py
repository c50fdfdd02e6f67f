"""Filesystem helpers for directive handlers."""

from .filesystem import (
    IGNORED_DIRS,
    PathEscapeError,
    is_text_content,
    iter_files,
    resolve_repo_path,
)

__all__ = [
    "IGNORED_DIRS",
    "PathEscapeError",
    "is_text_content",
    "iter_files",
    "resolve_repo_path",
]
