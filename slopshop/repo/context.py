import logging
from pathlib import Path

from pydantic import BaseModel

from slopshop.sandbox.filesystem import is_text_content

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE = [
    ".git",
    ".jj",
    "node_modules",
    "vendor",
    "*.exe",
    "*.dll",
    "*.so",
    "*.dylib",
    "*.bin",
    ".crush",
]


class RepoFile(BaseModel):
    path: str
    content: str
    size: int


def should_exclude(path: str, patterns: list[str]) -> bool:
    """
    Match a repo-relative path against exclude patterns.

    A pattern ending in `*` matches by prefix, a `*.ext` pattern by suffix,
    and a plain pattern by substring.
    """

    for pattern in patterns:
        if not pattern:
            continue
        if pattern.startswith("*") and "*" not in pattern[1:]:
            if path.endswith(pattern[1:]):
                return True
        elif pattern.endswith("*"):
            if path.startswith(pattern[:-1]):
                return True
        elif pattern in path:
            return True
    return False


def read_repository(repo_path: Path, exclude: list[str] | None = None) -> list[RepoFile]:
    repo_path = Path(repo_path)
    patterns = DEFAULT_EXCLUDE if exclude is None else exclude
    files: list[RepoFile] = []

    for path in sorted(repo_path.rglob("*")):
        if not path.is_file():
            continue
        rel_path = path.relative_to(repo_path).as_posix()
        if should_exclude(rel_path, patterns):
            continue

        try:
            data = path.read_bytes()
        except OSError as e:
            logger.warning("Could not read file %s: %s", path, e)
            continue

        if is_text_content(data):
            files.append(
                RepoFile(
                    path=rel_path,
                    content=data.decode("utf-8", errors="replace"),
                    size=len(data),
                )
            )

    logger.debug("Collected %d text files from %s", len(files), repo_path)
    return files


def create_context(files: list[RepoFile]) -> str:
    parts = ["Repository Contents:\n", "===================\n\n"]
    for file in files:
        parts.append(f"File: {file.path} (Size: {file.size} bytes)\n")
        parts.append("-" * 50 + "\n")
        parts.append(file.content)
        parts.append("\n\n")
    return "".join(parts)
