import logging
from collections.abc import Iterator
from pathlib import Path

logger = logging.getLogger(__name__)

IGNORED_DIRS = {".git", ".jj", ".pytest_cache", "__pycache__", "node_modules"}
TEXT_SNIFF_BYTES = 1024


class PathEscapeError(Exception):
    def __init__(self, candidate: Path, repo_root: Path):
        super().__init__(f"Candidate {str(candidate)} is not relative to repository: {str(repo_root)}")
        self.candidate = candidate
        self.repo_root = repo_root


def resolve_repo_path(
    repo_root: Path,
    path: str,
    confine: bool = True,
) -> Path:
    """
    Resolve a directive path against the repository root.

    Args:
        repo_root: Repository the model is working on
        path: Relative or absolute path taken from model output
        confine: If True, reject paths that resolve outside repo_root

    Returns:
        Resolved absolute Path

    Raises:
        PathEscapeError: If confine is set and the path escapes repo_root
    """

    repo_root = Path(repo_root).resolve()
    raw = Path(path.strip())
    candidate = (raw if raw.is_absolute() else repo_root / raw).resolve()

    if confine and not candidate.is_relative_to(repo_root):
        logger.warning("Path escape attempt: %s is not relative to %s", candidate, repo_root)
        raise PathEscapeError(candidate, repo_root)

    logger.debug("Resolved repo path: %s -> %s", path, candidate)
    return candidate


def is_text_content(content: bytes) -> bool:
    return b"\x00" not in content[:TEXT_SNIFF_BYTES]


def iter_files(root: Path) -> Iterator[Path]:
    """
    Yield files under root in sorted order, skipping ignored directories
    and symlinks.
    """

    root = Path(root)
    for entry in sorted(root.iterdir()):
        if entry.is_symlink():
            continue
        if entry.is_dir():
            if entry.name in IGNORED_DIRS:
                continue
            yield from iter_files(entry)
        elif entry.is_file():
            yield entry
