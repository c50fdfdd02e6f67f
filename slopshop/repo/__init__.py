from .context import DEFAULT_EXCLUDE, RepoFile, create_context, read_repository, should_exclude

__all__ = [
    "DEFAULT_EXCLUDE",
    "RepoFile",
    "create_context",
    "read_repository",
    "should_exclude",
]
