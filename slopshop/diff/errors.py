class DiffError(Exception):
    pass


class ParseError(DiffError):
    """Malformed diff structure. Aborts the whole diff."""


class PathMismatchError(ParseError):
    def __init__(self, old_path: str, new_path: str):
        super().__init__(f"mismatched file paths in diff: {old_path} vs {new_path}")
        self.old_path = old_path
        self.new_path = new_path


class HunkOrderError(ParseError):
    def __init__(self, file_path: str, previous_start: int, previous_count: int, start: int):
        super().__init__(
            f"hunks for {file_path} are out of order or overlap: "
            f"hunk at line {start} follows hunk at line {previous_start} "
            f"spanning {previous_count} line(s)"
        )
        self.file_path = file_path
        self.start = start


class PatchIOError(DiffError):
    """Reading or writing a patch target failed."""

    def __init__(self, file_path: str, message: str):
        super().__init__(f"failed to apply change to {file_path}: {message}")
        self.file_path = file_path
