from dataclasses import dataclass, field
from enum import StrEnum


class DiffLineType(StrEnum):
    CONTEXT = " "
    REMOVED = "-"
    ADDED = "+"


@dataclass
class DiffLine:
    type: DiffLineType
    content: str

    @property
    def in_post_image(self) -> bool:
        return self.type in (DiffLineType.ADDED, DiffLineType.CONTEXT)


@dataclass
class DiffHunk:
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: list[DiffLine] = field(default_factory=list)


@dataclass
class DiffChange:
    file_path: str
    hunks: list[DiffHunk] = field(default_factory=list)
