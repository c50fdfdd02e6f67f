from datetime import datetime
from enum import StrEnum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field


class DirectiveKind(StrEnum):
    RUN_COMMAND = "RUN_COMMAND"
    READ_FILE = "READ_FILE"
    LIST_DIR = "LIST_DIR"
    TEST_COMMAND = "TEST_COMMAND"
    SEARCH_FILES = "SEARCH_FILES"
    GENERATE_DIFF = "GENERATE_DIFF"
    APPLY_DIFF = "APPLY_DIFF"
    CREATE_FILE = "CREATE_FILE"

    @property
    def prefix(self) -> str:
        return f"{self.value}:"


class _DirectiveBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    def describe(self) -> str:
        """Text shown after the label in the transcript."""
        return self.argument


class RunCommand(_DirectiveBase):
    kind: Literal[DirectiveKind.RUN_COMMAND] = DirectiveKind.RUN_COMMAND
    argument: str


class ReadFile(_DirectiveBase):
    kind: Literal[DirectiveKind.READ_FILE] = DirectiveKind.READ_FILE
    argument: str


class ListDir(_DirectiveBase):
    kind: Literal[DirectiveKind.LIST_DIR] = DirectiveKind.LIST_DIR
    argument: str


class TestCommand(_DirectiveBase):
    __test__ = False

    kind: Literal[DirectiveKind.TEST_COMMAND] = DirectiveKind.TEST_COMMAND
    argument: str


class SearchFiles(_DirectiveBase):
    kind: Literal[DirectiveKind.SEARCH_FILES] = DirectiveKind.SEARCH_FILES
    pattern: str
    directory: str

    @property
    def argument(self) -> tuple[str, str]:
        return self.pattern, self.directory

    def describe(self) -> str:
        return f"{self.pattern} in {self.directory}"


class GenerateDiff(_DirectiveBase):
    kind: Literal[DirectiveKind.GENERATE_DIFF] = DirectiveKind.GENERATE_DIFF
    argument: str


class ApplyDiff(_DirectiveBase):
    """
    Inline form: the diff is the remainder of the directive line, with
    literal `\\n` escapes standing for line breaks. Block form: the
    remainder is empty and the diff is the collected payload.
    """

    kind: Literal[DirectiveKind.APPLY_DIFF] = DirectiveKind.APPLY_DIFF
    argument: str
    payload: list[str] | None = None

    @property
    def diff_text(self) -> str:
        if self.payload is not None:
            return "\n".join(self.payload)
        if "\n" not in self.argument and "\\n" in self.argument:
            return self.argument.replace("\\n", "\n")
        return self.argument

    def describe(self) -> str:
        return self.diff_text


class CreateFile(_DirectiveBase):
    kind: Literal[DirectiveKind.CREATE_FILE] = DirectiveKind.CREATE_FILE
    argument: str
    payload: list[str] = Field(default_factory=list)

    @property
    def content(self) -> str:
        return "\n".join(self.payload)


Directive = Annotated[
    Union[
        RunCommand,
        ReadFile,
        ListDir,
        TestCommand,
        SearchFiles,
        GenerateDiff,
        ApplyDiff,
        CreateFile,
    ],
    Field(discriminator="kind"),
]


class DirectiveStatus(StrEnum):
    SUCCESS = "success"
    ERROR = "error"


class DirectiveResult(BaseModel):
    index: int
    kind: DirectiveKind
    header: str
    status: DirectiveStatus
    output: str
    error_type: str | None = None
    started_at: datetime
    ended_at: datetime
    duration_sec: float


class ExecutionReport(BaseModel):
    results: list[DirectiveResult] = Field(default_factory=list)
    transcript: str

    @computed_field
    @property
    def count(self) -> int:
        return len(self.results)

    @property
    def failed(self) -> list[DirectiveResult]:
        return [r for r in self.results if r.status == DirectiveStatus.ERROR]
