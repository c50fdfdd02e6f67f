"""Line-oriented directive protocol: scanning, dispatch and transcripts."""

from .errors import ExecutionError, NoDiffGeneratorError
from .executor import execute_directives, format_transcript
from .handlers import DiffGenerator, DirectiveContext, dispatch
from .models import (
    ApplyDiff,
    CreateFile,
    Directive,
    DirectiveKind,
    DirectiveResult,
    DirectiveStatus,
    ExecutionReport,
    GenerateDiff,
    ListDir,
    ReadFile,
    RunCommand,
    SearchFiles,
    TestCommand,
)
from .scanner import iter_directives, parse_directive_line, scan_directives

__all__ = [
    "Directive",
    "DirectiveKind",
    "RunCommand",
    "ReadFile",
    "ListDir",
    "TestCommand",
    "SearchFiles",
    "GenerateDiff",
    "ApplyDiff",
    "CreateFile",
    "DirectiveStatus",
    "DirectiveResult",
    "ExecutionReport",
    "ExecutionError",
    "NoDiffGeneratorError",
    "DiffGenerator",
    "DirectiveContext",
    "dispatch",
    "parse_directive_line",
    "iter_directives",
    "scan_directives",
    "execute_directives",
    "format_transcript",
]
