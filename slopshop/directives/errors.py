class ExecutionError(Exception):
    """A run/test subprocess failed to start or exited non-zero."""

    def __init__(
        self,
        command: str,
        message: str,
        exit_code: int | None = None,
        output: str = "",
    ):
        super().__init__(message)
        self.command = command
        self.exit_code = exit_code
        self.output = output


class NoDiffGeneratorError(Exception):
    def __init__(self):
        super().__init__("no model backend configured for diff generation")
