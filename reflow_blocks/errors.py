"""Error taxonomy shared by the parser, the generator and the mutation API."""


class WorkflowError(Exception):
    """Base class for every error raised by reflow_blocks."""


class ScriptSyntaxError(WorkflowError):
    """Source text does not parse."""

    def __init__(self, message: str, line: int | None = None, column: int | None = None):
        self.line = line
        self.column = column
        if line is not None:
            message = f"{message} (line {line}, column {column})"
        super().__init__(message)


class UnsupportedBlockKindError(WorkflowError):
    """A block kind has no schema or no emission rule."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"Unsupported block kind: {kind}")


class StructuralError(WorkflowError):
    """A structural edit targets a missing block or slot, or would create a cycle."""
