from typing import Optional


class ToolError(Exception):
    """Base class for failures reported to the user with a non-zero exit."""


class OracleConnectionError(ToolError):
    pass


class QueryError(ToolError):
    def __init__(self, message: str, statement: Optional[str] = None) -> None:
        super().__init__(message)
        self.statement = statement


class IllegalResultError(ToolError):
    pass


class InputRangeError(ToolError):
    pass
