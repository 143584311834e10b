"""Error kinds shared by handlers, the token cache and the dispatcher."""

from enum import Enum
from typing import Any

from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, METHOD_NOT_FOUND, ErrorData

# MCP resource-not-found code; mcp.types does not export it.
RESOURCE_NOT_FOUND = -32002


class ErrorKind(str, Enum):
    """Category of a tool failure; decides the MCP error code."""

    INVALID_PARAMS = "invalid_params"
    METHOD_NOT_FOUND = "method_not_found"
    INTERNAL = "internal"
    NOT_FOUND = "not_found"


_ERROR_CODES = {
    ErrorKind.INVALID_PARAMS: INVALID_PARAMS,
    ErrorKind.METHOD_NOT_FOUND: METHOD_NOT_FOUND,
    ErrorKind.INTERNAL: INTERNAL_ERROR,
    ErrorKind.NOT_FOUND: RESOURCE_NOT_FOUND,
}


class ToolError(Exception):
    """A tagged failure: returned inside a failed result, or raised by the token cache."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ToolError):
            return NotImplemented
        return self.kind == other.kind and self.message == other.message

    def __hash__(self) -> int:
        return hash((self.kind, self.message))

    def __repr__(self) -> str:
        return f"ToolError({self.kind.value!r}, {self.message!r})"

    def to_mcp_error(self) -> McpError:
        """Translate into the error the MCP host receives."""
        return McpError(ErrorData(code=_ERROR_CODES[self.kind], message=self.message))


def invalid_params(message: str) -> tuple[bool, ToolError]:
    """Failed result for a locally rejected argument."""
    return False, ToolError(ErrorKind.INVALID_PARAMS, message)


# Every handler returns (True, value) or (False, ToolError).
Result = tuple[bool, Any]
