"""
Tool Errors
===========

Failures raised while resolving or invoking a tool.
"""

from typing import Any, Dict, List, Optional


class ToolError(Exception):
    """Base exception for tool failures."""

    error_code = "TOOL_EXECUTION_ERROR"

    def __init__(self, tool: str, message: str):
        self.tool = tool
        super().__init__(message)


class UnknownToolError(ToolError):
    """Raised when a tool name is not registered."""

    error_code = "UNKNOWN_TOOL"

    def __init__(self, tool: str):
        super().__init__(tool, f"Unknown tool: {tool}")


class InvalidToolArgumentsError(ToolError):
    """Raised when tool arguments fail validation."""

    error_code = "INVALID_ARGUMENTS"

    def __init__(self, tool: str, errors: Optional[List[Dict[str, Any]]] = None):
        self.errors = errors or []
        fields = ", ".join(
            ".".join(str(part) for part in error.get("loc", ())) or "arguments"
            for error in self.errors
        )
        message = f"Invalid arguments for tool '{tool}'"
        if fields:
            message = f"{message}: {fields}"
        super().__init__(tool, message)


class ReadOnlyViolationError(ToolError):
    """Raised when a mutating tool is called in read-only mode."""

    error_code = "READ_ONLY_POLICY"

    def __init__(self, tool: str):
        super().__init__(tool, f"Operation '{tool}' is not allowed in read-only mode")
