"""
MCP Server Package
==================

Tool catalog and registry for the Zabbix MCP server.
"""

from .errors import (
    ToolError,
    UnknownToolError,
    InvalidToolArgumentsError,
    ReadOnlyViolationError,
)
from .registry import ToolRegistry
from .tools import TOOL_SPECS, ToolContext, ToolName, ToolSpec

__all__ = [
    "ToolError",
    "UnknownToolError",
    "InvalidToolArgumentsError",
    "ReadOnlyViolationError",
    "ToolRegistry",
    "TOOL_SPECS",
    "ToolContext",
    "ToolName",
    "ToolSpec",
]
