"""
Tool Registry
=============

Catalog of the tools the server exposes: MCP descriptors for ``tools/list``
and policy-checked, validated invocation for ``tools/call``.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from mcp.types import Tool
from pydantic import ValidationError

from zabbix_mcp.config.logging import get_logger
from zabbix_mcp.models.schemas import ToolParams

from .errors import InvalidToolArgumentsError, ReadOnlyViolationError, UnknownToolError
from .tools import TOOL_SPECS, ToolContext, ToolSpec

logger = get_logger(__name__)


def _collapse_optional(schema: Dict[str, Any]) -> Dict[str, Any]:
    """Turn ``anyOf: [X, {"type": "null"}]`` into X."""
    any_of = schema.get("anyOf")
    if any_of:
        non_null = [s for s in any_of if s.get("type") != "null"]
        if len(non_null) == 1 and len(non_null) < len(any_of):
            merged = {k: v for k, v in schema.items() if k not in ("anyOf", "default")}
            merged.update(non_null[0])
            schema = merged
    if schema.get("default", ...) is None:
        schema = {k: v for k, v in schema.items() if k != "default"}
    return schema


def _strip_titles(node: Any) -> Any:
    if isinstance(node, dict):
        return {
            key: _strip_titles(value)
            for key, value in node.items()
            if not (key == "title" and isinstance(value, str))
        }
    if isinstance(node, list):
        return [_strip_titles(value) for value in node]
    return node


def build_input_schema(params_model: type) -> Dict[str, Any]:
    """JSON schema advertised for a tool, derived from its parameter model."""
    schema = params_model.model_json_schema()
    properties = {
        name: _strip_titles(_collapse_optional(prop))
        for name, prop in schema.get("properties", {}).items()
    }
    input_schema: Dict[str, Any] = {"type": "object", "properties": properties}
    if schema.get("required"):
        input_schema["required"] = list(schema["required"])
    return input_schema


class ToolRegistry:
    """Closed set of tools bound to one tool context."""

    def __init__(
        self,
        context: ToolContext,
        specs: Optional[Iterable[ToolSpec]] = None,
        read_only: Optional[bool] = None,
    ):
        self.context = context
        self.read_only = context.read_only if read_only is None else read_only
        self.logger = logger.bind(component="tool_registry")
        self._specs: Dict[str, ToolSpec] = {}
        for spec in TOOL_SPECS if specs is None else specs:
            name = spec.name.value if hasattr(spec.name, "value") else str(spec.name)
            if name in self._specs:
                raise ValueError(f"Duplicate tool name: {name}")
            self._specs[name] = spec

    def __len__(self) -> int:
        return len(self._specs)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    @property
    def names(self) -> List[str]:
        return list(self._specs)

    def get(self, name: str) -> ToolSpec:
        """
        Look up a tool.

        Raises:
            UnknownToolError: If no tool has this name
        """
        try:
            return self._specs[name]
        except KeyError:
            raise UnknownToolError(name) from None

    def is_mutating(self, name: str) -> bool:
        return self.get(name).mutating

    def list(self) -> List[Tool]:
        """MCP tool descriptors in registration order."""
        return [
            Tool(
                name=name,
                description=spec.description,
                inputSchema=build_input_schema(spec.params_model),
            )
            for name, spec in self._specs.items()
        ]

    async def invoke(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Invoke a tool.

        The read-only policy is checked before anything else so a rejected
        call never reaches the upstream API.

        Args:
            name: Tool name
            arguments: Raw tool arguments

        Returns:
            The handler result

        Raises:
            UnknownToolError: Unknown tool name
            ReadOnlyViolationError: Mutating tool in read-only mode
            InvalidToolArgumentsError: Arguments failed validation
        """
        spec = self.get(name)

        if self.read_only and spec.mutating:
            self.logger.warning("Rejected mutating tool in read-only mode", tool=name)
            raise ReadOnlyViolationError(name)

        try:
            params: ToolParams = spec.params_model.model_validate(dict(arguments or {}))
        except ValidationError as e:
            errors = e.errors(include_url=False, include_context=False, include_input=False)
            self.logger.info("Tool arguments rejected", tool=name, error_count=len(errors))
            raise InvalidToolArgumentsError(name, errors) from e

        self.logger.debug("Invoking tool", tool=name)
        return await spec.handler(self.context, params)
