"""
MCP Bridge
==========

Bridge between posted JSON-RPC messages and the tool registry.
Turns every outcome, including tool and upstream failures, into a JSON-RPC
response so nothing escapes to the transport.
"""

import json
from typing import Any, Dict, Optional

from mcp.types import (
    CallToolResult,
    Implementation,
    InitializeResult,
    INTERNAL_ERROR,
    INVALID_PARAMS,
    LATEST_PROTOCOL_VERSION,
    LoggingCapability,
    METHOD_NOT_FOUND,
    ServerCapabilities,
    TextContent,
    ToolsCapability,
)

from zabbix_mcp.config.logging import get_logger
from zabbix_mcp.core.zabbix import ZabbixError, ZabbixAPIError, ZabbixHTTPError
from zabbix_mcp.mcp_server import ToolError, ToolRegistry, UnknownToolError
from zabbix_mcp.mcp_server.errors import InvalidToolArgumentsError

from .models import MCPRequest

logger = get_logger(__name__)


def _dump(model: Any) -> Dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


class MCPBridge:
    """
    Executes MCP methods against the tool registry.

    Supported methods: ``initialize``, ``ping``, ``tools/list``, ``tools/call``
    and any ``notifications/*`` (accepted, no response).
    """

    def __init__(self, registry: ToolRegistry, server_name: str, server_version: str):
        self.registry = registry
        self.server_name = server_name
        self.server_version = server_version
        self.logger = logger.bind(component="mcp_bridge")

    async def handle(self, message: MCPRequest, session_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Execute one message.

        Returns:
            The JSON-RPC response, or None for notifications
        """
        log = self.logger.bind(session_id=session_id, method=message.method)

        if message.method.startswith("notifications/"):
            log.debug("Notification received")
            return None

        try:
            if message.method == "initialize":
                result = self._initialize(message.params or {})
            elif message.method == "ping":
                result = {}
            elif message.method == "tools/list":
                result = {"tools": [_dump(tool) for tool in self.registry.list()]}
            elif message.method == "tools/call":
                result = await self._call_tool(message.params or {}, log)
            else:
                return self._error(message, METHOD_NOT_FOUND, f"Method not found: {message.method}")
        except UnknownToolError as e:
            return self._error(message, INVALID_PARAMS, str(e), {"tool": e.tool})
        except _InvalidCallParams as e:
            return self._error(message, INVALID_PARAMS, str(e))
        except Exception as e:
            log.error("Unhandled error while processing message", error=str(e), exc_info=True)
            return self._error(message, INTERNAL_ERROR, "Internal error")

        if message.is_notification:
            return None
        return {"jsonrpc": "2.0", "id": message.id, "result": result}

    def _initialize(self, params: Dict[str, Any]) -> Dict[str, Any]:
        client_info = params.get("clientInfo") or {}
        self.logger.info(
            "Client initialized",
            client=client_info.get("name"),
            client_version=client_info.get("version"),
            requested_protocol=params.get("protocolVersion"),
        )
        return _dump(
            InitializeResult(
                protocolVersion=LATEST_PROTOCOL_VERSION,
                capabilities=ServerCapabilities(
                    logging=LoggingCapability(),
                    tools=ToolsCapability(listChanged=False),
                ),
                serverInfo=Implementation(name=self.server_name, version=self.server_version),
            )
        )

    async def _call_tool(self, params: Dict[str, Any], log: Any) -> Dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise _InvalidCallParams("tools/call requires a tool name")
        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            raise _InvalidCallParams("tools/call arguments must be an object")

        log = log.bind(tool=name)
        try:
            result = await self.registry.invoke(name, arguments)
        except UnknownToolError:
            raise
        except InvalidToolArgumentsError as e:
            log.info("Tool call rejected", error_code=e.error_code)
            return self._tool_error(name, e.error_code, str(e), details=e.errors)
        except ToolError as e:
            log.warning("Tool call rejected", error_code=e.error_code, error=str(e))
            return self._tool_error(name, e.error_code, str(e))
        except ZabbixError as e:
            upstream: Dict[str, Any] = {}
            if isinstance(e, ZabbixAPIError):
                upstream = {"upstream_code": e.code, "upstream_method": e.method}
            elif isinstance(e, ZabbixHTTPError):
                upstream = {"upstream_status": e.status}
            log.error("Zabbix API error", error_code=e.error_code, error=str(e), **upstream)
            return self._tool_error(name, e.error_code, str(e), **upstream)
        except Exception as e:
            log.error("Tool execution failed", error=str(e), exc_info=True)
            return self._tool_error(name, "TOOL_EXECUTION_ERROR", str(e))

        log.info("Tool call completed")
        return _dump(
            CallToolResult(
                content=[TextContent(type="text", text=json.dumps(result, indent=2, default=str))]
            )
        )

    def _tool_error(self, tool: str, error_code: str, message: str, **details: Any) -> Dict[str, Any]:
        body = {"error": message, "error_code": error_code, "tool": tool}
        body.update({k: v for k, v in details.items() if v is not None})
        return _dump(
            CallToolResult(
                content=[TextContent(type="text", text=json.dumps(body, indent=2, default=str))],
                isError=True,
            )
        )

    def _error(
        self, message: MCPRequest, code: int, text: str, data: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        if message.is_notification:
            return None
        error: Dict[str, Any] = {"code": code, "message": text}
        if data is not None:
            error["data"] = data
        return {"jsonrpc": "2.0", "id": message.id, "error": error}


class _InvalidCallParams(Exception):
    """Malformed ``tools/call`` parameters."""
