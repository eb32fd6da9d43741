"""
API Dependencies
================

FastAPI dependencies resolving the per-application components stored on
``app.state`` by ``create_app``.
"""

from fastapi import Request

from zabbix_mcp.api.sse.transport import StreamingTransport


def get_transport(request: Request) -> StreamingTransport:
    return request.app.state.transport
