"""
Test Configuration
==================

Pytest configuration with shared fixtures: test settings, a stub upstream
client, the FastAPI app and an HTTP client bound to it.
"""

import os

# Must be set before the application modules configure logging and settings
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("ZABBIX_VERIFY_ON_STARTUP", "false")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from zabbix_mcp.api.main import create_app
from zabbix_mcp.api.sse import (
    MCPBridge,
    SessionReaper,
    SessionTable,
    StreamingTransport,
)
from zabbix_mcp.config.settings import Settings
from zabbix_mcp.mcp_server import ToolContext, ToolRegistry

from tests.utils.mocks import StubZabbixClient


def make_settings(**overrides) -> Settings:
    values = {
        "environment": "testing",
        "zabbix_url": "http://zabbix.test",
        "zabbix_user": "Admin",
        "zabbix_password": "zabbix",
        "zabbix_verify_on_startup": False,
        "read_only": True,
        "log_level": "DEBUG",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def test_settings() -> Settings:
    """Test settings fixture."""
    return make_settings()


@pytest.fixture
def stub_client() -> StubZabbixClient:
    """Upstream client serving fixtures."""
    return StubZabbixClient()


@pytest.fixture
def registry(stub_client: StubZabbixClient) -> ToolRegistry:
    """Read-only tool registry over the stub client."""
    return ToolRegistry(ToolContext(client=stub_client, base_url="http://zabbix.test", read_only=True))


@pytest.fixture
def write_registry(stub_client: StubZabbixClient) -> ToolRegistry:
    """Tool registry with mutating tools enabled."""
    return ToolRegistry(ToolContext(client=stub_client, base_url="http://zabbix.test", read_only=False))


@pytest.fixture
def transport(registry: ToolRegistry) -> StreamingTransport:
    """Streaming transport without the HTTP layer."""
    bridge = MCPBridge(registry, server_name="zabbix-mcp-server", server_version="test")
    return StreamingTransport(SessionTable(max_sessions=10), bridge, keepalive_interval=None)


@pytest.fixture
def reaper(transport: StreamingTransport) -> SessionReaper:
    return SessionReaper(transport, idle_timeout=1800.0, interval=300.0)


@pytest.fixture
def app(test_settings: Settings, stub_client: StubZabbixClient) -> FastAPI:
    """FastAPI application wired to the stub client."""
    return create_app(settings=test_settings, zabbix_client=stub_client)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client talking to the app in-process."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://test"
    ) as http_client:
        yield http_client
