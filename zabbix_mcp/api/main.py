"""
FastAPI Application
==================

Main FastAPI application serving the Zabbix MCP tools over an SSE
session transport.
"""

from contextlib import asynccontextmanager
import time
import uuid
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from zabbix_mcp.api.routes import health
from zabbix_mcp.api.routes.sse import build_router
from zabbix_mcp.api.sse import (
    MCPBridge,
    SessionReaper,
    SessionTable,
    StreamingTransport,
    TransportError,
)
from zabbix_mcp.config.logging import get_logger
from zabbix_mcp.config.settings import Settings, get_settings
from zabbix_mcp.core.zabbix import ZabbixClient
from zabbix_mcp.mcp_server import ToolContext, ToolRegistry
from zabbix_mcp.models.schemas import ErrorResponse

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    client: ZabbixClient = app.state.zabbix_client

    # Startup
    logger.info(
        "Starting Zabbix MCP server",
        version=settings.app_version,
        zabbix_url=settings.zabbix_url,
        read_only=settings.read_only,
    )

    if settings.zabbix_verify_on_startup:
        connectivity = await client.verify_connectivity()
        if not connectivity["connected"]:
            logger.error("Zabbix API unreachable", error=connectivity.get("error"))
            await client.close()
            raise RuntimeError(f"Zabbix API unreachable: {connectivity.get('error')}")
        logger.info("Zabbix API reachable", version=connectivity["version"])

    app.state.reaper.start()

    try:
        yield
    finally:
        # Shutdown
        logger.info("Shutting down Zabbix MCP server")

        await app.state.reaper.stop()
        app.state.transport.close_all(reason="shutdown")

        try:
            await client.logout()
        except Exception as e:
            logger.error("Error logging out of Zabbix", error=str(e))
        await client.close()
        logger.info("Server shutdown complete")


def create_app(
    settings: Optional[Settings] = None, zabbix_client: Optional[ZabbixClient] = None
) -> FastAPI:
    """
    Application factory.

    Every component lives on ``app.state``; nothing is shared between apps.

    Args:
        settings: Settings to use instead of the process-wide instance
        zabbix_client: Upstream client to use instead of one built from settings

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    client = zabbix_client or ZabbixClient.from_settings(settings)

    registry = ToolRegistry(
        ToolContext(client=client, base_url=settings.zabbix_url, read_only=settings.read_only)
    )
    bridge = MCPBridge(registry, server_name=settings.app_name, server_version=settings.app_version)
    transport = StreamingTransport(
        SessionTable(max_sessions=settings.sse_max_sessions),
        bridge,
        message_path=settings.message_path,
        keepalive_interval=settings.sse_keepalive_interval_seconds,
    )
    reaper = SessionReaper(
        transport,
        idle_timeout=settings.session_idle_timeout_seconds,
        interval=settings.session_sweep_interval_seconds,
    )

    app = FastAPI(
        title="Zabbix MCP Server",
        description="Zabbix monitoring tools for MCP clients over Server-Sent Events",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.settings = settings
    app.state.zabbix_client = client
    app.state.registry = registry
    app.state.bridge = bridge
    app.state.transport = transport
    app.state.reaper = reaper
    app.state.started_at = time.time()

    # Add middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_hosts,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
        expose_headers=["X-Session-ID", "X-Request-ID"],
    )

    # Request ID middleware
    @app.middleware("http")
    async def add_request_id(request: Request, call_next) -> JSONResponse:  # type: ignore
        """Add request ID to all requests."""
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)  # type: ignore
        response.headers["X-Request-ID"] = request_id  # type: ignore

        return response  # type: ignore

    # Exception handlers
    @app.exception_handler(TransportError)
    async def transport_exception_handler(request: Request, exc: TransportError) -> JSONResponse:
        """Routing failures: missing or unknown session, malformed message."""
        error_response = ErrorResponse(
            error=exc.message,
            error_code=exc.error_code,
            details=exc.details,
            request_id=getattr(request.state, "request_id", None),
        )

        logger.warning(
            "Transport error",
            status_code=exc.status_code,
            error_code=exc.error_code,
            request_id=error_response.request_id,
        )

        return JSONResponse(
            status_code=exc.status_code, content=error_response.model_dump(mode="json")
        )

    @app.exception_handler(StarletteHTTPException)
    async def custom_http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Custom HTTP exception handler with structured error response."""
        error_response = ErrorResponse(
            error=str(exc.detail),
            error_code=str(exc.status_code),
            details=None,
            request_id=getattr(request.state, "request_id", None),
        )

        logger.info(
            "HTTP exception",
            status_code=exc.status_code,
            detail=exc.detail,
            request_id=error_response.request_id,
        )

        return JSONResponse(
            status_code=exc.status_code,
            content=error_response.model_dump(mode="json"),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """General exception handler for unexpected errors."""
        error_response = ErrorResponse(
            error="Internal server error",
            error_code="INTERNAL_ERROR",
            details={"exception": str(exc)} if settings.debug else None,
            request_id=getattr(request.state, "request_id", None),
        )

        logger.error(
            "Unhandled exception",
            exception=str(exc),
            request_id=error_response.request_id,
            exc_info=True,
        )

        return JSONResponse(status_code=500, content=error_response.model_dump(mode="json"))

    app.include_router(health.router)
    app.include_router(build_router(settings.message_path))

    return app


app = create_app()


def run_server() -> None:
    """Run the server with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "zabbix_mcp.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    run_server()
