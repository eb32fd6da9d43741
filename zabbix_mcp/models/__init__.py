"""
Data Models
===========

Pydantic models shared across the server.
"""

from .schemas import ErrorResponse, HealthStatus, ToolParams, ZabbixGetParams

__all__ = ["ErrorResponse", "HealthStatus", "ToolParams", "ZabbixGetParams"]
