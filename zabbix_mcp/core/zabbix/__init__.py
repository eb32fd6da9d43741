"""
Zabbix API Gateway
==================

Authenticated JSON-RPC client for the Zabbix management API.
"""

from .auth import AuthStrategy, BearerHeaderAuth, LegacyParamAuth, DEFAULT_AUTH_STRATEGIES
from .client import ZabbixClient
from .errors import (
    ZabbixError,
    ZabbixConnectionError,
    ZabbixHTTPError,
    ZabbixAPIError,
    ZabbixAuthError,
)

__all__ = [
    "AuthStrategy",
    "BearerHeaderAuth",
    "LegacyParamAuth",
    "DEFAULT_AUTH_STRATEGIES",
    "ZabbixClient",
    "ZabbixError",
    "ZabbixConnectionError",
    "ZabbixHTTPError",
    "ZabbixAPIError",
    "ZabbixAuthError",
]
