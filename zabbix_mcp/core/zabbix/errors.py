"""
Zabbix Errors
=============

Exception hierarchy for failures talking to the Zabbix API.
"""

from typing import Any, Dict, Optional

# JSON-RPC codes the Zabbix API returns for rejected credentials and expired sessions
INVALID_PARAMS_CODE = -32602
APPLICATION_ERROR_CODE = -32500

_AUTH_MARKERS = ("auth", "session terminated", "re-login")


class ZabbixError(Exception):
    """Base exception for Zabbix API failures."""

    error_code = "UPSTREAM_ERROR"


class ZabbixConnectionError(ZabbixError):
    """Raised when the Zabbix API cannot be reached or times out."""

    error_code = "UPSTREAM_UNAVAILABLE"


class ZabbixHTTPError(ZabbixConnectionError):
    """Raised when the Zabbix frontend answers with a non-200 status."""

    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"HTTP Error: Zabbix API returned status {status}")


class ZabbixAPIError(ZabbixError):
    """JSON-RPC error returned by the Zabbix API."""

    def __init__(self, method: str, code: int, message: str, data: Optional[str] = None):
        self.method = method
        self.code = code
        self.message = message
        self.data = data
        detail = f"{message} {data}".strip() if data else message
        super().__init__(f"Zabbix API Error: {detail} ({code})")

    @classmethod
    def from_payload(cls, method: str, error: Dict[str, Any]) -> "ZabbixAPIError":
        """Build an error from the `error` member of a JSON-RPC response."""
        return cls(
            method=method,
            code=int(error.get("code", 0)),
            message=str(error.get("message", "Unknown error")),
            data=str(error["data"]) if error.get("data") is not None else None,
        )

    @property
    def is_auth_error(self) -> bool:
        """Whether the upstream rejected the credentials rather than the call."""
        if self.code not in (INVALID_PARAMS_CODE, APPLICATION_ERROR_CODE):
            return False
        text = f"{self.message} {self.data or ''}".lower()
        return any(marker in text for marker in _AUTH_MARKERS)


class ZabbixAuthError(ZabbixAPIError):
    """Raised when authentication is rejected by every strategy."""

    error_code = "UPSTREAM_AUTH_ERROR"

    def __init__(
        self,
        message: str,
        method: str = "user.login",
        code: int = INVALID_PARAMS_CODE,
        data: Optional[str] = None,
    ):
        super().__init__(method=method, code=code, message=message, data=data)
        # Keep the plain message; callers show it to users as-is
        self.args = (message,)

    def __str__(self) -> str:
        return self.message
