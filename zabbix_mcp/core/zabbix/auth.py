"""
Authentication Strategies
=========================

Ways of attaching a Zabbix auth token to a JSON-RPC request. The client tries
them in order when the upstream rejects the credentials of the previous one.
"""

from typing import Any, Dict, Tuple


class AuthStrategy:
    """Attaches an auth token to an outgoing request."""

    name = "none"

    def apply(self, payload: Dict[str, Any], headers: Dict[str, str], token: str) -> None:
        raise NotImplementedError


class BearerHeaderAuth(AuthStrategy):
    """`Authorization: Bearer <token>` (Zabbix 6.4 and later)."""

    name = "bearer"

    def apply(self, payload: Dict[str, Any], headers: Dict[str, str], token: str) -> None:
        headers["Authorization"] = f"Bearer {token}"


class LegacyParamAuth(AuthStrategy):
    """`auth` member in the request body (pre-6.4 servers)."""

    name = "legacy"

    def apply(self, payload: Dict[str, Any], headers: Dict[str, str], token: str) -> None:
        payload["auth"] = token


DEFAULT_AUTH_STRATEGIES: Tuple[AuthStrategy, ...] = (BearerHeaderAuth(), LegacyParamAuth())
