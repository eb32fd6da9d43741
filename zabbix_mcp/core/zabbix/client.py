"""
Zabbix API Client
=================

HTTP client for the Zabbix JSON-RPC API.
Handles login, token reuse across concurrent callers and authentication fallback.
"""

import asyncio
import itertools
import json
from typing import Any, Dict, List, Optional, Sequence, Union

import aiohttp

from zabbix_mcp.config.logging import get_logger
from zabbix_mcp.config.settings import Settings

from .auth import AuthStrategy, DEFAULT_AUTH_STRATEGIES
from .errors import (
    ZabbixError,
    ZabbixConnectionError,
    ZabbixHTTPError,
    ZabbixAPIError,
    ZabbixAuthError,
)

logger = get_logger(__name__)

# Methods the Zabbix API rejects when credentials are attached
UNAUTHENTICATED_METHODS = frozenset({"user.login", "apiinfo.version"})

IdList = Union[str, Sequence[str]]


def _id_list(ids: IdList) -> List[str]:
    if isinstance(ids, str):
        return [ids]
    return [str(i) for i in ids]


class ZabbixClient:
    """Client for the Zabbix JSON-RPC API."""

    def __init__(
        self,
        url: str,
        token: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
        auth_strategies: Sequence[AuthStrategy] = DEFAULT_AUTH_STRATEGIES,
        max_auth_attempts: int = 2,
    ):
        self.url = url.rstrip("/")
        self.timeout = timeout
        self.auth_strategies = tuple(auth_strategies)
        self.max_auth_attempts = max_auth_attempts
        self.logger = logger.bind(component="zabbix_client")

        self._static_token = token
        self._user = user
        self._password = password
        self._auth_token: Optional[str] = None
        self._strategy_index = 0
        self._request_ids = itertools.count(1)
        self._login_future: Optional["asyncio.Future[None]"] = None
        self._session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ZabbixClient":
        """Build a client from application settings."""
        return cls(
            url=settings.zabbix_url,
            token=settings.zabbix_token,
            user=settings.zabbix_user,
            password=settings.zabbix_password,
            timeout=settings.zabbix_timeout_seconds,
            max_auth_attempts=settings.zabbix_max_auth_attempts,
        )

    @property
    def api_url(self) -> str:
        return f"{self.url}/api_jsonrpc.php"

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout, connect=10)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    def is_authenticated(self) -> bool:
        """Check if the client holds a usable auth token."""
        return self._auth_token is not None

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _post(self, payload: Dict[str, Any], headers: Dict[str, str]) -> Dict[str, Any]:
        """Send one JSON-RPC request and return the decoded response body."""
        session = await self._get_session()
        try:
            async with session.post(
                self.api_url, data=json.dumps(payload), headers=headers
            ) as response:
                if response.status != 200:
                    raise ZabbixHTTPError(response.status, await response.text())
                body = await response.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise ZabbixConnectionError(
                f"Zabbix API request timed out after {self.timeout}s"
            ) from e
        except aiohttp.ClientError as e:
            raise ZabbixConnectionError(f"HTTP Error: {e}") from e
        except json.JSONDecodeError as e:
            raise ZabbixConnectionError(f"Invalid JSON from Zabbix API: {e}") from e

        if not isinstance(body, dict):
            raise ZabbixConnectionError("Unexpected response shape from Zabbix API")
        return body

    def _ordered_strategies(self) -> List[AuthStrategy]:
        strategies = list(self.auth_strategies)
        ordered = strategies[self._strategy_index :] + strategies[: self._strategy_index]
        return ordered[: self.max_auth_attempts]

    async def request(self, method: str, params: Any = None) -> Any:
        """
        Make a raw request to the Zabbix API.

        Authentication strategies are tried in order while the upstream keeps
        rejecting the credentials; any other error is raised immediately.

        Args:
            method: JSON-RPC method name (e.g. ``host.get``)
            params: Method parameters

        Returns:
            The ``result`` member of the response
        """
        token = None if method in UNAUTHENTICATED_METHODS else self._auth_token
        strategies: List[Optional[AuthStrategy]] = (
            list(self._ordered_strategies()) if token else [None]
        )

        last_error: Optional[ZabbixAPIError] = None
        for attempt, strategy in enumerate(strategies):
            payload: Dict[str, Any] = {
                "jsonrpc": "2.0",
                "method": method,
                "params": params if params is not None else {},
                "id": next(self._request_ids),
            }
            headers = {"Content-Type": "application/json-rpc"}
            if strategy is not None and token is not None:
                strategy.apply(payload, headers, token)

            body = await self._post(payload, headers)

            error = body.get("error")
            if not error:
                if strategy is not None:
                    self._remember_strategy(strategy)
                self.logger.debug("Zabbix request succeeded", method=method)
                return body.get("result")

            api_error = ZabbixAPIError.from_payload(method, error)
            if strategy is not None and api_error.is_auth_error:
                last_error = api_error
                if attempt + 1 < len(strategies):
                    self.logger.warning(
                        "Authentication rejected, trying next strategy",
                        method=method,
                        strategy=strategy.name,
                        upstream_code=api_error.code,
                    )
                    continue
                break

            self.logger.error(
                "Zabbix API error",
                method=method,
                upstream_code=api_error.code,
                upstream_message=api_error.message,
            )
            raise api_error

        self._invalidate_login_token()
        message = "All authentication methods failed"
        if last_error is not None:
            message = f"Zabbix API Authorization Error: {last_error.message}"
        self.logger.error("Zabbix authentication failed", method=method)
        raise ZabbixAuthError(
            message,
            method=method,
            code=last_error.code if last_error else -32602,
            data=last_error.data if last_error else None,
        )

    def _remember_strategy(self, strategy: AuthStrategy) -> None:
        index = self.auth_strategies.index(strategy)
        if index != self._strategy_index:
            self.logger.info("Switching preferred auth strategy", strategy=strategy.name)
            self._strategy_index = index

    def _invalidate_login_token(self) -> None:
        # Tokens obtained from user.login expire; static API tokens do not
        if self._auth_token is not None and self._auth_token != self._static_token:
            self._auth_token = None

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def login(self) -> None:
        """Authenticate with the Zabbix API."""
        self.logger.info("Starting authentication process")

        connectivity = await self.verify_connectivity()
        if not connectivity["connected"]:
            raise ZabbixConnectionError(
                "Cannot connect to Zabbix API. Please verify the URL and network connectivity."
            )
        self.logger.info("Connected to Zabbix API", version=connectivity["version"])

        if self._static_token:
            self._auth_token = self._static_token
            try:
                await self.request("host.get", {"output": ["hostid"], "limit": 1})
            except ZabbixError as e:
                self._auth_token = None
                raise ZabbixAuthError("Invalid API token provided") from e
            self.logger.info("Token authentication successful")
            return

        if not self._user or not self._password:
            raise ZabbixAuthError("Either token or user/password must be provided")

        self.logger.info("Attempting username/password authentication", user=self._user)
        try:
            token = await self.request(
                "user.login", {"username": self._user, "password": self._password}
            )
        except ZabbixAPIError as e:
            text = f"{e.message} {e.data or ''}"
            if "Login name or password is incorrect" in text:
                raise ZabbixAuthError("Invalid username or password") from e
            if "User is blocked" in text:
                raise ZabbixAuthError("User account is blocked") from e
            if "GUI access disabled" in text:
                raise ZabbixAuthError("GUI access is disabled for this user") from e
            raise ZabbixAuthError(f"Authentication failed: {e}") from e

        if not isinstance(token, str) or not token:
            raise ZabbixAuthError("Authentication failed: empty session token")
        self._auth_token = token
        self.logger.info("Username/password authentication successful")

    async def ensure_authenticated(self) -> None:
        """
        Log in if needed.

        Concurrent callers share a single in-flight login instead of each
        starting their own.
        """
        if self._auth_token is not None:
            return

        if self._login_future is None or self._login_future.done():
            self._login_future = asyncio.ensure_future(self.login())
        future = self._login_future

        try:
            await asyncio.shield(future)
        except Exception:
            if self._login_future is future:
                self._login_future = None
            raise

    async def logout(self) -> None:
        """Logout from the Zabbix API (session tokens only)."""
        if self._auth_token and self._auth_token != self._static_token:
            try:
                await self.request("user.logout", [])
            except ZabbixError as e:
                self.logger.warning("Logout failed", error=str(e))
        self._auth_token = None

    async def verify_connectivity(self, test_auth: bool = False) -> Dict[str, Any]:
        """
        Verify Zabbix connectivity and API version.

        Args:
            test_auth: Also check that the configured credentials are accepted

        Returns:
            Dictionary with ``version``, ``connected`` and, when requested,
            ``authenticated``/``auth_method``
        """
        try:
            version = await self.apiinfo_version()
        except ZabbixError as e:
            self.logger.error("Zabbix connectivity check failed", error=str(e))
            return {
                "version": "unknown",
                "connected": False,
                "error": f"Connectivity failed: {e}",
            }

        result: Dict[str, Any] = {"version": version, "connected": True}
        if not test_auth:
            return result

        try:
            if self._auth_token:
                await self.request("user.get", {"output": ["userid"], "limit": 1})
                auth_method = "existing_token"
            else:
                await self.ensure_authenticated()
                auth_method = "api_token" if self._static_token else "username_password"
        except ZabbixError as e:
            return {**result, "authenticated": False, "error": f"Authentication failed: {e}"}
        return {**result, "authenticated": True, "auth_method": auth_method}

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    async def call(self, method: str, params: Any = None) -> Any:
        """Authenticated request."""
        await self.ensure_authenticated()
        return await self.request(method, params)

    async def apiinfo_version(self) -> str:
        # apiinfo.version requires an empty params object
        return await self.request("apiinfo.version", {})

    async def host_get(self, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.call("host.get", params or {})

    async def host_create(self, params: Dict[str, Any]) -> Any:
        return await self.call("host.create", params)

    async def hostgroup_get(self, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.call("hostgroup.get", params or {})

    async def item_get(self, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.call("item.get", params or {})

    async def item_create(self, params: Union[Dict[str, Any], List[Dict[str, Any]]]) -> Any:
        return await self.call("item.create", params)

    async def item_delete(self, itemids: IdList) -> Any:
        return await self.call("item.delete", _id_list(itemids))

    async def trigger_get(self, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.call("trigger.get", params or {})

    async def problem_get(self, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.call("problem.get", params or {})

    async def history_get(self, params: Dict[str, Any]) -> Any:
        return await self.call("history.get", params)

    async def dashboard_get(self, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.call("dashboard.get", params or {})

    async def dashboard_create(self, params: Dict[str, Any]) -> Any:
        return await self.call("dashboard.create", params)

    async def dashboard_update(self, params: Dict[str, Any]) -> Any:
        return await self.call("dashboard.update", params)

    async def dashboard_delete(self, dashboardids: IdList) -> Any:
        return await self.call("dashboard.delete", _id_list(dashboardids))
