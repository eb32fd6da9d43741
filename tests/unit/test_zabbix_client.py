"""
Unit Tests for Zabbix Client
============================

Authentication strategies, login sharing, error mapping and transport
failures. The HTTP layer is replaced with mocks.
"""

import asyncio
from typing import Any, Dict
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from zabbix_mcp.core.zabbix import (
    ZabbixAPIError,
    ZabbixAuthError,
    ZabbixClient,
    ZabbixConnectionError,
    ZabbixHTTPError,
)


pytestmark = pytest.mark.unit


NOT_AUTHORISED = {"code": -32602, "message": "Invalid params.", "data": "Not authorised."}


def ok(result: Any) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "result": result, "id": 1}


def failed(error: Dict[str, Any]) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "error": error, "id": 1}


def sent(mock: AsyncMock, index: int = -1):
    """Payload and headers of a recorded ``_post`` call."""
    args = mock.call_args_list[index].args
    return args[0], args[1]


@pytest.fixture
def client() -> ZabbixClient:
    return ZabbixClient(url="http://zabbix.test/", user="Admin", password="zabbix")


@pytest.fixture
def authed_client(client: ZabbixClient) -> ZabbixClient:
    client._auth_token = "session-token"
    return client


class TestRequestAuth:
    """Test how credentials are attached to requests."""

    def test_api_url(self, client):
        assert client.api_url == "http://zabbix.test/api_jsonrpc.php"

    @pytest.mark.asyncio
    async def test_version_request_carries_no_credentials(self, authed_client):
        with patch.object(authed_client, "_post", new=AsyncMock(return_value=ok("7.0.0"))) as post:
            assert await authed_client.apiinfo_version() == "7.0.0"

        payload, headers = sent(post)
        assert payload["method"] == "apiinfo.version"
        assert payload["params"] == {}
        assert "auth" not in payload
        assert "Authorization" not in headers

    @pytest.mark.asyncio
    async def test_bearer_header_first(self, authed_client):
        with patch.object(authed_client, "_post", new=AsyncMock(return_value=ok([]))) as post:
            await authed_client.host_get({"limit": 1})

        payload, headers = sent(post)
        assert headers["Authorization"] == "Bearer session-token"
        assert "auth" not in payload

    @pytest.mark.asyncio
    async def test_fallback_to_legacy_auth_is_remembered(self, authed_client):
        """Test a rejected bearer header falls back to the body token and sticks."""
        responses = [failed(NOT_AUTHORISED), ok([{"hostid": "1"}]), ok([])]
        with patch.object(authed_client, "_post", new=AsyncMock(side_effect=responses)) as post:
            assert await authed_client.host_get() == [{"hostid": "1"}]
            await authed_client.item_get()

        assert post.call_count == 3
        payload, headers = sent(post, 1)
        assert payload["auth"] == "session-token"
        assert "Authorization" not in headers

        payload, headers = sent(post, 2)
        assert payload["method"] == "item.get"
        assert payload["auth"] == "session-token"

    @pytest.mark.asyncio
    async def test_all_strategies_rejected(self, authed_client):
        """Test exhausted strategies raise and drop the session token."""
        responses = [failed(NOT_AUTHORISED), failed(NOT_AUTHORISED)]
        with patch.object(authed_client, "_post", new=AsyncMock(side_effect=responses)):
            with pytest.raises(ZabbixAuthError) as exc_info:
                await authed_client.request("host.get", {})

        assert str(exc_info.value).startswith("Zabbix API Authorization Error")
        assert exc_info.value.error_code == "UPSTREAM_AUTH_ERROR"
        assert not authed_client.is_authenticated()

    @pytest.mark.asyncio
    async def test_non_auth_error_raised_immediately(self, authed_client):
        error = {
            "code": -32500,
            "message": "Application error.",
            "data": "No permissions to referred object or it does not exist!",
        }
        with patch.object(authed_client, "_post", new=AsyncMock(return_value=failed(error))) as post:
            with pytest.raises(ZabbixAPIError) as exc_info:
                await authed_client.request("host.delete", ["1"])

        assert post.call_count == 1
        assert not isinstance(exc_info.value, ZabbixAuthError)
        assert exc_info.value.code == -32500
        assert exc_info.value.method == "host.delete"
        assert authed_client.is_authenticated()

    @pytest.mark.asyncio
    async def test_single_id_sent_as_list(self, authed_client):
        with patch.object(authed_client, "_post", new=AsyncMock(return_value=ok({"itemids": ["1"]}))) as post:
            await authed_client.item_delete("1")

        payload, _ = sent(post)
        assert payload["params"] == ["1"]


class TestLogin:
    """Test login, its error mapping and logout."""

    @staticmethod
    def upstream(login_delay: float = 0.0, login_error: Dict[str, Any] = None):
        async def post(payload, headers):
            method = payload["method"]
            if method == "apiinfo.version":
                return ok("7.0.0")
            if method == "user.login":
                await asyncio.sleep(login_delay)
                if login_error:
                    return failed(login_error)
                return ok("fresh-token")
            return ok([])

        return AsyncMock(side_effect=post)

    @staticmethod
    def methods(post: AsyncMock):
        return [c.args[0]["method"] for c in post.call_args_list]

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_login(self, client):
        post = self.upstream(login_delay=0.01)
        with patch.object(client, "_post", new=post):
            await asyncio.gather(*(client.ensure_authenticated() for _ in range(5)))

        assert self.methods(post).count("user.login") == 1
        assert client.is_authenticated()

    @pytest.mark.asyncio
    async def test_login_sends_credentials(self, client):
        post = self.upstream()
        with patch.object(client, "_post", new=post):
            await client.login()

        login = [c.args[0] for c in post.call_args_list if c.args[0]["method"] == "user.login"][0]
        assert login["params"] == {"username": "Admin", "password": "zabbix"}
        assert "auth" not in login

    @pytest.mark.parametrize(
        "upstream_text,expected",
        [
            ("Login name or password is incorrect.", "Invalid username or password"),
            ("User is blocked.", "User account is blocked"),
            ("GUI access disabled.", "GUI access is disabled for this user"),
        ],
    )
    @pytest.mark.asyncio
    async def test_login_error_mapping(self, client, upstream_text, expected):
        error = {"code": -32500, "message": "Application error.", "data": upstream_text}
        with patch.object(client, "_post", new=self.upstream(login_error=error)):
            with pytest.raises(ZabbixAuthError) as exc_info:
                await client.login()

        assert str(exc_info.value) == expected
        assert not client.is_authenticated()

    @pytest.mark.asyncio
    async def test_failed_login_is_retried_by_next_caller(self, client):
        error = {"code": -32500, "message": "Application error.", "data": "User is blocked."}
        with patch.object(client, "_post", new=self.upstream(login_error=error)):
            with pytest.raises(ZabbixAuthError):
                await client.ensure_authenticated()

        with patch.object(client, "_post", new=self.upstream()):
            await client.ensure_authenticated()
        assert client.is_authenticated()

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        client = ZabbixClient(url="http://zabbix.test")
        with patch.object(client, "_post", new=self.upstream()):
            with pytest.raises(ZabbixAuthError, match="Either token or user/password"):
                await client.login()

    @pytest.mark.asyncio
    async def test_static_token_verified(self):
        client = ZabbixClient(url="http://zabbix.test", token="api-token")
        post = self.upstream()
        with patch.object(client, "_post", new=post):
            await client.login()

        assert self.methods(post) == ["apiinfo.version", "host.get"]
        assert client.is_authenticated()

    @pytest.mark.asyncio
    async def test_static_token_rejected(self):
        client = ZabbixClient(url="http://zabbix.test", token="bad-token")

        async def post(payload, headers):
            if payload["method"] == "apiinfo.version":
                return ok("7.0.0")
            return failed(NOT_AUTHORISED)

        with patch.object(client, "_post", new=AsyncMock(side_effect=post)):
            with pytest.raises(ZabbixAuthError, match="Invalid API token provided"):
                await client.login()
        assert not client.is_authenticated()

    @pytest.mark.asyncio
    async def test_login_unreachable(self, client):
        with patch.object(client, "_post", new=AsyncMock(side_effect=ZabbixConnectionError("HTTP Error: refused"))):
            with pytest.raises(ZabbixConnectionError, match="Cannot connect"):
                await client.login()

    @pytest.mark.asyncio
    async def test_logout_session_token(self, client):
        post = self.upstream()
        with patch.object(client, "_post", new=post):
            await client.ensure_authenticated()
            await client.logout()

        assert self.methods(post)[-1] == "user.logout"
        assert not client.is_authenticated()

    @pytest.mark.asyncio
    async def test_logout_keeps_static_token_upstream(self):
        client = ZabbixClient(url="http://zabbix.test", token="api-token")
        client._auth_token = "api-token"
        with patch.object(client, "_post", new=AsyncMock(return_value=ok(True))) as post:
            await client.logout()

        post.assert_not_called()


class TestConnectivity:
    """Test connectivity reports."""

    @pytest.mark.asyncio
    async def test_unreachable(self, client):
        with patch.object(client, "_post", new=AsyncMock(side_effect=ZabbixConnectionError("HTTP Error: refused"))):
            report = await client.verify_connectivity()

        assert report["connected"] is False
        assert report["version"] == "unknown"
        assert "refused" in report["error"]

    @pytest.mark.asyncio
    async def test_with_auth(self, client):
        with patch.object(client, "_post", new=TestLogin.upstream()):
            report = await client.verify_connectivity(test_auth=True)

        assert report == {
            "version": "7.0.0",
            "connected": True,
            "authenticated": True,
            "auth_method": "username_password",
        }


class _FakeResponse:
    def __init__(self, status: int, body: Any = None, text: str = ""):
        self.status = status
        self._body = body
        self._text = text

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def text(self):
        return self._text

    async def json(self, content_type=None):
        return self._body


class TestTransport:
    """Test HTTP-level failures map to connection errors."""

    @staticmethod
    def session_returning(response=None, error=None):
        session = MagicMock()
        if error is not None:
            session.post.side_effect = error
        else:
            session.post.return_value = response
        return AsyncMock(return_value=session)

    @pytest.mark.asyncio
    async def test_success(self, client):
        getter = self.session_returning(_FakeResponse(200, ok("7.0.0")))
        with patch.object(client, "_get_session", new=getter):
            assert await client.apiinfo_version() == "7.0.0"

    @pytest.mark.asyncio
    async def test_connection_error(self, client):
        getter = self.session_returning(error=aiohttp.ClientConnectionError("refused"))
        with patch.object(client, "_get_session", new=getter):
            with pytest.raises(ZabbixConnectionError) as exc_info:
                await client.apiinfo_version()
        assert exc_info.value.error_code == "UPSTREAM_UNAVAILABLE"

    @pytest.mark.asyncio
    async def test_timeout(self, client):
        getter = self.session_returning(error=asyncio.TimeoutError())
        with patch.object(client, "_get_session", new=getter):
            with pytest.raises(ZabbixConnectionError, match="timed out"):
                await client.apiinfo_version()

    @pytest.mark.asyncio
    async def test_http_status(self, client):
        getter = self.session_returning(_FakeResponse(502, text="Bad Gateway"))
        with patch.object(client, "_get_session", new=getter):
            with pytest.raises(ZabbixHTTPError) as exc_info:
                await client.apiinfo_version()
        assert exc_info.value.status == 502

    @pytest.mark.asyncio
    async def test_unexpected_body(self, client):
        getter = self.session_returning(_FakeResponse(200, ["not", "an", "object"]))
        with patch.object(client, "_get_session", new=getter):
            with pytest.raises(ZabbixConnectionError, match="Unexpected response"):
                await client.apiinfo_version()

    @pytest.mark.asyncio
    async def test_close_without_session(self, client):
        await client.close()
        assert client._session is None
