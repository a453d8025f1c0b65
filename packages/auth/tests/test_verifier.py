"""Token 校验器单元测试

RemoteTokenVerifier 通过 httpx.MockTransport 模拟身份服务：
验证请求头、身份解析、401/5xx/连接失败的异常映射以及 health_check。
"""

from unittest.mock import patch

import httpx
import pytest
from lockpoint.auth import (
    AuthConfig,
    AuthUnavailableError,
    Identity,
    InvalidCredentialError,
    RemoteTokenVerifier,
    StaticTokenVerifier,
    TokenVerifier,
    create_verifier,
)
from pydantic import SecretStr


def _verifier(handler) -> RemoteTokenVerifier:
    return RemoteTokenVerifier(
        base_url="https://id.example.com/",
        api_key="anon-key",
        timeout_s=2,
        transport=httpx.MockTransport(handler),
    )


class TestRemoteTokenVerifier:
    async def test_valid_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            seen["apikey"] = request.headers.get("apikey")
            return httpx.Response(200, json={"id": "user-alice", "email": "a@example.com"})

        identity = await _verifier(handler).verify("tok-1")

        assert identity == Identity(user_id="user-alice", email="a@example.com")
        assert seen["url"] == "https://id.example.com/auth/v1/user"
        assert seen["auth"] == "Bearer tok-1"
        assert seen["apikey"] == "anon-key"

    async def test_rejected_token(self):
        verifier = _verifier(lambda request: httpx.Response(401, json={"msg": "expired"}))
        with pytest.raises(InvalidCredentialError):
            await verifier.verify("expired")

    async def test_empty_token_not_sent(self):
        def handler(request):
            raise AssertionError("should not be called")

        with pytest.raises(InvalidCredentialError):
            await _verifier(handler).verify("   ")

    async def test_missing_user_id(self):
        verifier = _verifier(lambda request: httpx.Response(200, json={"email": "x"}))
        with pytest.raises(InvalidCredentialError):
            await verifier.verify("tok")

    async def test_server_error_is_unavailable(self):
        verifier = _verifier(lambda request: httpx.Response(502))
        with pytest.raises(AuthUnavailableError) as exc_info:
            await verifier.verify("tok")
        assert exc_info.value.recoverable is True
        assert exc_info.value.auth_url == "https://id.example.com"

    async def test_connect_error_is_unavailable(self):
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        with pytest.raises(AuthUnavailableError) as exc_info:
            await _verifier(handler).verify("tok")
        assert isinstance(exc_info.value.original_error, httpx.ConnectError)

    async def test_health_check_ok(self):
        verifier = _verifier(lambda request: httpx.Response(200))
        assert await verifier.health_check() is True

    async def test_health_check_server_error(self):
        verifier = _verifier(lambda request: httpx.Response(500))
        assert await verifier.health_check() is False

    @patch("httpx.AsyncClient.get")
    async def test_health_check_timeout(self, mock_get):
        mock_get.side_effect = httpx.TimeoutException("timeout")
        verifier = RemoteTokenVerifier(base_url="https://id.example.com")
        assert await verifier.health_check() is False


class TestStaticTokenVerifier:
    async def test_known_token(self):
        verifier = StaticTokenVerifier({"alice-token": "user-alice:alice@example.com"})
        identity = await verifier.verify("alice-token")
        assert identity.user_id == "user-alice"
        assert identity.email == "alice@example.com"

    async def test_without_email(self):
        verifier = StaticTokenVerifier({"bob-token": "user-bob"})
        assert (await verifier.verify("bob-token")).email is None

    async def test_unknown_token(self):
        verifier = StaticTokenVerifier({"alice-token": "user-alice"})
        with pytest.raises(InvalidCredentialError):
            await verifier.verify("mallory-token")

    async def test_health_check(self):
        assert await StaticTokenVerifier({}).health_check() is True


class TestCreateVerifier:
    def test_static_mode(self):
        verifier = create_verifier(
            AuthConfig(mode="static", static_tokens={"t": "user-t"})
        )
        assert isinstance(verifier, StaticTokenVerifier)
        assert isinstance(verifier, TokenVerifier)

    def test_remote_mode(self):
        verifier = create_verifier(
            AuthConfig(base_url="https://id.example.com", api_key=SecretStr("k"))
        )
        assert isinstance(verifier, RemoteTokenVerifier)
        assert isinstance(verifier, TokenVerifier)
