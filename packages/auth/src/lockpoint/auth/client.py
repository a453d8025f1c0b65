"""RemoteTokenVerifier -- 远程身份服务 token 校验

发送 GET {base_url}/auth/v1/user，携带 Bearer token 与 apikey 头，
响应中的 id / email 构成 Identity。
"""

import time

import httpx
import structlog

from .exceptions import AuthUnavailableError, InvalidCredentialError
from .models import Identity

log = structlog.get_logger()

# 健康检查超时（硬编码，应快速响应）
HEALTH_CHECK_TIMEOUT_S = 5

USER_ENDPOINT = "/auth/v1/user"
HEALTH_ENDPOINT = "/auth/v1/health"


class RemoteTokenVerifier:
    """远程身份服务客户端

    每次校验独立创建 httpx.AsyncClient；transport 仅用于测试注入。
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout_s: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            base_url: 身份服务基础 URL
            api_key: 项目公钥（不是用户 token）
            timeout_s: 请求超时（秒）
            transport: 可选 httpx transport（测试时注入 MockTransport）
        """
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout_s = timeout_s
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport)

    async def verify(self, token: str) -> Identity:
        """校验 bearer token 并返回身份

        Raises:
            InvalidCredentialError: token 为空或被身份服务拒绝
            AuthUnavailableError: 身份服务不可达或返回非预期响应
        """
        if not token or not token.strip():
            raise InvalidCredentialError("Missing bearer token")

        url = f"{self._base_url}{USER_ENDPOINT}"
        headers = {"Authorization": f"Bearer {token.strip()}"}
        if self._api_key:
            headers["apikey"] = self._api_key

        start_time = time.monotonic()
        try:
            async with self._client() as http_client:
                resp = await http_client.get(url, headers=headers, timeout=self._timeout_s)
        except httpx.HTTPError as e:
            log.warning(
                "auth_verify_unreachable",
                url=url,
                error_type=type(e).__name__,
            )
            raise AuthUnavailableError(self._base_url, e) from e

        duration_ms = int((time.monotonic() - start_time) * 1000)

        if resp.status_code in (401, 403):
            log.info("auth_verify_rejected", status_code=resp.status_code, duration_ms=duration_ms)
            raise InvalidCredentialError()

        if resp.status_code != 200:
            log.warning(
                "auth_verify_unexpected_status",
                status_code=resp.status_code,
                duration_ms=duration_ms,
            )
            raise AuthUnavailableError(self._base_url)

        try:
            body = resp.json()
            user_id = body.get("id") if isinstance(body, dict) else None
        except ValueError as e:
            raise AuthUnavailableError(self._base_url, e) from e

        if not user_id:
            raise InvalidCredentialError("Identity provider returned no user id")

        log.debug("auth_verify_completed", user_id=user_id, duration_ms=duration_ms)
        return Identity(user_id=str(user_id), email=body.get("email"))

    async def health_check(self) -> bool:
        """检查身份服务可达性

        Returns:
            True 如果服务活跃，False 如果不可达或异常

        注意: 此方法不抛出异常，所有异常内部捕获并返回 False。
        """
        url = f"{self._base_url}{HEALTH_ENDPOINT}"
        headers = {"apikey": self._api_key} if self._api_key else {}
        try:
            async with self._client() as http_client:
                resp = await http_client.get(
                    url, headers=headers, timeout=HEALTH_CHECK_TIMEOUT_S
                )
                return resp.status_code == 200
        except Exception as e:
            log.debug("health_check_failed", url=url, error=str(e))
            return False
