"""TokenVerifier 接口与工厂"""

from typing import Protocol, runtime_checkable

import structlog

from .client import RemoteTokenVerifier
from .config import AuthConfig
from .models import Identity
from .static import StaticTokenVerifier

log = structlog.get_logger()


@runtime_checkable
class TokenVerifier(Protocol):
    """bearer token 校验接口"""

    async def verify(self, token: str) -> Identity:
        """校验 token，返回身份"""
        ...

    async def health_check(self) -> bool:
        """身份服务是否可用"""
        ...


def create_verifier(config: AuthConfig) -> TokenVerifier:
    """根据配置创建校验器

    Args:
        config: AuthConfig 实例

    Returns:
        remote 模式返回 RemoteTokenVerifier，static 模式返回 StaticTokenVerifier
    """
    if config.mode == "static":
        log.info("auth_verifier_created", mode="static", token_count=len(config.static_tokens))
        return StaticTokenVerifier(config.static_tokens)

    log.info("auth_verifier_created", mode="remote", base_url=config.base_url)
    return RemoteTokenVerifier(
        base_url=config.base_url,
        api_key=config.api_key.get_secret_value(),
        timeout_s=config.timeout_s,
    )
