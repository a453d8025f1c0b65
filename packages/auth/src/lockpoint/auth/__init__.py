"""Lockpoint Auth -- bearer token 校验抽象层

packages/auth 的公开接口导出。
"""

# 校验器
from .client import RemoteTokenVerifier

# 配置
from .config import AuthConfig, load_auth_config, parse_static_tokens

# 异常
from .exceptions import AuthError, AuthUnavailableError, InvalidCredentialError

# 数据模型
from .models import Identity
from .static import StaticTokenVerifier
from .verifier import TokenVerifier, create_verifier

__all__ = [
    "Identity",
    "TokenVerifier",
    "RemoteTokenVerifier",
    "StaticTokenVerifier",
    "create_verifier",
    "AuthConfig",
    "load_auth_config",
    "parse_static_tokens",
    "AuthError",
    "InvalidCredentialError",
    "AuthUnavailableError",
]
