"""AuthConfig -- 身份校验配置加载

从环境变量加载配置，不硬编码身份服务地址。
"""

import os
from typing import Literal

import structlog
from pydantic import BaseModel, Field, SecretStr

log = structlog.get_logger()


class AuthConfig(BaseModel):
    """Auth 包配置 -- 从环境变量加载

    环境变量:
        LOCKPOINT_AUTH_MODE: 校验模式（remote/static）
        LOCKPOINT_AUTH_URL: 身份服务基础 URL
        LOCKPOINT_AUTH_API_KEY: 身份服务的项目公钥（apikey 头）
        LOCKPOINT_AUTH_TIMEOUT_S: 校验超时（秒，默认 10）
        LOCKPOINT_AUTH_STATIC_TOKENS: 静态 token 表（token=user_id[:email],...）
    """

    mode: Literal["remote", "static"] = Field(
        default="remote",
        description="校验模式：remote 调用身份服务 / static 使用固定 token 表",
    )
    base_url: str = Field(
        default="http://localhost:54321",
        description="身份服务基础 URL",
    )
    api_key: SecretStr = Field(
        default=SecretStr(""),
        description="身份服务项目公钥，随请求以 apikey 头发送",
    )
    timeout_s: int = Field(
        default=10,
        ge=1,
        description="校验请求超时（秒）",
    )
    static_tokens: dict[str, str] = Field(
        default_factory=dict,
        description="static 模式下的 token -> 'user_id[:email]' 映射",
    )


def parse_static_tokens(raw: str) -> dict[str, str]:
    """解析 token=user_id[:email],... 格式

    空白项与缺少 '=' 的项被忽略并记录告警。
    """
    tokens: dict[str, str] = {}
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        token, sep, subject = item.partition("=")
        token, subject = token.strip(), subject.strip()
        if not sep or not token or not subject:
            log.warning("invalid_static_token_entry", env_var="LOCKPOINT_AUTH_STATIC_TOKENS")
            continue
        tokens[token] = subject
    return tokens


def load_auth_config() -> AuthConfig:
    """从环境变量加载 Auth 配置

    环境变量映射:
        LOCKPOINT_AUTH_MODE -> mode (默认 "remote")
        LOCKPOINT_AUTH_URL -> base_url
        LOCKPOINT_AUTH_API_KEY -> api_key (默认 "")
        LOCKPOINT_AUTH_TIMEOUT_S -> timeout_s (默认 10)
        LOCKPOINT_AUTH_STATIC_TOKENS -> static_tokens

    Returns:
        AuthConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("LOCKPOINT_AUTH_MODE"):
        kwargs["mode"] = val.strip().lower()

    if val := os.environ.get("LOCKPOINT_AUTH_URL"):
        kwargs["base_url"] = val

    if val := os.environ.get("LOCKPOINT_AUTH_API_KEY"):
        kwargs["api_key"] = SecretStr(val)

    if val := os.environ.get("LOCKPOINT_AUTH_TIMEOUT_S"):
        try:
            timeout_s = int(val)
            if timeout_s < 1:
                raise ValueError(val)
            kwargs["timeout_s"] = timeout_s
        except ValueError:
            log.warning(
                "invalid_timeout_config",
                env_var="LOCKPOINT_AUTH_TIMEOUT_S",
                value=val,
                fallback=10,
            )
            # 使用默认值，不阻塞启动

    if val := os.environ.get("LOCKPOINT_AUTH_STATIC_TOKENS"):
        kwargs["static_tokens"] = parse_static_tokens(val)

    return AuthConfig(**kwargs)
