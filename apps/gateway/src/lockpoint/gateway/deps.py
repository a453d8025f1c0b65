"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store、校验器与请求级身份

Store 与校验器通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from fastapi import Depends, Request
from lockpoint.auth import Identity, TokenVerifier
from lockpoint.core.exceptions import UnauthenticatedError
from lockpoint.core.store import StoreGroup

from .services.lifecycle_service import LifecycleService


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_verifier(request: Request) -> TokenVerifier:
    """从 app.state 获取 token 校验器"""
    return request.app.state.verifier


def get_lifecycle_service(
    store_group: StoreGroup = Depends(get_store_group),
) -> LifecycleService:
    return LifecycleService(store_group)


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_identity(
    request: Request,
    verifier: TokenVerifier = Depends(get_verifier),
) -> Identity:
    """必须登录：缺少 bearer token 时 401"""
    token = _bearer_token(request)
    if token is None:
        raise UnauthenticatedError("Missing bearer token")
    return await verifier.verify(token)


async def get_optional_identity(
    request: Request,
    verifier: TokenVerifier = Depends(get_verifier),
) -> Identity | None:
    """可选登录：无 token 时匿名；提供了无效 token 仍然 401"""
    token = _bearer_token(request)
    if token is None:
        return None
    return await verifier.verify(token)
