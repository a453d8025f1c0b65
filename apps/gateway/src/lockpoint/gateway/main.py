"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭 + token 校验器初始化 + 路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from lockpoint.auth import create_verifier, load_auth_config
from lockpoint.core.config import get_db_path
from lockpoint.core.store import create_store_group

from .errors import register_exception_handlers
from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import amendments, health, lifecycle, outcome, stats, trajectories

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 DB 和校验器，关闭时清理连接"""
    db_path = get_db_path()
    store_group = await create_store_group(db_path)
    app.state.store_group = store_group

    auth_config = load_auth_config()
    app.state.auth_config = auth_config
    app.state.verifier = create_verifier(auth_config)

    log.info("gateway_started", db_path=db_path, auth_mode=auth_config.mode)

    yield

    if hasattr(app.state, "store_group") and app.state.store_group:
        await app.state.store_group.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="Lockpoint Gateway",
        version="0.1.0",
        description="Lockpoint 承诺记录生命周期 API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    # 初始化日志
    setup_logging()
    setup_logfire()

    register_exception_handlers(app)

    # 注册路由
    app.include_router(trajectories.router, tags=["trajectories"])
    app.include_router(lifecycle.router, tags=["lifecycle"])
    app.include_router(amendments.router, tags=["amendments"])
    app.include_router(outcome.router, tags=["outcome"])
    app.include_router(stats.router, tags=["admin"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
