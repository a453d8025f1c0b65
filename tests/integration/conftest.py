"""集成测试共享 fixture -- 走真实 lifespan（静态 token 校验 + 临时数据库）"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


@pytest.fixture
def integration_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """设置集成测试环境变量，返回数据库路径"""
    db_path = tmp_path / "sqlite" / "lockpoint.db"
    monkeypatch.setenv("LOCKPOINT_DB_PATH", str(db_path))
    monkeypatch.setenv("LOCKPOINT_AUTH_MODE", "static")
    monkeypatch.setenv(
        "LOCKPOINT_AUTH_STATIC_TOKENS",
        "alice-token=user-alice:alice@example.com,bob-token=user-bob",
    )
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")
    monkeypatch.delenv("LOCKPOINT_ENFORCE_OUTCOME_DEADLINE", raising=False)
    monkeypatch.delenv("LOCKPOINT_ADMIN_KEY", raising=False)
    return db_path


@pytest_asyncio.fixture
async def integration_app(integration_env: Path):
    """集成测试用 FastAPI app，lifespan 负责初始化与清理"""
    from lockpoint.gateway.main import create_app

    app = create_app()
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac
