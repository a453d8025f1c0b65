"""apps/gateway 测试配置 -- httpx AsyncClient + 临时数据库 + 静态 token"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient, Response
from lockpoint.auth import StaticTokenVerifier
from lockpoint.core.store import StoreGroup, create_store_group

TEST_TOKENS = {
    "alice-token": "user-alice:alice@example.com",
    "bob-token": "user-bob",
}


class LockpointApi:
    """测试用 API 调用封装，默认以 alice 身份请求"""

    ALICE = {"Authorization": "Bearer alice-token"}
    BOB = {"Authorization": "Bearer bob-token"}

    def __init__(self, client: AsyncClient) -> None:
        self.client = client

    async def create_draft(
        self,
        title: str = "Ship v1",
        commitment: str = "I will ship v1 to real users",
        headers: dict | None = None,
        **extra,
    ) -> dict:
        resp = await self.client.post(
            "/api/trajectories",
            json={"title": title, "commitment": commitment, **extra},
            headers=headers or self.ALICE,
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["trajectory"]

    async def lock(self, trajectory_id: str, headers: dict | None = None, **extra) -> Response:
        body = {"confirmation": "LOCK", **extra}
        return await self.client.post(
            f"/api/trajectories/{trajectory_id}/lock",
            json=body,
            headers=headers or self.ALICE,
        )

    async def drop(self, trajectory_id: str, headers: dict | None = None, **extra) -> Response:
        return await self.client.post(
            f"/api/trajectories/{trajectory_id}/drop",
            json=extra,
            headers=headers or self.ALICE,
        )

    async def outcome(
        self,
        trajectory_id: str,
        result: str = "success",
        headers: dict | None = None,
        **extra,
    ) -> Response:
        return await self.client.post(
            f"/api/locks/{trajectory_id}/outcome",
            json={"result": result, **extra},
            headers=headers or self.ALICE,
        )

    async def amend(
        self,
        trajectory_id: str,
        kind: str,
        content: str,
        headers: dict | None = None,
        **extra,
    ) -> Response:
        body = {"kind": kind, "content": content, "confirmation": "AMEND", **extra}
        return await self.client.post(
            f"/api/trajectories/{trajectory_id}/amendments",
            json=body,
            headers=headers or self.ALICE,
        )

    async def detail(self, trajectory_id: str, headers: dict | None = None) -> Response:
        return await self.client.get(
            f"/api/trajectories/{trajectory_id}", headers=headers or {}
        )

    async def locked_draft(self, **extra) -> dict:
        draft = await self.create_draft()
        resp = await self.lock(draft["trajectory_id"], **extra)
        assert resp.status_code == 200, resp.text
        return resp.json()["trajectory"]


@pytest_asyncio.fixture
async def store_group(tmp_path: Path) -> AsyncGenerator[StoreGroup, None]:
    sg = await create_store_group(str(tmp_path / "sqlite" / "test.db"))
    yield sg
    await sg.close()


@pytest_asyncio.fixture
async def test_app(store_group: StoreGroup, monkeypatch: pytest.MonkeyPatch):
    """创建测试用 app，手动初始化 state（绕过 lifespan）"""
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")
    monkeypatch.delenv("LOCKPOINT_ENFORCE_OUTCOME_DEADLINE", raising=False)
    monkeypatch.delenv("LOCKPOINT_ADMIN_KEY", raising=False)

    from lockpoint.gateway.main import create_app

    app = create_app()
    app.state.store_group = store_group
    app.state.verifier = StaticTokenVerifier(TEST_TOKENS)
    return app


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def api(client: AsyncClient) -> LockpointApi:
    return LockpointApi(client)
