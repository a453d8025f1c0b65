"""持久性 + 命令行 Projection 重建集成测试

应用关闭后数据完整；python -m lockpoint.core rebuild-projections
重建后的记录与重建前一致。
"""

from pathlib import Path

from httpx import ASGITransport, AsyncClient
from lockpoint.core.__main__ import rebuild_projections

ALICE = {"Authorization": "Bearer alice-token"}


async def _seed(client: AsyncClient) -> dict[str, str]:
    ids: dict[str, str] = {}
    for name in ("draft", "dropped", "locked", "broken"):
        resp = await client.post(
            "/api/trajectories",
            json={"title": f"Goal {name}", "commitment": f"I will finish the {name} goal"},
            headers=ALICE,
        )
        assert resp.status_code == 201
        ids[name] = resp.json()["trajectory"]["trajectory_id"]

    await client.post(
        f"/api/trajectories/{ids['dropped']}/drop",
        json={"reason": "Changed priorities"},
        headers=ALICE,
    )
    for name in ("locked", "broken"):
        resp = await client.post(
            f"/api/trajectories/{ids[name]}/lock",
            json={"confirmation": "LOCK", "stake_amount": "5"},
            headers=ALICE,
        )
        assert resp.status_code == 200
    await client.post(
        f"/api/locks/{ids['broken']}/outcome",
        json={"result": "fail", "proof_text": "Did not happen"},
        headers=ALICE,
    )
    return ids


async def _mine(app) -> dict[str, dict]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        resp = await c.get("/api/me/trajectories", headers=ALICE)
        assert resp.status_code == 200
        return {t["trajectory_id"]: t for t in resp.json()["trajectories"]}


class TestDurabilityAndRebuild:
    async def test_state_survives_restart_and_rebuild(self, integration_env: Path, capsys):
        from lockpoint.gateway.main import create_app

        # 第一次启动：写入数据
        app1 = create_app()
        async with app1.router.lifespan_context(app1):
            async with AsyncClient(
                transport=ASGITransport(app=app1), base_url="http://test"
            ) as c1:
                ids = await _seed(c1)
            before = await _mine(app1)

        assert integration_env.exists()
        assert {t["status"] for t in before.values()} == {"draft", "dropped", "locked", "broken"}

        # 离线重建 Projection
        await rebuild_projections()
        out = capsys.readouterr().out
        assert "重建完成" in out

        # 第二次启动：数据完整且与重建前一致
        app2 = create_app()
        async with app2.router.lifespan_context(app2):
            after = await _mine(app2)
            async with AsyncClient(
                transport=ASGITransport(app=app2), base_url="http://test"
            ) as c2:
                detail = (await c2.get(f"/api/trajectories/{ids['broken']}")).json()

        assert after == before
        assert detail["trajectory"]["status"] == "broken"
        assert detail["trajectory"]["stake_amount"] == "5.00"
        assert detail["amendments"][0]["content"] == "[BROKEN] Did not happen"
