"""端到端生命周期集成测试

创建草稿 -> 编辑 -> 锁定（含押注）-> 追加记录 -> 记录结果，
并验证其他用户与匿名访问者看到的内容。
"""

import asyncio

from httpx import AsyncClient

ALICE = {"Authorization": "Bearer alice-token"}
BOB = {"Authorization": "Bearer bob-token"}


class TestLifecycleE2E:
    async def test_full_lifecycle(self, client: AsyncClient):
        resp = await client.post(
            "/api/trajectories",
            json={
                "title": "Run 5k",
                "commitment": "I will run 5k without stopping",
                "completion_criteria": "Strava activity link",
                "lock_type": "personal",
            },
            headers=ALICE,
        )
        assert resp.status_code == 201
        trajectory_id = resp.json()["trajectory"]["trajectory_id"]

        # 草稿对其他人不可见
        assert (await client.get(f"/api/trajectories/{trajectory_id}")).status_code == 404
        assert (
            await client.get(f"/api/trajectories/{trajectory_id}", headers=BOB)
        ).status_code == 404

        resp = await client.patch(
            f"/api/trajectories/{trajectory_id}",
            json={"deadline_at": "2020-01-01T00:00:00Z"},
            headers=ALICE,
        )
        assert resp.status_code == 200

        resp = await client.post(
            f"/api/trajectories/{trajectory_id}/lock",
            json={"confirmation": "lock", "stake_amount": "50", "lock_reason": "Accountability"},
            headers=ALICE,
        )
        assert resp.status_code == 200
        locked = resp.json()["trajectory"]
        assert locked["status"] == "locked"
        assert locked["is_public"] is True
        assert locked["stake_amount"] == "50.00"
        assert locked["deadline_state"] == "overdue"

        # 锁定后内容冻结
        resp = await client.patch(
            f"/api/trajectories/{trajectory_id}",
            json={"title": "Run 10k"},
            headers=ALICE,
        )
        assert resp.status_code == 409

        resp = await client.post(
            f"/api/trajectories/{trajectory_id}/amendments",
            json={"kind": "MILESTONE", "content": "Ran 3k today", "confirmation": "AMEND"},
            headers=ALICE,
        )
        assert resp.status_code == 201

        # 匿名访问者可以读取公开记录
        resp = await client.get(f"/api/trajectories/{trajectory_id}")
        assert resp.status_code == 200
        assert resp.json()["is_owner"] is False

        resp = await client.post(
            f"/api/locks/{trajectory_id}/outcome",
            json={"result": "success", "proof_url": "https://strava.com/activities/1"},
            headers=ALICE,
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "completed"

        resp = await client.get(f"/api/trajectories/{trajectory_id}", headers=ALICE)
        body = resp.json()
        assert body["is_owner"] is True
        assert body["trajectory"]["status"] == "completed"
        assert body["trajectory"]["deadline_state"] == "none"
        assert [a["kind"] for a in body["amendments"]] == ["OUTCOME", "MILESTONE"]
        assert body["amendments"][0]["content"] == "[COMPLETED]\nhttps://strava.com/activities/1"

        public = (await client.get("/api/trajectories")).json()["trajectories"]
        assert [t["trajectory_id"] for t in public] == [trajectory_id]

    async def test_concurrent_outcomes_single_winner(self, client: AsyncClient):
        resp = await client.post(
            "/api/trajectories",
            json={"title": "Write a book", "commitment": "I will finish the first draft"},
            headers=ALICE,
        )
        trajectory_id = resp.json()["trajectory"]["trajectory_id"]
        await client.post(
            f"/api/trajectories/{trajectory_id}/lock",
            json={"confirmation": "LOCK"},
            headers=ALICE,
        )

        responses = await asyncio.gather(
            *[
                client.post(
                    f"/api/locks/{trajectory_id}/outcome",
                    json={"result": "success" if i % 2 else "fail"},
                    headers=ALICE,
                )
                for i in range(6)
            ]
        )
        statuses = [r.status_code for r in responses]
        assert statuses.count(200) == 1
        assert statuses.count(409) == 5

        body = (await client.get(f"/api/trajectories/{trajectory_id}")).json()
        assert len([a for a in body["amendments"] if a["kind"] == "OUTCOME"]) == 1

    async def test_concurrent_lock_and_edit(self, client: AsyncClient):
        resp = await client.post(
            "/api/trajectories",
            json={"title": "Learn piano", "commitment": "I will practice daily"},
            headers=ALICE,
        )
        trajectory_id = resp.json()["trajectory"]["trajectory_id"]

        lock_resp, edit_resp = await asyncio.gather(
            client.post(
                f"/api/trajectories/{trajectory_id}/lock",
                json={"confirmation": "LOCK"},
                headers=ALICE,
            ),
            client.patch(
                f"/api/trajectories/{trajectory_id}",
                json={"title": "Learn guitar"},
                headers=ALICE,
            ),
        )
        assert lock_resp.status_code == 200

        body = (await client.get(f"/api/trajectories/{trajectory_id}")).json()
        if edit_resp.status_code == 200:
            # 编辑先于锁定提交，锁定冻结的是编辑后的内容
            assert body["trajectory"]["title"] == "Learn guitar"
        else:
            assert edit_resp.status_code == 409
            assert body["trajectory"]["title"] == "Learn piano"

    async def test_auth_mode_static_from_env(self, integration_app):
        assert integration_app.state.auth_config.mode == "static"
        identity = await integration_app.state.verifier.verify("bob-token")
        assert identity.user_id == "user-bob"
