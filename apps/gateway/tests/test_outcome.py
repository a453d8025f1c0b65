"""结果提交测试

测试内容：
1. "Ship v1" 场景：创建 -> 锁定 -> 成功 -> completed，恰好一条 OUTCOME；再次提交 409
2. 两个并发结果提交：一个成功，另一个 409
3. 草稿 / 已丢弃记录不可提交结果（400），非 owner 403
4. 结果取值别名与内容格式
5. 截止时间约束（LOCKPOINT_ENFORCE_OUTCOME_DEADLINE）
"""

import asyncio
from datetime import UTC, datetime, timedelta


class TestShipV1Scenario:
    async def test_full_flow(self, api):
        draft = await api.create_draft(title="Ship v1")
        assert (await api.lock(draft["trajectory_id"])).status_code == 200

        resp = await api.outcome(draft["trajectory_id"], "success", proof_text="Released")
        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "status": "completed"}

        detail = (await api.detail(draft["trajectory_id"])).json()
        assert detail["trajectory"]["status"] == "completed"
        assert detail["trajectory"]["finalized_at"] is not None
        outcomes = [a for a in detail["amendments"] if a["kind"] == "OUTCOME"]
        assert len(outcomes) == 1
        assert outcomes[0]["content"] == "[COMPLETED] Released"

        again = await api.outcome(draft["trajectory_id"], "fail")
        assert again.status_code == 409
        assert again.json()["error"]["code"] == "OUTCOME_ALREADY_RECORDED"

        detail = (await api.detail(draft["trajectory_id"])).json()
        assert detail["trajectory"]["status"] == "completed"
        assert len([a for a in detail["amendments"] if a["kind"] == "OUTCOME"]) == 1


class TestConcurrentOutcome:
    async def test_exactly_one_wins(self, api):
        locked = await api.locked_draft()
        trajectory_id = locked["trajectory_id"]

        first, second = await asyncio.gather(
            api.outcome(trajectory_id, "success"),
            api.outcome(trajectory_id, "fail"),
        )

        codes = sorted([first.status_code, second.status_code])
        assert codes == [200, 409]
        winner = first if first.status_code == 200 else second

        detail = (await api.detail(trajectory_id)).json()
        assert detail["trajectory"]["status"] == winner.json()["status"]
        assert len([a for a in detail["amendments"] if a["kind"] == "OUTCOME"]) == 1


class TestOutcomeRules:
    async def test_fail_result(self, api):
        locked = await api.locked_draft()
        resp = await api.outcome(
            locked["trajectory_id"],
            "failed",
            proof_text="Ran out of time",
            proof_url="https://example.com/postmortem",
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "broken"

        detail = (await api.detail(locked["trajectory_id"])).json()
        outcome = detail["amendments"][0]
        assert outcome["content"] == "[BROKEN] Ran out of time\nhttps://example.com/postmortem"

    async def test_completed_alias(self, api):
        locked = await api.locked_draft()
        resp = await api.outcome(locked["trajectory_id"], "completed")
        assert resp.json()["status"] == "completed"

    async def test_invalid_result(self, api):
        locked = await api.locked_draft()
        resp = await api.outcome(locked["trajectory_id"], "maybe")
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "INVALID_RESULT"

    async def test_invalid_proof_url(self, api):
        locked = await api.locked_draft()
        resp = await api.outcome(locked["trajectory_id"], "success", proof_url="javascript:alert(1)")
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "INVALID_PROOF_URL"

    async def test_draft_not_finalizable(self, api):
        draft = await api.create_draft()
        resp = await api.outcome(draft["trajectory_id"], "success")
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "NOT_FINALIZABLE"

    async def test_dropped_not_finalizable(self, api):
        draft = await api.create_draft()
        await api.drop(draft["trajectory_id"])
        resp = await api.outcome(draft["trajectory_id"], "fail")
        assert resp.status_code == 400

    async def test_non_owner_forbidden(self, api):
        locked = await api.locked_draft()
        resp = await api.outcome(locked["trajectory_id"], "fail", headers=api.BOB)
        assert resp.status_code == 403

        detail = (await api.detail(locked["trajectory_id"])).json()
        assert detail["trajectory"]["status"] == "locked"
        assert detail["amendments"] == []

    async def test_non_owner_forbidden_after_finalize(self, api):
        locked = await api.locked_draft()
        await api.outcome(locked["trajectory_id"], "success")
        resp = await api.outcome(locked["trajectory_id"], "fail", headers=api.BOB)
        assert resp.status_code == 403

    async def test_missing_trajectory(self, api):
        resp = await api.outcome("01JNOTEXIST000000000000000", "success")
        assert resp.status_code == 404

    async def test_requires_auth(self, client, api):
        locked = await api.locked_draft()
        resp = await client.post(
            f"/api/locks/{locked['trajectory_id']}/outcome", json={"result": "success"}
        )
        assert resp.status_code == 401


class TestDeadlineEnforcement:
    async def test_informational_by_default(self, api):
        deadline = (datetime.now(UTC) + timedelta(days=30)).isoformat()
        locked = await api.locked_draft(deadline_at=deadline)
        assert locked["deadline_state"] == "on_track"
        resp = await api.outcome(locked["trajectory_id"], "success")
        assert resp.status_code == 200

    async def test_too_early_when_enforced(self, api, monkeypatch):
        monkeypatch.setenv("LOCKPOINT_ENFORCE_OUTCOME_DEADLINE", "true")
        deadline = (datetime.now(UTC) + timedelta(days=2)).isoformat()
        locked = await api.locked_draft(deadline_at=deadline)
        assert locked["deadline_state"] == "due_soon"

        resp = await api.outcome(locked["trajectory_id"], "success")
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "OUTCOME_TOO_EARLY"

        detail = (await api.detail(locked["trajectory_id"])).json()
        assert detail["trajectory"]["status"] == "locked"

    async def test_after_deadline_when_enforced(self, api, monkeypatch):
        monkeypatch.setenv("LOCKPOINT_ENFORCE_OUTCOME_DEADLINE", "true")
        deadline = (datetime.now(UTC) - timedelta(hours=1)).isoformat()
        locked = await api.locked_draft(deadline_at=deadline)
        assert locked["deadline_state"] == "overdue"

        resp = await api.outcome(locked["trajectory_id"], "fail")
        assert resp.status_code == 200
        assert resp.json()["status"] == "broken"

    async def test_no_deadline_when_enforced(self, api, monkeypatch):
        monkeypatch.setenv("LOCKPOINT_ENFORCE_OUTCOME_DEADLINE", "true")
        locked = await api.locked_draft()
        resp = await api.outcome(locked["trajectory_id"], "success")
        assert resp.status_code == 200
