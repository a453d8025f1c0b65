"""管理统计测试 -- 访问控制 + 统计口径"""

from datetime import UTC, datetime, timedelta

import pytest
from lockpoint.core.models import AmendmentKind, Trajectory, TrajectoryStatus
from lockpoint.gateway.services.stats_service import (
    RECENT_LOCKS_LIMIT,
    StatsService,
    admin_key_matches,
    quantile,
)

ADMIN_KEY = "s3cret-admin"
_BASE = datetime(2026, 1, 1, tzinfo=UTC)


def _trajectory(index: int, status: TrajectoryStatus, seal_after_s: int | None = None):
    created = _BASE + timedelta(minutes=index)
    return Trajectory(
        trajectory_id=f"01JSTATS{index:018d}",
        owner_id="user-alice",
        created_at=created,
        updated_at=created,
        status=status,
        title=f"Goal {index}",
        commitment="I will do the thing",
        locked_at=created + timedelta(seconds=seal_after_s) if seal_after_s is not None else None,
        is_public=seal_after_s is not None,
    )


class TestAdminAccess:
    async def test_disabled_without_configured_key(self, client):
        resp = await client.get("/api/admin/stats", headers={"X-Admin-Key": "anything"})
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "ADMIN_FORBIDDEN"

    async def test_missing_header(self, client, monkeypatch):
        monkeypatch.setenv("LOCKPOINT_ADMIN_KEY", ADMIN_KEY)
        resp = await client.get("/api/admin/stats")
        assert resp.status_code == 403

    async def test_wrong_key(self, client, monkeypatch):
        monkeypatch.setenv("LOCKPOINT_ADMIN_KEY", ADMIN_KEY)
        resp = await client.get("/api/admin/stats", headers={"X-Admin-Key": "guess"})
        assert resp.status_code == 403

    def test_admin_key_matches(self):
        assert admin_key_matches("abc", "abc")
        assert admin_key_matches(" abc ", "abc")
        assert not admin_key_matches("abd", "abc")
        assert not admin_key_matches(None, "abc")
        assert not admin_key_matches("abc", None)
        assert not admin_key_matches("", "")


class TestStatsEndpoint:
    async def test_counts_and_rates(self, api, client, monkeypatch):
        monkeypatch.setenv("LOCKPOINT_ADMIN_KEY", ADMIN_KEY)

        await api.create_draft()
        dropped = await api.create_draft()
        await api.drop(dropped["trajectory_id"], reason="Not now")
        await api.locked_draft()
        broken = await api.locked_draft()
        await api.outcome(broken["trajectory_id"], "fail")

        resp = await client.get("/api/admin/stats", headers={"X-Admin-Key": ADMIN_KEY})
        assert resp.status_code == 200
        stats = resp.json()["stats"]

        assert stats["total"] == 4
        assert stats["drafts"] == 1
        assert stats["dropped"] == 1
        assert stats["locked_ever"] == 2
        assert stats["active"] == 1
        assert stats["broken"] == 1
        assert stats["completed"] == 0
        assert stats["seal_rate"] == 0.5
        assert stats["committed_share"] == pytest.approx(0.6667)
        assert stats["broken_share"] == 0.5
        assert stats["amendments_by_kind"]["DROP"] == 1
        assert stats["amendments_by_kind"]["OUTCOME"] == 1
        assert stats["amendments_by_kind"]["NOTE"] == 0
        assert len(stats["recent_locks"]) == 2
        assert stats["median_time_to_seal_s"] >= 0

    async def test_empty_database(self, client, monkeypatch):
        monkeypatch.setenv("LOCKPOINT_ADMIN_KEY", ADMIN_KEY)
        resp = await client.get("/api/admin/stats", headers={"X-Admin-Key": ADMIN_KEY})
        stats = resp.json()["stats"]
        assert stats["total"] == 0
        assert stats["seal_rate"] is None
        assert stats["committed_share"] is None
        assert stats["broken_share"] is None
        assert stats["median_time_to_seal_s"] is None
        assert stats["recent_locks"] == []


class TestQuantile:
    def test_empty(self):
        assert quantile([], 0.5) is None

    def test_single_value(self):
        assert quantile([42.0], 0.9) == 42.0

    def test_interpolation(self):
        values = [10.0, 20.0, 30.0, 40.0]
        assert quantile(values, 0.5) == pytest.approx(25.0)
        assert quantile(values, 0.9) == pytest.approx(37.0)
        assert quantile(values, 0.0) == 10.0
        assert quantile(values, 1.0) == 40.0


class TestCompute:
    def test_rates_and_time_to_seal(self):
        trajectories = [
            _trajectory(0, TrajectoryStatus.DRAFT),
            _trajectory(1, TrajectoryStatus.LOCKED, seal_after_s=10),
            _trajectory(2, TrajectoryStatus.COMPLETED, seal_after_s=20),
            _trajectory(3, TrajectoryStatus.BROKEN, seal_after_s=30),
            _trajectory(4, TrajectoryStatus.BROKEN, seal_after_s=40),
        ]
        counts = {kind: 0 for kind in AmendmentKind}
        counts[AmendmentKind.OUTCOME] = 3

        stats = StatsService.compute(trajectories, counts)

        assert stats.total == 5
        assert stats.locked_ever == 4
        assert stats.seal_rate == 0.8
        assert stats.committed_share == 0.8
        assert stats.broken_share == 0.5
        assert stats.median_time_to_seal_s == pytest.approx(25.0)
        assert stats.p90_time_to_seal_s == pytest.approx(37.0)
        assert stats.amendments_by_kind["OUTCOME"] == 3
        # 最近锁定的排在前面
        assert [r.title for r in stats.recent_locks] == ["Goal 4", "Goal 3", "Goal 2", "Goal 1"]

    def test_recent_locks_capped(self):
        trajectories = [
            _trajectory(i, TrajectoryStatus.LOCKED, seal_after_s=5)
            for i in range(RECENT_LOCKS_LIMIT + 5)
        ]
        stats = StatsService.compute(trajectories, {})
        assert len(stats.recent_locks) == RECENT_LOCKS_LIMIT
        assert stats.committed_share == 1.0
        assert stats.broken_share == 0.0
