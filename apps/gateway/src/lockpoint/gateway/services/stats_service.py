"""StatsService -- 管理统计（锁定率、结果分布、锁定耗时分位数）

统计基于最近创建的一批记录（默认 500 条），只读，不写事件。
"""

import hmac
import math

from lockpoint.core.models import AmendmentKind, Trajectory, TrajectoryStatus
from lockpoint.core.store import StoreGroup
from pydantic import BaseModel

# 参与统计的最近记录数上限
STATS_SAMPLE_LIMIT = 500
RECENT_LOCKS_LIMIT = 12


class RecentLock(BaseModel):
    trajectory_id: str
    title: str
    status: TrajectoryStatus
    locked_at: str


class RealityStats(BaseModel):
    """统计结果；比率为 0~1 的小数，分母为 0 时为 None"""

    total: int
    drafts: int
    locked_ever: int
    active: int
    completed: int
    broken: int
    dropped: int
    amendments_by_kind: dict[str, int]
    seal_rate: float | None
    committed_share: float | None
    broken_share: float | None
    median_time_to_seal_s: float | None
    p90_time_to_seal_s: float | None
    recent_locks: list[RecentLock]


def admin_key_matches(provided: str | None, expected: str | None) -> bool:
    """常量时间比较管理密钥；未配置密钥时总是 False"""
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.strip().encode(), expected.strip().encode())


def quantile(sorted_values: list[float], q: float) -> float | None:
    """线性插值分位数，输入须已排序"""
    if not sorted_values:
        return None
    pos = (len(sorted_values) - 1) * q
    base = math.floor(pos)
    rest = pos - base
    a = sorted_values[base]
    b = sorted_values[min(base + 1, len(sorted_values) - 1)]
    return a + rest * (b - a)


def _ratio(numer: int, denom: int) -> float | None:
    if not denom:
        return None
    return round(numer / denom, 4)


class StatsService:
    """管理统计服务"""

    def __init__(self, store_group: StoreGroup) -> None:
        self._stores = store_group

    async def reality_stats(self, sample_limit: int = STATS_SAMPLE_LIMIT) -> RealityStats:
        async with self._stores.lock:
            trajectories = await self._stores.trajectory_store.list_all(sample_limit)
            amendment_counts = await self._stores.amendment_store.count_by_kind()

        return self.compute(trajectories, amendment_counts)

    @staticmethod
    def compute(
        trajectories: list[Trajectory],
        amendment_counts: dict[AmendmentKind, int],
    ) -> RealityStats:
        by_status: dict[TrajectoryStatus, int] = {status: 0 for status in TrajectoryStatus}
        for t in trajectories:
            by_status[t.status] += 1

        locked = [t for t in trajectories if t.locked_at is not None]
        total = len(trajectories)
        drafts = by_status[TrajectoryStatus.DRAFT]

        time_to_seal = sorted(
            max(0.0, (t.locked_at - t.created_at).total_seconds()) for t in locked
        )
        recent = sorted(locked, key=lambda t: t.locked_at, reverse=True)[:RECENT_LOCKS_LIMIT]

        return RealityStats(
            total=total,
            drafts=drafts,
            locked_ever=len(locked),
            active=by_status[TrajectoryStatus.LOCKED],
            completed=by_status[TrajectoryStatus.COMPLETED],
            broken=by_status[TrajectoryStatus.BROKEN],
            dropped=by_status[TrajectoryStatus.DROPPED],
            amendments_by_kind={kind.value: count for kind, count in amendment_counts.items()},
            seal_rate=_ratio(len(locked), total),
            committed_share=_ratio(len(locked), len(locked) + drafts),
            broken_share=_ratio(by_status[TrajectoryStatus.BROKEN], len(locked)),
            median_time_to_seal_s=quantile(time_to_seal, 0.5),
            p90_time_to_seal_s=quantile(time_to_seal, 0.9),
            recent_locks=[
                RecentLock(
                    trajectory_id=t.trajectory_id,
                    title=t.title,
                    status=t.status,
                    locked_at=t.locked_at.isoformat(),
                )
                for t in recent
            ],
        )
