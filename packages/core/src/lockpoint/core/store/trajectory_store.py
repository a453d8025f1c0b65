"""TrajectoryStore SQLite 实现

trajectories 表是 events 的物化视图（projection）。
所有生命周期写入都是单条条件更新（compare-and-swap）：
WHERE 子句同时约束 trajectory_id、owner_id 与预期 status，
返回 False 表示没有行被更新，由调用方负责分类失败原因。

注意：此处方法不自动提交事务，需由调用方管理事务。
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

import aiosqlite

from ..models.enums import PUBLIC_STATES, TrajectoryStatus
from ..models.payloads import LockDetails
from ..models.trajectory import Trajectory

_COLUMNS = (
    "trajectory_id, owner_id, created_at, updated_at, status, title, commitment, "
    "completion_criteria, lock_type, lock_reason, deadline_at, locked_at, "
    "dropped_at, finalized_at, is_public, stake_amount, stake_currency"
)

# 草稿阶段允许修改的字段
EDITABLE_FIELDS: tuple[str, ...] = (
    "title",
    "commitment",
    "completion_criteria",
    "lock_type",
    "deadline_at",
)

_PUBLIC_STATUS_SQL = ", ".join(f"'{s.value}'" for s in sorted(PUBLIC_STATES))


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _escape_like(query: str) -> str:
    return query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SqliteTrajectoryStore:
    """TrajectoryStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_trajectory(self, trajectory: Trajectory) -> None:
        """创建记录（也用于 projection 重建时回写）"""
        await self._conn.execute(
            f"""
            INSERT INTO trajectories ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                trajectory.trajectory_id,
                trajectory.owner_id,
                trajectory.created_at.isoformat(),
                trajectory.updated_at.isoformat(),
                trajectory.status.value,
                trajectory.title,
                trajectory.commitment,
                trajectory.completion_criteria,
                trajectory.lock_type.value,
                trajectory.lock_reason,
                _iso(trajectory.deadline_at),
                _iso(trajectory.locked_at),
                _iso(trajectory.dropped_at),
                _iso(trajectory.finalized_at),
                1 if trajectory.is_public else 0,
                str(trajectory.stake_amount) if trajectory.stake_amount is not None else None,
                trajectory.stake_currency,
            ),
        )

    async def get_trajectory(self, trajectory_id: str) -> Trajectory | None:
        """根据 trajectory_id 查询记录（不做可见性过滤）"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM trajectories WHERE trajectory_id = ?",
            (trajectory_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_trajectory(row)

    async def list_public(
        self,
        status: TrajectoryStatus | None = None,
        limit: int = 50,
    ) -> list[Trajectory]:
        """查询公开记录，按 locked_at 倒序"""
        sql = (
            f"SELECT {_COLUMNS} FROM trajectories "
            f"WHERE is_public = 1 AND dropped_at IS NULL "
            f"AND status IN ({_PUBLIC_STATUS_SQL})"
        )
        params: list[Any] = []
        if status is not None:
            sql += " AND status = ?"
            params.append(status.value)
        sql += " ORDER BY locked_at DESC LIMIT ?"
        params.append(limit)
        cursor = await self._conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [self._row_to_trajectory(row) for row in rows]

    async def list_for_owner(
        self,
        owner_id: str,
        status: TrajectoryStatus | None = None,
        query: str | None = None,
    ) -> list[Trajectory]:
        """查询 owner 的全部记录（含草稿与已丢弃），按 created_at 倒序"""
        sql = f"SELECT {_COLUMNS} FROM trajectories WHERE owner_id = ?"
        params: list[Any] = [owner_id]
        if status is not None:
            sql += " AND status = ?"
            params.append(status.value)
        if query:
            pattern = f"%{_escape_like(query.strip())}%"
            sql += " AND (title LIKE ? ESCAPE '\\' OR commitment LIKE ? ESCAPE '\\')"
            params.extend([pattern, pattern])
        sql += " ORDER BY created_at DESC"
        cursor = await self._conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [self._row_to_trajectory(row) for row in rows]

    async def list_all(self, limit: int | None = None) -> list[Trajectory]:
        """查询全部记录，按 created_at 倒序（统计用途）"""
        sql = f"SELECT {_COLUMNS} FROM trajectories ORDER BY created_at DESC"
        params: tuple = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (limit,)
        cursor = await self._conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [self._row_to_trajectory(row) for row in rows]

    async def update_draft(
        self,
        trajectory_id: str,
        owner_id: str,
        changes: dict[str, Any],
        updated_at: datetime,
    ) -> bool:
        """修改草稿内容（仅当 status = draft 且调用者为 owner）"""
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Fields are not editable: {sorted(unknown)}")

        assignments = ["updated_at = ?"]
        params: list[Any] = [updated_at.isoformat()]
        for field in EDITABLE_FIELDS:
            if field not in changes:
                continue
            value = changes[field]
            if isinstance(value, datetime):
                value = value.isoformat()
            elif hasattr(value, "value"):
                value = value.value
            assignments.append(f"{field} = ?")
            params.append(value)

        params.extend([trajectory_id, owner_id, TrajectoryStatus.DRAFT.value])
        cursor = await self._conn.execute(
            f"""
            UPDATE trajectories
            SET {", ".join(assignments)}
            WHERE trajectory_id = ? AND owner_id = ? AND status = ?
            """,
            params,
        )
        return cursor.rowcount == 1

    async def lock_trajectory(
        self,
        trajectory_id: str,
        owner_id: str,
        details: LockDetails,
        locked_at: datetime,
        title_min_length: int,
        commitment_min_length: int,
    ) -> bool:
        """draft -> locked

        同一条 UPDATE 内写入最终 title / commitment 并校验长度，
        并发的草稿编辑无法让过短的内容被锁定。
        details 中为空的 title / commitment / deadline_at 沿用草稿中的值。
        """
        cursor = await self._conn.execute(
            """
            UPDATE trajectories
            SET status = ?,
                title = COALESCE(?, title),
                commitment = COALESCE(?, commitment),
                deadline_at = COALESCE(?, deadline_at),
                lock_reason = ?,
                stake_amount = ?,
                stake_currency = ?,
                locked_at = ?,
                updated_at = ?,
                is_public = 1
            WHERE trajectory_id = ? AND owner_id = ? AND status = ?
              AND dropped_at IS NULL
              AND length(trim(COALESCE(?, title))) >= ?
              AND length(trim(COALESCE(?, commitment))) >= ?
            """,
            (
                TrajectoryStatus.LOCKED.value,
                details.title,
                details.commitment,
                _iso(details.deadline_at),
                details.lock_reason,
                str(details.stake_amount) if details.stake_amount is not None else None,
                details.stake_currency,
                locked_at.isoformat(),
                locked_at.isoformat(),
                trajectory_id,
                owner_id,
                TrajectoryStatus.DRAFT.value,
                details.title,
                title_min_length,
                details.commitment,
                commitment_min_length,
            ),
        )
        return cursor.rowcount == 1

    async def drop_trajectory(
        self,
        trajectory_id: str,
        owner_id: str,
        dropped_at: datetime,
    ) -> bool:
        """draft -> dropped（永久私有）"""
        cursor = await self._conn.execute(
            """
            UPDATE trajectories
            SET status = ?, dropped_at = ?, updated_at = ?, is_public = 0
            WHERE trajectory_id = ? AND owner_id = ? AND status = ?
            """,
            (
                TrajectoryStatus.DROPPED.value,
                dropped_at.isoformat(),
                dropped_at.isoformat(),
                trajectory_id,
                owner_id,
                TrajectoryStatus.DRAFT.value,
            ),
        )
        return cursor.rowcount == 1

    async def finalize_trajectory(
        self,
        trajectory_id: str,
        owner_id: str,
        final_status: TrajectoryStatus,
        finalized_at: datetime,
        not_before_deadline: bool = False,
    ) -> bool:
        """locked -> completed | broken

        not_before_deadline=True 时，截止时间之前的提交不会命中任何行。
        """
        if final_status not in (TrajectoryStatus.COMPLETED, TrajectoryStatus.BROKEN):
            raise ValueError(f"Not a final status: {final_status}")

        sql = """
            UPDATE trajectories
            SET status = ?, finalized_at = ?, updated_at = ?
            WHERE trajectory_id = ? AND owner_id = ? AND status = ?
        """
        params: list[Any] = [
            final_status.value,
            finalized_at.isoformat(),
            finalized_at.isoformat(),
            trajectory_id,
            owner_id,
            TrajectoryStatus.LOCKED.value,
        ]
        if not_before_deadline:
            sql += " AND (deadline_at IS NULL OR deadline_at <= ?)"
            params.append(finalized_at.isoformat())

        cursor = await self._conn.execute(sql, params)
        return cursor.rowcount == 1

    async def delete_all(self) -> None:
        """清空 projection（仅用于重建）"""
        await self._conn.execute("DELETE FROM trajectories")

    @staticmethod
    def _row_to_trajectory(row: aiosqlite.Row) -> Trajectory:
        """将数据库行转换为 Trajectory 模型"""
        return Trajectory(
            trajectory_id=row[0],
            owner_id=row[1],
            created_at=datetime.fromisoformat(row[2]),
            updated_at=datetime.fromisoformat(row[3]),
            status=row[4],
            title=row[5],
            commitment=row[6],
            completion_criteria=row[7],
            lock_type=row[8],
            lock_reason=row[9],
            deadline_at=_dt(row[10]),
            locked_at=_dt(row[11]),
            dropped_at=_dt(row[12]),
            finalized_at=_dt(row[13]),
            is_public=bool(row[14]),
            stake_amount=Decimal(row[15]) if row[15] is not None else None,
            stake_currency=row[16],
        )
