"""AmendmentStore SQLite 实现

amendments 表 append-only。OUTCOME 的唯一性由部分唯一索引
idx_amendments_single_outcome 保证，重复插入抛出 aiosqlite.IntegrityError。
"""

from datetime import datetime

import aiosqlite

from ..models.amendment import Amendment
from ..models.enums import AmendmentKind, TrajectoryStatus

OUTCOME_INDEX_NAME = "idx_amendments_single_outcome"


def is_outcome_conflict(error: Exception) -> bool:
    """判断 IntegrityError 是否来自结果唯一约束"""
    if not isinstance(error, aiosqlite.IntegrityError):
        return False
    text = str(error)
    return OUTCOME_INDEX_NAME in text or "amendments.trajectory_id" in text


class SqliteAmendmentStore:
    """AmendmentStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append_amendment(self, amendment: Amendment) -> None:
        """追加记录（append-only）

        注意：此方法不自动提交事务，需由调用方管理事务。
        """
        await self._conn.execute(
            """
            INSERT INTO amendments (amendment_id, trajectory_id, kind, content,
                                    author_id, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                amendment.amendment_id,
                amendment.trajectory_id,
                amendment.kind.value,
                amendment.content,
                amendment.author_id,
                amendment.created_at.isoformat(),
            ),
        )

    async def append_to_locked(self, amendment: Amendment, owner_id: str) -> bool:
        """仅当记录处于 locked 且属于 owner_id 时追加

        Returns:
            False 表示条件不成立，没有写入
        """
        cursor = await self._conn.execute(
            """
            INSERT INTO amendments (amendment_id, trajectory_id, kind, content,
                                    author_id, created_at)
            SELECT ?, ?, ?, ?, ?, ?
            WHERE EXISTS (
                SELECT 1 FROM trajectories
                WHERE trajectory_id = ? AND owner_id = ? AND status = ?
            )
            """,
            (
                amendment.amendment_id,
                amendment.trajectory_id,
                amendment.kind.value,
                amendment.content,
                amendment.author_id,
                amendment.created_at.isoformat(),
                amendment.trajectory_id,
                owner_id,
                TrajectoryStatus.LOCKED.value,
            ),
        )
        return cursor.rowcount == 1

    async def list_for_trajectory(self, trajectory_id: str) -> list[Amendment]:
        """查询指定记录的追加记录，按 created_at 倒序（ULID 兜底同一时刻的顺序）"""
        cursor = await self._conn.execute(
            """
            SELECT amendment_id, trajectory_id, kind, content, author_id, created_at
            FROM amendments
            WHERE trajectory_id = ?
            ORDER BY created_at DESC, amendment_id DESC
            """,
            (trajectory_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_amendment(row) for row in rows]

    async def count_by_kind(self) -> dict[AmendmentKind, int]:
        """按类型统计追加记录数量"""
        cursor = await self._conn.execute(
            "SELECT kind, COUNT(*) FROM amendments GROUP BY kind"
        )
        rows = await cursor.fetchall()
        counts = {kind: 0 for kind in AmendmentKind}
        for row in rows:
            counts[AmendmentKind(row[0])] = row[1]
        return counts

    @staticmethod
    def _row_to_amendment(row: aiosqlite.Row) -> Amendment:
        """将数据库行转换为 Amendment 模型"""
        return Amendment(
            amendment_id=row[0],
            trajectory_id=row[1],
            kind=AmendmentKind(row[2]),
            content=row[3],
            author_id=row[4],
            created_at=datetime.fromisoformat(row[5]),
        )
