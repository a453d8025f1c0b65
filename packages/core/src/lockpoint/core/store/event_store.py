"""EventStore SQLite 实现

事件表 append-only：只允许插入，不允许更新或删除（触发器保证）。
seq 同一 trajectory 内严格单调递增。
"""

import json
from datetime import datetime

import aiosqlite

from ..models.enums import ActorType, EventType
from ..models.event import Event


class SqliteEventStore:
    """EventStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append_event(self, event: Event) -> None:
        """追加事件（append-only）

        注意：此方法不自动提交事务，需由调用方管理事务。
        """
        await self._conn.execute(
            """
            INSERT INTO events (event_id, trajectory_id, seq, ts, type,
                                schema_version, actor, actor_id, payload, trace_id)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.event_id,
                event.trajectory_id,
                event.seq,
                event.ts.isoformat(),
                event.type.value,
                event.schema_version,
                event.actor.value,
                event.actor_id,
                json.dumps(event.payload, ensure_ascii=False),
                event.trace_id,
            ),
        )

    async def get_events_for_trajectory(self, trajectory_id: str) -> list[Event]:
        """查询指定记录的所有事件，按 seq 正序"""
        cursor = await self._conn.execute(
            "SELECT * FROM events WHERE trajectory_id = ? ORDER BY seq ASC",
            (trajectory_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    async def get_next_seq(self, trajectory_id: str) -> int:
        """获取指定记录的下一个 seq（MAX+1）

        在事务内调用以确保原子性。
        """
        cursor = await self._conn.execute(
            "SELECT COALESCE(MAX(seq), 0) FROM events WHERE trajectory_id = ?",
            (trajectory_id,),
        )
        row = await cursor.fetchone()
        return (row[0] if row else 0) + 1

    async def get_all_events(self) -> list[Event]:
        """查询所有事件，按 trajectory_id 和 seq 排序（用于 Projection 重建）"""
        cursor = await self._conn.execute(
            "SELECT * FROM events ORDER BY trajectory_id, seq ASC"
        )
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    @staticmethod
    def _row_to_event(row: aiosqlite.Row) -> Event:
        """将数据库行转换为 Event 模型"""
        payload = json.loads(row[8]) if row[8] else {}
        return Event(
            event_id=row[0],
            trajectory_id=row[1],
            seq=row[2],
            ts=datetime.fromisoformat(row[3]),
            type=EventType(row[4]),
            schema_version=row[5],
            actor=ActorType(row[6]),
            actor_id=row[7],
            payload=payload,
            trace_id=row[9],
        )
