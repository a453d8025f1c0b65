"""Lockpoint Core Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

import asyncio
from pathlib import Path

import aiosqlite

from .amendment_store import SqliteAmendmentStore, is_outcome_conflict
from .event_store import SqliteEventStore
from .sqlite_init import init_db
from .trajectory_store import SqliteTrajectoryStore
from .transaction import append_next_event, write_transaction


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接

    lock 串行化共享连接上的所有访问：事务内的多次 await 之间，
    其他协程既不能写入也不能读到未提交的中间状态。
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self.conn = conn
        self.lock = asyncio.Lock()
        self.trajectory_store = SqliteTrajectoryStore(conn)
        self.amendment_store = SqliteAmendmentStore(conn)
        self.event_store = SqliteEventStore(conn)

    async def close(self) -> None:
        await self.conn.close()


async def create_store_group(db_path: str) -> StoreGroup:
    """创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径

    Returns:
        StoreGroup 实例
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await init_db(conn)

    return StoreGroup(conn=conn)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SqliteTrajectoryStore",
    "SqliteAmendmentStore",
    "SqliteEventStore",
    "init_db",
    "write_transaction",
    "append_next_event",
    "is_outcome_conflict",
]
