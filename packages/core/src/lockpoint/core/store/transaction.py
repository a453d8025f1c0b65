"""原子事务封装

生命周期写入（条件更新 + 追加记录 + 事件）在同一 SQLite 事务内提交，
任一步失败则整体回滚，不会留下半完成的记录。

共享连接上的协程会交错执行，事务本身不能隔离它们；
因此所有访问都应先获取 StoreGroup.lock。
"""

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

import aiosqlite

from ..models.event import Event
from .event_store import SqliteEventStore


@asynccontextmanager
async def write_transaction(conn: aiosqlite.Connection) -> AsyncIterator[aiosqlite.Connection]:
    """显式 BEGIN IMMEDIATE 事务：正常退出时提交，异常时回滚后重新抛出

    Args:
        conn: 数据库连接（需在同一连接上操作以保证事务性）
    """
    await conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        await conn.rollback()
        raise
    else:
        await conn.commit()


async def append_next_event(
    event_store: SqliteEventStore,
    trajectory_id: str,
    event_builder: Callable[[int], Event],
) -> Event:
    """在当前事务内分配下一个 seq 并追加事件

    Args:
        event_store: EventStore 实例
        trajectory_id: 记录 ID
        event_builder: 根据 seq 构造事件的函数

    Returns:
        已写入的事件
    """
    seq = await event_store.get_next_seq(trajectory_id)
    event = event_builder(seq)
    await event_store.append_event(event)
    return event
