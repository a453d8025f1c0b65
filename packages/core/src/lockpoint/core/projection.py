"""Projection 重建模块

从 events 表重建 trajectories 表（物化视图），确保事件溯源的一致性。
支持单事件应用和全量重建两种模式。
"""

import time

import aiosqlite
import structlog

from .models.enums import EventType, TrajectoryStatus
from .models.event import Event
from .models.payloads import (
    DraftEditedPayload,
    StateTransitionPayload,
    TrajectoryCreatedPayload,
)
from .models.trajectory import Trajectory
from .store.event_store import SqliteEventStore
from .store.protocols import TrajectoryStore
from .store.transaction import write_transaction

log = structlog.get_logger()


def apply_event(trajectories: dict[str, Trajectory], event: Event) -> None:
    """将单个事件应用到 Trajectory 状态（内存中操作）

    Args:
        trajectories: trajectory_id -> Trajectory 的映射表（会被就地修改）
        event: 要应用的事件
    """
    trajectory_id = event.trajectory_id

    if event.type == EventType.TRAJECTORY_CREATED:
        payload = TrajectoryCreatedPayload.model_validate(event.payload)
        trajectories[trajectory_id] = Trajectory(
            trajectory_id=trajectory_id,
            owner_id=payload.owner_id,
            created_at=event.ts,
            updated_at=event.ts,
            status=TrajectoryStatus.DRAFT,
            title=payload.title,
            commitment=payload.commitment,
            completion_criteria=payload.completion_criteria,
            lock_type=payload.lock_type,
            deadline_at=payload.deadline_at,
        )
        return

    trajectory = trajectories.get(trajectory_id)
    if trajectory is None:
        log.warning(
            "projection_orphan_event",
            trajectory_id=trajectory_id,
            event_id=event.event_id,
        )
        return

    # 追加记录不修改 trajectories 行
    if event.type == EventType.AMENDMENT_APPENDED:
        return

    update: dict = {"updated_at": event.ts}

    if event.type == EventType.DRAFT_EDITED:
        edited = DraftEditedPayload.model_validate(event.payload)
        for field in edited.fields:
            update[field] = getattr(edited, field)
    elif event.type == EventType.STATE_TRANSITION:
        transition = StateTransitionPayload.model_validate(event.payload)
        update["status"] = transition.to_status
        if transition.to_status == TrajectoryStatus.LOCKED:
            update["locked_at"] = event.ts
            update["is_public"] = True
            if transition.lock is not None:
                # 空字段沿用草稿中的值
                update.update(transition.lock.model_dump(exclude_none=True))
        elif transition.to_status == TrajectoryStatus.DROPPED:
            update["dropped_at"] = event.ts
            update["is_public"] = False
        elif transition.to_status in (
            TrajectoryStatus.COMPLETED,
            TrajectoryStatus.BROKEN,
        ):
            update["finalized_at"] = event.ts

    trajectories[trajectory_id] = trajectory.model_copy(update=update)


async def rebuild_all(
    conn: aiosqlite.Connection,
    event_store: SqliteEventStore,
    trajectory_store: TrajectoryStore,
) -> int:
    """从 events 表重建 trajectories 表

    流程：
    1. 读取所有事件（按 trajectory_id, seq 排序）
    2. 在内存中应用所有事件，构建 Trajectory 状态
    3. 清空 trajectories 表
    4. 写入重建后的所有 Trajectory

    Args:
        conn: 数据库连接
        event_store: EventStore 实例
        trajectory_store: TrajectoryStore 实例

    Returns:
        处理的事件总数
    """
    start_time = time.monotonic()

    # 1. 读取所有事件
    events = await event_store.get_all_events()
    event_count = len(events)

    await log.ainfo(
        "projection_rebuild_started",
        event_count=event_count,
    )

    # 2. 在内存中应用所有事件
    trajectories: dict[str, Trajectory] = {}
    for event in events:
        apply_event(trajectories, event)

    # 3. 临时禁用外键约束（事务外才生效），清空后重建
    await conn.execute("PRAGMA foreign_keys = OFF")
    try:
        async with write_transaction(conn):
            await trajectory_store.delete_all()
            # 4. 写入重建后的所有 Trajectory
            for trajectory in trajectories.values():
                await trajectory_store.create_trajectory(trajectory)
    finally:
        # 5. 恢复外键约束
        await conn.execute("PRAGMA foreign_keys = ON")

    elapsed_ms = int((time.monotonic() - start_time) * 1000)
    await log.ainfo(
        "projection_rebuild_completed",
        event_count=event_count,
        trajectory_count=len(trajectories),
        elapsed_ms=elapsed_ms,
    )

    return event_count
