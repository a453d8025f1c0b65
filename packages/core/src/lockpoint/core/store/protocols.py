"""Store Protocol 接口定义

定义 TrajectoryStore、AmendmentStore、EventStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from ..models.amendment import Amendment
from ..models.enums import AmendmentKind, TrajectoryStatus
from ..models.event import Event
from ..models.payloads import LockDetails
from ..models.trajectory import Trajectory


@runtime_checkable
class TrajectoryStore(Protocol):
    """Trajectory 存储接口

    写入方法均为条件更新，返回 False 表示预期状态不成立。
    """

    async def create_trajectory(self, trajectory: Trajectory) -> None:
        """创建记录"""
        ...

    async def get_trajectory(self, trajectory_id: str) -> Trajectory | None:
        """根据 trajectory_id 查询记录"""
        ...

    async def list_public(
        self,
        status: TrajectoryStatus | None = None,
        limit: int = 50,
    ) -> list[Trajectory]:
        """查询公开记录"""
        ...

    async def list_for_owner(
        self,
        owner_id: str,
        status: TrajectoryStatus | None = None,
        query: str | None = None,
    ) -> list[Trajectory]:
        """查询 owner 的全部记录"""
        ...

    async def update_draft(
        self,
        trajectory_id: str,
        owner_id: str,
        changes: dict[str, Any],
        updated_at: datetime,
    ) -> bool:
        """修改草稿内容"""
        ...

    async def lock_trajectory(
        self,
        trajectory_id: str,
        owner_id: str,
        details: LockDetails,
        locked_at: datetime,
        title_min_length: int,
        commitment_min_length: int,
    ) -> bool:
        """draft -> locked"""
        ...

    async def drop_trajectory(
        self,
        trajectory_id: str,
        owner_id: str,
        dropped_at: datetime,
    ) -> bool:
        """draft -> dropped"""
        ...

    async def finalize_trajectory(
        self,
        trajectory_id: str,
        owner_id: str,
        final_status: TrajectoryStatus,
        finalized_at: datetime,
        not_before_deadline: bool = False,
    ) -> bool:
        """locked -> completed | broken"""
        ...

    async def list_all(self, limit: int | None = None) -> list[Trajectory]:
        """查询全部记录（统计用途）"""
        ...

    async def delete_all(self) -> None:
        """清空 projection（仅用于重建）"""
        ...


@runtime_checkable
class AmendmentStore(Protocol):
    """Amendment 存储接口 -- append-only"""

    async def append_amendment(self, amendment: Amendment) -> None:
        """追加记录"""
        ...

    async def append_to_locked(self, amendment: Amendment, owner_id: str) -> bool:
        """仅当记录处于 locked 且属于 owner 时追加"""
        ...

    async def list_for_trajectory(self, trajectory_id: str) -> list[Amendment]:
        """查询指定记录的追加记录（倒序）"""
        ...

    async def count_by_kind(self) -> dict[AmendmentKind, int]:
        """按类型统计"""
        ...


@runtime_checkable
class EventStore(Protocol):
    """Event 存储接口

    事件表 append-only：只允许插入，不允许更新或删除。
    """

    async def append_event(self, event: Event) -> None:
        """追加事件（append-only）"""
        ...

    async def get_events_for_trajectory(self, trajectory_id: str) -> list[Event]:
        """查询指定记录的所有事件"""
        ...

    async def get_next_seq(self, trajectory_id: str) -> int:
        """获取指定记录的下一个 seq（MAX+1）"""
        ...
