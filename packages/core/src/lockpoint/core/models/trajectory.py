"""Trajectory Domain Model -- 承诺记录

trajectories 表是 events 的物化视图（projection），
所有状态更新必须通过写入事件触发。
锁定之后，除 status / finalized_at 以外的基础字段不再变化。
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from .enums import (
    PUBLIC_STATES,
    TERMINAL_STATES,
    DeadlineState,
    LockType,
    TrajectoryStatus,
)


def ensure_utc(value: datetime | None) -> datetime | None:
    """无时区的时间按 UTC 处理；存储层按字符串比较，统一换算到 UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Trajectory(BaseModel):
    """Trajectory 数据模型

    status 在存储边界处通过 TrajectoryStatus.parse 校验，
    历史别名（active / failed）在此被归一为规范名称。
    """

    trajectory_id: str = Field(description="唯一标识，ULID 格式")
    owner_id: str = Field(description="创建者身份标识，拥有唯一写权限")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")
    status: TrajectoryStatus = Field(
        default=TrajectoryStatus.DRAFT, description="当前状态"
    )
    title: str = Field(description="标题")
    commitment: str = Field(description="承诺语句")
    completion_criteria: str | None = Field(default=None, description="完成标准")
    lock_type: LockType = Field(default=LockType.PERSONAL, description="承诺类别")
    lock_reason: str | None = Field(default=None, description="锁定理由")
    deadline_at: datetime | None = Field(default=None, description="截止时间")
    locked_at: datetime | None = Field(default=None, description="锁定时间")
    dropped_at: datetime | None = Field(default=None, description="丢弃时间")
    finalized_at: datetime | None = Field(default=None, description="完成/失败时间")
    is_public: bool = Field(default=False, description="是否公开可读")
    stake_amount: Decimal | None = Field(
        default=None, gt=0, description="自报押注金额，仅作展示"
    )
    stake_currency: str | None = Field(default=None, description="押注币种")

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value):
        if isinstance(value, TrajectoryStatus):
            return value
        return TrajectoryStatus.parse(value)

    @field_validator(
        "created_at",
        "updated_at",
        "deadline_at",
        "locked_at",
        "dropped_at",
        "finalized_at",
    )
    @classmethod
    def _ensure_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)

    def is_owned_by(self, user_id: str | None) -> bool:
        return user_id is not None and self.owner_id == user_id

    def is_visible_to(self, user_id: str | None) -> bool:
        """可见性规则：owner 可见全部；其他人仅可见已锁定的记录"""
        if self.is_owned_by(user_id):
            return True
        return self.status in PUBLIC_STATES and self.dropped_at is None


def deadline_state(
    trajectory: Trajectory,
    now: datetime,
    due_soon_days: int = 7,
) -> DeadlineState:
    """计算截止时间提示

    仅展示用途：终态记录或无截止时间时返回 NONE。
    """
    if trajectory.deadline_at is None or trajectory.status in TERMINAL_STATES:
        return DeadlineState.NONE
    if trajectory.deadline_at <= now:
        return DeadlineState.OVERDUE
    if trajectory.deadline_at - now <= timedelta(days=due_soon_days):
        return DeadlineState.DUE_SOON
    return DeadlineState.ON_TRACK
