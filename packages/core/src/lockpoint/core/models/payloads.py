"""Event Payload 子类型

所有生命周期事件的结构化 payload 定义。
写入时使用 model_dump(mode="json")，projection 重建时再用同一模型解析。
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from .enums import AmendmentKind, LockType, TrajectoryStatus, validate_transition


class TrajectoryCreatedPayload(BaseModel):
    """TRAJECTORY_CREATED 事件 payload"""

    owner_id: str
    title: str
    commitment: str
    completion_criteria: str | None = None
    lock_type: LockType = LockType.PERSONAL
    deadline_at: datetime | None = None


class DraftEditedPayload(BaseModel):
    """DRAFT_EDITED 事件 payload -- 仅包含被修改的字段"""

    title: str | None = None
    commitment: str | None = None
    completion_criteria: str | None = None
    lock_type: LockType | None = None
    deadline_at: datetime | None = None
    fields: list[str] = Field(default_factory=list, description="本次修改的字段名")


class LockDetails(BaseModel):
    """锁定时冻结的内容

    作为写入参数时 title / commitment 可为空，表示沿用草稿中的值；
    写入事件时总是锁定瞬间的最终值。
    """

    title: str | None = None
    commitment: str | None = None
    deadline_at: datetime | None = None
    lock_reason: str | None = None
    stake_amount: Decimal | None = None
    stake_currency: str | None = None


class StateTransitionPayload(BaseModel):
    """STATE_TRANSITION 事件 payload"""

    from_status: TrajectoryStatus
    to_status: TrajectoryStatus
    reason: str = Field(default="")
    lock: LockDetails | None = Field(default=None, description="draft -> locked 时填充")

    @model_validator(mode="after")
    def _check_transition(self) -> "StateTransitionPayload":
        if not validate_transition(self.from_status, self.to_status):
            raise ValueError(
                f"Invalid transition: {self.from_status.value} -> {self.to_status.value}"
            )
        return self


class AmendmentAppendedPayload(BaseModel):
    """AMENDMENT_APPENDED 事件 payload"""

    amendment_id: str
    kind: AmendmentKind
    content_length: int
