"""Lockpoint Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .amendment import Amendment
from .enums import (
    PUBLIC_STATES,
    STATUS_ALIASES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    ActorType,
    AmendmentKind,
    DeadlineState,
    ErrorKind,
    EventType,
    LockType,
    OutcomeResult,
    TrajectoryStatus,
    validate_transition,
)
from .event import Event
from .payloads import (
    AmendmentAppendedPayload,
    DraftEditedPayload,
    LockDetails,
    StateTransitionPayload,
    TrajectoryCreatedPayload,
)
from .trajectory import Trajectory, deadline_state, ensure_utc

__all__ = [
    # 枚举
    "TrajectoryStatus",
    "AmendmentKind",
    "OutcomeResult",
    "LockType",
    "EventType",
    "ActorType",
    "DeadlineState",
    "ErrorKind",
    # 状态机
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "PUBLIC_STATES",
    "STATUS_ALIASES",
    "validate_transition",
    # Trajectory
    "Trajectory",
    "deadline_state",
    "ensure_utc",
    # Amendment
    "Amendment",
    # Event
    "Event",
    # Payloads
    "TrajectoryCreatedPayload",
    "DraftEditedPayload",
    "LockDetails",
    "StateTransitionPayload",
    "AmendmentAppendedPayload",
]
