"""枚举定义 -- Trajectory 生命周期状态机

包含 TrajectoryStatus 状态机、AmendmentKind、EventType、ActorType、LockType、
DeadlineState、ErrorKind 枚举，以及 VALID_TRANSITIONS 合法流转映射、
TERMINAL_STATES 终态集合和 PUBLIC_STATES 公开状态集合。
"""

from enum import StrEnum


class TrajectoryStatus(StrEnum):
    """Trajectory 状态机

    规范名称：draft / locked / completed / broken / dropped。
    历史别名（active、failed、sealed）只在入口处解析，不会被写出。
    """

    DRAFT = "draft"
    LOCKED = "locked"

    # 终态
    COMPLETED = "completed"
    BROKEN = "broken"
    DROPPED = "dropped"

    @classmethod
    def parse(cls, value: str) -> "TrajectoryStatus":
        """解析状态字符串（大小写不敏感，兼容历史别名）

        Raises:
            ValueError: 无法识别的状态
        """
        normalized = str(value or "").strip().lower()
        normalized = STATUS_ALIASES.get(normalized, normalized)
        return cls(normalized)


# 历史别名 -> 规范名称
STATUS_ALIASES: dict[str, str] = {
    "active": TrajectoryStatus.LOCKED.value,
    "sealed": TrajectoryStatus.LOCKED.value,
    "failed": TrajectoryStatus.BROKEN.value,
}

# 合法状态流转
VALID_TRANSITIONS: dict[TrajectoryStatus, set[TrajectoryStatus]] = {
    TrajectoryStatus.DRAFT: {TrajectoryStatus.LOCKED, TrajectoryStatus.DROPPED},
    TrajectoryStatus.LOCKED: {
        TrajectoryStatus.COMPLETED,
        TrajectoryStatus.BROKEN,
    },
    # 终态不可再流转
    TrajectoryStatus.COMPLETED: set(),
    TrajectoryStatus.BROKEN: set(),
    TrajectoryStatus.DROPPED: set(),
}

TERMINAL_STATES: set[TrajectoryStatus] = {
    TrajectoryStatus.COMPLETED,
    TrajectoryStatus.BROKEN,
    TrajectoryStatus.DROPPED,
}

# 锁定之后即公开；被丢弃的草稿永远私有
PUBLIC_STATES: set[TrajectoryStatus] = {
    TrajectoryStatus.LOCKED,
    TrajectoryStatus.COMPLETED,
    TrajectoryStatus.BROKEN,
}


class AmendmentKind(StrEnum):
    """追加记录类型"""

    MILESTONE = "MILESTONE"
    OUTCOME = "OUTCOME"
    NOTE = "NOTE"
    # 仅由系统在丢弃草稿时写入
    DROP = "DROP"


class OutcomeResult(StrEnum):
    """结果提交取值 -- 对应最终状态"""

    SUCCESS = "success"
    FAIL = "fail"

    @classmethod
    def parse(cls, value: str) -> "OutcomeResult":
        """解析结果取值，兼容 completed / failed / broken 写法

        Raises:
            ValueError: 无法识别的结果
        """
        normalized = str(value or "").strip().lower()
        normalized = OUTCOME_ALIASES.get(normalized, normalized)
        return cls(normalized)

    @property
    def final_status(self) -> TrajectoryStatus:
        if self is OutcomeResult.SUCCESS:
            return TrajectoryStatus.COMPLETED
        return TrajectoryStatus.BROKEN


OUTCOME_ALIASES: dict[str, str] = {
    "completed": OutcomeResult.SUCCESS.value,
    "failed": OutcomeResult.FAIL.value,
    "broken": OutcomeResult.FAIL.value,
}


class LockType(StrEnum):
    """承诺类别"""

    PERSONAL = "personal"
    PRODUCT = "product"
    BUSINESS = "business"


class EventType(StrEnum):
    """生命周期事件类型"""

    TRAJECTORY_CREATED = "TRAJECTORY_CREATED"
    DRAFT_EDITED = "DRAFT_EDITED"
    STATE_TRANSITION = "STATE_TRANSITION"
    AMENDMENT_APPENDED = "AMENDMENT_APPENDED"


class ActorType(StrEnum):
    """操作者类型"""

    USER = "user"
    SYSTEM = "system"


class DeadlineState(StrEnum):
    """截止时间提示（仅展示用途，不参与状态机）"""

    NONE = "none"
    ON_TRACK = "on_track"
    DUE_SOON = "due_soon"
    OVERDUE = "overdue"


class ErrorKind(StrEnum):
    """错误分类 -- 稳定的机器可读类别"""

    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    CONFLICT = "conflict"
    UNEXPECTED = "unexpected"


def validate_transition(
    from_status: TrajectoryStatus, to_status: TrajectoryStatus
) -> bool:
    """验证状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed
