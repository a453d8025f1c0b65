"""生命周期异常体系

每个异常携带稳定的机器可读 kind / code 以及人类可读 message。
HTTP 映射在 gateway 层完成，core 不感知状态码。
"""

from .models.enums import ErrorKind


class LockpointError(Exception):
    """Lockpoint 基础异常"""

    kind: ErrorKind = ErrorKind.UNEXPECTED
    default_code: str = "UNEXPECTED"

    def __init__(self, message: str, code: str | None = None) -> None:
        """
        Args:
            message: 错误描述
            code: 机器可读错误码，缺省使用类级别默认值
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class UnauthenticatedError(LockpointError):
    """缺少或无效的身份凭证"""

    kind = ErrorKind.UNAUTHENTICATED
    default_code = "UNAUTHENTICATED"


class ForbiddenError(LockpointError):
    """调用者不是记录的 owner"""

    kind = ErrorKind.FORBIDDEN
    default_code = "FORBIDDEN"


class NotFoundError(LockpointError):
    """记录不存在（或对调用者不可见）"""

    kind = ErrorKind.NOT_FOUND
    default_code = "TRAJECTORY_NOT_FOUND"

    def __init__(self, trajectory_id: str, message: str | None = None) -> None:
        super().__init__(
            message or f"Trajectory with id {trajectory_id} does not exist",
        )
        self.trajectory_id = trajectory_id


class InvalidInputError(LockpointError):
    """校验失败：文本过短、结果取值非法、确认口令缺失等

    校验错误总是在任何写入之前被发现。
    """

    kind = ErrorKind.INVALID_INPUT
    default_code = "INVALID_INPUT"


class ConflictError(LockpointError):
    """记录不在预期状态，或结果已被提交

    在写入时通过条件更新 / 唯一约束发现。
    """

    kind = ErrorKind.CONFLICT
    default_code = "CONFLICT"


class UnexpectedError(LockpointError):
    """存储层异常等非预期错误"""

    kind = ErrorKind.UNEXPECTED
    default_code = "UNEXPECTED"
