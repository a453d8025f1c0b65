"""Auth 异常体系

gateway 将 InvalidCredentialError 映射为 401，AuthUnavailableError 映射为 503。
"""


class AuthError(Exception):
    """Auth 包基础异常"""

    def __init__(self, message: str, recoverable: bool = False) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试恢复
        """
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


class InvalidCredentialError(AuthError):
    """token 缺失、过期或被身份服务拒绝"""

    def __init__(self, message: str = "Invalid or expired credentials") -> None:
        super().__init__(message, recoverable=False)


class AuthUnavailableError(AuthError):
    """身份服务不可达（连接失败、超时、5xx 等）"""

    def __init__(self, auth_url: str, original_error: Exception | None = None) -> None:
        """
        Args:
            auth_url: 尝试连接的身份服务地址
            original_error: 原始异常
        """
        detail = f" -- {original_error}" if original_error is not None else ""
        super().__init__(
            f"身份服务不可达: {auth_url}{detail}",
            recoverable=True,
        )
        self.auth_url = auth_url
        self.original_error = original_error
