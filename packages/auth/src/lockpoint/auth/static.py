"""StaticTokenVerifier -- 固定 token 表校验

本地开发与测试使用，行为与 RemoteTokenVerifier 一致：
未知 token 抛出 InvalidCredentialError，health_check 总是 True。
"""

from .exceptions import InvalidCredentialError
from .models import Identity


class StaticTokenVerifier:
    """基于 token -> 'user_id[:email]' 映射的校验器"""

    def __init__(self, tokens: dict[str, str]) -> None:
        self._identities: dict[str, Identity] = {}
        for token, subject in tokens.items():
            user_id, _, email = subject.partition(":")
            self._identities[token] = Identity(user_id=user_id, email=email or None)

    async def verify(self, token: str) -> Identity:
        identity = self._identities.get((token or "").strip())
        if identity is None:
            raise InvalidCredentialError()
        return identity

    async def health_check(self) -> bool:
        return True
