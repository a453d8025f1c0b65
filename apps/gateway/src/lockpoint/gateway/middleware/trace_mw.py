"""TraceMiddleware -- 记录级 trace_id

trace_id = trace-<trajectory_id>，与事件表中的 trace_id 一致，
从 /api/trajectories/{id}/... 或 /api/locks/{id}/... 路径中提取。
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

_TRACED_SEGMENTS = ("trajectories", "locks")

# ULID 长度
_ID_LENGTH = 26


def extract_trace_id(path: str) -> str | None:
    """从请求路径提取 trace_id，无记录 ID 时返回 None"""
    parts = path.split("/")
    for i, part in enumerate(parts):
        if part in _TRACED_SEGMENTS and i + 1 < len(parts):
            trajectory_id = parts[i + 1]
            if len(trajectory_id) == _ID_LENGTH:
                return f"trace-{trajectory_id}"
    return None


class TraceMiddleware(BaseHTTPMiddleware):
    """记录级追踪中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        trace_id = extract_trace_id(request.url.path)
        if trace_id:
            structlog.contextvars.bind_contextvars(trace_id=trace_id)

        return await call_next(request)
