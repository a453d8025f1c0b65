"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含 SQLite 连通性；
         profile=auth 时额外探测身份服务。
"""

import structlog
from fastapi import APIRouter, Query, Request
from starlette.responses import JSONResponse

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(
    request: Request,
    profile: str | None = Query(
        default=None,
        description="检查配置：core（默认）仅核心检查；auth/full 包含身份服务健康检查",
    ),
):
    """Readiness 检查

    检查项：
    1. sqlite: 数据库连通性
    2. auth: 根据 profile 决定是否探测身份服务
    """
    effective_profile = profile or "core"

    checks: dict[str, str] = {}
    all_ok = True

    # 1. SQLite 连通性检查
    try:
        store_group = request.app.state.store_group
        async with store_group.lock:
            cursor = await store_group.conn.execute("SELECT 1")
            await cursor.fetchone()
        checks["sqlite"] = "ok"
    except Exception as e:
        checks["sqlite"] = f"error: {str(e)}"
        all_ok = False

    # 2. 身份服务健康检查
    if effective_profile in ("auth", "full"):
        verifier = getattr(request.app.state, "verifier", None)
        if verifier is None:
            checks["auth"] = "skipped"
        else:
            try:
                if await verifier.health_check():
                    checks["auth"] = "ok"
                else:
                    checks["auth"] = "unreachable"
                    all_ok = False
            except Exception as e:
                log.warning("health_check_error", error=str(e))
                checks["auth"] = "unreachable"
                all_ok = False
    else:
        checks["auth"] = "skipped"

    status_code = 200 if all_ok else 503
    status_text = "ready" if all_ok else "not_ready"

    return JSONResponse(
        status_code=status_code,
        content={
            "status": status_text,
            "profile": effective_profile,
            "checks": checks,
        },
    )
