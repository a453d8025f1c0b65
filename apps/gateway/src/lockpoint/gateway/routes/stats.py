"""管理统计路由

GET /api/admin/stats: 需要 X-Admin-Key 头与 LOCKPOINT_ADMIN_KEY 一致；
未配置密钥时接口关闭（403）。
"""

import structlog
from fastapi import APIRouter, Depends, Header
from lockpoint.core.config import get_admin_key
from lockpoint.core.exceptions import ForbiddenError

from ..deps import get_store_group
from ..services.stats_service import StatsService, admin_key_matches

log = structlog.get_logger()

router = APIRouter()


@router.get("/api/admin/stats")
async def admin_stats(
    x_admin_key: str | None = Header(default=None),
    store_group=Depends(get_store_group),
):
    if not admin_key_matches(x_admin_key, get_admin_key()):
        await log.awarning("admin_access_denied", key_provided=bool(x_admin_key))
        raise ForbiddenError("Admin access denied", code="ADMIN_FORBIDDEN")

    stats = await StatsService(store_group).reality_stats()
    return {"ok": True, "stats": stats.model_dump(mode="json")}
