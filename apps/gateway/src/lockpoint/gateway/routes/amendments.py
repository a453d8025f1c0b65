"""追加记录路由

POST /api/trajectories/{trajectory_id}/amendments: 向已锁定记录追加 MILESTONE / NOTE / OUTCOME
- 201: 追加成功
- 400: 确认口令缺失、内容过短、类型非法
- 409: 记录不是 locked，或结果已提交
"""

from fastapi import APIRouter, Depends
from lockpoint.auth import Identity
from pydantic import BaseModel
from starlette.responses import JSONResponse

from ..deps import get_identity, get_lifecycle_service
from ..services.lifecycle_service import LifecycleService
from .trajectories import serialize_amendment

router = APIRouter()


class AmendmentRequest(BaseModel):
    """追加记录请求体；OUTCOME 需同时给出 result"""

    kind: str
    content: str
    confirmation: str = ""
    result: str | None = None


@router.post("/api/trajectories/{trajectory_id}/amendments", status_code=201)
async def add_amendment(
    trajectory_id: str,
    body: AmendmentRequest,
    identity: Identity = Depends(get_identity),
    service: LifecycleService = Depends(get_lifecycle_service),
):
    amendment = await service.add_amendment(
        identity,
        trajectory_id,
        kind=body.kind,
        content=body.content,
        confirmation=body.confirmation,
        result=body.result,
    )
    return JSONResponse(
        status_code=201,
        content={"ok": True, "amendment": serialize_amendment(amendment)},
    )
