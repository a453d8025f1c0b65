"""结果提交路由

POST /api/locks/{trajectory_id}/outcome: locked -> completed | broken
- 200: {"ok": true, "status": "completed" | "broken"}
- 400: result 非法、记录是草稿或已丢弃、截止时间未到（启用约束时）
- 403: 非 owner
- 404: 记录不存在
- 409: 结果已提交
"""

from fastapi import APIRouter, Depends
from lockpoint.auth import Identity
from pydantic import BaseModel

from ..deps import get_identity, get_lifecycle_service
from ..services.lifecycle_service import LifecycleService

router = APIRouter()


class OutcomeRequest(BaseModel):
    """结果提交请求体"""

    result: str
    proof_text: str | None = None
    proof_url: str | None = None


class OutcomeResponse(BaseModel):
    ok: bool = True
    status: str


@router.post("/api/locks/{trajectory_id}/outcome", response_model=OutcomeResponse)
async def record_outcome(
    trajectory_id: str,
    body: OutcomeRequest,
    identity: Identity = Depends(get_identity),
    service: LifecycleService = Depends(get_lifecycle_service),
):
    trajectory = await service.record_outcome(
        identity,
        trajectory_id,
        result=body.result,
        proof_text=body.proof_text,
        proof_url=body.proof_url,
    )
    return OutcomeResponse(status=trajectory.status.value)
