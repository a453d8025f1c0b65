"""状态流转路由 -- 锁定 / 丢弃草稿

POST /api/trajectories/{trajectory_id}/lock: draft -> locked
- 200: 锁定成功
- 400: 确认口令缺失、标题/承诺过短、押注非法
- 403: 非 owner
- 404: 记录不存在
- 409: 记录已离开 draft
POST /api/trajectories/{trajectory_id}/drop: draft -> dropped
"""

from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Body, Depends
from lockpoint.auth import Identity
from pydantic import BaseModel

from ..deps import get_identity, get_lifecycle_service
from ..services.lifecycle_service import LifecycleService
from .trajectories import serialize_trajectory

router = APIRouter()


class LockRequest(BaseModel):
    """锁定请求体"""

    confirmation: str = ""
    deadline_at: datetime | None = None
    stake_amount: Decimal | None = None
    stake_currency: str | None = None
    lock_reason: str | None = None
    title: str | None = None
    commitment: str | None = None


class DropRequest(BaseModel):
    """丢弃请求体"""

    reason: str | None = None


@router.post("/api/trajectories/{trajectory_id}/lock")
async def lock_trajectory(
    trajectory_id: str,
    body: LockRequest,
    identity: Identity = Depends(get_identity),
    service: LifecycleService = Depends(get_lifecycle_service),
):
    """锁定草稿，锁定后公开且内容冻结"""
    trajectory = await service.lock(
        identity,
        trajectory_id,
        confirmation=body.confirmation,
        deadline_at=body.deadline_at,
        stake_amount=body.stake_amount,
        stake_currency=body.stake_currency,
        lock_reason=body.lock_reason,
        title=body.title,
        commitment=body.commitment,
    )
    return {
        "ok": True,
        "trajectory": serialize_trajectory(trajectory, service.deadline_of(trajectory)),
    }


@router.post("/api/trajectories/{trajectory_id}/drop")
async def drop_trajectory(
    trajectory_id: str,
    body: DropRequest | None = Body(default=None),
    identity: Identity = Depends(get_identity),
    service: LifecycleService = Depends(get_lifecycle_service),
):
    """丢弃草稿，记录永久私有"""
    trajectory = await service.drop_draft(
        identity, trajectory_id, reason=body.reason if body else None
    )
    return {
        "ok": True,
        "trajectory": serialize_trajectory(trajectory),
    }
