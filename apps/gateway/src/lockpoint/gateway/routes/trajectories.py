"""记录路由 -- 创建 / 查询 / 草稿编辑

POST  /api/trajectories: 创建草稿（201）
GET   /api/trajectories: 公开记录列表，支持 status 筛选
GET   /api/me/trajectories: 我的全部记录（含草稿与已丢弃），支持 status / q
GET   /api/trajectories/{trajectory_id}: 详情（bearer 可选）+ 追加记录 + 截止时间提示
PATCH /api/trajectories/{trajectory_id}: 编辑草稿
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from lockpoint.auth import Identity
from lockpoint.core.models import Amendment, DeadlineState, Trajectory
from pydantic import BaseModel, ConfigDict, Field
from starlette.responses import JSONResponse

from ..deps import get_identity, get_lifecycle_service, get_optional_identity
from ..services.lifecycle_service import LifecycleService

router = APIRouter()


class CreateTrajectoryRequest(BaseModel):
    """创建草稿请求体"""

    title: str
    commitment: str
    completion_criteria: str | None = None
    lock_type: str | None = None
    deadline_at: datetime | None = None


class EditTrajectoryRequest(BaseModel):
    """编辑草稿请求体 -- 只提交需要修改的字段"""

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    commitment: str | None = None
    completion_criteria: str | None = None
    lock_type: str | None = None
    deadline_at: datetime | None = Field(default=None, description="传 null 清空截止时间")


def serialize_trajectory(
    trajectory: Trajectory, deadline: DeadlineState | None = None
) -> dict[str, Any]:
    """记录序列化；stake_amount 以字符串输出，保持精确值"""
    data = trajectory.model_dump(mode="json")
    if deadline is not None:
        data["deadline_state"] = deadline.value
    return data


def serialize_amendment(amendment: Amendment) -> dict[str, Any]:
    return amendment.model_dump(mode="json")


@router.post("/api/trajectories", status_code=201)
async def create_trajectory(
    body: CreateTrajectoryRequest,
    identity: Identity = Depends(get_identity),
    service: LifecycleService = Depends(get_lifecycle_service),
):
    """创建草稿：私有，owner 为调用者"""
    trajectory = await service.create_draft(
        identity,
        title=body.title,
        commitment=body.commitment,
        completion_criteria=body.completion_criteria,
        lock_type=body.lock_type,
        deadline_at=body.deadline_at,
    )
    return JSONResponse(
        status_code=201,
        content={
            "ok": True,
            "trajectory": serialize_trajectory(trajectory, service.deadline_of(trajectory)),
        },
    )


@router.get("/api/trajectories")
async def list_public_trajectories(
    status: str | None = Query(default=None, description="按状态筛选（locked/completed/broken）"),
    limit: int | None = Query(default=None, ge=1, le=200),
    service: LifecycleService = Depends(get_lifecycle_service),
):
    """公开记录列表，按锁定时间倒序"""
    trajectories = await service.list_public(status, limit)
    return {
        "ok": True,
        "trajectories": [
            serialize_trajectory(t, service.deadline_of(t)) for t in trajectories
        ],
    }


@router.get("/api/me/trajectories")
async def list_my_trajectories(
    status: str | None = Query(default=None, description="按状态筛选"),
    q: str | None = Query(default=None, description="在标题与承诺语句中搜索"),
    identity: Identity = Depends(get_identity),
    service: LifecycleService = Depends(get_lifecycle_service),
):
    """我的全部记录，按创建时间倒序"""
    trajectories = await service.list_mine(identity, status, q)
    return {
        "ok": True,
        "trajectories": [
            serialize_trajectory(t, service.deadline_of(t)) for t in trajectories
        ],
    }


@router.get("/api/trajectories/{trajectory_id}")
async def get_trajectory_detail(
    trajectory_id: str,
    identity: Identity | None = Depends(get_optional_identity),
    service: LifecycleService = Depends(get_lifecycle_service),
):
    """记录详情；草稿与已丢弃记录只对 owner 可见，其他人得到 404"""
    detail = await service.get_trajectory(identity, trajectory_id)
    return {
        "ok": True,
        "trajectory": serialize_trajectory(detail.trajectory, detail.deadline),
        "amendments": [serialize_amendment(a) for a in detail.amendments],
        "is_owner": detail.trajectory.is_owned_by(identity.user_id if identity else None),
    }


@router.patch("/api/trajectories/{trajectory_id}")
async def edit_trajectory(
    trajectory_id: str,
    body: EditTrajectoryRequest,
    identity: Identity = Depends(get_identity),
    service: LifecycleService = Depends(get_lifecycle_service),
):
    """编辑草稿；锁定后返回 409"""
    trajectory = await service.edit_draft(
        identity, trajectory_id, body.model_dump(exclude_unset=True)
    )
    return {
        "ok": True,
        "trajectory": serialize_trajectory(trajectory, service.deadline_of(trajectory)),
    }
