"""Amendment Domain Model -- 锁定记录的追加备注

amendments 表 append-only，不允许更新或删除。
同一 trajectory 最多一条 OUTCOME（数据库部分唯一索引保证）。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import AmendmentKind


class Amendment(BaseModel):
    """Amendment 数据模型

    创建后不可变；展示时按 created_at 倒序。
    """

    amendment_id: str = Field(description="唯一标识，ULID 格式，时间有序")
    trajectory_id: str = Field(description="关联的 Trajectory ID")
    kind: AmendmentKind = Field(description="追加记录类型")
    content: str = Field(description="文本内容")
    author_id: str = Field(description="写入者身份标识")
    created_at: datetime = Field(description="创建时间")
