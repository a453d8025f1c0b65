"""Auth 数据模型"""

from pydantic import BaseModel, Field


class Identity(BaseModel):
    """请求级身份 -- 由 token 校验得到，显式传给每个生命周期操作"""

    user_id: str = Field(min_length=1, description="身份服务中的用户标识")
    email: str | None = Field(default=None, description="用户邮箱（可选）")

    model_config = {"frozen": True}
