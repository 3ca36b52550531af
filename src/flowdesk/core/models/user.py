"""User Domain Model"""

from datetime import datetime

from pydantic import Field

from .base import CamelModel
from .enums import UserRole


class User(CamelModel):
    """User 数据模型

    password_hash 不参与序列化，不会出现在任何 API 响应中。
    """

    user_id: str = Field(description="唯一标识，ULID 格式")
    name: str = Field(description="显示名称")
    email: str = Field(description="邮箱（唯一，小写存储）")
    password_hash: str = Field(default="", exclude=True, description="bcrypt 哈希")
    role: UserRole = Field(default=UserRole.USER, description="角色")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
