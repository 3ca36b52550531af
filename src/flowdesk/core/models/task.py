"""Task Domain Model

assigned_by == assigned_to 即自建任务（self-assigned），否则为管理员指派任务。
该关系在创建时确定，之后任何操作都不会修改。
"""

from datetime import datetime, timedelta

from pydantic import Field, field_validator

from ..config import DEFAULT_TIME_REQUIRED_MINUTES
from .base import CamelModel, ensure_utc
from .enums import ExtensionStatus, TaskPriority, TaskStatus


class ExtensionRequest(CamelModel):
    """延期申请 -- 仅用于管理员指派任务"""

    requested: bool = Field(default=True, description="是否已提出申请")
    reason: str = Field(default="", description="申请理由")
    extra_time_needed: int = Field(default=0, ge=0, description="需要额外的时间（分钟）")
    status: ExtensionStatus = Field(
        default=ExtensionStatus.PENDING, description="审批状态"
    )


class Task(CamelModel):
    """Task 数据模型"""

    task_id: str = Field(description="唯一标识，ULID 格式")
    title: str = Field(min_length=1, description="任务标题")
    description: str = Field(default="", description="任务描述")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="优先级")
    deadline: datetime = Field(description="截止时间（UTC）")
    time_required: int = Field(
        default=DEFAULT_TIME_REQUIRED_MINUTES,
        gt=0,
        description="预估耗时（分钟）",
    )
    status: TaskStatus = Field(default=TaskStatus.YET_TO_START, description="当前状态")
    assigned_to: str = Field(description="负责人用户 ID")
    assigned_by: str = Field(description="创建人用户 ID")
    remarks: str = Field(default="", description="负责人备注")
    extension_reason: str = Field(default="", description="自建任务调整截止时间的理由")
    extension_request: ExtensionRequest | None = Field(
        default=None, description="延期申请"
    )
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")

    @field_validator("deadline", "created_at", "updated_at")
    @classmethod
    def _normalize_tz(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def is_self_assigned(self) -> bool:
        return self.assigned_by == self.assigned_to

    @property
    def pending_reminder_at(self) -> datetime:
        """剩余时间恰好等于预估耗时的时刻"""
        return self.deadline - timedelta(minutes=self.time_required)
