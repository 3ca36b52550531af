"""生命周期引擎的输入模型 -- 创建草稿、字段变更、延期审批决定

所有可选字段为 None 表示调用方未提供，引擎不会改动对应字段。
"""

from datetime import datetime

from pydantic import Field, field_validator

from ..config import DEFAULT_TIME_REQUIRED_MINUTES
from .base import CamelModel, ensure_utc
from .enums import TaskPriority, TaskStatus


class TaskDraft(CamelModel):
    """新建任务的字段"""

    title: str = Field(description="任务标题")
    description: str = Field(default="", description="任务描述")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="优先级")
    deadline: datetime = Field(description="截止时间")
    time_required: int = Field(
        default=DEFAULT_TIME_REQUIRED_MINUTES,
        gt=0,
        description="预估耗时（分钟）",
    )
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="初始状态")

    @field_validator("deadline")
    @classmethod
    def _normalize_tz(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class ExtensionRequestInput(CamelModel):
    """负责人提交的延期申请"""

    reason: str = Field(default="", description="申请理由")
    extra_time_needed: int = Field(gt=0, description="需要额外的时间（分钟）")


class TaskChanges(CamelModel):
    """任务字段变更，None 表示未提供"""

    status: TaskStatus | None = None
    remarks: str | None = None
    deadline: datetime | None = None
    time_required: int | None = Field(default=None, gt=0)
    extension_reason: str | None = None
    extension_request: ExtensionRequestInput | None = None

    @field_validator("deadline")
    @classmethod
    def _normalize_tz(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None

    def provided(self) -> dict:
        """返回调用方实际提供的字段（值非 None）"""
        return {
            name: getattr(self, name)
            for name in type(self).model_fields
            if getattr(self, name) is not None
        }


class ExtensionDecision(CamelModel):
    """管理员对延期申请的审批决定

    新截止时间由调用方计算（原截止时间 + extra_time_needed），引擎只负责覆盖。
    """

    approved: bool
    new_deadline: datetime | None = None
    new_time_required: int | None = Field(default=None, gt=0)

    @field_validator("new_deadline")
    @classmethod
    def _normalize_tz(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None
