"""ScheduledJob Domain Model -- 持久化的延时提醒任务"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import JobStatus, ReminderKind


class ScheduledJob(BaseModel):
    """scheduled_jobs 表的一行

    fire_at 保存计划触发时间（可能早于写入时间，此时下一轮轮询立即执行）。
    """

    job_id: str = Field(description="唯一标识，ULID 格式")
    kind: ReminderKind = Field(description="提醒类型")
    task_id: str | None = Field(default=None, description="关联任务，每日汇总为空")
    fire_at: datetime = Field(description="计划触发时间（UTC）")
    status: JobStatus = Field(default=JobStatus.SCHEDULED, description="执行状态")
    run_count: int = Field(default=0, description="已执行次数")
    last_error: str | None = Field(default=None, description="最近一次失败原因")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")
    completed_at: datetime | None = Field(default=None, description="完成时间")
