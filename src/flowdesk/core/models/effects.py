"""副作用命令 -- 生命周期引擎的输出

引擎不直接发邮件或写调度表，而是返回命令列表，
由 gateway 的 SideEffectDispatcher（outbox）在主写入提交后执行。
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from .enums import ReminderKind
from .task import Task


class NotifyTaskAssigned(BaseModel):
    """任务指派通知：邮件 + 实时推送"""

    type: Literal["notify_task_assigned"] = "notify_task_assigned"
    task: Task
    assigned_to_id: str


class ScheduleReminder(BaseModel):
    """在 fire_at 时刻执行一次提醒检查"""

    type: Literal["schedule_reminder"] = "schedule_reminder"
    kind: ReminderKind
    task_id: str
    fire_at: datetime = Field(description="触发时间（UTC）")


SideEffect = NotifyTaskAssigned | ScheduleReminder
