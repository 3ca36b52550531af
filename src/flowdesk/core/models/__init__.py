"""FlowDesk Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .base import CamelModel, ensure_utc
from .changes import ExtensionDecision, ExtensionRequestInput, TaskChanges, TaskDraft
from .effects import NotifyTaskAssigned, ScheduleReminder, SideEffect
from .enums import (
    STATUS_ORDER,
    TERMINAL_STATES,
    ExtensionStatus,
    JobStatus,
    ReminderKind,
    TaskPriority,
    TaskStatus,
    UserRole,
    is_regression,
)
from .job import ScheduledJob
from .task import ExtensionRequest, Task
from .user import User

__all__ = [
    # 枚举
    "TaskStatus",
    "TaskPriority",
    "UserRole",
    "ExtensionStatus",
    "ReminderKind",
    "JobStatus",
    # 状态机
    "STATUS_ORDER",
    "TERMINAL_STATES",
    "is_regression",
    # 基类
    "CamelModel",
    "ensure_utc",
    # Task / User
    "Task",
    "ExtensionRequest",
    "User",
    # 引擎输入
    "TaskDraft",
    "TaskChanges",
    "ExtensionRequestInput",
    "ExtensionDecision",
    # 副作用
    "NotifyTaskAssigned",
    "ScheduleReminder",
    "SideEffect",
    # 调度
    "ScheduledJob",
]
