"""枚举定义

包含 TaskStatus 状态机、TaskPriority、UserRole、ExtensionStatus、
ReminderKind、JobStatus 枚举，以及状态先后顺序 STATUS_ORDER。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task 状态机：yet-to-start -> pending -> completed"""

    YET_TO_START = "yet-to-start"
    PENDING = "pending"
    COMPLETED = "completed"


# 状态先后顺序，仅用于识别回退（回退不被拦截，只记录日志）
STATUS_ORDER: dict[TaskStatus, int] = {
    TaskStatus.YET_TO_START: 0,
    TaskStatus.PENDING: 1,
    TaskStatus.COMPLETED: 2,
}

TERMINAL_STATES: set[TaskStatus] = {TaskStatus.COMPLETED}


class TaskPriority(StrEnum):
    """任务优先级"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class UserRole(StrEnum):
    """用户角色"""

    USER = "user"
    ADMIN = "admin"


class ExtensionStatus(StrEnum):
    """延期申请审批状态"""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReminderKind(StrEnum):
    """提醒任务类型"""

    DEADLINE = "deadline"
    PENDING = "pending"
    DAILY_SUMMARY = "daily_summary"


class JobStatus(StrEnum):
    """调度任务状态"""

    SCHEDULED = "scheduled"
    DONE = "done"
    FAILED = "failed"


def is_regression(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """判断状态变更是否为回退

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果目标状态排在当前状态之前
    """
    return STATUS_ORDER[to_status] < STATUS_ORDER[from_status]
