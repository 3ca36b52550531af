"""Store Protocol 接口定义

定义 TaskStore、UserStore、JobStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from datetime import datetime
from typing import Protocol

from ..models.enums import JobStatus, ReminderKind
from ..models.job import ScheduledJob
from ..models.task import Task
from ..models.user import User


class TaskStore(Protocol):
    """Task 存储接口"""

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        ...

    async def save_task(self, task: Task) -> None:
        """覆盖写入任务（last-write-wins）"""
        ...

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        ...

    async def list_tasks_for_assignee(self, user_id: str) -> list[Task]:
        """查询指定负责人的任务"""
        ...

    async def list_tasks(self) -> list[Task]:
        """查询全部任务"""
        ...

    async def count_open_tasks_by_assignee(self) -> dict[str, int]:
        """统计每个负责人未完成的任务数"""
        ...


class UserStore(Protocol):
    """User 存储接口"""

    async def create_user(self, user: User) -> None:
        """创建用户记录"""
        ...

    async def get_user(self, user_id: str) -> User | None:
        """根据 user_id 查询用户"""
        ...

    async def get_user_by_email(self, email: str) -> User | None:
        """根据 email 查询用户"""
        ...

    async def list_users(self) -> list[User]:
        """查询全部用户"""
        ...

    async def update_role(self, user_id: str, role: str, updated_at: datetime) -> None:
        """更新用户角色"""
        ...


class JobStore(Protocol):
    """调度任务存储接口"""

    async def create_job(self, job: ScheduledJob) -> None:
        """写入一条调度任务"""
        ...

    async def list_due(self, now: datetime, limit: int = 50) -> list[ScheduledJob]:
        """查询已到期的任务"""
        ...

    async def list_jobs(
        self,
        task_id: str | None = None,
        kind: ReminderKind | None = None,
        status: JobStatus | None = None,
    ) -> list[ScheduledJob]:
        """按条件查询调度任务"""
        ...

    async def mark_done(self, job_id: str, now: datetime) -> None:
        """标记执行成功"""
        ...

    async def mark_failed(self, job_id: str, error: str, now: datetime) -> None:
        """标记执行失败"""
        ...
