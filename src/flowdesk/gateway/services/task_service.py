"""TaskService -- 任务创建/更新/审批/查询业务逻辑

每个写操作的流程：
1. 读取当前任务与相关用户
2. 调用生命周期引擎计算新任务与副作用命令
3. 在 transaction() 内持久化（失败整体回滚）
4. 交给 SideEffectDispatcher 执行副作用（失败不影响已提交的写入）
"""

from datetime import datetime, timedelta

import structlog
from ulid import ULID

from flowdesk.core import lifecycle
from flowdesk.core.exceptions import task_not_found
from flowdesk.core.lifecycle import TransitionResult
from flowdesk.core.models import (
    ExtensionDecision,
    ExtensionStatus,
    Task,
    TaskChanges,
    TaskDraft,
    User,
    is_regression,
)
from flowdesk.core.store import StoreGroup, transaction
from flowdesk.core.timeutil import utc_now

log = structlog.get_logger()


class TaskService:
    """任务业务服务"""

    def __init__(self, store_group: StoreGroup, dispatcher=None) -> None:
        self._stores = store_group
        self._dispatcher = dispatcher

    async def list_my_tasks(self, caller: User) -> list[Task]:
        """调用者名下的任务，按 created_at 倒序"""
        return await self._stores.task_store.list_tasks_for_assignee(caller.user_id)

    async def list_all_tasks(self) -> list[tuple[Task, User | None]]:
        """全部任务及其负责人，按 deadline 倒序"""
        tasks = await self._stores.task_store.list_tasks()
        users = {u.user_id: u for u in await self._stores.user_store.list_users()}
        return [(task, users.get(task.assigned_to)) for task in tasks]

    async def get_task(self, task_id: str) -> Task:
        """查询任务

        Raises:
            NotFoundError: 任务不存在
        """
        task = await self._stores.task_store.get_task(task_id)
        if task is None:
            raise task_not_found(task_id)
        return task

    async def create_self_assigned(self, caller: User, draft: TaskDraft) -> Task:
        """创建自建任务"""
        result = lifecycle.plan_self_assigned_task(
            caller, draft, task_id=str(ULID()), now=utc_now()
        )
        return await self._persist_new(result)

    async def create_admin_assigned(
        self,
        caller: User,
        draft: TaskDraft,
        assignee_id: str,
    ) -> Task:
        """管理员为其他用户创建任务"""
        assignee = await self._stores.user_store.get_user(assignee_id)
        result = lifecycle.plan_admin_assigned_task(
            caller,
            draft,
            assignee,
            assignee_id=assignee_id,
            task_id=str(ULID()),
            now=utc_now(),
        )
        return await self._persist_new(result)

    async def update_task(self, caller: User, task_id: str, changes: TaskChanges) -> Task:
        """PUT /api/tasks/{id}：负责人按负责人规则更新；非负责人的管理员按管理员规则更新"""
        task = await self.get_task(task_id)
        if caller.user_id != task.assigned_to and caller.is_admin:
            result = lifecycle.plan_admin_update(caller, task, changes, now=utc_now())
        else:
            result = lifecycle.plan_assignee_update(caller, task, changes, now=utc_now())
        return await self._persist_update(caller, task, result)

    async def admin_update_task(self, caller: User, task_id: str, changes: TaskChanges) -> Task:
        """管理员更新任务"""
        task = await self.get_task(task_id)
        result = lifecycle.plan_admin_update(caller, task, changes, now=utc_now())
        return await self._persist_update(caller, task, result)

    async def resolve_extension_request(
        self,
        caller: User,
        task_id: str,
        approved: bool,
        new_deadline: datetime | None = None,
        new_time_required: int | None = None,
    ) -> Task:
        """审批延期申请

        批准且未指定新截止时间时，新截止时间 = 原截止时间 + extra_time_needed。
        """
        task = await self.get_task(task_id)
        request = task.extension_request
        if (
            approved
            and new_deadline is None
            and request is not None
            and request.status == ExtensionStatus.PENDING
        ):
            new_deadline = task.deadline + timedelta(minutes=request.extra_time_needed)

        decision = ExtensionDecision(
            approved=approved,
            new_deadline=new_deadline,
            new_time_required=new_time_required,
        )
        result = lifecycle.plan_extension_resolution(caller, task, decision, now=utc_now())
        updated = await self._persist_update(caller, task, result)
        log.info(
            "extension_request_resolved",
            task_id=task_id,
            approved=approved,
            deadline=updated.deadline.isoformat(),
        )
        return updated

    async def _persist_new(self, result: TransitionResult) -> Task:
        task = result.task
        async with transaction(self._stores.conn):
            await self._stores.task_store.create_task(task)
        log.info(
            "task_created",
            task_id=task.task_id,
            assigned_to=task.assigned_to,
            assigned_by=task.assigned_by,
            self_assigned=task.is_self_assigned,
            status=task.status.value,
        )
        await self._dispatch(result)
        return task

    async def _persist_update(self, caller: User, before: Task, result: TransitionResult) -> Task:
        if result.dropped_fields:
            log.info(
                "task_fields_dropped",
                task_id=before.task_id,
                user_id=caller.user_id,
                fields=result.dropped_fields,
            )

        after = result.task
        if after is before:
            return before

        async with transaction(self._stores.conn):
            await self._stores.task_store.save_task(after)

        if after.status != before.status and is_regression(before.status, after.status):
            log.warning(
                "task_status_regressed",
                task_id=after.task_id,
                from_status=before.status.value,
                to_status=after.status.value,
            )
        log.info(
            "task_updated",
            task_id=after.task_id,
            user_id=caller.user_id,
            status=after.status.value,
        )
        await self._dispatch(result)
        return after

    async def _dispatch(self, result: TransitionResult) -> None:
        if self._dispatcher is not None and result.effects:
            await self._dispatcher.dispatch(result.effects)
