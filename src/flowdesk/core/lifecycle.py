"""任务生命周期引擎 -- 字段权限、状态流转与副作用决策

引擎是纯函数集合，不做任何 I/O：
- 输入：调用者、当前任务、请求的变更
- 输出：TransitionResult(更新后的任务, 副作用命令列表, 被丢弃的字段)

字段权限只在 allowed_fields() 一处定义：
- 管理员：status / deadline / time_required / extension_reason
- 自建任务的负责人：status / remarks / deadline / extension_reason
- 管理员指派任务的负责人：status / remarks / extension_request
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from .exceptions import (
    ConflictError,
    ForbiddenError,
    UnauthorizedError,
    ValidationError,
    user_not_found,
)
from .models import (
    ExtensionDecision,
    ExtensionRequest,
    ExtensionStatus,
    NotifyTaskAssigned,
    ReminderKind,
    ScheduleReminder,
    SideEffect,
    Task,
    TaskChanges,
    TaskDraft,
    TaskStatus,
    User,
)


class Actor(StrEnum):
    """变更发起者相对于任务的身份"""

    ASSIGNEE = "assignee"
    ADMIN = "admin"


ADMIN_FIELDS: frozenset[str] = frozenset(
    {"status", "deadline", "time_required", "extension_reason"}
)
SELF_ASSIGNED_FIELDS: frozenset[str] = frozenset(
    {"status", "remarks", "deadline", "extension_reason"}
)
ADMIN_ASSIGNED_FIELDS: frozenset[str] = frozenset(
    {"status", "remarks", "extension_request"}
)


@dataclass
class TransitionResult:
    """一次生命周期操作的结果"""

    task: Task
    effects: list[SideEffect] = field(default_factory=list)
    dropped_fields: list[str] = field(default_factory=list)


def allowed_fields(actor: Actor, is_self_assigned: bool) -> frozenset[str]:
    """返回发起者可直接修改的字段集合

    Args:
        actor: 发起者身份（负责人或管理员）
        is_self_assigned: 任务是否为自建任务

    Returns:
        可修改字段名集合（snake_case）
    """
    if actor == Actor.ADMIN:
        return ADMIN_FIELDS
    if is_self_assigned:
        return SELF_ASSIGNED_FIELDS
    return ADMIN_ASSIGNED_FIELDS


def plan_self_assigned_task(
    caller: User,
    draft: TaskDraft,
    *,
    task_id: str,
    now: datetime,
) -> TransitionResult:
    """自建任务：创建人与负责人均为调用者，只调度截止提醒"""
    task = _build_task(
        draft,
        task_id=task_id,
        assigned_to=caller.user_id,
        assigned_by=caller.user_id,
        now=now,
    )
    return TransitionResult(task=task, effects=[_deadline_reminder(task)])


def plan_admin_assigned_task(
    caller: User,
    draft: TaskDraft,
    assignee: User | None,
    *,
    assignee_id: str,
    task_id: str,
    now: datetime,
) -> TransitionResult:
    """管理员指派任务：发送指派通知并调度截止提醒

    Raises:
        ForbiddenError: 调用者不是管理员
        NotFoundError: 负责人不存在
    """
    _require_admin(caller)
    if assignee is None:
        raise user_not_found(assignee_id)

    task = _build_task(
        draft,
        task_id=task_id,
        assigned_to=assignee.user_id,
        assigned_by=caller.user_id,
        now=now,
    )
    return TransitionResult(
        task=task,
        effects=[
            NotifyTaskAssigned(task=task, assigned_to_id=assignee.user_id),
            _deadline_reminder(task),
        ],
    )


def plan_assignee_update(
    caller: User,
    task: Task,
    changes: TaskChanges,
    *,
    now: datetime,
) -> TransitionResult:
    """负责人更新任务

    管理员指派任务的负责人不能直接修改 deadline，只能提交 extension_request；
    新申请在上一份申请仍为 pending 时会被拒绝。

    Raises:
        UnauthorizedError: 调用者不是任务负责人
        ConflictError: 已有待审批的延期申请
    """
    if caller.user_id != task.assigned_to:
        raise UnauthorizedError("Not authorized to update this task")

    permitted = allowed_fields(Actor.ASSIGNEE, task.is_self_assigned)
    updates, dropped = _gate(changes, permitted)

    request_input = updates.pop("extension_request", None)
    if request_input is not None:
        current = task.extension_request
        if current is not None and current.status == ExtensionStatus.PENDING:
            raise ConflictError(
                "An extension request is already awaiting review",
                code="EXTENSION_REQUEST_PENDING",
            )
        updates["extension_request"] = ExtensionRequest(
            requested=True,
            reason=request_input.reason,
            extra_time_needed=request_input.extra_time_needed,
            status=ExtensionStatus.PENDING,
        )

    return _apply(task, updates, dropped, now)


def plan_admin_update(
    caller: User,
    task: Task,
    changes: TaskChanges,
    *,
    now: datetime,
) -> TransitionResult:
    """管理员更新任务：不受自建/指派限制，直接覆盖提供的字段

    Raises:
        ForbiddenError: 调用者不是管理员
    """
    _require_admin(caller)
    updates, dropped = _gate(changes, allowed_fields(Actor.ADMIN, task.is_self_assigned))
    return _apply(task, updates, dropped, now)


def plan_extension_resolution(
    caller: User,
    task: Task,
    decision: ExtensionDecision,
    *,
    now: datetime,
) -> TransitionResult:
    """审批延期申请

    批准时用调用方给出的新截止时间/预估耗时覆盖原值，并重新调度提醒；
    驳回时截止时间保持不变。

    Raises:
        ForbiddenError: 调用者不是管理员
        ConflictError: 任务没有待审批的延期申请
    """
    _require_admin(caller)
    current = task.extension_request
    if current is None or current.status != ExtensionStatus.PENDING:
        raise ConflictError(
            "Task has no pending extension request",
            code="NO_PENDING_EXTENSION_REQUEST",
        )

    updates: dict = {}
    if decision.approved:
        updates["extension_request"] = current.model_copy(
            update={"status": ExtensionStatus.APPROVED}
        )
        if decision.new_deadline is not None:
            updates["deadline"] = decision.new_deadline
        if decision.new_time_required is not None:
            updates["time_required"] = decision.new_time_required
    else:
        updates["extension_request"] = current.model_copy(
            update={"status": ExtensionStatus.REJECTED}
        )

    return _apply(task, updates, [], now)


def transition_effects(before: Task, after: Task) -> list[SideEffect]:
    """根据变更前后的任务计算需要调度的提醒

    - yet-to-start -> pending：恰好一个 pending 提醒，fire_at = deadline - time_required
    - deadline 变化：在新 deadline 调度截止提醒
    - pending 状态下提醒窗口变化：重新调度 pending 提醒（与上一条去重）
    """
    effects: list[SideEffect] = []
    if after.deadline != before.deadline:
        effects.append(_deadline_reminder(after))

    started = before.status == TaskStatus.YET_TO_START and after.status == TaskStatus.PENDING
    window_moved = (
        after.status == TaskStatus.PENDING
        and before.status == TaskStatus.PENDING
        and after.pending_reminder_at != before.pending_reminder_at
    )
    if started or window_moved:
        effects.append(
            ScheduleReminder(
                kind=ReminderKind.PENDING,
                task_id=after.task_id,
                fire_at=after.pending_reminder_at,
            )
        )
    return effects


def _require_admin(caller: User) -> None:
    if not caller.is_admin:
        raise ForbiddenError("Not authorized as an admin")


def _build_task(
    draft: TaskDraft,
    *,
    task_id: str,
    assigned_to: str,
    assigned_by: str,
    now: datetime,
) -> Task:
    if not draft.title.strip():
        raise ValidationError("Please add a task title")
    return Task(
        task_id=task_id,
        title=draft.title.strip(),
        description=draft.description,
        priority=draft.priority,
        deadline=draft.deadline,
        time_required=draft.time_required,
        status=draft.status,
        assigned_to=assigned_to,
        assigned_by=assigned_by,
        created_at=now,
        updated_at=now,
    )


def _deadline_reminder(task: Task) -> ScheduleReminder:
    return ScheduleReminder(
        kind=ReminderKind.DEADLINE,
        task_id=task.task_id,
        fire_at=task.deadline,
    )


def _gate(changes: TaskChanges, permitted: frozenset[str]) -> tuple[dict, list[str]]:
    """按权限拆分变更：返回 (允许的更新, 被丢弃的字段名)"""
    provided = changes.provided()
    updates = {name: value for name, value in provided.items() if name in permitted}
    dropped = sorted(name for name in provided if name not in permitted)
    return updates, dropped


def _apply(task: Task, updates: dict, dropped: list[str], now: datetime) -> TransitionResult:
    if not updates:
        return TransitionResult(task=task, dropped_fields=dropped)
    updated = task.model_copy(update={**updates, "updated_at": now})
    return TransitionResult(
        task=updated,
        effects=transition_effects(task, updated),
        dropped_fields=dropped,
    )
