"""管理员路由

GET /api/admin/users: 全部用户（不含密码哈希）。
POST /api/admin/tasks: 为指定用户创建任务（201），发送指派通知。
GET /api/admin/all-tasks: 全部任务，按 deadline 倒序，附负责人姓名与邮箱。
PUT /api/admin/tasks/{task_id}: 管理员更新任务。
PUT /api/admin/extension-request/{task_id}: 审批延期申请。
"""

from fastapi import APIRouter, Depends
from pydantic import Field
from starlette.responses import JSONResponse

from flowdesk.core.models import ExtensionDecision, TaskChanges, TaskDraft, User
from flowdesk.core.store import StoreGroup

from ..deps import get_dispatcher, get_store_group, require_admin
from ..services.task_service import TaskService
from .tasks import task_to_json

router = APIRouter()


class AdminTaskRequest(TaskDraft):
    """管理员创建任务请求体"""

    assigned_to: str = Field(description="负责人用户 ID")


@router.get("/api/admin/users")
async def list_users(
    admin: User = Depends(require_admin),
    store_group: StoreGroup = Depends(get_store_group),
):
    """全部用户"""
    users = await store_group.user_store.list_users()
    return {"users": [u.model_dump(mode="json", by_alias=True) for u in users]}


@router.post("/api/admin/tasks")
async def create_task(
    body: AdminTaskRequest,
    admin: User = Depends(require_admin),
    store_group: StoreGroup = Depends(get_store_group),
    dispatcher=Depends(get_dispatcher),
):
    """为指定用户创建任务

    - 负责人不存在返回 404
    """
    service = TaskService(store_group, dispatcher)
    draft = TaskDraft.model_validate(body.model_dump(exclude={"assigned_to"}))
    task = await service.create_admin_assigned(admin, draft, body.assigned_to)
    return JSONResponse(status_code=201, content={"task": task_to_json(task)})


@router.get("/api/admin/all-tasks")
async def list_all_tasks(
    admin: User = Depends(require_admin),
    store_group: StoreGroup = Depends(get_store_group),
):
    """全部任务，附负责人信息"""
    service = TaskService(store_group)
    rows = await service.list_all_tasks()
    tasks = []
    for task, assignee in rows:
        item = task_to_json(task)
        item["assignee"] = (
            {"userId": assignee.user_id, "name": assignee.name, "email": assignee.email}
            if assignee
            else None
        )
        tasks.append(item)
    return {"tasks": tasks}


@router.put("/api/admin/tasks/{task_id}")
async def update_task(
    task_id: str,
    body: TaskChanges,
    admin: User = Depends(require_admin),
    store_group: StoreGroup = Depends(get_store_group),
    dispatcher=Depends(get_dispatcher),
):
    """管理员更新任务（status / deadline / timeRequired / extensionReason）"""
    service = TaskService(store_group, dispatcher)
    task = await service.admin_update_task(admin, task_id, body)
    return {"task": task_to_json(task)}


@router.put("/api/admin/extension-request/{task_id}")
async def resolve_extension_request(
    task_id: str,
    body: ExtensionDecision,
    admin: User = Depends(require_admin),
    store_group: StoreGroup = Depends(get_store_group),
    dispatcher=Depends(get_dispatcher),
):
    """审批延期申请

    - 批准且未给出 newDeadline 时，截止时间顺延 extraTimeNeeded 分钟
    - 任务没有待审批的申请返回 409
    """
    service = TaskService(store_group, dispatcher)
    task = await service.resolve_extension_request(
        admin,
        task_id,
        approved=body.approved,
        new_deadline=body.new_deadline,
        new_time_required=body.new_time_required,
    )
    return {"task": task_to_json(task)}
