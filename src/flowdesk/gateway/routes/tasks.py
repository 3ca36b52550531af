"""任务路由（当前用户）

GET /api/tasks: 当前用户名下的任务，按 created_at 倒序。
POST /api/tasks: 创建自建任务（201）。
PUT /api/tasks/{task_id}: 负责人更新任务；非负责人的管理员按管理员规则更新。
"""

from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse

from flowdesk.core.models import Task, TaskChanges, TaskDraft, User
from flowdesk.core.store import StoreGroup

from ..deps import get_current_user, get_dispatcher, get_store_group
from ..services.task_service import TaskService

router = APIRouter()


def task_to_json(task: Task) -> dict:
    """Task -> camelCase JSON"""
    return task.model_dump(mode="json", by_alias=True)


@router.get("/api/tasks")
async def list_my_tasks(
    user: User = Depends(get_current_user),
    store_group: StoreGroup = Depends(get_store_group),
):
    """当前用户名下的任务"""
    service = TaskService(store_group)
    tasks = await service.list_my_tasks(user)
    return {"tasks": [task_to_json(t) for t in tasks]}


@router.post("/api/tasks")
async def create_task(
    body: TaskDraft,
    user: User = Depends(get_current_user),
    store_group: StoreGroup = Depends(get_store_group),
    dispatcher=Depends(get_dispatcher),
):
    """创建自建任务（负责人与创建人均为当前用户）"""
    service = TaskService(store_group, dispatcher)
    task = await service.create_self_assigned(user, body)
    return JSONResponse(status_code=201, content={"task": task_to_json(task)})


@router.put("/api/tasks/{task_id}")
async def update_task(
    task_id: str,
    body: TaskChanges,
    user: User = Depends(get_current_user),
    store_group: StoreGroup = Depends(get_store_group),
    dispatcher=Depends(get_dispatcher),
):
    """更新任务

    - 任务不存在返回 404
    - 调用者既不是负责人也不是管理员返回 401
    - 已有待审批的延期申请时再次申请返回 409
    """
    service = TaskService(store_group, dispatcher)
    task = await service.update_task(user, task_id, body)
    return {"task": task_to_json(task)}
