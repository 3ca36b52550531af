"""TraceMiddleware -- 为任务操作绑定 trace_id

从路径中提取 task_id 生成 trace_id，贯穿该任务相关的日志：
/api/tasks/{task_id}、/api/admin/tasks/{task_id}、/api/admin/extension-request/{task_id}
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# 紧跟 task_id 的路径段
_TASK_SEGMENTS = ("tasks", "extension-request")

# ULID 长度
_TASK_ID_LENGTH = 26


class TraceMiddleware(BaseHTTPMiddleware):
    """任务级追踪中间件 -- 为任务操作绑定 trace_id"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        trace_id = task_trace_id(request.url.path)
        if trace_id:
            structlog.contextvars.bind_contextvars(trace_id=trace_id)

        return await call_next(request)


def task_trace_id(path: str) -> str | None:
    """从路径提取 trace-{task_id}，路径不含任务 ID 时返回 None"""
    parts = path.strip("/").split("/")
    for i, part in enumerate(parts[:-1]):
        if part in _TASK_SEGMENTS:
            task_id = parts[i + 1]
            if len(task_id) == _TASK_ID_LENGTH:
                return f"trace-{task_id}"
    return None
