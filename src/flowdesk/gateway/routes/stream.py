"""SSE 实时推送路由

GET /api/stream/tasks: 当前用户房间的实时消息流（事件 task.new）。
浏览器 EventSource 无法设置请求头，令牌也可以通过 ?token= 传入。
断线后客户端重连即重新加入房间，期间的消息不补发。
"""

import asyncio
import json

from fastapi import APIRouter, Depends, Query, Request
from sse_starlette.sse import EventSourceResponse

from flowdesk.core.config import SSE_HEARTBEAT_INTERVAL
from flowdesk.core.store import StoreGroup

from ..deps import bind_user, get_auth_config, get_sse_hub, get_store_group, resolve_user
from ..security import AuthConfig

router = APIRouter()


def _bearer_token(request: Request) -> str | None:
    scheme, _, credentials = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


@router.get("/api/stream/tasks")
async def stream_tasks(
    request: Request,
    token: str | None = Query(default=None, description="访问令牌（无法设置请求头时使用）"),
    store_group: StoreGroup = Depends(get_store_group),
    sse_hub=Depends(get_sse_hub),
    auth_config: AuthConfig = Depends(get_auth_config),
):
    """SSE 事件流端点

    1. 认证（Authorization 头优先，其次 ?token=），失败返回 401
    2. 加入以用户 ID 为键的房间
    3. 实时推送新消息，空闲时发送心跳注释
    """
    user = await resolve_user(_bearer_token(request) or token, store_group, auth_config)
    bind_user(request, user)

    async def event_generator():
        queue = await sse_hub.subscribe(user.user_id)
        try:
            while True:
                try:
                    message = await asyncio.wait_for(queue.get(), timeout=SSE_HEARTBEAT_INTERVAL)
                    yield {
                        "event": message.event,
                        "data": json.dumps(message.data, ensure_ascii=False),
                    }
                except TimeoutError:
                    yield {"comment": "heartbeat"}
        finally:
            await sse_hub.unsubscribe(user.user_id, queue)

    return EventSourceResponse(event_generator())
