"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭、服务组装、后台 worker 启停、路由注册。
"""

import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from flowdesk.core.config import get_db_path
from flowdesk.core.exceptions import FlowDeskError
from flowdesk.core.store import StoreGroup, create_store_group
from flowdesk.notify import EmailSender, create_email_sender, load_notify_config

from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import admin, auth, health, stream, tasks
from .security import AuthConfig, load_auth_config
from .services.notification_service import NotificationService
from .services.reminder_scheduler import ReminderScheduler, ReminderWorker
from .services.side_effects import SideEffectDispatcher
from .services.sse_hub import SSEHub

log = structlog.get_logger()


def init_app_state(
    app: FastAPI,
    store_group: StoreGroup,
    email_sender: EmailSender | None = None,
    auth_config: AuthConfig | None = None,
) -> None:
    """组装进程级服务并挂到 app.state

    Args:
        app: FastAPI 实例
        store_group: 已初始化的 StoreGroup
        email_sender: 发信实现，None 时按环境变量选择
        auth_config: 认证配置，None 时从环境变量加载
    """
    notify_config = load_notify_config()
    if email_sender is None:
        email_sender = create_email_sender(notify_config)

    sse_hub = SSEHub()
    notification_service = NotificationService(
        store_group,
        sse_hub,
        email_sender,
        app_url=notify_config.app_url,
    )
    scheduler = ReminderScheduler(store_group)

    app.state.store_group = store_group
    app.state.sse_hub = sse_hub
    app.state.auth_config = auth_config or load_auth_config()
    app.state.email_sender = email_sender
    app.state.notification_service = notification_service
    app.state.reminder_scheduler = scheduler
    app.state.dispatcher = SideEffectDispatcher(scheduler, notification_service)
    app.state.reminder_worker = ReminderWorker(store_group, scheduler, notification_service)

    log.info("services_initialized", email_mode=notify_config.email_mode)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 DB 与后台 worker，关闭时停止 worker 并清理连接"""
    store_group = await create_store_group(get_db_path())
    init_app_state(app, store_group)

    await app.state.reminder_scheduler.ensure_daily_summary()

    app.state.reminder_worker_task = asyncio.create_task(app.state.reminder_worker.run_forever())
    app.state.notification_worker_task = asyncio.create_task(app.state.dispatcher.run_forever())

    yield

    for name in ("reminder_worker_task", "notification_worker_task"):
        task = getattr(app.state, name, None)
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    # 投递关闭前已入队的通知
    await app.state.dispatcher.drain()

    if hasattr(app.state, "store_group") and app.state.store_group:
        await app.state.store_group.conn.close()


async def flowdesk_error_handler(request: Request, exc: FlowDeskError) -> JSONResponse:
    """业务异常 -> {"error": {"code", "message"}}"""
    if exc.status_code >= 500:
        log.error("request_failed", code=exc.code, error=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": exc.code, "message": exc.message}},
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """请求体校验失败统一为 400 VALIDATION_ERROR"""
    details = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())[1:])
        details.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "; ".join(details) or "Invalid request",
            }
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """未预期异常 -> 500 INTERNAL_ERROR"""
    log.exception("unhandled_error", error=str(exc))
    return JSONResponse(
        status_code=500,
        content={"error": {"code": "INTERNAL_ERROR", "message": "Internal server error"}},
    )


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="FlowDesk API",
        version="0.1.0",
        description="FlowDesk 任务指派与跟踪 API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(FlowDeskError, flowdesk_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # 初始化日志
    setup_logging()
    setup_logfire(app)

    # 注册路由
    app.include_router(auth.router, tags=["auth"])
    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(admin.router, tags=["admin"])
    app.include_router(stream.router, tags=["stream"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
