"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含 SQLite 连通性、WAL 模式、后台 worker 与磁盘空间。
"""

import shutil

import structlog
from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from flowdesk.core.store import verify_wal_mode

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness 检查 -- 验证核心依赖可用性

    检查项：
    1. sqlite: 数据库连通性
    2. wal_mode: WAL 是否生效
    3. workers: 提醒轮询与通知投递后台任务是否在运行
    4. disk_space_mb: 磁盘剩余空间
    """
    checks: dict = {}
    all_ok = True

    # 1-2. SQLite
    try:
        store_group = request.app.state.store_group
        cursor = await store_group.conn.execute("SELECT 1")
        await cursor.fetchone()
        checks["sqlite"] = "ok"
        checks["wal_mode"] = "ok" if await verify_wal_mode(store_group.conn) else "disabled"
    except Exception as e:
        log.warning("readiness_sqlite_failed", error=str(e))
        checks["sqlite"] = f"error: {str(e)}"
        all_ok = False

    # 3. 后台任务（测试环境不启动 lifespan 时为 skipped）
    for name in ("reminder_worker", "notification_worker"):
        task = getattr(request.app.state, f"{name}_task", None)
        if task is None:
            checks[name] = "skipped"
        elif task.done():
            checks[name] = "stopped"
            all_ok = False
        else:
            checks[name] = "running"

    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is not None:
        checks["notification_queue"] = dispatcher.pending_count

    # 4. 磁盘空间
    try:
        disk_usage = shutil.disk_usage("/")
        checks["disk_space_mb"] = disk_usage.free // (1024 * 1024)
    except OSError:
        checks["disk_space_mb"] = 0
        all_ok = False

    status_code = 200 if all_ok else 503
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ready" if all_ok else "not_ready",
            "checks": checks,
        },
    )
