"""LoggingMiddleware -- 请求级日志

- 每个请求生成 ULID request_id，绑定到 structlog contextvars 并写入 X-Request-ID
- request_completed 带上状态码、耗时与认证得到的 user_id（见 deps.bind_user）
- 5xx 记 error，4xx 记 warning；/health、/ready 探活成功时只记 debug
"""

import logging
import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID

PROBE_PATHS = frozenset({"/health", "/ready"})

log = structlog.get_logger()


def completion_level(path: str, status_code: int) -> int:
    """request_completed 的日志级别"""
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    if path in PROBE_PATHS:
        return logging.DEBUG
    return logging.INFO


class LoggingMiddleware(BaseHTTPMiddleware):
    """请求级日志中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = str(ULID())
        path = request.url.path

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=path,
        )

        started = time.perf_counter()
        response = await call_next(request)

        await log.alog(
            completion_level(path, response.status_code),
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
            user_id=getattr(request.state, "user_id", None),
        )

        response.headers["X-Request-ID"] = request_id
        return response
