"""structlog 配置 -- FlowDesk gateway 与后台 worker 共用

输出经 stdlib logging 的 ProcessorFormatter 渲染：
- FLOWDESK_LOG_FORMAT=dev（默认）：ConsoleRenderer
- FLOWDESK_LOG_FORMAT=json：JSON，一行一条

FLOWDESK_LOG_LEVEL 设置全局级别；FLOWDESK_LOG_LEVELS 按模块覆盖，
格式 "模块=级别,模块=级别"，例如
"flowdesk.gateway.services.reminder_scheduler=DEBUG,httpx=INFO"。

密码、令牌、API key 等字段在渲染前统一打码。
"""

import logging
import os

import structlog
from fastapi import FastAPI

# 第三方库默认级别，FLOWDESK_LOG_LEVELS 可覆盖
DEFAULT_MODULE_LEVELS: dict[str, int] = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "uvicorn.access": logging.WARNING,
}

SENSITIVE_KEYS = frozenset(
    {"password", "password_hash", "token", "api_key", "authorization", "jwt_secret"}
)

_REDACTED = "***"


def redact_secrets(
    logger: object, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """structlog processor：敏感字段替换为 ***"""
    for key in event_dict.keys() & SENSITIVE_KEYS:
        if event_dict[key] is not None:
            event_dict[key] = _REDACTED
    return event_dict


def parse_module_levels(spec: str) -> dict[str, int]:
    """解析 "模块=级别,..."；无法识别的条目忽略"""
    levels: dict[str, int] = {}
    for item in spec.split(","):
        name, sep, level = item.partition("=")
        name = name.strip()
        value = logging.getLevelName(level.strip().upper())
        if sep and name and isinstance(value, int):
            levels[name] = value
    return levels


def setup_logging() -> None:
    """初始化 structlog 与 stdlib root logger"""
    log_format = os.environ.get("FLOWDESK_LOG_FORMAT", "dev")
    log_level = os.environ.get("FLOWDESK_LOG_LEVEL", "INFO")

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(
            ensure_ascii=False
        )
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    module_levels = {
        **DEFAULT_MODULE_LEVELS,
        **parse_module_levels(os.environ.get("FLOWDESK_LOG_LEVELS", "")),
    }
    for name, level in module_levels.items():
        logging.getLogger(name).setLevel(level)


def setup_logfire(app: FastAPI) -> None:
    """LOGFIRE_SEND_TO_LOGFIRE=true 时启用 Logfire，同时追踪 FastAPI 请求与 Brevo 调用"""
    if os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").lower() != "true":
        return
    try:
        import logfire

        logfire.configure(service_name="flowdesk")
        logfire.instrument_fastapi(app)
        logfire.instrument_httpx()
    except Exception as e:
        structlog.get_logger().warning("logfire_init_failed", error=str(e))
