"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、默认预估耗时、提醒轮询间隔、每日汇总时间等可配置常量。
"""

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("FLOWDESK_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "FLOWDESK_DB_PATH",
        str(_get_base_dir() / "sqlite" / "flowdesk.db"),
    )


# 任务默认预估耗时（分钟）
DEFAULT_TIME_REQUIRED_MINUTES: int = int(
    os.environ.get("FLOWDESK_DEFAULT_TIME_REQUIRED", "30")
)

# 提醒任务轮询间隔（秒）
REMINDER_POLL_INTERVAL: float = float(
    os.environ.get("FLOWDESK_REMINDER_POLL_INTERVAL", "10")
)

# 每轮最多执行的到期提醒数
REMINDER_BATCH_LIMIT: int = 50

# 每日汇总触发时刻（UTC 小时）
DAILY_SUMMARY_HOUR: int = int(os.environ.get("FLOWDESK_DAILY_SUMMARY_HOUR", "9"))

# SSE 心跳间隔（秒）
SSE_HEARTBEAT_INTERVAL: int = int(
    os.environ.get("FLOWDESK_SSE_HEARTBEAT_INTERVAL", "15")
)

# 判定提醒任务过期时允许的时间误差（秒）
REMINDER_STALE_TOLERANCE_S: float = 1.0
