"""时间工具 -- 统一使用带时区的 UTC 时间"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_iso(value: datetime) -> str:
    """固定精度的 ISO 字符串，保证数据库内按字典序即按时间序"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")
