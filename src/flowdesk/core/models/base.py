"""模型基类 -- JSON 使用 camelCase，Python 侧使用 snake_case"""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """对外序列化为 camelCase，输入同时接受 camelCase 与 snake_case"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def ensure_utc(value: datetime) -> datetime:
    """无时区时间视为 UTC，有时区时间统一转换到 UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
