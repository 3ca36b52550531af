"""NotifyConfig -- 邮件通知配置加载

从环境变量加载配置；未配置 Brevo API key 时降级为 log 模式（只记录日志，不发信）。
"""

import os
from typing import Literal

import structlog
from pydantic import BaseModel, Field, SecretStr

log = structlog.get_logger()


class NotifyConfig(BaseModel):
    """邮件通知配置 -- 从环境变量加载

    环境变量:
        FLOWDESK_EMAIL_MODE: 发信模式（brevo/log）
        BREVO_API_KEY: Brevo 事务邮件 API key
        BREVO_API_URL: Brevo API 基础 URL
        FLOWDESK_SENDER_NAME / FLOWDESK_SENDER_EMAIL: 发件人
        FLOWDESK_APP_URL: 邮件中 Dashboard 链接的站点地址
        FLOWDESK_EMAIL_TIMEOUT_S: 请求超时（秒，默认 10）
    """

    email_mode: Literal["brevo", "log"] = Field(
        default="brevo",
        description="发信模式：brevo / log",
    )
    brevo_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Brevo 事务邮件 API key",
    )
    brevo_api_url: str = Field(
        default="https://api.brevo.com/v3",
        description="Brevo API 基础 URL",
    )
    sender_name: str = Field(default="FlowDesk App", description="发件人名称")
    sender_email: str = Field(default="no-reply@flowdesk.local", description="发件人邮箱")
    app_url: str = Field(default="", description="前端站点地址")
    timeout_s: int = Field(default=10, ge=1, description="请求超时（秒）")


def load_notify_config() -> NotifyConfig:
    """从环境变量加载邮件通知配置

    Returns:
        NotifyConfig 实例；brevo 模式缺少 API key 时返回 log 模式
    """
    kwargs: dict = {}

    if val := os.environ.get("FLOWDESK_EMAIL_MODE"):
        kwargs["email_mode"] = val

    if val := os.environ.get("BREVO_API_KEY"):
        kwargs["brevo_api_key"] = SecretStr(val)

    if val := os.environ.get("BREVO_API_URL"):
        kwargs["brevo_api_url"] = val

    if val := os.environ.get("FLOWDESK_SENDER_NAME"):
        kwargs["sender_name"] = val

    if val := os.environ.get("FLOWDESK_SENDER_EMAIL"):
        kwargs["sender_email"] = val

    if val := os.environ.get("FLOWDESK_APP_URL"):
        kwargs["app_url"] = val

    if val := os.environ.get("FLOWDESK_EMAIL_TIMEOUT_S"):
        try:
            kwargs["timeout_s"] = int(val)
        except ValueError:
            log.warning(
                "invalid_timeout_config",
                env_var="FLOWDESK_EMAIL_TIMEOUT_S",
                value=val,
                fallback=10,
            )

    config = NotifyConfig(**kwargs)
    if config.email_mode == "brevo" and not config.brevo_api_key.get_secret_value():
        log.warning("brevo_api_key_missing", fallback_mode="log")
        config = config.model_copy(update={"email_mode": "log"})
    return config
