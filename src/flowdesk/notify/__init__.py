"""FlowDesk Notify -- 事务邮件发送与模板渲染

对外暴露:
- EmailSender: 发信协议
- BrevoEmailClient / LogEmailSender: 两种发信实现
- create_email_sender(): 按配置选择实现
- render_email(): 模板渲染
"""

from typing import Protocol

from .client import BrevoEmailClient
from .config import NotifyConfig, load_notify_config
from .exceptions import EmailDeliveryError, NotifyError
from .log_sender import LogEmailSender
from .models import EmailMessage, EmailTemplate, SendResult
from .templates import RenderedEmail, format_deadline, format_time_left, render_email


class EmailSender(Protocol):
    """发信协议"""

    async def send(self, message: EmailMessage) -> SendResult: ...


def create_email_sender(config: NotifyConfig) -> EmailSender:
    """按配置创建发信实现：brevo 模式返回 BrevoEmailClient，否则 LogEmailSender"""
    if config.email_mode == "brevo":
        return BrevoEmailClient(config)
    return LogEmailSender()


__all__ = [
    "BrevoEmailClient",
    "EmailDeliveryError",
    "EmailMessage",
    "EmailSender",
    "EmailTemplate",
    "LogEmailSender",
    "NotifyConfig",
    "NotifyError",
    "RenderedEmail",
    "SendResult",
    "create_email_sender",
    "format_deadline",
    "format_time_left",
    "render_email",
    "load_notify_config",
]
