"""LogEmailSender -- 只记录日志的发信实现

未配置 Brevo API key 或 FLOWDESK_EMAIL_MODE=log 时使用，
开发与测试环境无需外部服务即可走通完整的通知链路。
"""

import structlog

from .models import EmailMessage, SendResult

log = structlog.get_logger()


class LogEmailSender:
    """记录邮件而不真正发送"""

    def __init__(self) -> None:
        self.sent: list[EmailMessage] = []

    async def send(self, message: EmailMessage) -> SendResult:
        self.sent.append(message)
        log.info(
            "email_logged",
            provider="log",
            to=message.to_email,
            subject=message.subject,
        )
        return SendResult(provider="log")
