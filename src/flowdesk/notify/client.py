"""BrevoEmailClient -- Brevo 事务邮件 API 客户端

POST {brevo_api_url}/smtp/email，使用 api-key 请求头认证。
连接失败、超时和非 2xx 响应统一转换为 EmailDeliveryError。
"""

import httpx
import structlog

from .config import NotifyConfig
from .exceptions import EmailDeliveryError
from .models import EmailMessage, SendResult

log = structlog.get_logger()


class BrevoEmailClient:
    """Brevo 事务邮件发送"""

    def __init__(
        self,
        config: NotifyConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            config: 邮件通知配置
            transport: 可选的 httpx transport（测试注入 MockTransport）
        """
        self._config = config
        self._transport = transport

    async def send(self, message: EmailMessage) -> SendResult:
        """提交一封邮件

        Raises:
            EmailDeliveryError: 提交失败
        """
        payload = {
            "sender": {
                "name": self._config.sender_name,
                "email": self._config.sender_email,
            },
            "to": [{"email": message.to_email, "name": message.to_name or message.to_email}],
            "subject": message.subject,
            "htmlContent": message.html_content,
        }
        headers = {
            "accept": "application/json",
            "content-type": "application/json",
            "api-key": self._config.brevo_api_key.get_secret_value(),
        }

        try:
            async with httpx.AsyncClient(
                base_url=self._config.brevo_api_url,
                timeout=self._config.timeout_s,
                transport=self._transport,
            ) as client:
                response = await client.post("/smtp/email", json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise EmailDeliveryError(message.to_email, f"{type(e).__name__}: {e}") from e

        if response.status_code >= 400:
            raise EmailDeliveryError(
                message.to_email,
                response.text[:200] or response.reason_phrase,
                status_code=response.status_code,
            )

        message_id = ""
        try:
            message_id = str(response.json().get("messageId", ""))
        except ValueError:
            log.debug("brevo_response_not_json", status_code=response.status_code)

        log.info(
            "email_sent",
            provider="brevo",
            to=message.to_email,
            subject=message.subject,
            message_id=message_id,
        )
        return SendResult(message_id=message_id, provider="brevo")
