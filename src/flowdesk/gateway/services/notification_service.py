"""NotificationService -- 指派通知、截止提醒与逾期通知

所有动作都是尽力而为：收件人缺失、邮件提交失败只记录日志，
不重试，也不影响触发它的任务写入。
"""

import structlog

from flowdesk.core.models import Task, User
from flowdesk.core.store import StoreGroup
from flowdesk.notify import (
    EmailDeliveryError,
    EmailMessage,
    EmailSender,
    EmailTemplate,
    render_email,
)

from .sse_hub import RealtimeMessage, SSEHub

log = structlog.get_logger()

TASK_NEW_EVENT = "task.new"


class NotificationService:
    """通知分发"""

    def __init__(
        self,
        store_group: StoreGroup,
        sse_hub: SSEHub,
        email_sender: EmailSender,
        app_url: str = "",
    ) -> None:
        self._stores = store_group
        self._sse_hub = sse_hub
        self._email_sender = email_sender
        self._app_url = app_url

    async def notify_task_assigned(self, task: Task, assigned_to_id: str) -> None:
        """新任务指派：实时推送 task.new + 指派邮件，两者互不影响"""
        await self._sse_hub.publish(
            assigned_to_id,
            RealtimeMessage(
                event=TASK_NEW_EVENT,
                data=task.model_dump(mode="json", by_alias=True),
            ),
        )

        user = await self._stores.user_store.get_user(assigned_to_id)
        if user is None or not user.email:
            log.warning(
                "notification_recipient_missing",
                task_id=task.task_id,
                user_id=assigned_to_id,
            )
            return
        await self._send(EmailTemplate.TASK_ASSIGNED, user, task)

    async def send_task_reminder(self, task: Task, time_left: str | None = None) -> bool:
        """截止临近提醒"""
        user = await self._assignee(task)
        if user is None:
            return False
        return await self._send(EmailTemplate.TASK_REMINDER, user, task, time_left=time_left)

    async def send_task_overdue(self, task: Task) -> bool:
        """逾期通知"""
        user = await self._assignee(task)
        if user is None:
            return False
        return await self._send(EmailTemplate.TASK_OVERDUE, user, task)

    async def _assignee(self, task: Task) -> User | None:
        user = await self._stores.user_store.get_user(task.assigned_to)
        if user is None or not user.email:
            log.warning(
                "notification_recipient_missing",
                task_id=task.task_id,
                user_id=task.assigned_to,
            )
            return None
        return user

    async def _send(
        self,
        template: EmailTemplate,
        user: User,
        task: Task,
        time_left: str | None = None,
    ) -> bool:
        rendered = render_email(
            template,
            user_name=user.name,
            title=task.title,
            description=task.description,
            priority=task.priority.value,
            deadline=task.deadline,
            app_url=self._app_url,
            time_left=time_left,
        )
        message = EmailMessage(
            to_email=user.email,
            to_name=user.name,
            subject=rendered.subject,
            html_content=rendered.html,
        )
        try:
            await self._email_sender.send(message)
        except EmailDeliveryError as e:
            log.warning(
                "email_send_failed",
                template=template.value,
                task_id=task.task_id,
                to=user.email,
                status_code=e.status_code,
                error=e.reason,
            )
            return False
        log.info(
            "notification_sent",
            template=template.value,
            task_id=task.task_id,
            user_id=user.user_id,
        )
        return True
