"""邮件数据模型"""

from enum import StrEnum

from pydantic import BaseModel, Field


class EmailTemplate(StrEnum):
    """邮件模板"""

    TASK_ASSIGNED = "task_assigned"
    TASK_REMINDER = "task_reminder"
    TASK_OVERDUE = "task_overdue"


class EmailMessage(BaseModel):
    """一封待发送的邮件"""

    to_email: str = Field(description="收件人邮箱")
    to_name: str = Field(default="", description="收件人名称")
    subject: str = Field(description="主题")
    html_content: str = Field(description="HTML 正文")


class SendResult(BaseModel):
    """发送结果"""

    message_id: str = Field(default="", description="服务端返回的消息 ID")
    provider: str = Field(description="发送通道：brevo / log")
