"""邮件模板渲染 -- 指派通知 / 截止提醒 / 逾期通知

正文使用 Jinja2 渲染（开启 autoescape，任务标题等用户输入会被转义）；
主题是纯文本，直接格式化。
"""

from datetime import datetime

from jinja2 import DictLoader, Environment, select_autoescape
from pydantic import BaseModel

from .models import EmailTemplate

_LAYOUT = """<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; background-color: #f4f6f8; padding: 24px;">
  <div style="max-width: 560px; margin: 0 auto; background: #ffffff; border-radius: 8px;
              padding: 24px; border-top: 4px solid {{ accent }};">
    <h2 style="color: {{ accent }}; margin-top: 0;">{% block heading %}{% endblock %}</h2>
    <p>Hi {{ user_name }},</p>
    {% block body %}{% endblock %}
    <table style="width: 100%; border-collapse: collapse; margin: 16px 0;">
      <tr><td style="padding: 4px 0; color: #666;">Task</td>
          <td style="padding: 4px 0;"><strong>{{ title }}</strong></td></tr>
      {% if description %}
      <tr><td style="padding: 4px 0; color: #666;">Description</td>
          <td style="padding: 4px 0;">{{ description }}</td></tr>
      {% endif %}
      <tr><td style="padding: 4px 0; color: #666;">Priority</td>
          <td style="padding: 4px 0;">{{ priority }}</td></tr>
      <tr><td style="padding: 4px 0; color: #666;">Deadline</td>
          <td style="padding: 4px 0;">{{ deadline }}</td></tr>
    </table>
    {% if dashboard_url %}
    <p><a href="{{ dashboard_url }}" style="background: {{ accent }}; color: #ffffff;
          padding: 10px 18px; border-radius: 4px; text-decoration: none;">Open Dashboard</a></p>
    {% endif %}
    <p style="color: #999; font-size: 12px;">This is an automated message from FlowDesk.</p>
  </div>
</body>
</html>
"""

_TEMPLATES = {
    "layout.html": _LAYOUT,
    "task_assigned.html": """{% extends "layout.html" %}
{% block heading %}New Task Assigned{% endblock %}
{% block body %}
<p>You have been assigned a new task. Please review the details below.</p>
{% endblock %}
""",
    "task_reminder.html": """{% extends "layout.html" %}
{% block heading %}Deadline Approaching{% endblock %}
{% block body %}
<p>This is a reminder that your task is due soon{% if time_left %}
 ({{ time_left }} left){% endif %}. Please make sure it is completed on time.</p>
{% endblock %}
""",
    "task_overdue.html": """{% extends "layout.html" %}
{% block heading %}Task Overdue{% endblock %}
{% block body %}
<p>The deadline for your task has passed and it is not yet completed.
Please update its status or request an extension.</p>
{% endblock %}
""",
}

_ACCENTS = {
    EmailTemplate.TASK_ASSIGNED: "#2563eb",
    EmailTemplate.TASK_REMINDER: "#d97706",
    EmailTemplate.TASK_OVERDUE: "#dc2626",
}

_SUBJECTS = {
    EmailTemplate.TASK_ASSIGNED: "[FlowDesk] New Task Assigned: {title}",
    EmailTemplate.TASK_REMINDER: '[Action Required] Reminder: Task "{title}" deadline approaching',
    EmailTemplate.TASK_OVERDUE: '[URGENT] Overdue: Task "{title}" deadline has passed',
}

_env = Environment(
    loader=DictLoader(_TEMPLATES),
    autoescape=select_autoescape(default=True, default_for_string=True),
)


class RenderedEmail(BaseModel):
    """渲染结果"""

    subject: str
    html: str


def render_email(
    template: EmailTemplate,
    *,
    user_name: str,
    title: str,
    description: str,
    priority: str,
    deadline: datetime,
    app_url: str = "",
    time_left: str | None = None,
) -> RenderedEmail:
    """渲染一封任务邮件

    Args:
        template: 模板类型
        user_name: 收件人名称
        title: 任务标题
        description: 任务描述
        priority: 优先级
        deadline: 截止时间（UTC）
        app_url: 前端站点地址，非空时附带 Dashboard 链接
        time_left: 距截止的剩余时间文本（仅提醒模板使用）

    Returns:
        RenderedEmail(subject, html)
    """
    html = _env.get_template(f"{template.value}.html").render(
        accent=_ACCENTS[template],
        user_name=user_name,
        title=title,
        description=description,
        priority=priority,
        deadline=format_deadline(deadline),
        dashboard_url=f"{app_url.rstrip('/')}/dashboard" if app_url else "",
        time_left=time_left,
    )
    return RenderedEmail(subject=_SUBJECTS[template].format(title=title), html=html)


def format_deadline(deadline: datetime) -> str:
    """截止时间展示格式，如 2026-03-01 17:00 UTC"""
    return deadline.strftime("%Y-%m-%d %H:%M UTC")


def format_time_left(seconds: float) -> str:
    """剩余时间展示格式：按天/小时/分钟取最大单位"""
    minutes = max(int(seconds // 60), 0)
    if minutes >= 24 * 60:
        days = minutes // (24 * 60)
        return f"{days} day{'s' if days != 1 else ''}"
    if minutes >= 60:
        hours = minutes // 60
        return f"{hours} hour{'s' if hours != 1 else ''}"
    return f"{minutes} minute{'s' if minutes != 1 else ''}"
