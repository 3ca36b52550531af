"""邮件通知异常体系"""


class NotifyError(Exception):
    """通知包基础异常"""


class EmailDeliveryError(NotifyError):
    """事务邮件提交失败（连接失败、超时或服务端拒绝）

    调用方只记录日志，不重试，也不回滚触发它的任务变更。
    """

    def __init__(self, recipient: str, reason: str, status_code: int | None = None) -> None:
        """
        Args:
            recipient: 收件人邮箱
            reason: 失败原因
            status_code: 服务端返回的 HTTP 状态码（连接类错误为 None）
        """
        super().__init__(f"邮件发送失败: {recipient} -- {reason}")
        self.recipient = recipient
        self.reason = reason
        self.status_code = status_code
