"""领域异常体系

所有业务异常携带 code 与 HTTP 状态码，由 gateway 统一转换为错误响应：
{"error": {"code": ..., "message": ...}}
"""


class FlowDeskError(Exception):
    """FlowDesk 基础异常"""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class UnauthorizedError(FlowDeskError):
    """凭证缺失、无效或过期，或调用者无权操作该资源"""

    status_code = 401
    code = "UNAUTHORIZED"


class ForbiddenError(FlowDeskError):
    """凭证有效但角色不足"""

    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(FlowDeskError):
    """引用的用户或任务不存在"""

    status_code = 404
    code = "NOT_FOUND"


class ValidationError(FlowDeskError):
    """必填字段缺失或取值非法"""

    status_code = 400
    code = "VALIDATION_ERROR"


class ConflictError(FlowDeskError):
    """请求与任务当前状态冲突（如延期申请仍在审批中）"""

    status_code = 409
    code = "CONFLICT"


class InternalError(FlowDeskError):
    """存储或下游依赖失败"""


def task_not_found(task_id: str) -> NotFoundError:
    return NotFoundError(f"Task with id {task_id} does not exist", code="TASK_NOT_FOUND")


def user_not_found(user_id: str) -> NotFoundError:
    return NotFoundError(f"User with id {user_id} does not exist", code="USER_NOT_FOUND")
