"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store、服务实例与当前用户

所有进程级实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from flowdesk.core.exceptions import ForbiddenError, UnauthorizedError
from flowdesk.core.models import User
from flowdesk.core.store import StoreGroup

from .security import AuthConfig, decode_access_token

# auto_error=False：缺少凭证时由 get_current_user 抛出统一格式的 401
_bearer = HTTPBearer(auto_error=False)


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_sse_hub(request: Request):
    """从 app.state 获取 SSEHub 实例"""
    return request.app.state.sse_hub


def get_dispatcher(request: Request):
    """从 app.state 获取 SideEffectDispatcher 实例"""
    return request.app.state.dispatcher


def get_auth_config(request: Request) -> AuthConfig:
    """从 app.state 获取认证配置"""
    return request.app.state.auth_config


async def resolve_user(token: str | None, store_group: StoreGroup, auth_config: AuthConfig) -> User:
    """根据令牌解析当前用户

    Raises:
        UnauthorizedError: 令牌缺失、无效、过期或用户不存在
    """
    if not token:
        raise UnauthorizedError("Not authorized, no token")
    user_id = decode_access_token(token, auth_config)
    if user_id is None:
        raise UnauthorizedError("Not authorized, token failed")
    user = await store_group.user_store.get_user(user_id)
    if user is None:
        raise UnauthorizedError("Not authorized, token failed")
    return user


def bind_user(request: Request, user: User) -> None:
    """把当前用户记到请求日志上下文：contextvars 供业务日志，request.state 供 LoggingMiddleware"""
    structlog.contextvars.bind_contextvars(user_id=user.user_id)
    request.state.user_id = user.user_id


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    store_group: StoreGroup = Depends(get_store_group),
    auth_config: AuthConfig = Depends(get_auth_config),
) -> User:
    """从 Authorization: Bearer 头解析当前用户"""
    token = credentials.credentials if credentials else None
    user = await resolve_user(token, store_group, auth_config)
    bind_user(request, user)
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """要求当前用户为管理员

    Raises:
        ForbiddenError: 当前用户不是管理员
    """
    if not user.is_admin:
        raise ForbiddenError("Not authorized as an admin")
    return user
