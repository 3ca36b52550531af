"""认证路由

POST /api/auth/register: 注册普通用户，返回用户信息与令牌（201）。
POST /api/auth/login: 登录，返回用户信息、令牌与角色。
"""

from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse

from flowdesk.core.models import CamelModel
from flowdesk.core.store import StoreGroup

from ..deps import get_auth_config, get_store_group
from ..security import AuthConfig
from ..services.auth_service import AuthService

router = APIRouter()


class RegisterRequest(CamelModel):
    """注册请求体"""

    name: str = ""
    email: str = ""
    password: str = ""


class LoginRequest(CamelModel):
    """登录请求体"""

    email: str = ""
    password: str = ""


@router.post("/api/auth/register")
async def register(
    body: RegisterRequest,
    store_group: StoreGroup = Depends(get_store_group),
    auth_config: AuthConfig = Depends(get_auth_config),
):
    """注册普通用户

    - 字段缺失 / 邮箱已注册返回 400
    """
    service = AuthService(store_group, auth_config)
    user, token = await service.register(body.name, body.email, body.password)
    return JSONResponse(
        status_code=201,
        content={
            "user": user.model_dump(mode="json", by_alias=True),
            "token": token,
        },
    )


@router.post("/api/auth/login")
async def login(
    body: LoginRequest,
    store_group: StoreGroup = Depends(get_store_group),
    auth_config: AuthConfig = Depends(get_auth_config),
):
    """登录（配置的管理员凭证会引导出管理员账号）"""
    service = AuthService(store_group, auth_config)
    user, token = await service.login(body.email, body.password)
    return {
        "user": user.model_dump(mode="json", by_alias=True),
        "token": token,
        "role": user.role.value,
    }
