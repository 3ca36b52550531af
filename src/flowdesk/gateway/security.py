"""认证工具 -- bcrypt 密码哈希 + HS256 JWT

令牌只携带 sub（用户 ID）与 exp；角色每次请求从数据库读取，
提升为管理员后无需重新登录即可生效。
"""

import os
from datetime import datetime, timedelta

import bcrypt
import jwt
import structlog
from pydantic import BaseModel, Field, SecretStr

from flowdesk.core.timeutil import utc_now

log = structlog.get_logger()

_JWT_ALGORITHM = "HS256"


class AuthConfig(BaseModel):
    """认证配置 -- 从环境变量加载

    环境变量:
        FLOWDESK_JWT_SECRET: JWT 签名密钥
        FLOWDESK_TOKEN_TTL_DAYS: 令牌有效期（天，默认 30）
        FLOWDESK_ADMIN_EMAIL / FLOWDESK_ADMIN_PASSWORD: 管理员引导账号
    """

    jwt_secret: SecretStr = Field(default=SecretStr("change-me"), description="JWT 签名密钥")
    token_ttl_days: int = Field(default=30, ge=1, description="令牌有效期（天）")
    admin_email: str = Field(default="", description="管理员引导账号邮箱")
    admin_password: SecretStr = Field(default=SecretStr(""), description="管理员引导账号密码")

    @property
    def bootstrap_enabled(self) -> bool:
        return bool(self.admin_email and self.admin_password.get_secret_value())


def load_auth_config() -> AuthConfig:
    """从环境变量加载认证配置"""
    kwargs: dict = {}

    if val := os.environ.get("FLOWDESK_JWT_SECRET"):
        kwargs["jwt_secret"] = SecretStr(val)
    else:
        log.warning("jwt_secret_default", message="FLOWDESK_JWT_SECRET 未设置，使用默认密钥")

    if val := os.environ.get("FLOWDESK_TOKEN_TTL_DAYS"):
        try:
            kwargs["token_ttl_days"] = int(val)
        except ValueError:
            log.warning(
                "invalid_token_ttl_config",
                env_var="FLOWDESK_TOKEN_TTL_DAYS",
                value=val,
                fallback=30,
            )

    if val := os.environ.get("FLOWDESK_ADMIN_EMAIL"):
        kwargs["admin_email"] = val.lower()

    if val := os.environ.get("FLOWDESK_ADMIN_PASSWORD"):
        kwargs["admin_password"] = SecretStr(val)

    return AuthConfig(**kwargs)


def hash_password(password: str) -> str:
    """bcrypt 哈希（bcrypt 只使用前 72 字节）"""
    password_bytes = password.encode("utf-8")[:72]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """校验密码；哈希格式非法时视为不匹配"""
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8")[:72],
            hashed_password.encode("utf-8"),
        )
    except ValueError:
        return False


def create_access_token(
    user_id: str,
    config: AuthConfig,
    now: datetime | None = None,
) -> str:
    """签发访问令牌"""
    issued_at = now or utc_now()
    payload = {
        "sub": user_id,
        "iat": issued_at,
        "exp": issued_at + timedelta(days=config.token_ttl_days),
    }
    return jwt.encode(payload, config.jwt_secret.get_secret_value(), algorithm=_JWT_ALGORITHM)


def decode_access_token(token: str, config: AuthConfig) -> str | None:
    """校验令牌并返回用户 ID；签名错误、过期或缺少 sub 时返回 None"""
    try:
        payload = jwt.decode(
            token,
            config.jwt_secret.get_secret_value(),
            algorithms=[_JWT_ALGORITHM],
        )
    except jwt.PyJWTError as e:
        log.info("token_rejected", reason=type(e).__name__)
        return None
    user_id = payload.get("sub")
    return user_id if isinstance(user_id, str) and user_id else None
