"""AuthService -- 注册、登录与管理员引导

配置了 FLOWDESK_ADMIN_EMAIL / FLOWDESK_ADMIN_PASSWORD 时，
用该凭证登录会创建管理员账号，或把已有同邮箱账号提升为管理员。
"""

import secrets

import aiosqlite
import structlog
from ulid import ULID

from flowdesk.core.exceptions import ValidationError
from flowdesk.core.models import User, UserRole
from flowdesk.core.store import StoreGroup, transaction
from flowdesk.core.timeutil import utc_now

from ..security import AuthConfig, create_access_token, hash_password, verify_password

log = structlog.get_logger()


def _user_exists() -> ValidationError:
    return ValidationError("User already exists", code="USER_ALREADY_EXISTS")


def _invalid_credentials() -> ValidationError:
    return ValidationError("Invalid credentials", code="INVALID_CREDENTIALS")


class AuthService:
    """认证业务服务"""

    def __init__(self, store_group: StoreGroup, auth_config: AuthConfig) -> None:
        self._stores = store_group
        self._config = auth_config

    async def register(self, name: str, email: str, password: str) -> tuple[User, str]:
        """注册普通用户

        Returns:
            (user, token)

        Raises:
            ValidationError: 字段缺失或邮箱已注册
        """
        if not name.strip() or not email.strip() or not password:
            raise ValidationError("Please add all fields")

        email = email.strip().lower()
        if await self._stores.user_store.get_user_by_email(email) is not None:
            raise _user_exists()

        user = await self._create_user(name.strip(), email, password, UserRole.USER)
        log.info("user_registered", user_id=user.user_id)
        return user, create_access_token(user.user_id, self._config)

    async def login(self, email: str, password: str) -> tuple[User, str]:
        """登录

        Returns:
            (user, token)

        Raises:
            ValidationError: 邮箱或密码错误
        """
        email = email.strip().lower()
        if self._is_bootstrap_admin(email, password):
            user = await self._bootstrap_admin(email, password)
        else:
            user = await self._stores.user_store.get_user_by_email(email)
            if user is None or not verify_password(password, user.password_hash):
                log.info("login_failed", email=email)
                raise _invalid_credentials()

        log.info("user_logged_in", user_id=user.user_id, role=user.role.value)
        return user, create_access_token(user.user_id, self._config)

    def _is_bootstrap_admin(self, email: str, password: str) -> bool:
        if not self._config.bootstrap_enabled or email != self._config.admin_email:
            return False
        return secrets.compare_digest(
            password.encode("utf-8"),
            self._config.admin_password.get_secret_value().encode("utf-8"),
        )

    async def _bootstrap_admin(self, email: str, password: str) -> User:
        user = await self._stores.user_store.get_user_by_email(email)
        if user is None:
            user = await self._create_user("Admin", email, password, UserRole.ADMIN)
            log.info("admin_bootstrapped", user_id=user.user_id, created=True)
            return user

        if not user.is_admin:
            now = utc_now()
            async with transaction(self._stores.conn):
                await self._stores.user_store.update_role(user.user_id, UserRole.ADMIN.value, now)
            user = user.model_copy(update={"role": UserRole.ADMIN, "updated_at": now})
            log.info("admin_bootstrapped", user_id=user.user_id, created=False)
        return user

    async def _create_user(self, name: str, email: str, password: str, role: UserRole) -> User:
        now = utc_now()
        user = User(
            user_id=str(ULID()),
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=role,
            created_at=now,
            updated_at=now,
        )
        try:
            async with transaction(self._stores.conn):
                await self._stores.user_store.create_user(user)
        except aiosqlite.IntegrityError as e:
            raise _user_exists() from e
        return user
