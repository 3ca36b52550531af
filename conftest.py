"""全局 pytest 配置 -- 临时 SQLite 数据库 + 用户构造 fixture"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path

import pytest
import pytest_asyncio
from ulid import ULID

from flowdesk.core.models import User, UserRole
from flowdesk.core.store import StoreGroup, create_store_group
from flowdesk.core.timeutil import utc_now


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "sqlite" / "test.db"


@pytest_asyncio.fixture
async def store_group(tmp_db_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """提供已初始化的 StoreGroup"""
    group = await create_store_group(str(tmp_db_path))
    yield group
    await group.conn.close()


@pytest.fixture
def make_user() -> Callable[..., User]:
    """构造内存中的 User（不落库）"""

    def _make(name: str = "Alice", role: UserRole = UserRole.USER) -> User:
        now = utc_now()
        return User(
            user_id=str(ULID()),
            name=name,
            email=f"{name.lower()}@flowdesk.test",
            password_hash="not-a-real-hash",
            role=role,
            created_at=now,
            updated_at=now,
        )

    return _make


@pytest_asyncio.fixture
async def add_user(
    store_group: StoreGroup, make_user: Callable[..., User]
) -> Callable[..., Awaitable[User]]:
    """构造 User 并写入数据库"""

    async def _add(name: str = "Alice", role: UserRole = UserRole.USER) -> User:
        user = make_user(name, role)
        await store_group.user_store.create_user(user)
        await store_group.conn.commit()
        return user

    return _add
