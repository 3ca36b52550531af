"""gateway 测试配置 -- FastAPI app + httpx AsyncClient + 登录辅助"""

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr

from flowdesk.core.store import create_store_group
from flowdesk.gateway.security import AuthConfig
from flowdesk.notify import LogEmailSender

ADMIN_EMAIL = "admin@flowdesk.test"
ADMIN_PASSWORD = "admin-pass"

_ENV = {
    "FLOWDESK_EMAIL_MODE": "log",
    "LOGFIRE_SEND_TO_LOGFIRE": "false",
}


@pytest_asyncio.fixture
async def test_app(tmp_path: Path):
    """创建测试用 FastAPI app（手动初始化，绕过 lifespan，不启动后台 worker）"""
    for key, value in _ENV.items():
        os.environ[key] = value
    os.environ["FLOWDESK_DB_PATH"] = str(tmp_path / "test.db")

    from flowdesk.gateway.main import create_app, init_app_state

    app = create_app()
    store_group = await create_store_group(str(tmp_path / "test.db"))
    init_app_state(
        app,
        store_group,
        email_sender=LogEmailSender(),
        auth_config=AuthConfig(
            jwt_secret=SecretStr("test-secret"),
            admin_email=ADMIN_EMAIL,
            admin_password=SecretStr(ADMIN_PASSWORD),
        ),
    )

    yield app

    await store_group.conn.close()
    for key in [*_ENV, "FLOWDESK_DB_PATH"]:
        os.environ.pop(key, None)


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def register(client: AsyncClient) -> Callable[..., Awaitable[tuple[dict, str]]]:
    """注册用户，返回 (user JSON, token)"""

    async def _register(name: str, password: str = "secret123") -> tuple[dict, str]:
        resp = await client.post(
            "/api/auth/register",
            json={"name": name, "email": f"{name.lower()}@flowdesk.test", "password": password},
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()
        return data["user"], data["token"]

    return _register


@pytest_asyncio.fixture
async def admin_token(client: AsyncClient) -> str:
    """使用引导管理员凭证登录"""
    resp = await client.post(
        "/api/auth/login",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]
