"""UserStore SQLite 实现"""

from datetime import datetime

import aiosqlite

from ..models.user import User
from ..timeutil import to_iso

_COLUMNS = "user_id, name, email, password_hash, role, created_at, updated_at"


class SqliteUserStore:
    """UserStore 的 SQLite 实现

    email 统一小写存储，唯一索引保证不重复。
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_user(self, user: User) -> None:
        """创建用户记录

        Raises:
            aiosqlite.IntegrityError: email 已存在
        """
        await self._conn.execute(
            f"INSERT INTO users ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                user.user_id,
                user.name,
                user.email.lower(),
                user.password_hash,
                user.role.value,
                to_iso(user.created_at),
                to_iso(user.updated_at),
            ),
        )

    async def get_user(self, user_id: str) -> User | None:
        """根据 user_id 查询用户"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM users WHERE user_id = ?",
            (user_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_user(row) if row is not None else None

    async def get_user_by_email(self, email: str) -> User | None:
        """根据 email 查询用户（大小写不敏感）"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM users WHERE email = ?",
            (email.lower(),),
        )
        row = await cursor.fetchone()
        return self._row_to_user(row) if row is not None else None

    async def list_users(self) -> list[User]:
        """查询全部用户，按 created_at 正序"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM users ORDER BY created_at ASC"
        )
        rows = await cursor.fetchall()
        return [self._row_to_user(row) for row in rows]

    async def update_role(self, user_id: str, role: str, updated_at: datetime) -> None:
        """更新用户角色"""
        await self._conn.execute(
            "UPDATE users SET role = ?, updated_at = ? WHERE user_id = ?",
            (role, to_iso(updated_at), user_id),
        )

    @staticmethod
    def _row_to_user(row: aiosqlite.Row) -> User:
        """将数据库行转换为 User 模型"""
        return User(
            user_id=row[0],
            name=row[1],
            email=row[2],
            password_hash=row[3],
            role=row[4],
            created_at=datetime.fromisoformat(row[5]),
            updated_at=datetime.fromisoformat(row[6]),
        )
