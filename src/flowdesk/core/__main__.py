"""CLI 入口模块 -- python -m flowdesk.core <command>

支持的命令：
  init-db                创建数据库表结构
  promote-admin <email>  将指定用户提升为管理员
"""

import asyncio
import sys

from .config import get_db_path
from .models import UserRole
from .timeutil import utc_now


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print("用法: python -m flowdesk.core <command>")
        print("命令:")
        print("  init-db                创建数据库表结构")
        print("  promote-admin <email>  将指定用户提升为管理员")
        sys.exit(1)

    command = sys.argv[1]

    if command == "init-db":
        asyncio.run(init_database())
    elif command == "promote-admin":
        if len(sys.argv) < 3:
            print("用法: python -m flowdesk.core promote-admin <email>")
            sys.exit(1)
        ok = asyncio.run(promote_admin(sys.argv[2]))
        if not ok:
            sys.exit(1)
    else:
        print(f"未知命令: {command}")
        print("可用命令: init-db, promote-admin")
        sys.exit(1)


async def init_database() -> None:
    """创建 Store 即完成建表"""
    from .store import create_store_group

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")
    store_group = await create_store_group(db_path)
    await store_group.conn.close()
    print("初始化完成")


async def promote_admin(email: str) -> bool:
    """将 email 对应的用户角色设为 admin

    Returns:
        True 如果用户存在并已更新
    """
    from .store import create_store_group, transaction

    store_group = await create_store_group(get_db_path())
    try:
        user = await store_group.user_store.get_user_by_email(email)
        if user is None:
            print(f"用户不存在: {email}")
            return False
        async with transaction(store_group.conn):
            await store_group.user_store.update_role(
                user.user_id, UserRole.ADMIN.value, utc_now()
            )
        print(f"已提升为管理员: {user.email}")
        return True
    finally:
        await store_group.conn.close()


if __name__ == "__main__":
    main()
