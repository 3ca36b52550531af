"""写事务封装 -- 整体提交或整体回滚

各 Store 共享同一个连接且自身不提交。服务层在 transaction() 块内写入：
块正常结束时提交，块内或提交时出现任何异常都回滚，
失败请求的半截写入不会被连接上的下一次提交带入数据库。
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiosqlite

from ..exceptions import InternalError


@asynccontextmanager
async def transaction(conn: aiosqlite.Connection) -> AsyncIterator[aiosqlite.Connection]:
    """在共享连接上开启一个写事务

    Raises:
        InternalError: 数据库写入或提交失败（唯一约束冲突除外，原样抛出）
    """
    try:
        yield conn
        await conn.commit()
    except BaseException as e:
        await conn.rollback()
        if isinstance(e, aiosqlite.Error) and not isinstance(e, aiosqlite.IntegrityError):
            raise InternalError("Database write failed") from e
        raise
