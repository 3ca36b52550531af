"""SQLite 数据库初始化

PRAGMA 配置 + 三张表 DDL（users / tasks / scheduled_jobs）+ 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# users 表 DDL
_USERS_DDL = """
CREATE TABLE IF NOT EXISTS users (
    user_id        TEXT PRIMARY KEY,
    name           TEXT NOT NULL,
    email          TEXT NOT NULL,
    password_hash  TEXT NOT NULL,
    role           TEXT NOT NULL DEFAULT 'user',
    created_at     TEXT NOT NULL,
    updated_at     TEXT NOT NULL
);
"""

_USERS_INDEXES = [
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_users_email ON users(email);",
]

# tasks 表 DDL
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    task_id            TEXT PRIMARY KEY,
    title              TEXT NOT NULL,
    description        TEXT NOT NULL DEFAULT '',
    priority           TEXT NOT NULL DEFAULT 'medium',
    deadline           TEXT NOT NULL,
    time_required      INTEGER NOT NULL DEFAULT 30,
    status             TEXT NOT NULL DEFAULT 'yet-to-start',
    assigned_to        TEXT NOT NULL,
    assigned_by        TEXT NOT NULL,
    remarks            TEXT NOT NULL DEFAULT '',
    extension_reason   TEXT NOT NULL DEFAULT '',
    extension_request  TEXT,
    created_at         TEXT NOT NULL,
    updated_at         TEXT NOT NULL,

    FOREIGN KEY (assigned_to) REFERENCES users(user_id),
    FOREIGN KEY (assigned_by) REFERENCES users(user_id)
);
"""

_TASKS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_assigned_to ON tasks(assigned_to, created_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_deadline ON tasks(deadline DESC);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);",
]

# scheduled_jobs 表 DDL（延时提醒，进程重启后继续有效）
_JOBS_DDL = """
CREATE TABLE IF NOT EXISTS scheduled_jobs (
    job_id        TEXT PRIMARY KEY,
    kind          TEXT NOT NULL,
    task_id       TEXT,
    fire_at       TEXT NOT NULL,
    status        TEXT NOT NULL DEFAULT 'scheduled',
    run_count     INTEGER NOT NULL DEFAULT 0,
    last_error    TEXT,
    created_at    TEXT NOT NULL,
    updated_at    TEXT NOT NULL,
    completed_at  TEXT
);
"""

_JOBS_INDEXES = [
    # 轮询到期任务
    "CREATE INDEX IF NOT EXISTS idx_jobs_due ON scheduled_jobs(status, fire_at);",
    "CREATE INDEX IF NOT EXISTS idx_jobs_task_id ON scheduled_jobs(task_id);",
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    # 设置 PRAGMA
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    # 创建表
    await conn.execute(_USERS_DDL)
    await conn.execute(_TASKS_DDL)
    await conn.execute(_JOBS_DDL)

    # 创建索引
    for idx_sql in _USERS_INDEXES + _TASKS_INDEXES + _JOBS_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
