"""TaskStore SQLite 实现

整行覆盖写入（last-write-wins），不使用乐观锁。
extension_request 子记录以 JSON 文本存储。
"""

from datetime import datetime

import aiosqlite

from ..models.task import ExtensionRequest, Task
from ..timeutil import to_iso

_COLUMNS = (
    "task_id, title, description, priority, deadline, time_required, status, "
    "assigned_to, assigned_by, remarks, extension_reason, extension_request, "
    "created_at, updated_at"
)


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        await self._conn.execute(
            f"INSERT INTO tasks ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            self._task_to_params(task),
        )

    async def save_task(self, task: Task) -> None:
        """覆盖写入任务的可变字段（assigned_to / assigned_by / created_at 不变）"""
        await self._conn.execute(
            """
            UPDATE tasks
            SET title = ?, description = ?, priority = ?, deadline = ?,
                time_required = ?, status = ?, remarks = ?, extension_reason = ?,
                extension_request = ?, updated_at = ?
            WHERE task_id = ?
            """,
            (
                task.title,
                task.description,
                task.priority.value,
                to_iso(task.deadline),
                task.time_required,
                task.status.value,
                task.remarks,
                task.extension_reason,
                self._dump_extension_request(task.extension_request),
                to_iso(task.updated_at),
                task.task_id,
            ),
        )

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def list_tasks_for_assignee(self, user_id: str) -> list[Task]:
        """查询指定负责人的任务，按 created_at 倒序"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks WHERE assigned_to = ? ORDER BY created_at DESC",
            (user_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def list_tasks(self) -> list[Task]:
        """查询全部任务，按 deadline 倒序"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks ORDER BY deadline DESC"
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def count_open_tasks_by_assignee(self) -> dict[str, int]:
        """统计每个负责人未完成的任务数"""
        cursor = await self._conn.execute(
            """
            SELECT assigned_to, COUNT(*) FROM tasks
            WHERE status != 'completed'
            GROUP BY assigned_to
            """
        )
        rows = await cursor.fetchall()
        return {row[0]: row[1] for row in rows}

    def _task_to_params(self, task: Task) -> tuple:
        return (
            task.task_id,
            task.title,
            task.description,
            task.priority.value,
            to_iso(task.deadline),
            task.time_required,
            task.status.value,
            task.assigned_to,
            task.assigned_by,
            task.remarks,
            task.extension_reason,
            self._dump_extension_request(task.extension_request),
            to_iso(task.created_at),
            to_iso(task.updated_at),
        )

    @staticmethod
    def _dump_extension_request(request: ExtensionRequest | None) -> str | None:
        if request is None:
            return None
        return request.model_dump_json()

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        extension_request = (
            ExtensionRequest.model_validate_json(row[11]) if row[11] else None
        )
        return Task(
            task_id=row[0],
            title=row[1],
            description=row[2],
            priority=row[3],
            deadline=datetime.fromisoformat(row[4]),
            time_required=row[5],
            status=row[6],
            assigned_to=row[7],
            assigned_by=row[8],
            remarks=row[9],
            extension_reason=row[10],
            extension_request=extension_request,
            created_at=datetime.fromisoformat(row[12]),
            updated_at=datetime.fromisoformat(row[13]),
        )
