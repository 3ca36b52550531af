"""JobStore SQLite 实现 -- 延时提醒的持久化队列

任务执行成功后标记 done，失败标记 failed 并记录错误；
执行中途进程崩溃时状态仍为 scheduled，重启后会再次执行（至少一次）。
"""

from datetime import datetime

import aiosqlite

from ..models.enums import JobStatus, ReminderKind
from ..models.job import ScheduledJob
from ..timeutil import to_iso

_COLUMNS = (
    "job_id, kind, task_id, fire_at, status, run_count, last_error, "
    "created_at, updated_at, completed_at"
)


class SqliteJobStore:
    """JobStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_job(self, job: ScheduledJob) -> None:
        """写入一条调度任务"""
        await self._conn.execute(
            f"INSERT INTO scheduled_jobs ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                job.job_id,
                job.kind.value,
                job.task_id,
                to_iso(job.fire_at),
                job.status.value,
                job.run_count,
                job.last_error,
                to_iso(job.created_at),
                to_iso(job.updated_at),
                to_iso(job.completed_at) if job.completed_at else None,
            ),
        )

    async def get_job(self, job_id: str) -> ScheduledJob | None:
        """根据 job_id 查询"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM scheduled_jobs WHERE job_id = ?",
            (job_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_job(row) if row is not None else None

    async def list_due(self, now: datetime, limit: int = 50) -> list[ScheduledJob]:
        """查询已到期且尚未执行的任务，按 fire_at 正序"""
        cursor = await self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM scheduled_jobs
            WHERE status = ? AND fire_at <= ?
            ORDER BY fire_at ASC, created_at ASC
            LIMIT ?
            """,
            (JobStatus.SCHEDULED.value, to_iso(now), limit),
        )
        rows = await cursor.fetchall()
        return [self._row_to_job(row) for row in rows]

    async def list_jobs(
        self,
        task_id: str | None = None,
        kind: ReminderKind | None = None,
        status: JobStatus | None = None,
    ) -> list[ScheduledJob]:
        """按条件查询调度任务，按 fire_at 正序"""
        clauses: list[str] = []
        params: list = []
        if task_id is not None:
            clauses.append("task_id = ?")
            params.append(task_id)
        if kind is not None:
            clauses.append("kind = ?")
            params.append(kind.value)
        if status is not None:
            clauses.append("status = ?")
            params.append(status.value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM scheduled_jobs {where} ORDER BY fire_at ASC",
            tuple(params),
        )
        rows = await cursor.fetchall()
        return [self._row_to_job(row) for row in rows]

    async def mark_done(self, job_id: str, now: datetime) -> None:
        """标记执行成功"""
        ts = to_iso(now)
        await self._conn.execute(
            """
            UPDATE scheduled_jobs
            SET status = ?, run_count = run_count + 1, completed_at = ?, updated_at = ?
            WHERE job_id = ?
            """,
            (JobStatus.DONE.value, ts, ts, job_id),
        )

    async def mark_failed(self, job_id: str, error: str, now: datetime) -> None:
        """标记执行失败（不重试）"""
        await self._conn.execute(
            """
            UPDATE scheduled_jobs
            SET status = ?, run_count = run_count + 1, last_error = ?, updated_at = ?
            WHERE job_id = ?
            """,
            (JobStatus.FAILED.value, error, to_iso(now), job_id),
        )

    @staticmethod
    def _row_to_job(row: aiosqlite.Row) -> ScheduledJob:
        """将数据库行转换为 ScheduledJob 模型"""
        return ScheduledJob(
            job_id=row[0],
            kind=row[1],
            task_id=row[2],
            fire_at=datetime.fromisoformat(row[3]),
            status=row[4],
            run_count=row[5],
            last_error=row[6],
            created_at=datetime.fromisoformat(row[7]),
            updated_at=datetime.fromisoformat(row[8]),
            completed_at=datetime.fromisoformat(row[9]) if row[9] else None,
        )
