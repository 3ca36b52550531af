"""ReminderScheduler + ReminderWorker -- 持久化延时提醒

调度：写入 scheduled_jobs 表，进程重启后继续有效。
执行：后台轮询到期任务（fire_at <= now 且 status=scheduled），
执行处理函数后标记 done；处理函数抛出异常时标记 failed，不重试。
执行中途崩溃时任务仍为 scheduled，重启后会再次执行（至少一次）。

不取消旧任务：截止时间变化后旧任务在触发时做过期检查并跳过。
同一任务、同一类型、同一触发时刻只保留一条待执行任务，避免重复邮件。
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta

import structlog
from ulid import ULID

from flowdesk.core.config import (
    DAILY_SUMMARY_HOUR,
    REMINDER_BATCH_LIMIT,
    REMINDER_POLL_INTERVAL,
    REMINDER_STALE_TOLERANCE_S,
)
from flowdesk.core.models import (
    TERMINAL_STATES,
    JobStatus,
    ReminderKind,
    ScheduledJob,
    Task,
)
from flowdesk.core.store import StoreGroup, transaction
from flowdesk.core.timeutil import utc_now
from flowdesk.notify import format_time_left

from .notification_service import NotificationService

log = structlog.get_logger()

_Handler = Callable[[ScheduledJob, datetime], Awaitable[None]]


def next_daily_run(now: datetime, hour: int = DAILY_SUMMARY_HOUR) -> datetime:
    """下一次每日汇总时刻（UTC），严格晚于 now"""
    candidate = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


class ReminderScheduler:
    """提醒调度 -- 只负责写入调度表"""

    def __init__(self, store_group: StoreGroup) -> None:
        self._stores = store_group

    async def schedule(
        self,
        kind: ReminderKind,
        task_id: str | None,
        fire_at: datetime,
    ) -> ScheduledJob:
        """持久化一条提醒任务；fire_at 已过去时下一轮轮询立即执行

        同一任务已有相同类型、相同 fire_at 的待执行任务时直接返回该任务。
        """
        if task_id is not None:
            duplicate = await self._find_scheduled(kind, task_id, fire_at)
            if duplicate is not None:
                log.info(
                    "reminder_already_scheduled",
                    job_id=duplicate.job_id,
                    kind=kind.value,
                    task_id=task_id,
                    fire_at=fire_at.isoformat(),
                )
                return duplicate

        now = utc_now()
        job = ScheduledJob(
            job_id=str(ULID()),
            kind=kind,
            task_id=task_id,
            fire_at=fire_at,
            created_at=now,
            updated_at=now,
        )
        async with transaction(self._stores.conn):
            await self._stores.job_store.create_job(job)
        log.info(
            "reminder_scheduled",
            job_id=job.job_id,
            kind=kind.value,
            task_id=task_id,
            fire_at=fire_at.isoformat(),
        )
        return job

    async def ensure_daily_summary(
        self,
        now: datetime | None = None,
        hour: int = DAILY_SUMMARY_HOUR,
        running_job_id: str | None = None,
    ) -> ScheduledJob:
        """保证恰好存在一个待执行的每日汇总任务

        Args:
            running_job_id: 正在执行的汇总任务，查找已有实例时忽略它；
                该任务重复执行（标记 done 之前崩溃）时不会再调度第二个实例
        """
        existing = [
            job
            for job in await self._stores.job_store.list_jobs(
                kind=ReminderKind.DAILY_SUMMARY,
                status=JobStatus.SCHEDULED,
            )
            if job.job_id != running_job_id
        ]
        if existing:
            return existing[0]
        return await self.schedule(
            ReminderKind.DAILY_SUMMARY,
            None,
            next_daily_run(now or utc_now(), hour),
        )

    async def _find_scheduled(
        self,
        kind: ReminderKind,
        task_id: str,
        fire_at: datetime,
    ) -> ScheduledJob | None:
        jobs = await self._stores.job_store.list_jobs(
            task_id=task_id,
            kind=kind,
            status=JobStatus.SCHEDULED,
        )
        for job in jobs:
            if abs((job.fire_at - fire_at).total_seconds()) <= REMINDER_STALE_TOLERANCE_S:
                return job
        return None


class ReminderWorker:
    """提醒执行器 -- 轮询到期任务并按类型分发到处理函数"""

    def __init__(
        self,
        store_group: StoreGroup,
        scheduler: ReminderScheduler,
        notification_service: NotificationService,
        poll_interval: float = REMINDER_POLL_INTERVAL,
        summary_hour: int = DAILY_SUMMARY_HOUR,
    ) -> None:
        self._stores = store_group
        self._scheduler = scheduler
        self._notifications = notification_service
        self._poll_interval = poll_interval
        self._summary_hour = summary_hour
        self._handlers: dict[ReminderKind, _Handler] = {
            ReminderKind.DEADLINE: self._handle_deadline,
            ReminderKind.PENDING: self._handle_pending,
            ReminderKind.DAILY_SUMMARY: self._handle_daily_summary,
        }

    async def run_forever(self) -> None:
        """后台轮询循环，直到被取消"""
        log.info("reminder_worker_started", poll_interval=self._poll_interval)
        while True:
            try:
                await self.run_due_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log.exception("reminder_poll_failed", error=str(e))
            await asyncio.sleep(self._poll_interval)

    async def run_due_once(self, now: datetime | None = None) -> int:
        """执行一轮到期任务

        Returns:
            本轮处理的任务数
        """
        now = now or utc_now()
        jobs = await self._stores.job_store.list_due(now, limit=REMINDER_BATCH_LIMIT)
        for job in jobs:
            await self._run_job(job, now)
        return len(jobs)

    async def _run_job(self, job: ScheduledJob, now: datetime) -> None:
        handler = self._handlers[job.kind]
        try:
            await handler(job, now)
        except Exception as e:
            async with transaction(self._stores.conn):
                await self._stores.job_store.mark_failed(
                    job.job_id, f"{type(e).__name__}: {e}", utc_now()
                )
            log.warning(
                "reminder_job_failed",
                job_id=job.job_id,
                kind=job.kind.value,
                task_id=job.task_id,
                error=str(e),
            )
            return

        async with transaction(self._stores.conn):
            await self._stores.job_store.mark_done(job.job_id, utc_now())
        log.info("reminder_job_done", job_id=job.job_id, kind=job.kind.value, task_id=job.task_id)

    async def _handle_deadline(self, job: ScheduledJob, now: datetime) -> None:
        """截止时刻：任务仍未完成则发送逾期通知"""
        task = await self._live_task(job, lambda t: t.deadline)
        if task is not None:
            await self._notifications.send_task_overdue(task)

    async def _handle_pending(self, job: ScheduledJob, now: datetime) -> None:
        """剩余时间等于预估耗时：任务仍未完成则发送截止提醒"""
        task = await self._live_task(job, lambda t: t.pending_reminder_at)
        if task is not None:
            time_left = format_time_left((task.deadline - now).total_seconds())
            await self._notifications.send_task_reminder(task, time_left=time_left)

    async def _handle_daily_summary(self, job: ScheduledJob, now: datetime) -> None:
        """每日汇总：先调度下一次，再按负责人统计未完成任务"""
        await self._scheduler.ensure_daily_summary(
            now=now,
            hour=self._summary_hour,
            running_job_id=job.job_id,
        )

        counts = await self._stores.task_store.count_open_tasks_by_assignee()
        for user_id, open_tasks in counts.items():
            user = await self._stores.user_store.get_user(user_id)
            log.info(
                "daily_summary_user",
                user_id=user_id,
                email=user.email if user else None,
                open_tasks=open_tasks,
            )
        log.info("daily_summary_completed", users=len(counts))

    async def _live_task(
        self,
        job: ScheduledJob,
        expected_fire_at: Callable[[Task], datetime],
    ) -> Task | None:
        """重新读取任务；任务缺失、已完成或提醒已过期时返回 None"""
        task = await self._stores.task_store.get_task(job.task_id) if job.task_id else None
        reason = None
        if task is None:
            reason = "task_missing"
        elif task.status in TERMINAL_STATES:
            reason = "completed"
        else:
            drift = abs((expected_fire_at(task) - job.fire_at).total_seconds())
            if drift > REMINDER_STALE_TOLERANCE_S:
                reason = "stale"

        if reason is not None:
            log.info(
                "reminder_skipped",
                job_id=job.job_id,
                kind=job.kind.value,
                task_id=job.task_id,
                reason=reason,
            )
            return None
        return task
