"""SideEffectDispatcher -- 执行生命周期引擎返回的副作用命令（outbox）

主写入提交后调用 dispatch()：
- ScheduleReminder：在请求内直接写入调度表，失败只记录日志
- NotifyTaskAssigned：放入内存队列，由后台 worker 异步投递（进程崩溃时丢失）
"""

import asyncio

import structlog

from flowdesk.core.models import NotifyTaskAssigned, ScheduleReminder, SideEffect

from .notification_service import NotificationService
from .reminder_scheduler import ReminderScheduler

log = structlog.get_logger()


class SideEffectDispatcher:
    """副作用分发"""

    def __init__(
        self,
        scheduler: ReminderScheduler,
        notification_service: NotificationService,
        queue_maxsize: int = 1000,
    ) -> None:
        self._scheduler = scheduler
        self._notifications = notification_service
        self._queue: asyncio.Queue[NotifyTaskAssigned] = asyncio.Queue(maxsize=queue_maxsize)

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    async def dispatch(self, effects: list[SideEffect]) -> None:
        """执行一组副作用命令，从不抛出"""
        for effect in effects:
            if isinstance(effect, ScheduleReminder):
                await self._schedule(effect)
            elif isinstance(effect, NotifyTaskAssigned):
                self._enqueue(effect)

    async def run_forever(self) -> None:
        """后台 worker：逐条投递队列中的通知，直到被取消"""
        log.info("notification_worker_started")
        while True:
            effect = await self._queue.get()
            try:
                await self._deliver(effect)
            finally:
                self._queue.task_done()

    async def drain(self) -> int:
        """立即投递队列中所有通知（关闭前调用）

        Returns:
            投递的通知数
        """
        delivered = 0
        while not self._queue.empty():
            effect = self._queue.get_nowait()
            try:
                await self._deliver(effect)
            finally:
                self._queue.task_done()
            delivered += 1
        return delivered

    async def _schedule(self, effect: ScheduleReminder) -> None:
        try:
            await self._scheduler.schedule(effect.kind, effect.task_id, effect.fire_at)
        except Exception as e:
            log.exception(
                "reminder_schedule_failed",
                kind=effect.kind.value,
                task_id=effect.task_id,
                error=str(e),
            )

    def _enqueue(self, effect: NotifyTaskAssigned) -> None:
        try:
            self._queue.put_nowait(effect)
        except asyncio.QueueFull:
            log.warning(
                "notification_dropped",
                task_id=effect.task.task_id,
                user_id=effect.assigned_to_id,
                reason="queue_full",
            )

    async def _deliver(self, effect: NotifyTaskAssigned) -> None:
        try:
            await self._notifications.notify_task_assigned(effect.task, effect.assigned_to_id)
        except Exception as e:
            log.exception(
                "notification_failed",
                task_id=effect.task.task_id,
                user_id=effect.assigned_to_id,
                error=str(e),
            )
