"""SQLite Store 测试

测试内容：
1. WAL 模式与表结构
2. UserStore：邮箱大小写不敏感、唯一约束、角色更新
3. TaskStore：写入/读取、排序、未完成统计
4. JobStore：到期查询、执行状态
"""

from datetime import UTC, datetime, timedelta

import aiosqlite
import pytest
from ulid import ULID

from flowdesk.core.models import (
    ExtensionRequest,
    JobStatus,
    ReminderKind,
    ScheduledJob,
    Task,
    TaskStatus,
    UserRole,
)
from flowdesk.core.store import verify_wal_mode

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


def _task(owner_id: str, **overrides) -> Task:
    fields = {
        "task_id": str(ULID()),
        "title": "Write report",
        "deadline": NOW + timedelta(days=1),
        "assigned_to": owner_id,
        "assigned_by": owner_id,
        "status": TaskStatus.PENDING,
        "created_at": NOW,
        "updated_at": NOW,
    }
    fields.update(overrides)
    return Task(**fields)


def _job(kind: ReminderKind, fire_at: datetime, task_id: str | None = None) -> ScheduledJob:
    return ScheduledJob(
        job_id=str(ULID()),
        kind=kind,
        task_id=task_id,
        fire_at=fire_at,
        created_at=NOW,
        updated_at=NOW,
    )


class TestSchema:
    """数据库初始化"""

    async def test_wal_enabled(self, store_group):
        assert await verify_wal_mode(store_group.conn) is True

    async def test_tables_exist(self, store_group):
        cursor = await store_group.conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table'"
        )
        names = {row[0] for row in await cursor.fetchall()}
        assert {"users", "tasks", "scheduled_jobs"} <= names


class TestUserStore:
    """UserStore"""

    async def test_lookup_by_email_case_insensitive(self, store_group, add_user):
        user = await add_user("Alice")
        found = await store_group.user_store.get_user_by_email("ALICE@FlowDesk.test")
        assert found is not None
        assert found.user_id == user.user_id
        assert found.password_hash == "not-a-real-hash"

    async def test_duplicate_email_rejected(self, store_group, add_user, make_user):
        await add_user("Alice")
        with pytest.raises(aiosqlite.IntegrityError):
            await store_group.user_store.create_user(make_user("Alice"))

    async def test_update_role(self, store_group, add_user):
        user = await add_user("Alice")
        await store_group.user_store.update_role(user.user_id, UserRole.ADMIN.value, NOW)
        await store_group.conn.commit()
        updated = await store_group.user_store.get_user(user.user_id)
        assert updated.is_admin

    async def test_get_missing(self, store_group):
        assert await store_group.user_store.get_user("missing") is None


class TestTaskStore:
    """TaskStore"""

    async def test_roundtrip_with_extension_request(self, store_group, add_user):
        owner = await add_user("Alice")
        admin = await add_user("Root", UserRole.ADMIN)
        task = _task(
            owner.user_id,
            assigned_by=admin.user_id,
            extension_request=ExtensionRequest(reason="sick", extra_time_needed=60),
        )
        await store_group.task_store.create_task(task)
        await store_group.conn.commit()

        loaded = await store_group.task_store.get_task(task.task_id)
        assert loaded == task
        assert not loaded.is_self_assigned

    async def test_save_overwrites_mutable_fields(self, store_group, add_user):
        owner = await add_user("Alice")
        task = _task(owner.user_id)
        await store_group.task_store.create_task(task)

        changed = task.model_copy(
            update={
                "status": TaskStatus.COMPLETED,
                "remarks": "done",
                "updated_at": NOW + timedelta(hours=1),
            }
        )
        await store_group.task_store.save_task(changed)
        await store_group.conn.commit()

        loaded = await store_group.task_store.get_task(task.task_id)
        assert loaded.status == TaskStatus.COMPLETED
        assert loaded.remarks == "done"
        assert loaded.created_at == NOW

    async def test_list_for_assignee_newest_first(self, store_group, add_user):
        alice = await add_user("Alice")
        bob = await add_user("Bob")
        older = _task(alice.user_id, created_at=NOW)
        newer = _task(alice.user_id, created_at=NOW + timedelta(minutes=5))
        other = _task(bob.user_id)
        for task in (older, newer, other):
            await store_group.task_store.create_task(task)
        await store_group.conn.commit()

        tasks = await store_group.task_store.list_tasks_for_assignee(alice.user_id)
        assert [t.task_id for t in tasks] == [newer.task_id, older.task_id]

    async def test_list_all_deadline_desc(self, store_group, add_user):
        alice = await add_user("Alice")
        early = _task(alice.user_id, deadline=NOW + timedelta(hours=1))
        late = _task(alice.user_id, deadline=NOW + timedelta(days=3))
        for task in (early, late):
            await store_group.task_store.create_task(task)
        await store_group.conn.commit()

        tasks = await store_group.task_store.list_tasks()
        assert [t.task_id for t in tasks] == [late.task_id, early.task_id]

    async def test_count_open_tasks(self, store_group, add_user):
        alice = await add_user("Alice")
        bob = await add_user("Bob")
        tasks = [
            _task(alice.user_id),
            _task(alice.user_id, status=TaskStatus.YET_TO_START),
            _task(alice.user_id, status=TaskStatus.COMPLETED),
            _task(bob.user_id, status=TaskStatus.COMPLETED),
        ]
        for task in tasks:
            await store_group.task_store.create_task(task)
        await store_group.conn.commit()

        counts = await store_group.task_store.count_open_tasks_by_assignee()
        assert counts == {alice.user_id: 2}


class TestJobStore:
    """JobStore"""

    async def test_list_due_ordering(self, store_group):
        later = _job(ReminderKind.DEADLINE, NOW - timedelta(minutes=1), "t1")
        earlier = _job(ReminderKind.PENDING, NOW - timedelta(hours=1), "t1")
        future = _job(ReminderKind.DEADLINE, NOW + timedelta(hours=1), "t2")
        for job in (later, earlier, future):
            await store_group.job_store.create_job(job)
        await store_group.conn.commit()

        due = await store_group.job_store.list_due(NOW)
        assert [j.job_id for j in due] == [earlier.job_id, later.job_id]

        limited = await store_group.job_store.list_due(NOW, limit=1)
        assert [j.job_id for j in limited] == [earlier.job_id]

    async def test_mark_done_excludes_from_due(self, store_group):
        job = _job(ReminderKind.DEADLINE, NOW - timedelta(minutes=1), "t1")
        await store_group.job_store.create_job(job)
        await store_group.job_store.mark_done(job.job_id, NOW)
        await store_group.conn.commit()

        assert await store_group.job_store.list_due(NOW) == []
        stored = await store_group.job_store.get_job(job.job_id)
        assert stored.status == JobStatus.DONE
        assert stored.run_count == 1
        assert stored.completed_at == NOW

    async def test_mark_failed_records_error(self, store_group):
        job = _job(ReminderKind.PENDING, NOW, "t1")
        await store_group.job_store.create_job(job)
        await store_group.job_store.mark_failed(job.job_id, "RuntimeError: boom", NOW)
        await store_group.conn.commit()

        stored = await store_group.job_store.get_job(job.job_id)
        assert stored.status == JobStatus.FAILED
        assert stored.last_error == "RuntimeError: boom"
        assert stored.completed_at is None

    async def test_list_jobs_filters(self, store_group):
        daily = _job(ReminderKind.DAILY_SUMMARY, NOW)
        deadline = _job(ReminderKind.DEADLINE, NOW, "t1")
        for job in (daily, deadline):
            await store_group.job_store.create_job(job)
        await store_group.conn.commit()

        jobs = await store_group.job_store.list_jobs(kind=ReminderKind.DAILY_SUMMARY)
        assert [j.job_id for j in jobs] == [daily.job_id]
        assert jobs[0].task_id is None

        by_task = await store_group.job_store.list_jobs(task_id="t1", status=JobStatus.SCHEDULED)
        assert [j.job_id for j in by_task] == [deadline.job_id]
