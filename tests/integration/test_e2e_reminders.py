"""端到端测试 -- 指派、开始、完成与提醒执行

场景：
1. 管理员指派 yet-to-start 任务：只有截止提醒
2. 负责人开始任务：恰好一个 pending 提醒（deadline - timeRequired）
3. 负责人完成任务：之后执行到期提醒不发任何邮件
4. 未完成时到期提醒正常发出
"""

from datetime import datetime, timedelta

from httpx import AsyncClient

from flowdesk.core.models import JobStatus, ReminderKind
from flowdesk.core.timeutil import utc_now


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def _assign_yet_to_start(client, admin_token, assignee_id, deadline: datetime) -> dict:
    resp = await client.post(
        "/api/admin/tasks",
        json={
            "title": "Quarterly report",
            "assignedTo": assignee_id,
            "deadline": deadline.isoformat(),
            "timeRequired": 30,
            "status": "yet-to-start",
        },
        headers=_auth(admin_token),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["task"]


async def _jobs(test_app, task_id: str, kind: ReminderKind):
    return await test_app.state.store_group.job_store.list_jobs(task_id=task_id, kind=kind)


class TestReminderLifecycle:
    """提醒调度贯穿任务生命周期"""

    async def test_assign_start_complete(
        self, client: AsyncClient, register, admin_token, test_app
    ):
        deadline = utc_now().replace(microsecond=0) + timedelta(hours=2)
        alice, alice_token = await register("Alice")

        # 1. 指派：截止提醒在 deadline，没有 pending 提醒
        task = await _assign_yet_to_start(client, admin_token, alice["userId"], deadline)
        assert task["status"] == "yet-to-start"
        deadline_jobs = await _jobs(test_app, task["taskId"], ReminderKind.DEADLINE)
        assert [j.fire_at for j in deadline_jobs] == [deadline]
        assert await _jobs(test_app, task["taskId"], ReminderKind.PENDING) == []

        await test_app.state.dispatcher.drain()
        sent = test_app.state.email_sender.sent
        assert [m.subject for m in sent] == ["[FlowDesk] New Task Assigned: Quarterly report"]

        # 2. 开始：恰好一个 pending 提醒
        resp = await client.put(
            f"/api/tasks/{task['taskId']}",
            json={"status": "pending"},
            headers=_auth(alice_token),
        )
        assert resp.status_code == 200
        pending_jobs = await _jobs(test_app, task["taskId"], ReminderKind.PENDING)
        assert [j.fire_at for j in pending_jobs] == [deadline - timedelta(minutes=30)]

        # 3. 完成
        resp = await client.put(
            f"/api/tasks/{task['taskId']}",
            json={"status": "completed"},
            headers=_auth(alice_token),
        )
        assert resp.status_code == 200

        # 所有提醒到期执行：只标记完成，不发邮件
        worker = test_app.state.reminder_worker
        processed = await worker.run_due_once(now=deadline + timedelta(minutes=1))
        assert processed == 2
        assert len(sent) == 1
        for job in [*deadline_jobs, *pending_jobs]:
            stored = await test_app.state.store_group.job_store.get_job(job.job_id)
            assert stored.status == JobStatus.DONE

    async def test_unfinished_task_gets_reminder_and_overdue(
        self, client: AsyncClient, register, admin_token, test_app
    ):
        deadline = utc_now().replace(microsecond=0) + timedelta(hours=2)
        alice, alice_token = await register("Alice")
        task = await _assign_yet_to_start(client, admin_token, alice["userId"], deadline)
        await client.put(
            f"/api/tasks/{task['taskId']}",
            json={"status": "pending"},
            headers=_auth(alice_token),
        )
        await test_app.state.dispatcher.drain()
        sender = test_app.state.email_sender
        sender.sent.clear()

        worker = test_app.state.reminder_worker
        await worker.run_due_once(now=deadline - timedelta(minutes=30))
        assert [m.subject for m in sender.sent] == [
            '[Action Required] Reminder: Task "Quarterly report" deadline approaching'
        ]

        await worker.run_due_once(now=deadline)
        assert sender.sent[-1].subject == (
            '[URGENT] Overdue: Task "Quarterly report" deadline has passed'
        )
        assert all(m.to_email == "alice@flowdesk.test" for m in sender.sent)

    async def test_extension_approval_moves_overdue(
        self, client: AsyncClient, register, admin_token, test_app
    ):
        deadline = utc_now().replace(microsecond=0) + timedelta(hours=2)
        alice, alice_token = await register("Alice")
        task = await _assign_yet_to_start(client, admin_token, alice["userId"], deadline)

        await client.put(
            f"/api/tasks/{task['taskId']}",
            json={"extensionRequest": {"reason": "waiting on data", "extraTimeNeeded": 60}},
            headers=_auth(alice_token),
        )
        resp = await client.put(
            f"/api/admin/extension-request/{task['taskId']}",
            json={"approved": True},
            headers=_auth(admin_token),
        )
        assert resp.status_code == 200
        await test_app.state.dispatcher.drain()
        sender = test_app.state.email_sender
        sender.sent.clear()

        # 原截止时刻的提醒已过期，不再发送
        worker = test_app.state.reminder_worker
        await worker.run_due_once(now=deadline + timedelta(minutes=1))
        assert sender.sent == []

        await worker.run_due_once(now=deadline + timedelta(minutes=61))
        assert len(sender.sent) == 1
        assert "Overdue" in sender.sent[0].subject
