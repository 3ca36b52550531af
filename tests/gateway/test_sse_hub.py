"""SSEHub 与实时推送路由测试"""

from httpx import AsyncClient
from starlette.requests import Request

from flowdesk.gateway.routes.stream import _bearer_token
from flowdesk.gateway.services.sse_hub import RealtimeMessage, SSEHub


class TestSSEHub:
    """按用户分房间的发布/订阅"""

    async def test_publish_without_subscribers(self):
        hub = SSEHub()
        delivered = await hub.publish("u1", RealtimeMessage(event="task.new", data={}))
        assert delivered == 0

    async def test_room_isolation(self):
        hub = SSEHub()
        alice = await hub.subscribe("alice")
        bob = await hub.subscribe("bob")

        await hub.publish("alice", RealtimeMessage(event="task.new", data={"taskId": "t1"}))
        assert alice.get_nowait().data == {"taskId": "t1"}
        assert bob.empty()

    async def test_multiple_connections_same_user(self):
        hub = SSEHub()
        first = await hub.subscribe("alice")
        second = await hub.subscribe("alice")
        assert hub.connection_count("alice") == 2

        delivered = await hub.publish("alice", RealtimeMessage(event="task.new"))
        assert delivered == 2
        assert not first.empty() and not second.empty()

    async def test_unsubscribe(self):
        hub = SSEHub()
        queue = await hub.subscribe("alice")
        await hub.unsubscribe("alice", queue)
        assert hub.connection_count("alice") == 0
        assert await hub.publish("alice", RealtimeMessage(event="task.new")) == 0

    async def test_full_queue_dropped(self):
        hub = SSEHub(queue_maxsize=1)
        queue = await hub.subscribe("alice")
        await hub.publish("alice", RealtimeMessage(event="task.new"))
        await hub.publish("alice", RealtimeMessage(event="task.new"))
        assert hub.connection_count("alice") == 0
        assert queue.qsize() == 1

    async def test_unsubscribe_after_room_pruned(self):
        hub = SSEHub(queue_maxsize=1)
        queue = await hub.subscribe("alice")
        await hub.publish("alice", RealtimeMessage(event="task.new"))
        await hub.publish("alice", RealtimeMessage(event="task.new"))

        # 房间已在 publish 时清理，断开连接不应重建房间
        await hub.unsubscribe("alice", queue)
        assert "alice" not in hub._rooms
        await hub.unsubscribe("nobody", queue)
        assert hub._rooms == {}


class TestStreamRoute:
    """GET /api/stream/tasks 认证"""

    async def test_requires_token(self, client: AsyncClient):
        resp = await client.get("/api/stream/tasks")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "UNAUTHORIZED"

    async def test_invalid_query_token(self, client: AsyncClient):
        resp = await client.get("/api/stream/tasks", params={"token": "garbage"})
        assert resp.status_code == 401

    def test_bearer_token_parsing(self):
        def _request(value: str) -> Request:
            return Request(
                {
                    "type": "http",
                    "method": "GET",
                    "path": "/api/stream/tasks",
                    "headers": [(b"authorization", value.encode())],
                }
            )

        assert _bearer_token(_request("Bearer abc")) == "abc"
        assert _bearer_token(_request("bearer abc")) == "abc"
        assert _bearer_token(_request("Basic abc")) is None
