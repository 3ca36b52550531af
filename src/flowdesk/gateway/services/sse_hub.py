"""SSEHub -- 内存中按用户分房间的实时推送

每个订阅者持有一个 asyncio.Queue；房间以用户 ID 为键，
无订阅者时消息直接丢弃，连接断开后由客户端重连重新加入。
"""

import asyncio
from collections import defaultdict

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()


class RealtimeMessage(BaseModel):
    """推送给浏览器的一条消息"""

    event: str = Field(description="事件名，如 task.new")
    data: dict = Field(default_factory=dict, description="消息体")


class SSEHub:
    """SSE 发布/订阅 -- 基于 asyncio.Queue，房间键为用户 ID"""

    def __init__(self, queue_maxsize: int = 100) -> None:
        # user_id -> set of asyncio.Queue
        self._rooms: dict[str, set[asyncio.Queue]] = defaultdict(set)
        self._queue_maxsize = queue_maxsize

    async def subscribe(self, user_id: str) -> asyncio.Queue:
        """加入用户房间

        Args:
            user_id: 房间键（用户 ID）

        Returns:
            asyncio.Queue 实例，新消息会被推送到此队列
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_maxsize)
        self._rooms[user_id].add(queue)
        return queue

    async def unsubscribe(self, user_id: str, queue: asyncio.Queue) -> None:
        """离开用户房间"""
        room = self._rooms.get(user_id)
        if room is None:
            return
        room.discard(queue)
        if not room:
            del self._rooms[user_id]

    async def publish(self, user_id: str, message: RealtimeMessage) -> int:
        """向用户房间内所有连接推送消息

        Returns:
            成功投递的连接数（0 表示用户不在线，消息被丢弃）
        """
        delivered = 0
        dead_queues = []
        for queue in self._rooms.get(user_id, set()):
            try:
                queue.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                dead_queues.append(queue)

        # 清理已满的队列（客户端消费过慢）
        for q in dead_queues:
            self._rooms[user_id].discard(q)
        if user_id in self._rooms and not self._rooms[user_id]:
            del self._rooms[user_id]

        if delivered == 0:
            log.debug("realtime_message_dropped", user_id=user_id, event_name=message.event)
        return delivered

    def connection_count(self, user_id: str) -> int:
        return len(self._rooms.get(user_id, ()))
