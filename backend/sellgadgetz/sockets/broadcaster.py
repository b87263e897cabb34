# backend/sellgadgetz/sockets/broadcaster.py
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional

from sellgadgetz.core.config import CHAT_BROADCASTER, CHAT_REDIS_CHANNEL
from sellgadgetz.sockets.registry import ConnectionRegistry, is_open

logger = logging.getLogger(__name__)

class Broadcaster(ABC):
    """
    저장된 메시지를 참여자들의 실시간 연결로 내보내는 포트.
    전송은 best-effort(at-most-once)이며, 놓친 메시지는 REST 재조회로 복구합니다.
    """

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    async def start(self):
        pass

    async def stop(self):
        pass

    @abstractmethod
    async def publish(self, user_ids: Iterable[int], payload: dict):
        """참여자 user_id 목록으로 payload를 전송합니다."""

    async def deliver_local(self, user_ids: Iterable[int], payload: dict) -> int:
        """이 프로세스에 연결된 소켓으로 전송하고, 전송에 성공한 연결 수를 반환합니다."""
        delivered = 0
        for user_id in dict.fromkeys(user_ids):
            for websocket in self.registry.connections_for(user_id):
                if not is_open(websocket):
                    continue
                try:
                    await websocket.send_json(payload)
                    delivered += 1
                except Exception as e:
                    logger.warning(f"[Broadcaster] 전송 실패 (User {user_id}): {e}")
        return delivered

class LocalBroadcaster(Broadcaster):
    """단일 인스턴스용: 로컬 레지스트리로 바로 전송합니다."""

    async def publish(self, user_ids: Iterable[int], payload: dict):
        await self.deliver_local(user_ids, payload)

class RedisBroadcaster(Broadcaster):
    """
    다중 인스턴스용: Redis Pub/Sub 채널로 발행하고,
    모든 인스턴스가 구독한 메시지를 각자의 로컬 연결로 전달합니다.
    """

    def __init__(self, registry: ConnectionRegistry, client=None, channel: str = CHAT_REDIS_CHANNEL):
        super().__init__(registry)
        self.channel = channel
        self.client = client
        self.pubsub = None
        self._listener: Optional[asyncio.Task] = None

    async def start(self):
        if self.client is None:
            from sellgadgetz.db.database_redis import RedisManager
            self.client = RedisManager.get_client()
        self.pubsub = self.client.pubsub()
        await self.pubsub.subscribe(self.channel)
        self._listener = asyncio.create_task(self._listen())
        logger.info(f"[Broadcaster] Redis 채널 구독: {self.channel}")

    async def stop(self):
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
        if self.pubsub is not None:
            await self.pubsub.unsubscribe(self.channel)
            await self.pubsub.aclose()
            self.pubsub = None

    async def publish(self, user_ids: Iterable[int], payload: dict):
        envelope = {"user_ids": list(dict.fromkeys(user_ids)), "payload": payload}
        await self.client.publish(self.channel, json.dumps(envelope))

    async def handle_envelope(self, data: str) -> int:
        try:
            envelope = json.loads(data)
            user_ids = [int(uid) for uid in envelope["user_ids"]]
            payload = envelope["payload"]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.error(f"[Broadcaster] 잘못된 envelope 무시: {e}")
            return 0
        return await self.deliver_local(user_ids, payload)

    async def _listen(self):
        async for message in self.pubsub.listen():
            if message.get("type") != "message":
                continue
            await self.handle_envelope(message["data"])

def build_broadcaster(registry: ConnectionRegistry, kind: str = CHAT_BROADCASTER) -> Broadcaster:
    if kind == "redis":
        return RedisBroadcaster(registry)
    if kind != "memory":
        logger.warning(f"[Broadcaster] 알 수 없는 CHAT_BROADCASTER={kind}, memory 사용")
    return LocalBroadcaster(registry)
