from typing import Optional

import redis.asyncio as redis

from sellgadgetz.core.config import REDIS_URL

class RedisManager:
    """
    Redis 연결 풀 관리. CHAT_BROADCASTER=redis 일 때만 실제로 풀이 만들어집니다.
    """
    _pool: Optional[redis.ConnectionPool] = None

    @classmethod
    def get_pool(cls) -> redis.ConnectionPool:
        if cls._pool is None:
            cls._pool = redis.ConnectionPool.from_url(REDIS_URL, decode_responses=True)
        return cls._pool

    @classmethod
    def get_client(cls) -> redis.Redis:
        """공용 풀을 쓰는 async Redis 클라이언트 (pub/sub 구독용 포함)"""
        return redis.Redis(connection_pool=cls.get_pool())

    @classmethod
    async def close(cls):
        if cls._pool is not None:
            await cls._pool.disconnect()
            cls._pool = None
