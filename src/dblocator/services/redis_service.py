# src/dblocator/services/redis_service.py

import json
from typing import Any, Optional, Iterable
import redis.asyncio as aioredis
from dblocator.core.config import settings

class RedisService:
    """
    A thin wrapper around the asyncio redis client with the calls the cache layer needs.
    """
    def __init__(self, client: aioredis.Redis = None):
        self.client = client if client else aioredis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True
        )

    async def close(self):
        await self.client.aclose()

    async def set_json(self, key: str, data: Any):
        """
        Serializes ``data`` to JSON and stores it.

        :param key: Redis key.
        :param data: any object json.dumps accepts.
        """
        value = json.dumps(data)
        await self.client.set(key, value)

    async def get_json(self, key: str) -> Optional[Any]:
        """
        Reads a key and deserializes its JSON value.

        :return: the Python object, or None when the key does not exist.
        """
        value = await self.client.get(key)
        if value:
            return json.loads(value)
        return None

    async def delete_key(self, *keys: str) -> int:
        """
        Deletes one or more keys.

        :return: the number of keys removed.
        """
        if not keys:
            return 0
        return await self.client.delete(*keys)

    async def add_to_set(self, key: str, *members: str) -> int:
        if not members:
            return 0
        return await self.client.sadd(key, *members)

    async def get_set(self, key: str) -> set[str]:
        members = await self.client.smembers(key)
        return set(members or ())

    async def remove_from_set(self, key: str, members: Iterable[str]) -> int:
        members = list(members)
        if not members:
            return 0
        return await self.client.srem(key, *members)
