from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

import redis

logger = logging.getLogger(__name__)


class RedisStoreClient:
    """Adapts a ``redis.Redis`` client to the store port.

    Replies are returned as ``str``; byte replies from a client created without
    ``decode_responses`` are decoded with ``encoding``. Redis exceptions are not
    translated.
    """

    def __init__(self, client: Union[redis.Redis, redis.StrictRedis], encoding: str = "utf-8") -> None:
        self._client = client
        self._encoding = encoding

    @classmethod
    def from_url(cls, url: str, **options: Any) -> "RedisStoreClient":
        options.setdefault("decode_responses", True)
        logger.debug("Connecting to Redis at %s", url)
        return cls(redis.Redis.from_url(url, **options), encoding=options.get("encoding", "utf-8"))

    @property
    def redis(self) -> Union[redis.Redis, redis.StrictRedis]:
        return self._client

    def _decode(self, value: Any) -> Any:
        if isinstance(value, bytes):
            return value.decode(self._encoding)
        return value

    def exists(self, key: str) -> bool:
        return bool(self._client.exists(key))

    def type(self, key: str) -> str:
        return self._decode(self._client.type(key))

    def delete(self, key: str) -> bool:
        return bool(self._client.delete(key))

    def expire(self, key: str, seconds: int) -> bool:
        return bool(self._client.expire(key, seconds))

    def get(self, key: str) -> Optional[str]:
        return self._decode(self._client.get(key))

    def set(self, key: str, value: str) -> bool:
        return bool(self._client.set(key, value))

    def hgetall(self, key: str) -> dict[str, str]:
        return {self._decode(k): self._decode(v) for k, v in self._client.hgetall(key).items()}

    def hset(self, key: str, mapping: Mapping[str, str]) -> bool:
        if not mapping:
            return False
        # reply counts new fields only, so an overwrite of existing fields is still a success
        self._client.hset(key, mapping=dict(mapping))
        return True

    def llen(self, key: str) -> int:
        return int(self._client.llen(key))

    def lindex(self, key: str, index: int) -> Optional[str]:
        return self._decode(self._client.lindex(key, index))

    def rpush(self, key: str, *values: str) -> bool:
        if not values:
            return False
        return self._client.rpush(key, *values) > 0

    def smembers(self, key: str) -> set[str]:
        return {self._decode(member) for member in self._client.smembers(key)}

    def sadd(self, key: str, *members: str) -> bool:
        if not members:
            return False
        self._client.sadd(key, *members)
        return True

    def zrange(self, key: str, start: int, end: int) -> list[str]:
        return [self._decode(member) for member in self._client.zrange(key, start, end)]

    def zadd(self, key: str, score: float, member: str) -> bool:
        self._client.zadd(key, {member: score})
        return True
