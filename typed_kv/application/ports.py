from __future__ import annotations

from typing import Mapping, Optional, Protocol, Union


class StoreClientPort(Protocol):
    """Connected store client consumed by the typed accessor.

    Write methods return ``False`` when the store refused the write.
    """

    def exists(self, key: str) -> bool: ...

    def type(self, key: str) -> Union[str, bytes]: ...

    def delete(self, key: str) -> bool: ...

    def expire(self, key: str, seconds: int) -> bool: ...

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> bool: ...

    def hgetall(self, key: str) -> dict[str, str]: ...

    def hset(self, key: str, mapping: Mapping[str, str]) -> bool: ...

    def llen(self, key: str) -> int: ...

    def lindex(self, key: str, index: int) -> Optional[str]: ...

    def rpush(self, key: str, *values: str) -> bool: ...

    def smembers(self, key: str) -> set[str]: ...

    def sadd(self, key: str, *members: str) -> bool: ...

    def zrange(self, key: str, start: int, end: int) -> list[str]: ...

    def zadd(self, key: str, score: float, member: str) -> bool: ...
