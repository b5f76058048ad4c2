"""Storage abstractions and Redis implementation for repositories."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Mapping, Optional, Sequence

from .database import DatabaseClient


class KeyValueStore(ABC):
    """Abstract key-value store with minimal operations used by repositories."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def mget(self, keys: Sequence[str]) -> list[Optional[str]]:
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> int:
        pass

    @abstractmethod
    async def write_batch(
        self, sets: Mapping[str, str], deletes: Iterable[str] = ()
    ) -> None:
        """Apply all `sets` and `deletes` atomically: either every write lands or none."""
        pass


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed implementation of KeyValueStore."""

    def __init__(self, db_client: DatabaseClient):
        self._db_client = db_client

    async def get(self, key: str) -> Optional[str]:
        async with self._db_client.get_connection() as conn:
            return await conn.get(key)

    async def mget(self, keys: Sequence[str]) -> list[Optional[str]]:
        if not keys:
            return []
        async with self._db_client.get_connection() as conn:
            return await conn.mget(list(keys))

    async def set(self, key: str, value: str) -> None:
        async with self._db_client.get_connection() as conn:
            await conn.set(key, value)

    async def delete(self, key: str) -> int:
        async with self._db_client.get_connection() as conn:
            return await conn.delete(key)

    async def write_batch(
        self, sets: Mapping[str, str], deletes: Iterable[str] = ()
    ) -> None:
        deletes = list(deletes)
        if not sets and not deletes:
            return
        async with self._db_client.get_connection() as conn:
            # MULTI/EXEC: Redis applies the queued commands as one unit
            async with conn.pipeline(transaction=True) as pipe:
                if sets:
                    pipe.mset(dict(sets))
                if deletes:
                    pipe.delete(*deletes)
                await pipe.execute()
