"""Redis connection holding the ledger's account state."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional, Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class HasDatabaseSettings(Protocol):
    database_url: str


class DatabaseClient:
    """Lazily connected `redis.asyncio` client shared by every store."""

    def __init__(self, settings: HasDatabaseSettings, health_check_interval: int = 30):
        self.url = settings.database_url
        self.health_check_interval = health_check_interval
        self._redis: Optional[redis.Redis] = None

    def connect(self) -> redis.Redis:
        # Expecting URL like: redis://host:port/0
        if self._redis is None:
            self._redis = redis.from_url(
                self.url,
                decode_responses=True,
                health_check_interval=self.health_check_interval,
            )
        return self._redis

    @asynccontextmanager
    async def get_connection(self) -> AsyncGenerator[redis.Redis, None]:
        """Yield the pooled client; the pool outlives the context."""
        yield self.connect()

    async def ping(self) -> bool:
        try:
            return bool(await self.connect().ping())
        except RedisError:
            logger.warning("Redis at %s is unreachable", self.url)
            return False

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


_db_client: Optional[DatabaseClient] = None


def get_database_client(settings: HasDatabaseSettings) -> DatabaseClient:
    """Get or create the process-wide database client."""
    global _db_client
    if _db_client is None:
        _db_client = DatabaseClient(settings)
    return _db_client
