"""Per-address locks giving each transaction exclusive access to its accounts."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable


class AccountLockRegistry:
    """Lazily created `asyncio.Lock` per account address.

    `hold` acquires the locks of every requested address in sorted order, so
    two transactions touching overlapping account sets can never deadlock,
    and transactions with disjoint account sets never wait on each other.

    A lock lives only while some holder or waiter references its address;
    the last one out drops it from the registry.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def _checkout(self, address_b64: str) -> asyncio.Lock:
        lock = self._locks.get(address_b64)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[address_b64] = lock
        self._users[address_b64] = self._users.get(address_b64, 0) + 1
        return lock

    def _checkin(self, address_b64: str) -> None:
        remaining = self._users[address_b64] - 1
        if remaining:
            self._users[address_b64] = remaining
        else:
            del self._users[address_b64]
            del self._locks[address_b64]

    def is_locked(self, address_b64: str) -> bool:
        lock = self._locks.get(address_b64)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, addresses_b64: Iterable[str]) -> AsyncIterator[None]:
        checked_out: list[str] = []
        acquired: list[asyncio.Lock] = []
        try:
            for address in sorted(set(addresses_b64)):
                lock = self._checkout(address)
                checked_out.append(address)
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for address in checked_out:
                self._checkin(address)
