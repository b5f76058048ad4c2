"""Ledger domain repositories."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Optional, Sequence

from .entities import Account


class AccountRepository(ABC):
    """Repository for ledger accounts keyed by their base64 address."""

    @abstractmethod
    async def get(self, address_b64: str) -> Optional[Account]:
        pass

    @abstractmethod
    async def get_many(self, addresses_b64: Sequence[str]) -> list[Optional[Account]]:
        pass

    @abstractmethod
    async def upsert(self, account: Account) -> Account:
        pass

    @abstractmethod
    async def is_processed(self, transaction_id: str) -> bool:
        pass

    @abstractmethod
    async def commit(
        self,
        upserts: Iterable[Account],
        deletes: Iterable[str],
        transaction_id: Optional[str] = None,
    ) -> None:
        """Store `upserts` and remove `deletes` in one batch, marking `transaction_id` done."""
        pass
