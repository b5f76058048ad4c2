"""Account repository implementation."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ..domain.entities import Account
from ..domain.repositories import AccountRepository
from .storage import KeyValueStore


def _account_key(address_b64: str) -> str:
    return f"account:{address_b64}"


def _transaction_key(transaction_id: str) -> str:
    return f"transaction:{transaction_id}"


class AccountRepositoryImpl(AccountRepository):
    """Account repository backed by KeyValueStore.

    Key layout:
      - account:{address_b64} -> Account JSON
      - transaction:{transaction_id} -> "1" once committed
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def get(self, address_b64: str) -> Optional[Account]:
        data = await self.store.get(_account_key(address_b64))
        if not data:
            return None
        return Account.model_validate_json(data)

    async def get_many(self, addresses_b64: Sequence[str]) -> list[Optional[Account]]:
        raw = await self.store.mget([_account_key(a) for a in addresses_b64])
        return [Account.model_validate_json(r) if r else None for r in raw]

    async def upsert(self, account: Account) -> Account:
        account_key = _account_key(account.address_b64)
        await self.store.set(account_key, account.model_dump_json())
        stored_raw = await self.store.get(account_key)
        return (
            account if stored_raw is None else Account.model_validate_json(stored_raw)
        )

    async def is_processed(self, transaction_id: str) -> bool:
        return await self.store.get(_transaction_key(transaction_id)) is not None

    async def commit(
        self,
        upserts: Iterable[Account],
        deletes: Iterable[str],
        transaction_id: Optional[str] = None,
    ) -> None:
        sets = {_account_key(a.address_b64): a.model_dump_json() for a in upserts}
        if transaction_id is not None:
            sets[_transaction_key(transaction_id)] = "1"
        await self.store.write_batch(sets, [_account_key(d) for d in deletes])
