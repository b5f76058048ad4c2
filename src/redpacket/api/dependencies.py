"""Dependencies for the ledger API."""

from __future__ import annotations

from functools import lru_cache

from ..envs.ledger_env import get_settings, Settings
from ..infrastructure.database import get_database_client, DatabaseClient
from ..infrastructure.storage import RedisKeyValueStore
from ..infrastructure.account_repository_impl import AccountRepositoryImpl
from ..application.ledger_service import LedgerService
from ..application.program.context import ProgramContext
from ..application.program.processor import RedPacketProgram
from ..crypto.derivation import Sha256AddressDeriver


@lru_cache()
def get_settings_dependency() -> Settings:
    return get_settings()


@lru_cache()
def get_database_client_dependency() -> DatabaseClient:
    settings = get_settings_dependency()
    return get_database_client(settings)


@lru_cache()
def get_store_dependency() -> RedisKeyValueStore:
    db_client = get_database_client_dependency()
    return RedisKeyValueStore(db_client)


def get_account_repository() -> AccountRepositoryImpl:
    store = get_store_dependency()
    return AccountRepositoryImpl(store)


@lru_cache()
def get_program() -> RedPacketProgram:
    settings = get_settings_dependency()
    ctx = ProgramContext(
        deriver=Sha256AddressDeriver(settings.program_id),
        admin=settings.admin,
    )
    return RedPacketProgram(ctx)


@lru_cache()
def get_ledger_service() -> LedgerService:
    # One instance per process: the account lock registry must be shared.
    return LedgerService(get_account_repository(), get_program())
