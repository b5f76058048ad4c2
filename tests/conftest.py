"""Shared pytest fixtures for ledger and program tests."""

from __future__ import annotations

import os
from typing import AsyncGenerator

import pytest

from redpacket.crypto.derivation import HashOnlyAddressDeriver, Sha256AddressDeriver
from tests.fixtures import LedgerHarness


@pytest.fixture
def program_id() -> bytes:
    """Random 32-byte program identity."""
    return os.urandom(32)


@pytest.fixture
def deriver(program_id: bytes) -> Sha256AddressDeriver:
    return Sha256AddressDeriver(program_id)


@pytest.fixture
def hash_only_deriver(program_id: bytes) -> HashOnlyAddressDeriver:
    return HashOnlyAddressDeriver(program_id)


@pytest.fixture
async def ledger() -> AsyncGenerator[LedgerHarness, None]:
    """In-memory ledger hosting the program, with a fixed clock."""
    harness = LedgerHarness()
    yield harness
    harness.store.clear()


@pytest.fixture
async def sol_ledger(ledger: LedgerHarness) -> LedgerHarness:
    """Ledger whose native-coin treasury is already initialized."""
    payer = await ledger.funded()
    await ledger.init_treasury(payer)
    return ledger
