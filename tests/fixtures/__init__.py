"""Test fixtures for in-memory implementations."""

from .in_memory_storage import InMemoryKeyValueStore
from .ledger_harness import LedgerHarness

__all__ = [
    "InMemoryKeyValueStore",
    "LedgerHarness",
]
