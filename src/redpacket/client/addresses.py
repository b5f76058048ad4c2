"""Derived address finders for every account the program owns or signs for."""

from __future__ import annotations

from typing import Optional

from ..crypto.derivation import AddressDeriver
from ..domain.constants import (
    NATIVE_SOL_MINT,
    SEED_PREFIX,
    TREASURY_SEED,
    TREASURY_VAULT_SEED,
    VAULT_SEED,
)


class ProgramAddresses:
    """Find canonical (address, bump) pairs for one deployed program."""

    def __init__(self, deriver: AddressDeriver):
        self.deriver = deriver

    @property
    def program_id(self) -> bytes:
        return self.deriver.program_id

    def red_packet(self, creator: bytes, packet_id: int) -> tuple[bytes, int]:
        return self.deriver.derive(SEED_PREFIX, creator, packet_id.to_bytes(8, "little"))

    def vault(self, creator: bytes, packet_id: int) -> tuple[bytes, int]:
        return self.deriver.derive(VAULT_SEED, creator, packet_id.to_bytes(8, "little"))

    def treasury(self, mint: Optional[bytes] = None) -> tuple[bytes, int]:
        """Treasury for `mint`, or the native-coin treasury when omitted."""
        return self.deriver.derive(TREASURY_SEED, mint or NATIVE_SOL_MINT)

    def treasury_vault(self, mint: bytes) -> tuple[bytes, int]:
        return self.deriver.derive(TREASURY_VAULT_SEED, mint)
