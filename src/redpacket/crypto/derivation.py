"""Deterministic derived addresses ("program derived addresses").

Derivation follows the Solana scheme and is delegated to `solders`: SHA-256
over the seeds, a one-byte bump, the program id and a fixed marker, with
candidates that lie on the Ed25519 curve rejected. No private key can ever
sign for a derived address, so only the program that owns the derivation can
authorize on its behalf.

`derive(tag, owner, nonce)` searches bumps from 255 downwards and returns the
first valid address together with its bump. Handlers never search; they
recompute `create_address` from stored bumps and compare.
"""

from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod
from typing import Final, Sequence

from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from ..domain.constants import ADDRESS_LENGTH

PDA_MARKER: Final[bytes] = b"ProgramDerivedAddress"
MAX_SEED_LENGTH: Final[int] = 32
MAX_SEEDS: Final[int] = 16


class InvalidSeedsError(ValueError):
    """Raised when seeds cannot produce a valid derived address."""


def is_on_curve(candidate: bytes) -> bool:
    """Return True if `candidate` decompresses to a point on the Ed25519 curve."""
    if len(candidate) != ADDRESS_LENGTH:
        return False
    return bool(Pubkey.from_bytes(candidate).is_on_curve())


class AddressDeriver(ABC):
    """Derivation bound to a single program identity."""

    def __init__(self, program_id: bytes):
        if len(program_id) != ADDRESS_LENGTH:
            raise ValueError("program_id must be 32 bytes")
        self.program_id = program_id

    @abstractmethod
    def create_program_address(self, seeds: Sequence[bytes]) -> bytes:
        """Compute the address for `seeds` (bump included). Raises InvalidSeedsError."""

    def find_program_address(self, seeds: Sequence[bytes]) -> tuple[bytes, int]:
        for bump in range(255, -1, -1):
            try:
                return self.create_program_address([*seeds, bytes([bump])]), bump
            except InvalidSeedsError:
                continue
        raise InvalidSeedsError("Unable to find a viable bump for seeds")

    def derive(self, tag: bytes, owner: bytes, nonce: bytes = b"") -> tuple[bytes, int]:
        return self.find_program_address(_seeds(tag, owner, nonce))

    def create_address(
        self, tag: bytes, owner: bytes, nonce: bytes, bump: int
    ) -> bytes:
        return self.create_program_address([*_seeds(tag, owner, nonce), bytes([bump])])


class Sha256AddressDeriver(AddressDeriver):
    """Production derivation backed by `solders.pubkey.Pubkey`."""

    def __init__(self, program_id: bytes):
        super().__init__(program_id)
        self._program = Pubkey.from_bytes(program_id)

    def create_program_address(self, seeds: Sequence[bytes]) -> bytes:
        _check_seeds(seeds, MAX_SEEDS)
        # solders panics instead of raising when the result is on the curve,
        # so the candidate is screened before handing the seeds over.
        hasher = hashlib.sha256()
        for seed in seeds:
            hasher.update(seed)
        hasher.update(self.program_id)
        hasher.update(PDA_MARKER)
        if is_on_curve(hasher.digest()):
            raise InvalidSeedsError("Derived address lies on the Ed25519 curve")
        try:
            address = Pubkey.create_program_address(list(seeds), self._program)
        except ValueError as e:
            raise InvalidSeedsError(str(e)) from e
        return bytes(address)

    def find_program_address(self, seeds: Sequence[bytes]) -> tuple[bytes, int]:
        # The bump takes up one seed slot.
        _check_seeds(seeds, MAX_SEEDS - 1)
        address, bump = Pubkey.find_program_address(list(seeds), self._program)
        return bytes(address), bump


class HashOnlyAddressDeriver(AddressDeriver):
    """Deterministic derivation without the curve test, for tests and tooling.

    Every bump is valid, so `derive` always returns bump 255.
    """

    def create_program_address(self, seeds: Sequence[bytes]) -> bytes:
        hasher = hashlib.sha256()
        for seed in seeds:
            hasher.update(len(seed).to_bytes(1, "little"))
            hasher.update(seed)
        hasher.update(self.program_id)
        return hasher.digest()


def _check_seeds(seeds: Sequence[bytes], max_seeds: int) -> None:
    if len(seeds) > max_seeds:
        raise InvalidSeedsError("Too many seeds")
    if any(len(seed) > MAX_SEED_LENGTH for seed in seeds):
        raise InvalidSeedsError("Seed exceeds maximum length")


def _seeds(tag: bytes, owner: bytes, nonce: bytes) -> list[bytes]:
    seeds = [tag, owner]
    if nonce:
        seeds.append(nonce)
    return seeds
