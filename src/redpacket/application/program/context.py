"""Execution context shared by the dispatcher and every handler."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Protocol

from ...crypto.derivation import AddressDeriver, InvalidSeedsError
from ...domain.constants import SYSTEM_PROGRAM_ID, TOKEN_PROGRAM_ID
from ...domain.errors import ErrorCode, RedPacketError
from .accounts import AccountView


class Clock(Protocol):
    def unix_timestamp(self) -> int: ...


class SystemClock:
    """Wall clock in whole seconds since the epoch."""

    def unix_timestamp(self) -> int:
        return int(time.time())


class FixedClock:
    """Manually advanced clock for tests and deterministic replays."""

    def __init__(self, now: int):
        self.now = now

    def unix_timestamp(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@dataclass(frozen=True)
class DerivedSigner:
    """Proof that the program itself authorizes for a derived address."""

    address: bytes


@dataclass
class ProgramContext:
    """Identities and services an instruction may consult.

    Transaction signers are flagged on their account views; a derived address
    can only authorize through a `DerivedSigner` minted by `derived_signer`,
    which recomputes the address with this program's own deriver.
    """

    deriver: AddressDeriver
    admin: bytes
    clock: Clock = field(default_factory=SystemClock)
    token_program_id: bytes = TOKEN_PROGRAM_ID
    system_program_id: bytes = SYSTEM_PROGRAM_ID

    @property
    def program_id(self) -> bytes:
        return self.deriver.program_id

    def now(self) -> int:
        return self.clock.unix_timestamp()

    def expect_address(
        self,
        account: AccountView,
        tag: bytes,
        owner: bytes,
        nonce: bytes,
        bump: int,
    ) -> bytes:
        """Re-derive an address from stored seeds and require `account` to match."""
        try:
            expected = self.deriver.create_address(tag, owner, nonce, bump)
        except InvalidSeedsError as e:
            raise RedPacketError(ErrorCode.INVALID_PDA) from e
        if account.address != expected:
            raise RedPacketError(ErrorCode.INVALID_PDA)
        return expected

    def derived_signer(
        self, tag: bytes, owner: bytes, nonce: bytes, bump: int
    ) -> DerivedSigner:
        try:
            return DerivedSigner(self.deriver.create_address(tag, owner, nonce, bump))
        except InvalidSeedsError as e:
            raise RedPacketError(ErrorCode.INVALID_PDA) from e
