"""In-flight account views handed to instruction handlers."""

from __future__ import annotations

from dataclasses import dataclass, field

from ...domain.constants import U64_MAX
from ...domain.errors import ArithmeticOverflow


@dataclass
class AccountView:
    """Mutable view of one ledger account for the duration of a transaction.

    The runtime builds one view per distinct address and shares it across all
    instructions of a transaction, so every mutation is visible immediately to
    later reads and is committed (or discarded) as a whole.
    """

    address: bytes
    owner: bytes
    lamports: int = 0
    data: bytearray = field(default_factory=bytearray)
    is_signer: bool = False
    is_writable: bool = False

    def owned_by(self, program_id: bytes) -> bool:
        return self.owner == program_id

    def data_is_empty(self) -> bool:
        return len(self.data) == 0

    def zero_data(self) -> None:
        for i in range(len(self.data)):
            self.data[i] = 0


def checked_add(a: int, b: int) -> int:
    result = a + b
    if result > U64_MAX:
        raise ArithmeticOverflow()
    return result


def checked_sub(a: int, b: int) -> int:
    result = a - b
    if result < 0:
        raise ArithmeticOverflow()
    return result


def checked_mul(a: int, b: int) -> int:
    result = a * b
    if result > U64_MAX:
        raise ArithmeticOverflow()
    return result


def move_lamports(source: AccountView, destination: AccountView, amount: int) -> None:
    """Debit `source` and credit `destination` with overflow checks."""
    source.lamports = checked_sub(source.lamports, amount)
    destination.lamports = checked_add(destination.lamports, amount)
