"""Domain-specific exceptions.

Every failure raised while an instruction executes is a `ProgramError`. The
runtime catches it, discards all of the instruction's effects and reports the
error name together with its numeric code (custom program errors only).
"""

from __future__ import annotations

from enum import IntEnum
from typing import Optional


class ErrorCode(IntEnum):
    """Stable numeric codes surfaced to callers for program-level failures."""

    INVALID_AMOUNT = 0
    INVALID_RECIPIENT_COUNT = 1
    INVALID_SPLIT_MODE = 2
    ALREADY_CLAIMED = 3
    RED_PACKET_FULL = 4
    EXPIRED = 5
    NOT_EXPIRED_OR_FULL = 6
    UNAUTHORIZED = 7
    INVALID_PDA = 8
    INVALID_ACCOUNT_OWNER = 9
    INVALID_DISCRIMINATOR = 10
    AMOUNT_MISMATCH = 11
    NOT_ENOUGH_ACCOUNTS = 12
    UNAUTHORIZED_ADMIN = 13
    TREASURY_NOT_INITIALIZED = 14
    INSUFFICIENT_TREASURY_BALANCE = 15
    TREASURY_ALREADY_INITIALIZED = 16
    INVALID_MINT = 17
    INVALID_TOKEN_ACCOUNT = 18
    INVALID_TOKEN_PROGRAM = 19
    INVALID_SYSTEM_PROGRAM = 20
    INVALID_TOKEN_TYPE = 21

    @property
    def label(self) -> str:
        """CamelCase name, e.g. ``AlreadyClaimed``."""
        return "".join(part.capitalize() for part in self.name.split("_")).replace(
            "Pda", "PDA"
        )


class ProgramError(Exception):
    """Terminal failure of an instruction."""

    name: str = "ProgramError"
    code: Optional[int] = None

    def __init__(self, message: str | None = None):
        super().__init__(message or self.name)


class RedPacketError(ProgramError):
    """Custom program error carrying one of the `ErrorCode` values."""

    def __init__(self, error: ErrorCode, message: str | None = None):
        self.error = error
        self.name = error.label
        self.code = int(error)
        super().__init__(message or error.label)


class MissingRequiredSignature(ProgramError):
    name = "MissingRequiredSignature"


class InvalidInstructionData(ProgramError):
    name = "InvalidInstructionData"


class InvalidAccountData(ProgramError):
    name = "InvalidAccountData"


class ArithmeticOverflow(ProgramError):
    name = "ArithmeticOverflow"


class InsufficientFunds(ProgramError):
    name = "InsufficientFunds"


class AccountAlreadyInUse(ProgramError):
    name = "AccountAlreadyInUse"


class TokenError(ProgramError):
    """Raised by the token program (mint mismatch, bad owner, low balance...)."""

    name = "TokenError"


class RuntimeViolation(ProgramError):
    """Raised by the ledger runtime when an instruction breaks a platform rule."""

    name = "RuntimeViolation"


class UnbalancedInstruction(RuntimeViolation):
    name = "UnbalancedInstruction"


class ReadonlyAccountModified(RuntimeViolation):
    name = "ReadonlyAccountModified"


class SignatureVerificationFailed(RuntimeViolation):
    name = "SignatureVerificationFailed"


class UnsupportedProgram(RuntimeViolation):
    name = "UnsupportedProgram"


class AlreadyProcessed(RuntimeViolation):
    name = "AlreadyProcessed"


class TransactionFailed(Exception):
    """A transaction was rejected; none of its effects were committed."""

    def __init__(self, error: ProgramError, instruction_index: Optional[int] = None):
        self.error = error
        self.instruction_index = instruction_index
        super().__init__(str(error))

    @property
    def name(self) -> str:
        return self.error.name

    @property
    def code(self) -> Optional[int]:
        return self.error.code
