"""Program entrypoint: decode the payload once, then route to its handler."""

from __future__ import annotations

from typing import Callable, Sequence

from .accounts import AccountView
from .claim import process_claim
from .close import process_close
from .context import ProgramContext
from .create import process_create
from .init_treasury import process_init_treasury
from .instructions import (
    ClaimInstruction,
    CloseInstruction,
    CreateInstruction,
    InitTreasuryInstruction,
    Instruction,
    WithdrawFeesInstruction,
    decode_instruction,
)
from .withdraw_fees import process_withdraw_fees

Handler = Callable[[ProgramContext, Sequence[AccountView], Instruction], None]


class RedPacketProgram:
    """The red packet escrow program as seen by the ledger runtime."""

    handlers: dict[type, Handler] = {
        CreateInstruction: process_create,
        ClaimInstruction: process_claim,
        CloseInstruction: process_close,
        InitTreasuryInstruction: process_init_treasury,
        WithdrawFeesInstruction: process_withdraw_fees,
    }

    def __init__(self, ctx: ProgramContext):
        self.ctx = ctx

    @property
    def program_id(self) -> bytes:
        return self.ctx.program_id

    def process_instruction(
        self, accounts: Sequence[AccountView], data: bytes
    ) -> Instruction:
        """Execute one instruction against already-loaded account views.

        Raises a `ProgramError` on any failed check. Mutations made before the
        failure stay on the views; discarding them is the caller's job.
        """
        instruction = decode_instruction(data)
        self.handlers[type(instruction)](self.ctx, accounts, instruction)
        return instruction
