"""Instruction payloads as a closed set of typed variants.

Byte 0 of every payload is the opcode; the remaining bytes are the
opcode-specific body. `decode_instruction` turns raw bytes into one of the
variants below (or fails) before any handler logic runs.
"""

from __future__ import annotations

import struct
from enum import IntEnum
from typing import Literal, Optional, Union

from pydantic import BaseModel

from ...domain.constants import MAX_RECIPIENTS, SPLIT_RANDOM, TOKEN_TYPE_SOL, TOKEN_TYPE_SPL
from ...domain.errors import ErrorCode, InvalidInstructionData, RedPacketError


class Opcode(IntEnum):
    CREATE = 0
    CLAIM = 1
    CLOSE = 2
    INIT_TREASURY = 3
    WITHDRAW_FEES = 4


class CreateInstruction(BaseModel):
    kind: Literal["create"] = "create"
    token_type: int
    id: int
    total_amount: int
    num_recipients: int
    split_mode: int
    expires_at: int
    red_packet_bump: int
    vault_bump: int
    amounts: Optional[list[int]] = None

    @property
    def is_sol(self) -> bool:
        return self.token_type == TOKEN_TYPE_SOL


class ClaimInstruction(BaseModel):
    kind: Literal["claim"] = "claim"
    token_type: int

    @property
    def is_sol(self) -> bool:
        return self.token_type == TOKEN_TYPE_SOL


class CloseInstruction(BaseModel):
    kind: Literal["close"] = "close"
    token_type: int

    @property
    def is_sol(self) -> bool:
        return self.token_type == TOKEN_TYPE_SOL


class InitTreasuryInstruction(BaseModel):
    kind: Literal["init_treasury"] = "init_treasury"
    token_type: int
    treasury_bump: int
    vault_bump: int

    @property
    def is_sol(self) -> bool:
        return self.token_type == TOKEN_TYPE_SOL


class WithdrawFeesInstruction(BaseModel):
    kind: Literal["withdraw_fees"] = "withdraw_fees"
    token_type: int
    amount: int = 0

    @property
    def is_sol(self) -> bool:
        return self.token_type == TOKEN_TYPE_SOL


Instruction = Union[
    CreateInstruction,
    ClaimInstruction,
    CloseInstruction,
    InitTreasuryInstruction,
    WithdrawFeesInstruction,
]

# token_type(1) id(8) total(8) n(1) mode(1) expires_at(8) rp_bump(1) vault_bump(1)
_CREATE_HEADER = struct.Struct("<BQQBBqBB")
_WITHDRAW_BODY = struct.Struct("<BQ")


def _token_type(raw: int) -> int:
    if raw not in (TOKEN_TYPE_SPL, TOKEN_TYPE_SOL):
        raise RedPacketError(ErrorCode.INVALID_TOKEN_TYPE)
    return raw


def _decode_create(body: bytes) -> CreateInstruction:
    if len(body) < _CREATE_HEADER.size:
        raise InvalidInstructionData("Create body too short")
    (
        token_type,
        packet_id,
        total_amount,
        num_recipients,
        split_mode,
        expires_at,
        rp_bump,
        vault_bump,
    ) = _CREATE_HEADER.unpack_from(body)
    amounts = None
    # Out-of-range counts are left to the handler's range check.
    if split_mode == SPLIT_RANDOM and 1 <= num_recipients <= MAX_RECIPIENTS:
        tail = body[_CREATE_HEADER.size :]
        if len(tail) < 8 * num_recipients:
            raise InvalidInstructionData("Random split amounts missing")
        amounts = list(struct.unpack_from(f"<{num_recipients}Q", tail))
    return CreateInstruction(
        token_type=_token_type(token_type),
        id=packet_id,
        total_amount=total_amount,
        num_recipients=num_recipients,
        split_mode=split_mode,
        expires_at=expires_at,
        red_packet_bump=rp_bump,
        vault_bump=vault_bump,
        amounts=amounts,
    )


def decode_instruction(data: bytes) -> Instruction:
    """Decode a raw instruction payload into its typed variant."""
    if not data:
        raise InvalidInstructionData("Empty instruction data")
    try:
        opcode = Opcode(data[0])
    except ValueError as e:
        raise InvalidInstructionData(f"Unknown opcode {data[0]}") from e
    body = data[1:]

    if opcode is Opcode.CREATE:
        return _decode_create(body)
    if opcode in (Opcode.CLAIM, Opcode.CLOSE):
        if len(body) < 1:
            raise InvalidInstructionData("Missing token type")
        model = ClaimInstruction if opcode is Opcode.CLAIM else CloseInstruction
        return model(token_type=_token_type(body[0]))
    if opcode is Opcode.INIT_TREASURY:
        if len(body) < 3:
            raise InvalidInstructionData("InitTreasury body too short")
        return InitTreasuryInstruction(
            token_type=_token_type(body[0]),
            treasury_bump=body[1],
            vault_bump=body[2],
        )
    if len(body) < _WITHDRAW_BODY.size:
        raise InvalidInstructionData("WithdrawFees body too short")
    token_type, amount = _WITHDRAW_BODY.unpack_from(body)
    return WithdrawFeesInstruction(token_type=_token_type(token_type), amount=amount)


def encode_instruction(instruction: Instruction) -> bytes:
    """Encode a typed variant back into its wire payload."""
    if isinstance(instruction, CreateInstruction):
        out = bytes([Opcode.CREATE]) + _CREATE_HEADER.pack(
            instruction.token_type,
            instruction.id,
            instruction.total_amount,
            instruction.num_recipients,
            instruction.split_mode,
            instruction.expires_at,
            instruction.red_packet_bump,
            instruction.vault_bump,
        )
        if instruction.amounts:
            out += struct.pack(f"<{len(instruction.amounts)}Q", *instruction.amounts)
        return out
    if isinstance(instruction, ClaimInstruction):
        return bytes([Opcode.CLAIM, instruction.token_type])
    if isinstance(instruction, CloseInstruction):
        return bytes([Opcode.CLOSE, instruction.token_type])
    if isinstance(instruction, InitTreasuryInstruction):
        return bytes(
            [
                Opcode.INIT_TREASURY,
                instruction.token_type,
                instruction.treasury_bump,
                instruction.vault_bump,
            ]
        )
    return bytes([Opcode.WITHDRAW_FEES]) + _WITHDRAW_BODY.pack(
        instruction.token_type, instruction.amount
    )
