"""Instruction and transaction builders for the red packet program."""

from __future__ import annotations

import base64
import os
from typing import Optional, Sequence

from ..application.dtos import (
    AccountMetaDTO,
    InstructionDTO,
    SignatureDTO,
    TransactionDTO,
    TransactionMessageDTO,
)
from ..application.program.instructions import (
    ClaimInstruction,
    CloseInstruction,
    CreateInstruction,
    InitTreasuryInstruction,
    Instruction,
    WithdrawFeesInstruction,
    encode_instruction,
)
from ..application.shared.serialization import payload_to_bytes
from ..crypto.keys import Keypair, address_to_b64
from ..domain.constants import (
    SPLIT_EVEN,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    TOKEN_TYPE_SOL,
    TOKEN_TYPE_SPL,
)
from .addresses import ProgramAddresses


def _meta(address: bytes, signer: bool = False, writable: bool = False) -> AccountMetaDTO:
    return AccountMetaDTO(
        address_b64=address_to_b64(address), is_signer=signer, is_writable=writable
    )


def _instruction(
    program_id: bytes, accounts: list[AccountMetaDTO], ix: Instruction
) -> InstructionDTO:
    return InstructionDTO(
        program_id_b64=address_to_b64(program_id),
        accounts=accounts,
        data_b64=base64.b64encode(encode_instruction(ix)).decode("utf-8"),
    )


def _require(value: Optional[bytes], name: str) -> bytes:
    if value is None:
        raise ValueError(f"{name} is required for fungible-token red packets")
    return value


def build_create_instruction(
    addresses: ProgramAddresses,
    creator: bytes,
    packet_id: int,
    total_amount: int,
    num_recipients: int,
    expires_at: int,
    split_mode: int = SPLIT_EVEN,
    amounts: Optional[Sequence[int]] = None,
    mint: Optional[bytes] = None,
    creator_token_account: Optional[bytes] = None,
) -> InstructionDTO:
    """Build a Create instruction; native coin unless `mint` is given.

    Args:
        addresses: Finder bound to the target program.
        creator: Funding identity; must sign the transaction.
        packet_id: Creator-chosen identifier, unique per creator.
        total_amount: Deposit in base units, excluding the fee.
        num_recipients: Number of claim slots (1..20).
        expires_at: Unix timestamp after which claims stop.
        split_mode: `SPLIT_EVEN` or `SPLIT_RANDOM`.
        amounts: Slot amounts, required for random splits.
        mint: Fungible-token mint; switches to the token flavour.
        creator_token_account: Creator's token account of `mint`.

    Returns:
        The instruction, with canonical bumps for every derived account.
    """
    red_packet, rp_bump = addresses.red_packet(creator, packet_id)
    vault, vault_bump = addresses.vault(creator, packet_id)
    treasury, _ = addresses.treasury(mint)
    ix = CreateInstruction(
        token_type=TOKEN_TYPE_SOL if mint is None else TOKEN_TYPE_SPL,
        id=packet_id,
        total_amount=total_amount,
        num_recipients=num_recipients,
        split_mode=split_mode,
        expires_at=expires_at,
        red_packet_bump=rp_bump,
        vault_bump=vault_bump,
        amounts=list(amounts) if amounts is not None else None,
    )
    if mint is None:
        accounts = [
            _meta(creator, signer=True, writable=True),
            _meta(red_packet, writable=True),
            _meta(vault, writable=True),
            _meta(treasury, writable=True),
            _meta(SYSTEM_PROGRAM_ID),
        ]
    else:
        treasury_vault, _ = addresses.treasury_vault(mint)
        accounts = [
            _meta(creator, signer=True, writable=True),
            _meta(_require(creator_token_account, "creator_token_account"), writable=True),
            _meta(red_packet, writable=True),
            _meta(vault, writable=True),
            _meta(treasury),
            _meta(treasury_vault, writable=True),
            _meta(mint),
            _meta(TOKEN_PROGRAM_ID),
            _meta(SYSTEM_PROGRAM_ID),
        ]
    return _instruction(addresses.program_id, accounts, ix)


def _packet_accounts(
    addresses: ProgramAddresses,
    actor: bytes,
    creator: bytes,
    packet_id: int,
    actor_token_account: Optional[bytes],
    fungible: bool,
) -> list[AccountMetaDTO]:
    red_packet, _ = addresses.red_packet(creator, packet_id)
    vault, _ = addresses.vault(creator, packet_id)
    if not fungible:
        return [
            _meta(actor, signer=True, writable=True),
            _meta(red_packet, writable=True),
            _meta(vault, writable=True),
        ]
    return [
        _meta(actor, signer=True, writable=True),
        _meta(_require(actor_token_account, "token account"), writable=True),
        _meta(red_packet, writable=True),
        _meta(vault, writable=True),
        _meta(TOKEN_PROGRAM_ID),
    ]


def build_claim_instruction(
    addresses: ProgramAddresses,
    claimer: bytes,
    creator: bytes,
    packet_id: int,
    fungible: bool = False,
    claimer_token_account: Optional[bytes] = None,
) -> InstructionDTO:
    token_type = TOKEN_TYPE_SPL if fungible else TOKEN_TYPE_SOL
    accounts = _packet_accounts(
        addresses, claimer, creator, packet_id, claimer_token_account, fungible
    )
    return _instruction(
        addresses.program_id, accounts, ClaimInstruction(token_type=token_type)
    )


def build_close_instruction(
    addresses: ProgramAddresses,
    creator: bytes,
    packet_id: int,
    fungible: bool = False,
    creator_token_account: Optional[bytes] = None,
) -> InstructionDTO:
    token_type = TOKEN_TYPE_SPL if fungible else TOKEN_TYPE_SOL
    accounts = _packet_accounts(
        addresses, creator, creator, packet_id, creator_token_account, fungible
    )
    return _instruction(
        addresses.program_id, accounts, CloseInstruction(token_type=token_type)
    )


def build_init_treasury_instruction(
    addresses: ProgramAddresses, payer: bytes, mint: Optional[bytes] = None
) -> InstructionDTO:
    treasury, treasury_bump = addresses.treasury(mint)
    if mint is None:
        ix = InitTreasuryInstruction(
            token_type=TOKEN_TYPE_SOL, treasury_bump=treasury_bump, vault_bump=0
        )
        accounts = [
            _meta(payer, signer=True, writable=True),
            _meta(treasury, writable=True),
            _meta(SYSTEM_PROGRAM_ID),
        ]
    else:
        treasury_vault, vault_bump = addresses.treasury_vault(mint)
        ix = InitTreasuryInstruction(
            token_type=TOKEN_TYPE_SPL,
            treasury_bump=treasury_bump,
            vault_bump=vault_bump,
        )
        accounts = [
            _meta(payer, signer=True, writable=True),
            _meta(treasury, writable=True),
            _meta(treasury_vault, writable=True),
            _meta(mint),
            _meta(TOKEN_PROGRAM_ID),
            _meta(SYSTEM_PROGRAM_ID),
        ]
    return _instruction(addresses.program_id, accounts, ix)


def build_withdraw_fees_instruction(
    addresses: ProgramAddresses,
    admin: bytes,
    amount: int = 0,
    mint: Optional[bytes] = None,
    admin_token_account: Optional[bytes] = None,
) -> InstructionDTO:
    """Withdraw `amount` of collected fees (0 withdraws everything available)."""
    treasury, _ = addresses.treasury(mint)
    if mint is None:
        ix = WithdrawFeesInstruction(token_type=TOKEN_TYPE_SOL, amount=amount)
        accounts = [
            _meta(admin, signer=True, writable=True),
            _meta(treasury, writable=True),
        ]
    else:
        treasury_vault, _ = addresses.treasury_vault(mint)
        ix = WithdrawFeesInstruction(token_type=TOKEN_TYPE_SPL, amount=amount)
        accounts = [
            _meta(admin, signer=True, writable=True),
            _meta(_require(admin_token_account, "admin_token_account"), writable=True),
            _meta(treasury),
            _meta(treasury_vault, writable=True),
            _meta(TOKEN_PROGRAM_ID),
        ]
    return _instruction(addresses.program_id, accounts, ix)


def sign_transaction(
    instructions: Sequence[InstructionDTO],
    signers: Sequence[Keypair],
    nonce: Optional[str] = None,
) -> TransactionDTO:
    """Wrap instructions in a message and sign it with every keypair in `signers`.

    Without an explicit `nonce` a random one is drawn, so repeated calls
    yield distinct transactions.
    """
    if nonce is None:
        nonce = os.urandom(8).hex()
    message = TransactionMessageDTO(instructions=list(instructions), nonce=nonce)
    message_bytes = payload_to_bytes(message)
    return TransactionDTO(
        message=message,
        signatures=[
            SignatureDTO(
                address_b64=signer.address_b64,
                signature_b64=signer.sign(message_bytes),
            )
            for signer in signers
        ],
    )
