"""Create: escrow a deposit into a new red packet and pay the treasury fee."""

from __future__ import annotations

import logging
from typing import Sequence

from ...domain.constants import (
    FEE_DENOMINATOR,
    FEE_RATE_BPS,
    MAX_RECIPIENTS,
    NATIVE_SOL_MINT,
    SEED_PREFIX,
    SPLIT_EVEN,
    SPLIT_RANDOM,
    TOKEN_ACCOUNT_SIZE,
    TREASURY_SEED,
    TREASURY_VAULT_SEED,
    VAULT_SEED,
    redpacket_size,
    rent_exempt_minimum,
)
from ...domain.entities import EMPTY_ADDRESS, RedPacket
from ...domain.errors import (
    ErrorCode,
    MissingRequiredSignature,
    RedPacketError,
)
from . import system_program, token_program
from .accounts import AccountView, checked_add, checked_mul
from .context import ProgramContext
from .instructions import CreateInstruction
from .state import load_treasury, store_red_packet, store_treasury

logger = logging.getLogger(__name__)


def compute_even_split(total_amount: int, num_recipients: int) -> list[int]:
    """Equal slots with the division remainder added to the last slot."""
    per_person = total_amount // num_recipients
    remainder = total_amount % num_recipients
    amounts = [per_person] * num_recipients
    amounts[-1] = checked_add(per_person, remainder)
    return amounts


def validate_random_split(amounts: Sequence[int], total_amount: int) -> list[int]:
    """Check caller-supplied slots: every slot nonzero, sum exactly `total_amount`."""
    total = 0
    for amount in amounts:
        if amount == 0:
            raise RedPacketError(ErrorCode.INVALID_AMOUNT)
        total = checked_add(total, amount)
    if total != total_amount:
        raise RedPacketError(ErrorCode.AMOUNT_MISMATCH)
    return list(amounts)


def compute_fee_checked(total_amount: int) -> int:
    return max(1, checked_mul(total_amount, FEE_RATE_BPS) // FEE_DENOMINATOR)


def process_create(
    ctx: ProgramContext, accounts: Sequence[AccountView], ix: CreateInstruction
) -> None:
    min_accounts = 5 if ix.is_sol else 9
    if len(accounts) < min_accounts:
        raise RedPacketError(ErrorCode.NOT_ENOUGH_ACCOUNTS)

    if ix.is_sol:
        creator, red_packet, vault, treasury, system_program_account = accounts[:5]
        creator_token_account = treasury_vault = mint = None
    else:
        (
            creator,
            creator_token_account,
            red_packet,
            vault,
            treasury,
            treasury_vault,
            mint,
            token_program_account,
            system_program_account,
        ) = accounts[:9]

    if not creator.is_signer:
        raise MissingRequiredSignature()

    if not ix.is_sol and token_program_account.address != ctx.token_program_id:
        raise RedPacketError(ErrorCode.INVALID_TOKEN_PROGRAM)
    if system_program_account.address != ctx.system_program_id:
        raise RedPacketError(ErrorCode.INVALID_SYSTEM_PROGRAM)

    if ix.total_amount == 0:
        raise RedPacketError(ErrorCode.INVALID_AMOUNT)
    if ix.num_recipients == 0 or ix.num_recipients > MAX_RECIPIENTS:
        raise RedPacketError(ErrorCode.INVALID_RECIPIENT_COUNT)
    if ix.split_mode not in (SPLIT_EVEN, SPLIT_RANDOM):
        raise RedPacketError(ErrorCode.INVALID_SPLIT_MODE)
    if ix.expires_at <= ctx.now():
        raise RedPacketError(ErrorCode.EXPIRED)

    id_bytes = ix.id.to_bytes(8, "little")
    ctx.expect_address(
        red_packet, SEED_PREFIX, creator.address, id_bytes, ix.red_packet_bump
    )
    ctx.expect_address(vault, VAULT_SEED, creator.address, id_bytes, ix.vault_bump)

    treasury_state = load_treasury(treasury, ctx.program_id)
    asset = NATIVE_SOL_MINT if ix.is_sol else mint.address
    if treasury_state.mint != asset:
        raise RedPacketError(ErrorCode.INVALID_MINT)
    ctx.expect_address(treasury, TREASURY_SEED, asset, b"", treasury_state.bump)
    if not ix.is_sol:
        ctx.expect_address(
            treasury_vault, TREASURY_VAULT_SEED, asset, b"", treasury_state.vault_bump
        )

    if ix.split_mode == SPLIT_EVEN:
        amounts = compute_even_split(ix.total_amount, ix.num_recipients)
    else:
        amounts = validate_random_split(ix.amounts or [], ix.total_amount)

    fee = compute_fee_checked(ix.total_amount)

    size = redpacket_size(ix.num_recipients)
    system_program.create_account(
        ctx,
        creator,
        red_packet,
        rent_exempt_minimum(size),
        size,
        ctx.program_id,
        signer=ctx.derived_signer(
            SEED_PREFIX, creator.address, id_bytes, ix.red_packet_bump
        ),
    )
    vault_signer = ctx.derived_signer(
        VAULT_SEED, creator.address, id_bytes, ix.vault_bump
    )

    if ix.is_sol:
        # The vault is a zero-data program account holding rent floor + deposit.
        system_program.create_account(
            ctx,
            creator,
            vault,
            checked_add(rent_exempt_minimum(0), ix.total_amount),
            0,
            ctx.program_id,
            signer=vault_signer,
        )
        system_program.transfer(ctx, creator, treasury, fee)
        treasury_state.fees_collected = checked_add(treasury_state.fees_collected, fee)
        store_treasury(treasury, treasury_state)
    else:
        system_program.create_account(
            ctx,
            creator,
            vault,
            rent_exempt_minimum(TOKEN_ACCOUNT_SIZE),
            TOKEN_ACCOUNT_SIZE,
            ctx.token_program_id,
            signer=vault_signer,
        )
        token_program.initialize_account(ctx, vault, mint, red_packet.address)
        token_program.transfer(
            ctx, creator_token_account, vault, creator, ix.total_amount
        )
        token_program.transfer(ctx, creator_token_account, treasury_vault, creator, fee)

    store_red_packet(
        red_packet,
        RedPacket(
            creator=creator.address,
            id=ix.id,
            total_amount=ix.total_amount,
            remaining_amount=ix.total_amount,
            num_recipients=ix.num_recipients,
            num_claimed=0,
            split_mode=ix.split_mode,
            bump=ix.red_packet_bump,
            vault_bump=ix.vault_bump,
            token_type=ix.token_type,
            expires_at=ix.expires_at,
            amounts=amounts,
            claimers=[EMPTY_ADDRESS] * ix.num_recipients,
        ),
    )
    logger.info(
        "Red packet created: id=%s total=%s recipients=%s fee=%s",
        ix.id,
        ix.total_amount,
        ix.num_recipients,
        fee,
    )
