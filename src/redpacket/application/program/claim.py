"""Claim: pay the next pre-computed slot to a first-time claimer."""

from __future__ import annotations

import logging
from typing import Sequence

from ...domain.constants import SEED_PREFIX, VAULT_SEED
from ...domain.entities import RedPacket
from ...domain.errors import ErrorCode, MissingRequiredSignature, RedPacketError
from . import token_program
from .accounts import AccountView, checked_add, checked_sub
from .context import ProgramContext
from .instructions import ClaimInstruction
from .state import load_red_packet, store_red_packet

logger = logging.getLogger(__name__)


def load_and_verify_red_packet(
    ctx: ProgramContext,
    red_packet: AccountView,
    vault: AccountView,
    token_type: int,
) -> RedPacket:
    """Decode the record and re-derive both its own and its vault's address."""
    state = load_red_packet(red_packet, ctx.program_id)
    if state.token_type != token_type:
        raise RedPacketError(ErrorCode.INVALID_TOKEN_TYPE)
    id_bytes = state.id.to_bytes(8, "little")
    ctx.expect_address(red_packet, SEED_PREFIX, state.creator, id_bytes, state.bump)
    ctx.expect_address(vault, VAULT_SEED, state.creator, id_bytes, state.vault_bump)
    return state


def process_claim(
    ctx: ProgramContext, accounts: Sequence[AccountView], ix: ClaimInstruction
) -> None:
    min_accounts = 3 if ix.is_sol else 5
    if len(accounts) < min_accounts:
        raise RedPacketError(ErrorCode.NOT_ENOUGH_ACCOUNTS)

    if ix.is_sol:
        claimer, red_packet, vault = accounts[:3]
        claimer_token_account = None
    else:
        claimer, claimer_token_account, red_packet, vault, token_program_account = (
            accounts[:5]
        )
        if token_program_account.address != ctx.token_program_id:
            raise RedPacketError(ErrorCode.INVALID_TOKEN_PROGRAM)

    if not claimer.is_signer:
        raise MissingRequiredSignature()

    state = load_and_verify_red_packet(ctx, red_packet, vault, ix.token_type)

    if ctx.now() >= state.expires_at:
        raise RedPacketError(ErrorCode.EXPIRED)
    if state.is_full():
        raise RedPacketError(ErrorCode.RED_PACKET_FULL)
    if state.has_claimed(claimer.address):
        raise RedPacketError(ErrorCode.ALREADY_CLAIMED)

    slot = state.num_claimed
    amount = state.amounts[slot]

    if ix.is_sol:
        if not vault.owned_by(ctx.program_id):
            raise RedPacketError(ErrorCode.INVALID_ACCOUNT_OWNER)
        vault.lamports = checked_sub(vault.lamports, amount)
        claimer.lamports = checked_add(claimer.lamports, amount)
    else:
        token_program.transfer(
            ctx,
            vault,
            claimer_token_account,
            red_packet,
            amount,
            signer=ctx.derived_signer(
                SEED_PREFIX,
                state.creator,
                state.id.to_bytes(8, "little"),
                state.bump,
            ),
        )

    # Claimer list and counter move together so the scan bound stays exact.
    state.claimers[slot] = claimer.address
    state.num_claimed = slot + 1
    state.remaining_amount = checked_sub(state.remaining_amount, amount)
    store_red_packet(red_packet, state)
    logger.info("Claimed slot %s of red packet %s: %s", slot, state.id, amount)
