"""Close: return unclaimed value and storage deposits to the creator and wipe the record."""

from __future__ import annotations

import logging
from typing import Sequence

from ...domain.constants import SEED_PREFIX
from ...domain.errors import ErrorCode, MissingRequiredSignature, RedPacketError
from . import token_program
from .accounts import AccountView, move_lamports
from .claim import load_and_verify_red_packet
from .context import ProgramContext
from .instructions import CloseInstruction

logger = logging.getLogger(__name__)


def process_close(
    ctx: ProgramContext, accounts: Sequence[AccountView], ix: CloseInstruction
) -> None:
    min_accounts = 3 if ix.is_sol else 5
    if len(accounts) < min_accounts:
        raise RedPacketError(ErrorCode.NOT_ENOUGH_ACCOUNTS)

    if ix.is_sol:
        creator, red_packet, vault = accounts[:3]
        creator_token_account = None
    else:
        creator, creator_token_account, red_packet, vault, token_program_account = (
            accounts[:5]
        )
        if token_program_account.address != ctx.token_program_id:
            raise RedPacketError(ErrorCode.INVALID_TOKEN_PROGRAM)

    if not creator.is_signer:
        raise MissingRequiredSignature()

    state = load_and_verify_red_packet(ctx, red_packet, vault, ix.token_type)
    if state.creator != creator.address:
        raise RedPacketError(ErrorCode.UNAUTHORIZED)

    if not state.is_full() and not state.is_expired(ctx.now()):
        raise RedPacketError(ErrorCode.NOT_EXPIRED_OR_FULL)

    if ix.is_sol:
        if not vault.owned_by(ctx.program_id):
            raise RedPacketError(ErrorCode.INVALID_ACCOUNT_OWNER)
        # Remaining deposit and the vault's storage deposit, in one move.
        move_lamports(vault, creator, vault.lamports)
    else:
        signer = ctx.derived_signer(
            SEED_PREFIX, state.creator, state.id.to_bytes(8, "little"), state.bump
        )
        if state.remaining_amount > 0:
            token_program.transfer(
                ctx,
                vault,
                creator_token_account,
                red_packet,
                state.remaining_amount,
                signer=signer,
            )
        token_program.close_account(ctx, vault, creator, red_packet, signer=signer)

    move_lamports(red_packet, creator, red_packet.lamports)
    red_packet.zero_data()
    logger.info(
        "Closed red packet %s: returned %s unclaimed",
        state.id,
        state.remaining_amount,
    )
