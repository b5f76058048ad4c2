"""InitTreasury: create the per-asset fee treasury (and its token vault for fungible assets)."""

from __future__ import annotations

import logging
from typing import Sequence

from ...domain.constants import (
    NATIVE_SOL_MINT,
    TOKEN_ACCOUNT_SIZE,
    TREASURY_SEED,
    TREASURY_SIZE,
    TREASURY_VAULT_SEED,
    rent_exempt_minimum,
)
from ...domain.entities import Treasury
from ...domain.errors import ErrorCode, MissingRequiredSignature, RedPacketError
from . import system_program, token_program
from .accounts import AccountView
from .context import ProgramContext
from .instructions import InitTreasuryInstruction
from .state import store_treasury

logger = logging.getLogger(__name__)


def process_init_treasury(
    ctx: ProgramContext, accounts: Sequence[AccountView], ix: InitTreasuryInstruction
) -> None:
    min_accounts = 3 if ix.is_sol else 6
    if len(accounts) < min_accounts:
        raise RedPacketError(ErrorCode.NOT_ENOUGH_ACCOUNTS)

    payer, treasury = accounts[0], accounts[1]
    if not payer.is_signer:
        raise MissingRequiredSignature()

    if ix.is_sol:
        treasury_vault = mint = None
        if accounts[2].address != ctx.system_program_id:
            raise RedPacketError(ErrorCode.INVALID_SYSTEM_PROGRAM)
        asset = NATIVE_SOL_MINT
    else:
        treasury_vault, mint, token_program_account, system_program_account = (
            accounts[2:6]
        )
        if token_program_account.address != ctx.token_program_id:
            raise RedPacketError(ErrorCode.INVALID_TOKEN_PROGRAM)
        if system_program_account.address != ctx.system_program_id:
            raise RedPacketError(ErrorCode.INVALID_SYSTEM_PROGRAM)
        asset = mint.address

    ctx.expect_address(treasury, TREASURY_SEED, asset, b"", ix.treasury_bump)
    if treasury.lamports > 0:
        raise RedPacketError(ErrorCode.TREASURY_ALREADY_INITIALIZED)

    system_program.create_account(
        ctx,
        payer,
        treasury,
        rent_exempt_minimum(TREASURY_SIZE),
        TREASURY_SIZE,
        ctx.program_id,
        signer=ctx.derived_signer(TREASURY_SEED, asset, b"", ix.treasury_bump),
    )
    store_treasury(
        treasury,
        Treasury(
            bump=ix.treasury_bump,
            vault_bump=0 if ix.is_sol else ix.vault_bump,
            mint=asset,
        ),
    )

    if not ix.is_sol:
        ctx.expect_address(treasury_vault, TREASURY_VAULT_SEED, asset, b"", ix.vault_bump)
        system_program.create_account(
            ctx,
            payer,
            treasury_vault,
            rent_exempt_minimum(TOKEN_ACCOUNT_SIZE),
            TOKEN_ACCOUNT_SIZE,
            ctx.token_program_id,
            signer=ctx.derived_signer(TREASURY_VAULT_SEED, asset, b"", ix.vault_bump),
        )
        token_program.initialize_account(ctx, treasury_vault, mint, treasury.address)

    logger.info("Treasury initialized for asset %s", asset.hex())
