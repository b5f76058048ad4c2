"""WithdrawFees: pay accumulated fees out of a treasury to the configured admin."""

from __future__ import annotations

import logging
from typing import Sequence

from ...domain.constants import (
    NATIVE_SOL_MINT,
    TREASURY_SEED,
    TREASURY_SIZE,
    TREASURY_VAULT_SEED,
    rent_exempt_minimum,
)
from ...domain.errors import ErrorCode, MissingRequiredSignature, RedPacketError
from . import token_program
from .accounts import AccountView, checked_sub, move_lamports
from .context import ProgramContext
from .instructions import WithdrawFeesInstruction
from .state import TOKEN_ACCOUNT_LAYOUT, load_treasury, store_treasury

logger = logging.getLogger(__name__)

# A token account must reach past the end of its balance field to be read.
_TOKEN_AMOUNT_END = TOKEN_ACCOUNT_LAYOUT.offset("amount") + 8


def resolve_withdraw_amount(requested: int, available: int) -> int:
    """Zero requests everything available; zero or excessive results are rejected."""
    amount = available if requested == 0 else requested
    if amount == 0 or amount > available:
        raise RedPacketError(ErrorCode.INSUFFICIENT_TREASURY_BALANCE)
    return amount


def process_withdraw_fees(
    ctx: ProgramContext, accounts: Sequence[AccountView], ix: WithdrawFeesInstruction
) -> None:
    min_accounts = 2 if ix.is_sol else 5
    if len(accounts) < min_accounts:
        raise RedPacketError(ErrorCode.NOT_ENOUGH_ACCOUNTS)

    admin = accounts[0]
    if not admin.is_signer:
        raise MissingRequiredSignature()
    if admin.address != ctx.admin:
        raise RedPacketError(ErrorCode.UNAUTHORIZED_ADMIN)

    if ix.is_sol:
        treasury = accounts[1]
        state = load_treasury(treasury, ctx.program_id)
        ctx.expect_address(treasury, TREASURY_SEED, NATIVE_SOL_MINT, b"", state.bump)

        above_rent = max(0, treasury.lamports - rent_exempt_minimum(TREASURY_SIZE))
        amount = resolve_withdraw_amount(
            ix.amount, min(state.fees_collected, above_rent)
        )
        move_lamports(treasury, admin, amount)
        state.fees_collected = checked_sub(state.fees_collected, amount)
        store_treasury(treasury, state)
    else:
        admin_token_account, treasury, treasury_vault, token_program_account = (
            accounts[1:5]
        )
        if token_program_account.address != ctx.token_program_id:
            raise RedPacketError(ErrorCode.INVALID_TOKEN_PROGRAM)
        state = load_treasury(treasury, ctx.program_id)
        ctx.expect_address(treasury, TREASURY_SEED, state.mint, b"", state.bump)
        ctx.expect_address(
            treasury_vault, TREASURY_VAULT_SEED, state.mint, b"", state.vault_bump
        )

        if len(treasury_vault.data) < _TOKEN_AMOUNT_END:
            raise RedPacketError(ErrorCode.INVALID_TOKEN_ACCOUNT)
        balance = TOKEN_ACCOUNT_LAYOUT.read(treasury_vault.data, "amount")
        amount = resolve_withdraw_amount(ix.amount, balance)
        token_program.transfer(
            ctx,
            treasury_vault,
            admin_token_account,
            treasury,
            amount,
            signer=ctx.derived_signer(TREASURY_SEED, state.mint, b"", state.bump),
        )

    logger.info("Fees withdrawn: %s", amount)
