"""Builtin fungible-token program operations.

Token balances live in 165-byte token accounts owned by the token program.
Moving tokens requires the token account's owner to authorize, either as a
transaction signer or, for derived addresses, through a `DerivedSigner`
minted by the owning program. This is the only way value leaves a vault.
"""

from __future__ import annotations

from typing import Optional

from ...domain.constants import MINT_SIZE, TOKEN_ACCOUNT_SIZE
from ...domain.entities import Mint, TokenAccount
from ...domain.errors import TokenError
from .accounts import AccountView, checked_add, checked_sub, move_lamports
from .context import DerivedSigner, ProgramContext
from .state import (
    TOKEN_ACCOUNT_INITIALIZED,
    TOKEN_ACCOUNT_LAYOUT,
    TOKEN_ACCOUNT_UNINITIALIZED,
    decode_mint_data,
    decode_token_account_data,
    encode_mint,
    encode_token_account,
)


def _require_token_owned(ctx: ProgramContext, account: AccountView) -> None:
    if not account.owned_by(ctx.token_program_id):
        raise TokenError("Account not owned by the token program")


def _authorize(
    authority: AccountView, expected: bytes, signer: Optional[DerivedSigner]
) -> None:
    if authority.address != expected:
        raise TokenError("Owner does not match")
    if authority.is_signer:
        return
    if signer is not None and signer.address == authority.address:
        return
    raise TokenError("Missing authority signature")


def load_token_account(ctx: ProgramContext, account: AccountView) -> TokenAccount:
    _require_token_owned(ctx, account)
    token_account = decode_token_account_data(account.data)
    if token_account.state != TOKEN_ACCOUNT_INITIALIZED:
        raise TokenError("Token account not initialized")
    return token_account


def load_mint(ctx: ProgramContext, mint: AccountView) -> Mint:
    _require_token_owned(ctx, mint)
    decoded = decode_mint_data(mint.data)
    if not decoded.is_initialized:
        raise TokenError("Mint not initialized")
    return decoded


def initialize_mint(
    ctx: ProgramContext,
    mint: AccountView,
    mint_authority: bytes,
    decimals: int,
) -> None:
    _require_token_owned(ctx, mint)
    if len(mint.data) != MINT_SIZE:
        raise TokenError("Mint account has the wrong size")
    if decode_mint_data(mint.data).is_initialized:
        raise TokenError("Mint already initialized")
    mint.data[:] = encode_mint(Mint(mint_authority=mint_authority, decimals=decimals))


def initialize_account(
    ctx: ProgramContext, account: AccountView, mint: AccountView, owner: bytes
) -> None:
    """Turn a freshly allocated token-program account into a token account."""
    _require_token_owned(ctx, account)
    if len(account.data) != TOKEN_ACCOUNT_SIZE:
        raise TokenError("Token account has the wrong size")
    if account.data[TOKEN_ACCOUNT_LAYOUT.offset("state")] != TOKEN_ACCOUNT_UNINITIALIZED:
        raise TokenError("Token account already initialized")
    load_mint(ctx, mint)
    account.data[:] = encode_token_account(
        TokenAccount(mint=mint.address, owner=owner, state=TOKEN_ACCOUNT_INITIALIZED)
    )


def mint_to(
    ctx: ProgramContext,
    mint: AccountView,
    destination: AccountView,
    authority: AccountView,
    amount: int,
) -> None:
    mint_state = load_mint(ctx, mint)
    target = load_token_account(ctx, destination)
    if target.mint != mint.address:
        raise TokenError("Mint mismatch")
    if mint_state.mint_authority is None:
        raise TokenError("Fixed supply")
    _authorize(authority, mint_state.mint_authority, None)
    mint_state.supply = checked_add(mint_state.supply, amount)
    target.amount = checked_add(target.amount, amount)
    mint.data[:] = encode_mint(mint_state)
    destination.data[:] = encode_token_account(target)


def transfer(
    ctx: ProgramContext,
    source: AccountView,
    destination: AccountView,
    authority: AccountView,
    amount: int,
    signer: Optional[DerivedSigner] = None,
) -> None:
    src = load_token_account(ctx, source)
    dst = load_token_account(ctx, destination)
    if src.mint != dst.mint:
        raise TokenError("Mint mismatch")
    _authorize(authority, src.owner, signer)
    if src.amount < amount:
        raise TokenError("Insufficient funds")
    if source.address == destination.address:
        return
    src.amount = checked_sub(src.amount, amount)
    dst.amount = checked_add(dst.amount, amount)
    source.data[:] = encode_token_account(src)
    destination.data[:] = encode_token_account(dst)


def close_account(
    ctx: ProgramContext,
    account: AccountView,
    destination: AccountView,
    authority: AccountView,
    signer: Optional[DerivedSigner] = None,
) -> None:
    """Close an empty token account, returning its storage deposit to `destination`."""
    state = load_token_account(ctx, account)
    if state.amount != 0:
        raise TokenError("Non-native account can only be closed if its balance is zero")
    _authorize(authority, state.close_authority or state.owner, signer)
    move_lamports(account, destination, account.lamports)
    account.zero_data()
    account.data = bytearray()
    account.owner = ctx.system_program_id
