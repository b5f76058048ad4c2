"""Builtin system program operations invoked by handlers (account creation, coin transfer)."""

from __future__ import annotations

from typing import Optional

from ...domain.errors import (
    AccountAlreadyInUse,
    InsufficientFunds,
    MissingRequiredSignature,
)
from .accounts import AccountView, move_lamports
from .context import DerivedSigner, ProgramContext


def _authorized(account: AccountView, signer: Optional[DerivedSigner]) -> bool:
    return account.is_signer or (signer is not None and signer.address == account.address)


def create_account(
    ctx: ProgramContext,
    payer: AccountView,
    new_account: AccountView,
    lamports: int,
    space: int,
    owner: bytes,
    signer: Optional[DerivedSigner] = None,
) -> None:
    """Fund `new_account` from `payer`, allocate `space` zero bytes and assign `owner`."""
    if not payer.is_signer or not _authorized(new_account, signer):
        raise MissingRequiredSignature()
    if (
        new_account.lamports > 0
        or not new_account.data_is_empty()
        or new_account.owner != ctx.system_program_id
    ):
        raise AccountAlreadyInUse(
            "Account already in use: cannot create over an existing balance"
        )
    if payer.lamports < lamports:
        raise InsufficientFunds()
    move_lamports(payer, new_account, lamports)
    new_account.data = bytearray(space)
    new_account.owner = owner


def transfer(
    ctx: ProgramContext, source: AccountView, destination: AccountView, lamports: int
) -> None:
    """Move native coin out of a signer-controlled, system-owned account."""
    if not source.is_signer:
        raise MissingRequiredSignature()
    if source.owner != ctx.system_program_id or not source.data_is_empty():
        raise InsufficientFunds("Source account cannot carry a system transfer")
    if source.lamports < lamports:
        raise InsufficientFunds()
    move_lamports(source, destination, lamports)
