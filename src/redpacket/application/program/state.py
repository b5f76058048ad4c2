"""Record layouts and codecs for every account kind the program reads or writes."""

from __future__ import annotations

from typing import Optional

from ...domain.constants import (
    MINT_SIZE,
    REDPACKET_BASE_SIZE,
    REDPACKET_DISCRIMINATOR,
    TOKEN_ACCOUNT_SIZE,
    TREASURY_DISCRIMINATOR,
    TREASURY_SIZE,
)
from ...domain.entities import EMPTY_ADDRESS, Mint, RedPacket, TokenAccount, Treasury
from ...domain.errors import ErrorCode, InvalidAccountData, RedPacketError
from ..shared.serialization import ArrayField, Field, Layout
from .accounts import AccountView

REDPACKET_LAYOUT = Layout(
    [
        Field("discriminator", "u8"),
        Field("creator", "address"),
        Field("id", "u64"),
        Field("total_amount", "u64"),
        Field("remaining_amount", "u64"),
        Field("num_recipients", "u8"),
        Field("num_claimed", "u8"),
        Field("split_mode", "u8"),
        Field("bump", "u8"),
        Field("vault_bump", "u8"),
        Field("token_type", "u8"),
        Field("expires_at", "i64"),
    ],
    arrays=[
        ArrayField("amounts", "u64", count_field="num_recipients"),
        ArrayField("claimers", "address", count_field="num_recipients"),
    ],
)

TREASURY_LAYOUT = Layout(
    [
        Field("discriminator", "u8"),
        Field("bump", "u8"),
        Field("vault_bump", "u8"),
        Field("mint", "address"),
        Field("fees_collected", "u64"),
    ]
)

TOKEN_ACCOUNT_LAYOUT = Layout(
    [
        Field("mint", "address"),
        Field("owner", "address"),
        Field("amount", "u64"),
        Field("delegate_tag", "u32"),
        Field("delegate", "address"),
        Field("state", "u8"),
        Field("is_native_tag", "u32"),
        Field("is_native", "u64"),
        Field("delegated_amount", "u64"),
        Field("close_authority_tag", "u32"),
        Field("close_authority", "address"),
    ]
)

MINT_LAYOUT = Layout(
    [
        Field("mint_authority_tag", "u32"),
        Field("mint_authority", "address"),
        Field("supply", "u64"),
        Field("decimals", "u8"),
        Field("is_initialized", "u8"),
        Field("freeze_authority_tag", "u32"),
        Field("freeze_authority", "address"),
    ]
)


def check_layout_size(name: str, actual: int, expected: int) -> None:
    """Fail fast when a layout drifts from the size its accounts are allocated with."""
    if actual != expected:
        raise RuntimeError(f"{name} layout is {actual} bytes, expected {expected}")


check_layout_size("RedPacket header", REDPACKET_LAYOUT.header_size, REDPACKET_BASE_SIZE)
check_layout_size("Treasury", TREASURY_LAYOUT.size(), TREASURY_SIZE)
check_layout_size("TokenAccount", TOKEN_ACCOUNT_LAYOUT.size(), TOKEN_ACCOUNT_SIZE)
check_layout_size("Mint", MINT_LAYOUT.size(), MINT_SIZE)

TOKEN_ACCOUNT_UNINITIALIZED = 0
TOKEN_ACCOUNT_INITIALIZED = 1


# === RedPacket ===


def decode_red_packet_data(data: bytes | bytearray) -> RedPacket:
    """Decode red packet bytes without owner checks."""
    if len(data) < REDPACKET_BASE_SIZE:
        raise InvalidAccountData("Red packet data too short")
    if data[0] != REDPACKET_DISCRIMINATOR:
        raise RedPacketError(ErrorCode.INVALID_DISCRIMINATOR)
    num_recipients = REDPACKET_LAYOUT.count_of(data)
    if len(data) < REDPACKET_LAYOUT.size(num_recipients):
        raise InvalidAccountData("Red packet data shorter than its recipient count")
    values = REDPACKET_LAYOUT.decode(data)
    values.pop("discriminator")
    return RedPacket(**values)


def load_red_packet(account: AccountView, program_id: bytes) -> RedPacket:
    """Validate ownership and discriminator, then decode."""
    if not account.owned_by(program_id):
        raise RedPacketError(ErrorCode.INVALID_ACCOUNT_OWNER)
    return decode_red_packet_data(account.data)


def encode_red_packet(red_packet: RedPacket) -> bytes:
    values = red_packet.model_dump()
    values["discriminator"] = REDPACKET_DISCRIMINATOR
    return REDPACKET_LAYOUT.encode(values)


def store_red_packet(account: AccountView, red_packet: RedPacket) -> None:
    encoded = encode_red_packet(red_packet)
    if len(account.data) != len(encoded):
        raise InvalidAccountData("Red packet account has the wrong size")
    account.data[:] = encoded


# === Treasury ===


def decode_treasury_data(data: bytes | bytearray) -> Treasury:
    if len(data) < TREASURY_SIZE:
        raise InvalidAccountData("Treasury data too short")
    if data[0] != TREASURY_DISCRIMINATOR:
        raise RedPacketError(ErrorCode.TREASURY_NOT_INITIALIZED)
    values = TREASURY_LAYOUT.decode(data)
    values.pop("discriminator")
    return Treasury(**values)


def load_treasury(account: AccountView, program_id: bytes) -> Treasury:
    if not account.owned_by(program_id):
        raise RedPacketError(ErrorCode.INVALID_ACCOUNT_OWNER)
    return decode_treasury_data(account.data)


def encode_treasury(treasury: Treasury) -> bytes:
    values = treasury.model_dump()
    values["discriminator"] = TREASURY_DISCRIMINATOR
    return TREASURY_LAYOUT.encode(values)


def store_treasury(account: AccountView, treasury: Treasury) -> None:
    account.data[:TREASURY_SIZE] = encode_treasury(treasury)


# === Token program accounts ===


def _optional(tag: int, value: bytes) -> Optional[bytes]:
    return value if tag else None


def decode_token_account_data(data: bytes | bytearray) -> TokenAccount:
    if len(data) < TOKEN_ACCOUNT_SIZE:
        raise InvalidAccountData("Token account data too short")
    v = TOKEN_ACCOUNT_LAYOUT.decode(data)
    return TokenAccount(
        mint=v["mint"],
        owner=v["owner"],
        amount=v["amount"],
        delegate=_optional(v["delegate_tag"], v["delegate"]),
        state=v["state"],
        is_native=v["is_native"] if v["is_native_tag"] else None,
        delegated_amount=v["delegated_amount"],
        close_authority=_optional(v["close_authority_tag"], v["close_authority"]),
    )


def encode_token_account(token_account: TokenAccount) -> bytes:
    return TOKEN_ACCOUNT_LAYOUT.encode(
        {
            "mint": token_account.mint,
            "owner": token_account.owner,
            "amount": token_account.amount,
            "delegate_tag": 1 if token_account.delegate else 0,
            "delegate": token_account.delegate or EMPTY_ADDRESS,
            "state": token_account.state,
            "is_native_tag": 0 if token_account.is_native is None else 1,
            "is_native": token_account.is_native or 0,
            "delegated_amount": token_account.delegated_amount,
            "close_authority_tag": 1 if token_account.close_authority else 0,
            "close_authority": token_account.close_authority or EMPTY_ADDRESS,
        }
    )


def decode_mint_data(data: bytes | bytearray) -> Mint:
    if len(data) < MINT_SIZE:
        raise InvalidAccountData("Mint data too short")
    v = MINT_LAYOUT.decode(data)
    return Mint(
        mint_authority=_optional(v["mint_authority_tag"], v["mint_authority"]),
        supply=v["supply"],
        decimals=v["decimals"],
        is_initialized=bool(v["is_initialized"]),
        freeze_authority=_optional(v["freeze_authority_tag"], v["freeze_authority"]),
    )


def encode_mint(mint: Mint) -> bytes:
    return MINT_LAYOUT.encode(
        {
            "mint_authority_tag": 1 if mint.mint_authority else 0,
            "mint_authority": mint.mint_authority or EMPTY_ADDRESS,
            "supply": mint.supply,
            "decimals": mint.decimals,
            "is_initialized": 1 if mint.is_initialized else 0,
            "freeze_authority_tag": 1 if mint.freeze_authority else 0,
            "freeze_authority": mint.freeze_authority or EMPTY_ADDRESS,
        }
    )
