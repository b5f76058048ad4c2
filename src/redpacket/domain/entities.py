"""Domain entities: persisted ledger accounts and the decoded program records."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_serializer

from .constants import ADDRESS_LENGTH


class RedPacketStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    FULLY_CLAIMED = "fully_claimed"


class Account(BaseModel):
    """Ledger account as persisted by the account repository.

    Binary fields are kept base64-encoded so the entity round-trips through
    JSON storage unchanged.
    """

    address_b64: str
    owner_b64: str
    lamports: int = 0
    data_b64: str = ""
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_serializer("updated_at")
    def serialize_updated_at(self, value: datetime) -> str:
        return value.isoformat()


class RedPacket(BaseModel):
    """Decoded red packet record."""

    creator: bytes
    id: int
    total_amount: int
    remaining_amount: int
    num_recipients: int
    num_claimed: int
    split_mode: int
    bump: int
    vault_bump: int
    token_type: int
    expires_at: int
    amounts: list[int]
    claimers: list[bytes]

    def claimed_by(self) -> list[bytes]:
        """Identities that already claimed, in claim order."""
        return self.claimers[: self.num_claimed]

    def has_claimed(self, claimer: bytes) -> bool:
        # claimers[num_claimed:] are unset, so the scan bound is num_claimed
        for i in range(self.num_claimed):
            if self.claimers[i] == claimer:
                return True
        return False

    def is_full(self) -> bool:
        return self.num_claimed >= self.num_recipients

    def is_expired(self, now: int) -> bool:
        return now >= self.expires_at

    def status(self, now: int) -> RedPacketStatus:
        if self.is_full():
            return RedPacketStatus.FULLY_CLAIMED
        if self.is_expired(now):
            return RedPacketStatus.EXPIRED
        return RedPacketStatus.ACTIVE


class Treasury(BaseModel):
    """Decoded treasury record (one per accepted asset)."""

    bump: int
    vault_bump: int
    mint: bytes
    fees_collected: int = 0


class TokenAccount(BaseModel):
    """Decoded fungible-token account state."""

    mint: bytes
    owner: bytes
    amount: int = 0
    delegate: bytes | None = None
    state: int = 1
    is_native: int | None = None
    delegated_amount: int = 0
    close_authority: bytes | None = None


class Mint(BaseModel):
    """Decoded fungible-token mint."""

    mint_authority: bytes | None
    supply: int = 0
    decimals: int = 6
    is_initialized: bool = True
    freeze_authority: bytes | None = None


EMPTY_ADDRESS = bytes(ADDRESS_LENGTH)
