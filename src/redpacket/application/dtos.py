"""Data Transfer Objects for the ledger application layer."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from ..domain.entities import RedPacketStatus


class AccountMetaDTO(BaseModel):
    """One account referenced by an instruction, with its access flags."""

    address_b64: str
    is_signer: bool = False
    is_writable: bool = False


class InstructionDTO(BaseModel):
    """Program invocation: target program, ordered accounts and raw payload."""

    program_id_b64: str
    accounts: list[AccountMetaDTO]
    data_b64: str


class TransactionMessageDTO(BaseModel):
    """The signed part of a transaction.

    The ledger commits each distinct message at most once, so `nonce` is
    what lets a client submit the same instruction list again.
    """

    instructions: list[InstructionDTO] = Field(min_length=1)
    nonce: str = ""


class SignatureDTO(BaseModel):
    address_b64: str
    signature_b64: str


class TransactionDTO(BaseModel):
    """Signed transaction submitted to the ledger."""

    message: TransactionMessageDTO
    signatures: list[SignatureDTO] = Field(default_factory=list)


class TransactionResultDTO(BaseModel):
    """Response after a transaction committed."""

    instructions_executed: int
    touched_accounts_b64: list[str]


class TransactionErrorDTO(BaseModel):
    """Body of a rejected transaction response."""

    error: str
    code: Optional[int] = None
    instruction_index: Optional[int] = None
    message: str = ""


class AccountResponseDTO(BaseModel):
    address_b64: str
    owner_b64: str
    lamports: int
    data_b64: str


class AirdropRequestDTO(BaseModel):
    """Credit native coin to an address out of thin air (local ledgers only)."""

    address_b64: str
    lamports: int = Field(gt=0)


class RedPacketResponseDTO(BaseModel):
    """Decoded red packet record plus its derived status."""

    address_b64: str
    creator_b64: str
    id: int
    total_amount: int
    remaining_amount: int
    num_recipients: int
    num_claimed: int
    split_mode: int
    token_type: int
    expires_at: int
    amounts: list[int]
    claimers_b64: list[str]
    status: RedPacketStatus


class TreasuryResponseDTO(BaseModel):
    address_b64: str
    mint_b64: str
    lamports: int
    fees_collected: int
    bump: int
    vault_bump: int
