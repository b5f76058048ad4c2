"""Ledger harness: an in-memory ledger plus helpers for driving the program."""

from __future__ import annotations

import base64
import os
from typing import Optional, Sequence

from redpacket.application.dtos import (
    InstructionDTO,
    RedPacketResponseDTO,
    TransactionResultDTO,
)
from redpacket.application.ledger_service import LedgerService
from redpacket.application.program.context import FixedClock, ProgramContext
from redpacket.application.program.processor import RedPacketProgram
from redpacket.application.program.state import decode_red_packet_data
from redpacket.client.addresses import ProgramAddresses
from redpacket.client.builders import (
    build_create_instruction,
    build_init_treasury_instruction,
    sign_transaction,
)
from redpacket.crypto.derivation import Sha256AddressDeriver
from redpacket.crypto.keys import Keypair, address_to_b64
from redpacket.domain.constants import SPLIT_EVEN
from redpacket.domain.entities import RedPacket
from redpacket.infrastructure.account_repository_impl import AccountRepositoryImpl

from .in_memory_storage import InMemoryKeyValueStore

GENESIS_TIME = 1_700_000_000
DEFAULT_AIRDROP = 10_000_000_000


class LedgerHarness:
    """Wires a `LedgerService` over an in-memory store with a fixed clock."""

    def __init__(self, program_id: Optional[bytes] = None) -> None:
        self.store = InMemoryKeyValueStore()
        self.clock = FixedClock(GENESIS_TIME)
        self.admin = Keypair.generate()
        self.deriver = Sha256AddressDeriver(program_id or os.urandom(32))
        self.ctx = ProgramContext(
            deriver=self.deriver, admin=self.admin.address, clock=self.clock
        )
        self.program = RedPacketProgram(self.ctx)
        self.service = LedgerService(AccountRepositoryImpl(self.store), self.program)
        self.addresses = ProgramAddresses(self.deriver)

    # === Accounts ===

    async def funded(self, lamports: int = DEFAULT_AIRDROP) -> Keypair:
        keypair = Keypair.generate()
        await self.service.airdrop(keypair.address_b64, lamports)
        return keypair

    async def lamports(self, address: bytes) -> int:
        account = await self.service.get_account(address_to_b64(address))
        return 0 if account is None else account.lamports

    async def exists(self, address: bytes) -> bool:
        return await self.service.get_account(address_to_b64(address)) is not None

    async def token_balance(self, address: bytes) -> int:
        return await self.service.get_token_balance(address_to_b64(address))

    async def mint_with_holder(
        self, holder: Keypair, amount: int
    ) -> tuple[bytes, bytes]:
        """Create a mint and a token account for `holder` funded with `amount`."""
        mint_authority = Keypair.generate()
        mint = await self.service.create_mint(mint_authority.address)
        token_account = await self.service.create_token_account(mint, holder.address)
        if amount:
            await self.service.mint_to(mint, token_account, amount)
        return mint, token_account

    # === Transactions ===

    async def submit(
        self, instructions: Sequence[InstructionDTO], signers: Sequence[Keypair]
    ) -> TransactionResultDTO:
        return await self.service.submit_transaction(
            sign_transaction(instructions, signers, nonce=os.urandom(8).hex())
        )

    async def init_treasury(self, payer: Keypair, mint: Optional[bytes] = None) -> None:
        ix = build_init_treasury_instruction(self.addresses, payer.address, mint)
        await self.submit([ix], [payer])

    async def create_red_packet(
        self,
        creator: Keypair,
        packet_id: int,
        total_amount: int,
        num_recipients: int,
        expires_in: int = 3600,
        split_mode: int = SPLIT_EVEN,
        amounts: Optional[Sequence[int]] = None,
        mint: Optional[bytes] = None,
        creator_token_account: Optional[bytes] = None,
    ) -> TransactionResultDTO:
        ix = build_create_instruction(
            self.addresses,
            creator.address,
            packet_id,
            total_amount=total_amount,
            num_recipients=num_recipients,
            expires_at=self.clock.now + expires_in,
            split_mode=split_mode,
            amounts=amounts,
            mint=mint,
            creator_token_account=creator_token_account,
        )
        return await self.submit([ix], [creator])

    async def red_packet(self, creator: Keypair, packet_id: int) -> RedPacketResponseDTO:
        result = await self.service.get_red_packet(creator.address_b64, packet_id)
        assert result is not None
        return result

    async def raw_red_packet(self, creator: Keypair, packet_id: int) -> RedPacket:
        address, _ = self.addresses.red_packet(creator.address, packet_id)
        account = await self.service.get_account(address_to_b64(address))
        assert account is not None
        return decode_red_packet_data(base64.b64decode(account.data_b64))
