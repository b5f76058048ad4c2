"""Ledger runtime: verifies, executes and atomically commits transactions."""

from __future__ import annotations

import base64
import binascii
import hashlib
import logging
import os
from dataclasses import dataclass
from typing import Optional, Sequence

from cryptography.exceptions import InvalidSignature

from ..crypto.keys import address_from_b64, address_to_b64, verify_signature_bytes
from ..domain.constants import (
    MINT_SIZE,
    NATIVE_SOL_MINT,
    SEED_PREFIX,
    TOKEN_ACCOUNT_SIZE,
    TREASURY_SEED,
    U64_MAX,
    rent_exempt_minimum,
)
from ..domain.entities import Account
from ..domain.errors import (
    AlreadyProcessed,
    InvalidInstructionData,
    ProgramError,
    ReadonlyAccountModified,
    SignatureVerificationFailed,
    TransactionFailed,
    UnbalancedInstruction,
    UnsupportedProgram,
)
from ..domain.repositories import AccountRepository
from .account_locks import AccountLockRegistry
from .dtos import (
    InstructionDTO,
    RedPacketResponseDTO,
    TransactionDTO,
    TransactionResultDTO,
    TreasuryResponseDTO,
)
from .program import token_program
from .program.accounts import AccountView, checked_add
from .program.context import ProgramContext
from .program.processor import RedPacketProgram
from .program.state import decode_red_packet_data, decode_treasury_data
from .shared.serialization import payload_to_bytes

logger = logging.getLogger(__name__)

_AccountState = tuple[bytes, int, bytes]


@dataclass
class _DecodedInstruction:
    program_id: bytes
    addresses: list[bytes]
    signer_flags: list[bool]
    writable_flags: list[bool]
    data: bytes


def _b64decode(value: str) -> bytes:
    return base64.b64decode(value, validate=True)


def _state_of(view: AccountView) -> _AccountState:
    return view.owner, view.lamports, bytes(view.data)


class LedgerService:
    """In-process ledger hosting the red packet program.

    Every transaction runs under the locks of all the accounts it references,
    executes its instructions in order against shared account views, and is
    committed as one batch only if every instruction succeeded. On failure
    nothing is written.
    """

    def __init__(
        self,
        account_repo: AccountRepository,
        program: RedPacketProgram,
        locks: Optional[AccountLockRegistry] = None,
    ):
        self.account_repo = account_repo
        self.program = program
        self.locks = locks or AccountLockRegistry()

    @property
    def ctx(self) -> ProgramContext:
        return self.program.ctx

    # === Transactions ===

    def _decode_instruction(
        self, index: int, instruction: InstructionDTO
    ) -> _DecodedInstruction:
        try:
            program_id = address_from_b64(instruction.program_id_b64)
            addresses = [address_from_b64(m.address_b64) for m in instruction.accounts]
            data = _b64decode(instruction.data_b64)
        except (binascii.Error, ValueError) as e:
            raise TransactionFailed(InvalidInstructionData(str(e)), index) from e
        if program_id != self.program.program_id:
            raise TransactionFailed(
                UnsupportedProgram(f"Unknown program {instruction.program_id_b64}"),
                index,
            )
        return _DecodedInstruction(
            program_id=program_id,
            addresses=addresses,
            signer_flags=[m.is_signer for m in instruction.accounts],
            writable_flags=[m.is_writable for m in instruction.accounts],
            data=data,
        )

    def _verify_signatures(
        self, dto: TransactionDTO, message_bytes: bytes
    ) -> set[bytes]:
        """Return the set of addresses that validly signed the message."""
        signers: set[bytes] = set()
        for signature in dto.signatures:
            try:
                address = address_from_b64(signature.address_b64)
                verify_signature_bytes(address, message_bytes, signature.signature_b64)
            except (InvalidSignature, binascii.Error, ValueError) as e:
                raise TransactionFailed(
                    SignatureVerificationFailed(
                        f"Invalid signature for {signature.address_b64}"
                    )
                ) from e
            signers.add(address)
        return signers

    async def submit_transaction(self, dto: TransactionDTO) -> TransactionResultDTO:
        """Verify, execute and commit a transaction, or reject it whole.

        Raises `TransactionFailed` carrying the program error and the index
        of the failing instruction (None for envelope-level failures). A
        message is committed at most once; resubmitting it raises
        `AlreadyProcessed`.
        """
        message_bytes = payload_to_bytes(dto.message)
        transaction_id = hashlib.sha256(message_bytes).hexdigest()
        signers = self._verify_signatures(dto, message_bytes)
        decoded = [
            self._decode_instruction(i, ix) for i, ix in enumerate(dto.message.instructions)
        ]
        for ix in decoded:
            for address, is_signer in zip(ix.addresses, ix.signer_flags):
                if is_signer and address not in signers:
                    raise TransactionFailed(
                        SignatureVerificationFailed(
                            f"Missing signature for {address_to_b64(address)}"
                        )
                    )

        touched = {address_to_b64(a) for ix in decoded for a in ix.addresses}
        async with self.locks.hold(touched):
            # Identical messages touch identical accounts, so this check is serialized.
            if await self.account_repo.is_processed(transaction_id):
                raise TransactionFailed(
                    AlreadyProcessed(f"Transaction {transaction_id} was already committed")
                )
            views = await self._load_views(sorted(touched))
            loaded = {address: _state_of(view) for address, view in views.items()}

            for index, ix in enumerate(decoded):
                try:
                    self._execute(ix, views)
                except ProgramError as e:
                    logger.warning(
                        "Transaction rejected at instruction %s: %s (code=%s)",
                        index,
                        e.name,
                        e.code,
                    )
                    raise TransactionFailed(e, index) from e

            changed = [
                view for address, view in views.items() if _state_of(view) != loaded[address]
            ]
            await self._commit(changed, transaction_id)

        logger.info(
            "Transaction committed: %s instruction(s), %s account(s) changed",
            len(decoded),
            len(changed),
        )
        return TransactionResultDTO(
            instructions_executed=len(decoded),
            touched_accounts_b64=sorted(touched),
        )

    def _execute(self, ix: _DecodedInstruction, views: dict[str, AccountView]) -> None:
        keys = [address_to_b64(a) for a in ix.addresses]
        distinct = list(dict.fromkeys(keys))

        signer = {key: False for key in distinct}
        writable = {key: False for key in distinct}
        for key, is_signer, is_writable in zip(keys, ix.signer_flags, ix.writable_flags):
            signer[key] = signer[key] or is_signer
            writable[key] = writable[key] or is_writable
        for key in distinct:
            views[key].is_signer = signer[key]
            views[key].is_writable = writable[key]

        before = {key: _state_of(views[key]) for key in distinct}
        self.program.process_instruction([views[key] for key in keys], ix.data)

        if sum(before[k][1] for k in distinct) != sum(views[k].lamports for k in distinct):
            raise UnbalancedInstruction("Sum of account balances changed")
        for key in distinct:
            if not writable[key] and _state_of(views[key]) != before[key]:
                raise ReadonlyAccountModified(f"Read-only account {key} was modified")

    async def _load_views(self, addresses_b64: Sequence[str]) -> dict[str, AccountView]:
        accounts = await self.account_repo.get_many(addresses_b64)
        views: dict[str, AccountView] = {}
        for address_b64, account in zip(addresses_b64, accounts):
            views[address_b64] = self._to_view(address_b64, account)
        return views

    def _to_view(self, address_b64: str, account: Optional[Account]) -> AccountView:
        if account is None:
            return AccountView(
                address=address_from_b64(address_b64),
                owner=self.ctx.system_program_id,
            )
        return AccountView(
            address=address_from_b64(account.address_b64),
            owner=address_from_b64(account.owner_b64),
            lamports=account.lamports,
            data=bytearray(base64.b64decode(account.data_b64)),
        )

    @staticmethod
    def _to_entity(view: AccountView) -> Account:
        return Account(
            address_b64=address_to_b64(view.address),
            owner_b64=address_to_b64(view.owner),
            lamports=view.lamports,
            data_b64=base64.b64encode(bytes(view.data)).decode("utf-8"),
        )

    async def _commit(
        self, changed: Sequence[AccountView], transaction_id: Optional[str] = None
    ) -> None:
        # Balance-less accounts do not survive a commit.
        upserts = [self._to_entity(v) for v in changed if v.lamports > 0]
        deletes = [address_to_b64(v.address) for v in changed if v.lamports == 0]
        await self.account_repo.commit(upserts, deletes, transaction_id)

    # === Genesis helpers (local ledgers and tests) ===

    async def airdrop(self, address_b64: str, lamports: int) -> Account:
        """Credit native coin to an address, creating a system account if needed."""
        if lamports <= 0:
            raise ValueError("Airdrop amount must be positive")
        async with self.locks.hold([address_b64]):
            view = self._to_view(address_b64, await self.account_repo.get(address_b64))
            view.lamports = checked_add(view.lamports, lamports)
            return await self.account_repo.upsert(self._to_entity(view))

    async def create_mint(
        self, mint_authority: bytes, decimals: int = 6, address: Optional[bytes] = None
    ) -> bytes:
        mint = AccountView(
            address=address or os.urandom(32),
            owner=self.ctx.token_program_id,
            lamports=rent_exempt_minimum(MINT_SIZE),
            data=bytearray(MINT_SIZE),
        )
        token_program.initialize_mint(self.ctx, mint, mint_authority, decimals)
        await self.account_repo.upsert(self._to_entity(mint))
        return mint.address

    async def create_token_account(
        self, mint: bytes, owner: bytes, address: Optional[bytes] = None
    ) -> bytes:
        """Create an initialized, empty token account of `mint` held by `owner`."""
        mint_b64 = address_to_b64(mint)
        account = AccountView(
            address=address or os.urandom(32),
            owner=self.ctx.token_program_id,
            lamports=rent_exempt_minimum(TOKEN_ACCOUNT_SIZE),
            data=bytearray(TOKEN_ACCOUNT_SIZE),
        )
        async with self.locks.hold([mint_b64]):
            mint_view = self._to_view(mint_b64, await self.account_repo.get(mint_b64))
            token_program.initialize_account(self.ctx, account, mint_view, owner)
            await self.account_repo.upsert(self._to_entity(account))
        return account.address

    async def mint_to(self, mint: bytes, destination: bytes, amount: int) -> None:
        """Mint new tokens into `destination` with the mint authority's consent implied."""
        keys = [address_to_b64(mint), address_to_b64(destination)]
        async with self.locks.hold(keys):
            views = await self._load_views(keys)
            mint_view, destination_view = views[keys[0]], views[keys[1]]
            state = token_program.load_mint(self.ctx, mint_view)
            authority = AccountView(
                address=state.mint_authority or bytes(32),
                owner=self.ctx.system_program_id,
                is_signer=True,
            )
            token_program.mint_to(self.ctx, mint_view, destination_view, authority, amount)
            await self.account_repo.commit(
                [self._to_entity(mint_view), self._to_entity(destination_view)], []
            )

    # === Queries ===

    async def get_account(self, address_b64: str) -> Optional[Account]:
        return await self.account_repo.get(address_b64)

    async def get_token_balance(self, address_b64: str) -> int:
        account = await self.account_repo.get(address_b64)
        if account is None:
            raise ValueError("Token account not found")
        return token_program.load_token_account(
            self.ctx, self._to_view(address_b64, account)
        ).amount

    async def get_red_packet(
        self, creator_b64: str, packet_id: int
    ) -> Optional[RedPacketResponseDTO]:
        if not 0 <= packet_id <= U64_MAX:
            raise ValueError("packet_id must fit in an unsigned 64-bit integer")
        creator = address_from_b64(creator_b64)
        address, _ = self.ctx.deriver.derive(
            SEED_PREFIX, creator, packet_id.to_bytes(8, "little")
        )
        account = await self.account_repo.get(address_to_b64(address))
        if account is None or account.owner_b64 != address_to_b64(self.program.program_id):
            return None
        state = decode_red_packet_data(base64.b64decode(account.data_b64))
        return RedPacketResponseDTO(
            address_b64=account.address_b64,
            creator_b64=address_to_b64(state.creator),
            id=state.id,
            total_amount=state.total_amount,
            remaining_amount=state.remaining_amount,
            num_recipients=state.num_recipients,
            num_claimed=state.num_claimed,
            split_mode=state.split_mode,
            token_type=state.token_type,
            expires_at=state.expires_at,
            amounts=state.amounts,
            claimers_b64=[address_to_b64(c) for c in state.claimed_by()],
            status=state.status(self.ctx.now()),
        )

    async def get_treasury(self, mint_b64: Optional[str] = None) -> Optional[TreasuryResponseDTO]:
        """Treasury of a fungible mint, or the native-coin treasury when `mint_b64` is None."""
        asset = NATIVE_SOL_MINT if mint_b64 is None else address_from_b64(mint_b64)
        address, _ = self.ctx.deriver.derive(TREASURY_SEED, asset)
        account = await self.account_repo.get(address_to_b64(address))
        if account is None or account.owner_b64 != address_to_b64(self.program.program_id):
            return None
        state = decode_treasury_data(base64.b64decode(account.data_b64))
        return TreasuryResponseDTO(
            address_b64=account.address_b64,
            mint_b64=address_to_b64(state.mint),
            lamports=account.lamports,
            fees_collected=state.fees_collected,
            bump=state.bump,
            vault_bump=state.vault_bump,
        )
