"""Unit tests for Create validation, run directly against account views."""

from __future__ import annotations

import os

import pytest

from redpacket.application.program.accounts import AccountView
from redpacket.application.program.context import FixedClock, ProgramContext
from redpacket.application.program.create import process_create, validate_random_split
from redpacket.application.program.instructions import CreateInstruction
from redpacket.application.program.state import encode_treasury
from redpacket.crypto.derivation import Sha256AddressDeriver
from redpacket.domain.constants import (
    NATIVE_SOL_MINT,
    SEED_PREFIX,
    SYSTEM_PROGRAM_ID,
    TREASURY_SEED,
    TREASURY_SIZE,
    VAULT_SEED,
    rent_exempt_minimum,
)
from redpacket.domain.entities import Treasury
from redpacket.domain.errors import (
    AccountAlreadyInUse,
    ArithmeticOverflow,
    ErrorCode,
    MissingRequiredSignature,
    RedPacketError,
)

NOW = 1_700_000_000
PACKET_ID = 11


@pytest.fixture
def ctx() -> ProgramContext:
    return ProgramContext(
        deriver=Sha256AddressDeriver(os.urandom(32)),
        admin=os.urandom(32),
        clock=FixedClock(NOW),
    )


def sol_accounts(ctx: ProgramContext, creator: bytes) -> list[AccountView]:
    nonce = PACKET_ID.to_bytes(8, "little")
    red_packet, _ = ctx.deriver.derive(SEED_PREFIX, creator, nonce)
    vault, _ = ctx.deriver.derive(VAULT_SEED, creator, nonce)
    treasury, bump = ctx.deriver.derive(TREASURY_SEED, NATIVE_SOL_MINT)
    return [
        AccountView(
            address=creator,
            owner=SYSTEM_PROGRAM_ID,
            lamports=10_000_000_000,
            is_signer=True,
            is_writable=True,
        ),
        AccountView(address=red_packet, owner=SYSTEM_PROGRAM_ID, is_writable=True),
        AccountView(address=vault, owner=SYSTEM_PROGRAM_ID, is_writable=True),
        AccountView(
            address=treasury,
            owner=ctx.program_id,
            lamports=rent_exempt_minimum(TREASURY_SIZE),
            data=bytearray(
                encode_treasury(Treasury(bump=bump, vault_bump=0, mint=NATIVE_SOL_MINT))
            ),
            is_writable=True,
        ),
        AccountView(address=SYSTEM_PROGRAM_ID, owner=SYSTEM_PROGRAM_ID),
    ]


def create_ix(ctx: ProgramContext, creator: bytes, **overrides) -> CreateInstruction:
    nonce = PACKET_ID.to_bytes(8, "little")
    values = dict(
        token_type=1,
        id=PACKET_ID,
        total_amount=1_000_000,
        num_recipients=3,
        split_mode=0,
        expires_at=NOW + 60,
        red_packet_bump=ctx.deriver.derive(SEED_PREFIX, creator, nonce)[1],
        vault_bump=ctx.deriver.derive(VAULT_SEED, creator, nonce)[1],
    )
    values.update(overrides)
    return CreateInstruction(**values)


def assert_code(exc_info: pytest.ExceptionInfo, code: ErrorCode) -> None:
    assert isinstance(exc_info.value, RedPacketError)
    assert exc_info.value.code == code


class TestCreateChecks:
    """Each rejected Create fails with its documented error."""

    def test_success_populates_record(self, ctx: ProgramContext) -> None:
        creator = os.urandom(32)
        accounts = sol_accounts(ctx, creator)
        process_create(ctx, accounts, create_ix(ctx, creator))
        assert accounts[1].owner == ctx.program_id
        assert len(accounts[1].data) == 71 + 40 * 3
        assert accounts[2].lamports == rent_exempt_minimum(0) + 1_000_000

    def test_not_enough_accounts(self, ctx: ProgramContext) -> None:
        creator = os.urandom(32)
        with pytest.raises(RedPacketError) as exc:
            process_create(ctx, sol_accounts(ctx, creator)[:4], create_ix(ctx, creator))
        assert_code(exc, ErrorCode.NOT_ENOUGH_ACCOUNTS)

    def test_creator_must_sign(self, ctx: ProgramContext) -> None:
        creator = os.urandom(32)
        accounts = sol_accounts(ctx, creator)
        accounts[0].is_signer = False
        with pytest.raises(MissingRequiredSignature):
            process_create(ctx, accounts, create_ix(ctx, creator))

    def test_wrong_system_program(self, ctx: ProgramContext) -> None:
        creator = os.urandom(32)
        accounts = sol_accounts(ctx, creator)
        accounts[4] = AccountView(address=b"\x09" * 32, owner=SYSTEM_PROGRAM_ID)
        with pytest.raises(RedPacketError) as exc:
            process_create(ctx, accounts, create_ix(ctx, creator))
        assert_code(exc, ErrorCode.INVALID_SYSTEM_PROGRAM)

    @pytest.mark.parametrize(
        "overrides, code",
        [
            ({"total_amount": 0}, ErrorCode.INVALID_AMOUNT),
            ({"num_recipients": 0}, ErrorCode.INVALID_RECIPIENT_COUNT),
            ({"num_recipients": 21}, ErrorCode.INVALID_RECIPIENT_COUNT),
            ({"split_mode": 2}, ErrorCode.INVALID_SPLIT_MODE),
            ({"expires_at": NOW}, ErrorCode.EXPIRED),
        ],
    )
    def test_parameter_validation(
        self, ctx: ProgramContext, overrides: dict, code: ErrorCode
    ) -> None:
        creator = os.urandom(32)
        with pytest.raises(RedPacketError) as exc:
            process_create(ctx, sol_accounts(ctx, creator), create_ix(ctx, creator, **overrides))
        assert_code(exc, code)

    def test_wrong_record_address(self, ctx: ProgramContext) -> None:
        creator = os.urandom(32)
        accounts = sol_accounts(ctx, creator)
        accounts[1].address = os.urandom(32)
        with pytest.raises(RedPacketError) as exc:
            process_create(ctx, accounts, create_ix(ctx, creator))
        assert_code(exc, ErrorCode.INVALID_PDA)

    def test_uninitialized_treasury(self, ctx: ProgramContext) -> None:
        creator = os.urandom(32)
        accounts = sol_accounts(ctx, creator)
        accounts[3].owner = SYSTEM_PROGRAM_ID
        accounts[3].data = bytearray()
        with pytest.raises(RedPacketError) as exc:
            process_create(ctx, accounts, create_ix(ctx, creator))
        assert_code(exc, ErrorCode.INVALID_ACCOUNT_OWNER)

    def test_record_already_exists(self, ctx: ProgramContext) -> None:
        creator = os.urandom(32)
        accounts = sol_accounts(ctx, creator)
        process_create(ctx, accounts, create_ix(ctx, creator))
        with pytest.raises(AccountAlreadyInUse):
            process_create(ctx, accounts, create_ix(ctx, creator))


class TestValidateRandomSplit:
    def test_exact_sum_accepted(self) -> None:
        assert validate_random_split([100, 400, 500], 1_000) == [100, 400, 500]

    def test_zero_slot_rejected(self) -> None:
        with pytest.raises(RedPacketError) as exc:
            validate_random_split([0, 500, 500], 1_000)
        assert_code(exc, ErrorCode.INVALID_AMOUNT)

    def test_sum_mismatch_rejected(self) -> None:
        with pytest.raises(RedPacketError) as exc:
            validate_random_split([100, 400, 499], 1_000)
        assert_code(exc, ErrorCode.AMOUNT_MISMATCH)

    def test_overflowing_sum(self) -> None:
        with pytest.raises(ArithmeticOverflow):
            validate_random_split([2**64 - 1, 1], 1_000)
