"""Story: fungible-token red packet with fees paid into the token treasury."""

from __future__ import annotations

import pytest

from redpacket.client.builders import (
    build_claim_instruction,
    build_close_instruction,
    build_withdraw_fees_instruction,
)
from redpacket.domain.constants import (
    TOKEN_ACCOUNT_SIZE,
    redpacket_size,
    rent_exempt_minimum,
)
from redpacket.domain.errors import TransactionFailed
from tests.fixtures import LedgerHarness


@pytest.mark.asyncio
async def test_complete_spl_red_packet_flow(ledger: LedgerHarness) -> None:
    """
    Story: Creator shares 1,000,000 tokens between two friends, one claims,
    the packet expires, the creator closes it and the admin sweeps the fee.
    """
    # Given: A mint, a funded creator token account and the mint's treasury
    creator = await ledger.funded()
    mint, creator_tokens = await ledger.mint_with_holder(creator, 2_000_000)
    await ledger.init_treasury(creator, mint)
    treasury_vault, _ = ledger.addresses.treasury_vault(mint)
    assert await ledger.token_balance(treasury_vault) == 0

    # When: Creator escrows the deposit
    await ledger.create_red_packet(
        creator,
        1,
        total_amount=1_000_000,
        num_recipients=2,
        expires_in=300,
        mint=mint,
        creator_token_account=creator_tokens,
    )

    # Then: Deposit sits in the packet vault, fee in the treasury vault
    vault, _ = ledger.addresses.vault(creator.address, 1)
    assert await ledger.token_balance(creator_tokens) == 2_000_000 - 1_000_000 - 1_000
    assert await ledger.token_balance(vault) == 1_000_000
    assert await ledger.token_balance(treasury_vault) == 1_000
    record = await ledger.red_packet(creator, 1)
    assert record.token_type == 0
    assert record.amounts == [500_000, 500_000]

    # When: A friend claims into their token account
    friend = await ledger.funded(1_000_000)
    friend_tokens = await ledger.service.create_token_account(mint, friend.address)
    await ledger.submit(
        [
            build_claim_instruction(
                ledger.addresses,
                friend.address,
                creator.address,
                1,
                fungible=True,
                claimer_token_account=friend_tokens,
            )
        ],
        [friend],
    )
    assert await ledger.token_balance(friend_tokens) == 500_000
    assert await ledger.token_balance(vault) == 500_000

    # When: The packet expires and the creator closes it
    ledger.clock.advance(300)
    lamports_before = await ledger.lamports(creator.address)
    await ledger.submit(
        [
            build_close_instruction(
                ledger.addresses,
                creator.address,
                1,
                fungible=True,
                creator_token_account=creator_tokens,
            )
        ],
        [creator],
    )

    # Then: Unclaimed tokens and both storage deposits are returned
    assert await ledger.token_balance(creator_tokens) == 2_000_000 - 1_000 - 500_000
    assert not await ledger.exists(vault)
    refund = rent_exempt_minimum(TOKEN_ACCOUNT_SIZE) + rent_exempt_minimum(
        redpacket_size(2)
    )
    assert await ledger.lamports(creator.address) == lamports_before + refund

    # When: The admin withdraws every collected token fee
    admin_tokens = await ledger.service.create_token_account(mint, ledger.admin.address)
    await ledger.service.airdrop(ledger.admin.address_b64, 1_000_000)
    await ledger.submit(
        [
            build_withdraw_fees_instruction(
                ledger.addresses,
                ledger.admin.address,
                mint=mint,
                admin_token_account=admin_tokens,
            )
        ],
        [ledger.admin],
    )
    assert await ledger.token_balance(admin_tokens) == 1_000
    assert await ledger.token_balance(treasury_vault) == 0


@pytest.mark.asyncio
async def test_claim_with_wrong_asset_kind_is_rejected(ledger: LedgerHarness) -> None:
    """Story: A native-coin claim aimed at a token packet fails with InvalidTokenType."""
    creator = await ledger.funded()
    mint, creator_tokens = await ledger.mint_with_holder(creator, 10_000)
    await ledger.init_treasury(creator, mint)
    await ledger.create_red_packet(
        creator,
        2,
        total_amount=5_000,
        num_recipients=1,
        mint=mint,
        creator_token_account=creator_tokens,
    )
    claimer = await ledger.funded(1_000_000)

    with pytest.raises(TransactionFailed) as exc:
        await ledger.submit(
            [build_claim_instruction(ledger.addresses, claimer.address, creator.address, 2)],
            [claimer],
        )

    assert exc.value.name == "InvalidTokenType"
    assert exc.value.code == 21


@pytest.mark.asyncio
async def test_creator_without_enough_tokens_is_rejected(ledger: LedgerHarness) -> None:
    """Story: The deposit plus fee exceeds the creator's token balance."""
    creator = await ledger.funded()
    mint, creator_tokens = await ledger.mint_with_holder(creator, 1_000_000)
    await ledger.init_treasury(creator, mint)
    lamports_before = await ledger.lamports(creator.address)

    with pytest.raises(TransactionFailed) as exc:
        await ledger.create_red_packet(
            creator,
            3,
            total_amount=1_000_000,
            num_recipients=2,
            mint=mint,
            creator_token_account=creator_tokens,
        )

    # The fee transfer fails after the deposit moved; the whole create rolls back.
    assert exc.value.name == "TokenError"
    assert await ledger.token_balance(creator_tokens) == 1_000_000
    assert await ledger.lamports(creator.address) == lamports_before
    assert await ledger.service.get_red_packet(creator.address_b64, 3) is None


@pytest.mark.asyncio
async def test_token_packet_requires_matching_treasury(ledger: LedgerHarness) -> None:
    """Story: Creating with a mint whose treasury was never set up is refused."""
    creator = await ledger.funded()
    mint, creator_tokens = await ledger.mint_with_holder(creator, 100_000)

    with pytest.raises(TransactionFailed) as exc:
        await ledger.create_red_packet(
            creator,
            4,
            total_amount=10_000,
            num_recipients=1,
            mint=mint,
            creator_token_account=creator_tokens,
        )

    assert exc.value.name == "InvalidAccountOwner"
