"""Story: the creator reclaims an expired or exhausted red packet."""

from __future__ import annotations

import pytest

from redpacket.client.builders import build_claim_instruction, build_close_instruction
from redpacket.crypto.keys import address_to_b64
from redpacket.domain.constants import redpacket_size, rent_exempt_minimum
from redpacket.domain.errors import TransactionFailed
from tests.fixtures import LedgerHarness


@pytest.mark.asyncio
async def test_creator_closes_expired_packet(sol_ledger: LedgerHarness) -> None:
    """
    Story: Only one of three friends claimed before expiry.

    Closing returns the unclaimed deposit plus both storage deposits, and
    deletes the record and the vault.
    """
    # Given: A partially claimed packet
    creator = await sol_ledger.funded()
    friend = await sol_ledger.funded(1_000_000)
    await sol_ledger.create_red_packet(
        creator, 21, total_amount=900_000, num_recipients=3, expires_in=120
    )
    await sol_ledger.submit(
        [build_claim_instruction(sol_ledger.addresses, friend.address, creator.address, 21)],
        [friend],
    )
    red_packet, _ = sol_ledger.addresses.red_packet(creator.address, 21)
    vault, _ = sol_ledger.addresses.vault(creator.address, 21)
    balance_before = await sol_ledger.lamports(creator.address)

    # When: The packet expires and the creator closes it
    sol_ledger.clock.advance(120)
    await sol_ledger.submit(
        [build_close_instruction(sol_ledger.addresses, creator.address, 21)], [creator]
    )

    # Then: Remaining value and storage deposits are back with the creator
    refund = 600_000 + rent_exempt_minimum(0) + rent_exempt_minimum(redpacket_size(3))
    assert await sol_ledger.lamports(creator.address) == balance_before + refund
    assert not await sol_ledger.exists(red_packet)
    assert not await sol_ledger.exists(vault)
    assert await sol_ledger.service.get_red_packet(creator.address_b64, 21) is None


@pytest.mark.asyncio
async def test_creator_closes_fully_claimed_packet_early(sol_ledger: LedgerHarness) -> None:
    """Story: Every slot is taken; no need to wait for expiry."""
    creator = await sol_ledger.funded()
    friend = await sol_ledger.funded(1_000_000)
    await sol_ledger.create_red_packet(creator, 22, total_amount=50_000, num_recipients=1)
    await sol_ledger.submit(
        [build_claim_instruction(sol_ledger.addresses, friend.address, creator.address, 22)],
        [friend],
    )
    balance_before = await sol_ledger.lamports(creator.address)

    await sol_ledger.submit(
        [build_close_instruction(sol_ledger.addresses, creator.address, 22)], [creator]
    )

    refund = rent_exempt_minimum(0) + rent_exempt_minimum(redpacket_size(1))
    assert await sol_ledger.lamports(creator.address) == balance_before + refund


@pytest.mark.asyncio
async def test_close_before_expiry_is_rejected(sol_ledger: LedgerHarness) -> None:
    """
    Story: Creator changes their mind while the packet is still live.

    Business rule: close requires the packet to be expired or fully claimed.
    """
    creator = await sol_ledger.funded()
    await sol_ledger.create_red_packet(creator, 23, total_amount=50_000, num_recipients=2)
    balance_before = await sol_ledger.lamports(creator.address)

    with pytest.raises(TransactionFailed) as exc:
        await sol_ledger.submit(
            [build_close_instruction(sol_ledger.addresses, creator.address, 23)], [creator]
        )

    assert exc.value.name == "NotExpiredOrFull"
    assert exc.value.code == 6
    assert await sol_ledger.lamports(creator.address) == balance_before
    assert (await sol_ledger.red_packet(creator, 23)).status == "active"


@pytest.mark.asyncio
async def test_stranger_cannot_close_packet(sol_ledger: LedgerHarness) -> None:
    """
    Story: Someone else signs a close for the creator's expired packet.

    Business rule: only the recorded creator may close.
    """
    creator = await sol_ledger.funded()
    stranger = await sol_ledger.funded(1_000_000)
    await sol_ledger.create_red_packet(
        creator, 24, total_amount=50_000, num_recipients=2, expires_in=10
    )
    sol_ledger.clock.advance(10)

    ix = build_close_instruction(sol_ledger.addresses, creator.address, 24)
    ix.accounts[0].address_b64 = address_to_b64(stranger.address)

    with pytest.raises(TransactionFailed) as exc:
        await sol_ledger.submit([ix], [stranger])

    assert exc.value.name == "Unauthorized"
    assert exc.value.code == 7
    assert await sol_ledger.lamports(stranger.address) == 1_000_000
    assert (await sol_ledger.red_packet(creator, 24)).remaining_amount == 50_000
