"""Story: claims stop at the expiry instant."""

from __future__ import annotations

import pytest

from redpacket.client.builders import build_claim_instruction
from redpacket.domain.errors import TransactionFailed
from tests.fixtures import LedgerHarness


@pytest.mark.asyncio
async def test_claim_at_expiry_is_rejected(sol_ledger: LedgerHarness) -> None:
    """
    Story: A friend opens the app exactly when the packet expires.

    Business rule: claims require now < expires_at.
    """
    # Given: A packet expiring in 60 seconds
    creator = await sol_ledger.funded()
    claimer = await sol_ledger.funded(1_000_000)
    await sol_ledger.create_red_packet(
        creator, 9, total_amount=30_000, num_recipients=3, expires_in=60
    )

    # When: The clock reaches the expiry timestamp
    sol_ledger.clock.advance(60)
    with pytest.raises(TransactionFailed) as exc:
        await sol_ledger.submit(
            [build_claim_instruction(sol_ledger.addresses, claimer.address, creator.address, 9)],
            [claimer],
        )

    # Then: Expired, and the record reports it
    assert exc.value.name == "Expired"
    assert exc.value.code == 5
    assert await sol_ledger.lamports(claimer.address) == 1_000_000
    record = await sol_ledger.red_packet(creator, 9)
    assert record.status == "expired"
    assert record.num_claimed == 0


@pytest.mark.asyncio
async def test_claim_one_second_before_expiry_succeeds(sol_ledger: LedgerHarness) -> None:
    creator = await sol_ledger.funded()
    claimer = await sol_ledger.funded(1_000_000)
    await sol_ledger.create_red_packet(
        creator, 10, total_amount=30_000, num_recipients=3, expires_in=60
    )

    sol_ledger.clock.advance(59)
    await sol_ledger.submit(
        [build_claim_instruction(sol_ledger.addresses, claimer.address, creator.address, 10)],
        [claimer],
    )

    assert await sol_ledger.lamports(claimer.address) == 1_010_000


@pytest.mark.asyncio
async def test_create_with_past_expiry_is_rejected(sol_ledger: LedgerHarness) -> None:
    """Story: A creator picks an expiry that is not in the future."""
    creator = await sol_ledger.funded()

    with pytest.raises(TransactionFailed) as exc:
        await sol_ledger.create_red_packet(
            creator, 11, total_amount=30_000, num_recipients=3, expires_in=0
        )

    assert exc.value.name == "Expired"
    assert await sol_ledger.service.get_red_packet(creator.address_b64, 11) is None
