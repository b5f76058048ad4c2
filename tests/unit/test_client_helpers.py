"""Unit tests for client-side split and status helpers."""

import random

from redpacket.application.program.create import compute_even_split, compute_fee_checked
from redpacket.client.split import generate_random_split
from redpacket.client.status import red_packet_status
from redpacket.domain.entities import EMPTY_ADDRESS, RedPacket, RedPacketStatus


def make_red_packet(num_claimed: int, num_recipients: int = 2, expires_at: int = 100) -> RedPacket:
    return RedPacket(
        creator=b"\x01" * 32,
        id=1,
        total_amount=10,
        remaining_amount=10,
        num_recipients=num_recipients,
        num_claimed=num_claimed,
        split_mode=0,
        bump=255,
        vault_bump=255,
        token_type=1,
        expires_at=expires_at,
        amounts=[5, 5],
        claimers=[EMPTY_ADDRESS] * num_recipients,
    )


class TestGenerateRandomSplit:
    def test_sums_to_total(self) -> None:
        rng = random.Random(1234)
        for _ in range(50):
            amounts = generate_random_split(1_000_000, 7, rng)
            assert len(amounts) == 7
            assert sum(amounts) == 1_000_000
            assert all(a >= 1 for a in amounts)

    def test_single_recipient_gets_everything(self) -> None:
        assert generate_random_split(500, 1) == [500]

    def test_no_recipients(self) -> None:
        assert generate_random_split(500, 0) == []

    def test_tiny_total_saturates_last_slot(self) -> None:
        amounts = generate_random_split(2, 5, random.Random(7))
        assert amounts[:-1] == [1, 1, 1, 1]
        assert amounts[-1] == 0

    def test_reproducible_with_seeded_rng(self) -> None:
        assert generate_random_split(10_000, 4, random.Random(3)) == generate_random_split(
            10_000, 4, random.Random(3)
        )


class TestSplitAndFee:
    def test_even_split_remainder_to_last_slot(self) -> None:
        assert compute_even_split(1_000_000, 3) == [333_333, 333_333, 333_334]

    def test_fee_floor(self) -> None:
        assert compute_fee_checked(999) == 1
        assert compute_fee_checked(1) == 1

    def test_fee_rate(self) -> None:
        assert compute_fee_checked(1_000_000_000) == 1_000_000


class TestRedPacketStatus:
    def test_active(self) -> None:
        assert red_packet_status(make_red_packet(0), now=99) == RedPacketStatus.ACTIVE

    def test_expired_at_boundary(self) -> None:
        assert red_packet_status(make_red_packet(1), now=100) == RedPacketStatus.EXPIRED

    def test_fully_claimed_wins_over_expired(self) -> None:
        assert red_packet_status(make_red_packet(2), now=500) == RedPacketStatus.FULLY_CLAIMED

