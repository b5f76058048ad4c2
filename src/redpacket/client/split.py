"""Client-side split helpers."""

from __future__ import annotations

import random
from typing import Optional


def generate_random_split(
    total_amount: int,
    num_recipients: int,
    rng: Optional[random.Random] = None,
) -> list[int]:
    """Split `total_amount` into `num_recipients` random slots summing to it exactly.

    Cut points are drawn uniformly in [0, 1), sorted, and the floor-rounded
    differences become the slots. Every slot is then raised to at least 1 and
    the last slot absorbs the correction needed to restore the sum.

    Args:
        total_amount: Deposit to split.
        num_recipients: Number of slots; 0 or less yields an empty list.
        rng: Source of randomness, for reproducible splits.

    Returns:
        The slot amounts. When `total_amount < num_recipients` the last slot
        saturates at 0 and the sum exceeds `total_amount`; the program
        rejects such a split.
    """
    if num_recipients <= 0:
        return []
    if num_recipients == 1:
        return [total_amount]

    rng = rng or random.Random()
    cuts = sorted(rng.random() for _ in range(num_recipients - 1))

    raw: list[int] = []
    prev = 0.0
    for cut in cuts:
        raw.append(int(cut * total_amount) - int(prev * total_amount))
        prev = cut
    raw.append(total_amount - int(prev * total_amount))

    amounts = [max(1, a) for a in raw]
    excess = sum(amounts) - total_amount
    amounts[-1] = max(0, amounts[-1] - excess)
    return amounts
