"""Largest-remainder (Hamilton) seat apportionment."""

from __future__ import annotations

import logging
import math
from fractions import Fraction
from typing import Mapping, Union

from .models import DataIntegrityError, SeatAllocation

logger = logging.getLogger(__name__)

TOTAL_SEATS = 100

# Minimum seats per key in category-mix summaries.
CATEGORY_MIX_FLOOR = 5

Number = Union[int, float, Fraction]


def _check_weights(weights: Mapping[str, Number]) -> dict[str, Fraction]:
    exact = {}
    for key, value in weights.items():
        if isinstance(value, float) and not math.isfinite(value):
            raise DataIntegrityError(
                f"Seat weight for {key!r} is not finite: {value!r}", key=key, value=value
            )
        if value < 0:
            raise DataIntegrityError(
                f"Seat weight for {key!r} is negative: {value!r}", key=key, value=value
            )
        exact[key] = Fraction(value)
    return exact


def largest_remainder(weights: Mapping[str, Fraction], total: int) -> dict[str, int]:
    """Distribute ``total`` seats proportionally to non-negative exact weights.

    If every weight is zero each key is treated as weight 1. Remainder seats
    go to the largest fractional remainders; equal remainders are resolved
    in the mapping's insertion order.
    """
    keys = list(weights)
    weight_sum = sum(weights.values(), Fraction(0))
    if weight_sum == 0:
        logger.debug("All %d seat weights are zero, using uniform weights", len(keys))
        weights = {k: Fraction(1) for k in keys}
        weight_sum = Fraction(len(keys))

    shares = {k: total * weights[k] / weight_sum for k in keys}
    seats = {k: math.floor(shares[k]) for k in keys}
    remaining = total - sum(seats.values())

    # sorted() is stable, so ties keep insertion order
    by_remainder = sorted(keys, key=lambda k: shares[k] - seats[k], reverse=True)
    for k in by_remainder[:remaining]:
        seats[k] += 1
    return seats


def apportion(
    weights: Mapping[str, Number],
    total: int = TOTAL_SEATS,
    floor: int = 0,
) -> SeatAllocation:
    """Allocate exactly ``total`` integer seats proportionally to ``weights``.

    With ``floor > 0`` every key is first given ``floor`` seats and the rest
    are apportioned by weight. When ``floor * len(weights)`` exceeds
    ``total`` the floor cannot be honoured; it is relaxed uniformly to
    ``total // len(weights)`` and the result is flagged ``floor_relaxed``.

    Args:
        weights: Non-negative weight per key. Key order is the tie-break order.
        total: Seats to distribute.
        floor: Minimum seats per key.

    Returns:
        A SeatAllocation whose seats sum to ``total``.

    Raises:
        DataIntegrityError: If a weight is negative or not finite.
        ValueError: If ``weights`` is empty or ``total``/``floor`` is negative.
    """
    if not weights:
        raise ValueError("Cannot apportion seats over zero categories")
    if total < 0 or floor < 0:
        raise ValueError(f"total and floor must be non-negative, got {total}, {floor}")

    exact = _check_weights(weights)
    n = len(exact)
    relaxed = False
    if floor * n > total:
        relaxed = True
        logger.warning(
            "Seat floor %d infeasible for %d categories and %d seats, relaxed to %d",
            floor, n, total, total // n,
        )
        floor = total // n

    seats = largest_remainder(exact, total - floor * n)
    if floor:
        seats = {k: v + floor for k, v in seats.items()}
    return SeatAllocation(seats=seats, total=total, floor=floor, floor_relaxed=relaxed)
