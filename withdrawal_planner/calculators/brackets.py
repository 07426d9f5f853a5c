"""Progressive tier evaluation.

A tier table is an ordered sequence of objects exposing ``lower`` and ``upper``
bounds (``upper`` is ``math.inf`` for the top tier).  Ordinary-income brackets
carry a ``rate`` as well; IRMAA surcharge tiers only need the bounds, so both
kinds share :func:`locate_tier`.

Example
-------

>>> from withdrawal_planner.models import BracketTier
>>> tiers = [BracketTier(0.10, 0, 12400), BracketTier(0.12, 12400, 50400),
...          BracketTier(0.22, 50400)]
>>> round(compute_progressive_tax(60000, tiers), 2)
7912.0
"""

from __future__ import annotations

import math
from typing import Sequence

from ..models import TierPlacement


def compute_progressive_tax(amount: float, tiers: Sequence) -> float:
    """Tax owed on ``amount`` using marginal rates.

    Each tier only taxes the slice of ``amount`` that falls inside it, so a
    tier's full width is taxed only once ``amount`` reaches its upper bound.
    Amounts at or below zero owe nothing.
    """
    tax = 0.0
    for tier in tiers:
        if amount > tier.lower:
            taxed_in_tier = min(amount, tier.upper) - tier.lower
            tax += taxed_in_tier * tier.rate
    return tax


def locate_tier(amount: float, tiers: Sequence) -> TierPlacement:
    """Find the tier containing ``amount`` and the room around it.

    ``room_to_next`` is how much ``amount`` can grow before crossing into the
    next tier.  ``room_below`` is how far it must fall to drop a tier; it is
    always 0 in the bottom tier.
    """
    if not tiers:
        raise ValueError("tier table is empty")
    for i, tier in enumerate(tiers):
        if tier.lower <= amount < tier.upper:
            room_below = amount - tiers[i - 1].upper if i > 0 else 0.0
            return TierPlacement(tier=tier, room_to_next=tier.upper - amount, room_below=room_below)

    last = tiers[-1]
    if amount >= last.upper:
        return TierPlacement(tier=last, room_to_next=0.0, room_below=amount - last.lower)
    # below the first tier; only reachable with negative input
    return TierPlacement(tier=tiers[0], room_to_next=tiers[0].upper - amount, room_below=0.0)


def validate_tiers(tiers: Sequence) -> None:
    """Raise ``ValueError`` unless ``tiers`` covers ``[0, inf)`` without gaps."""
    if not tiers:
        raise ValueError("tier table is empty")
    if tiers[0].lower != 0:
        raise ValueError(f"first tier must start at 0, not {tiers[0].lower}")
    for prev, tier in zip(tiers, tiers[1:]):
        if tier.lower != prev.upper:
            raise ValueError(f"tiers must be contiguous: {prev.upper} is followed by {tier.lower}")
    for tier in tiers:
        if tier.upper <= tier.lower:
            raise ValueError(f"tier upper bound {tier.upper} must exceed lower bound {tier.lower}")
    if not math.isinf(tiers[-1].upper):
        raise ValueError("top tier must be unbounded")


__all__ = ["compute_progressive_tax", "locate_tier", "validate_tiers"]
