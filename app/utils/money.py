"""
Money helpers - all arithmetic in integer cents so splits add up exactly.
"""

from typing import List, Tuple


def to_cents(amount) -> int:
    """Convert a dollar amount to integer cents (half-up)."""
    return int(round(float(amount or 0) * 100))


def from_cents(cents: int) -> float:
    return cents / 100


def split_budget(budget: float, compensation_share: float) -> Tuple[float, float]:
    """
    Split a job budget into (main, compensation).
    The compensation pool gets its share, main gets the rest, so both add up to budget.
    """
    total = to_cents(budget)
    compensation = int(round(total * compensation_share))
    return from_cents(total - compensation), from_cents(compensation)


def split_evenly(amount: float, parts: int) -> List[float]:
    """
    Split amount into `parts` cent-exact shares.
    Leftover cents go to the first shares.
    """
    if parts <= 0:
        return []
    total = to_cents(amount)
    base, remainder = divmod(total, parts)
    return [from_cents(base + (1 if i < remainder else 0)) for i in range(parts)]


def rescale(weights: List[float], total: float) -> List[float]:
    """
    Distribute total proportionally to weights, cent-exact.
    The last entry absorbs rounding. Zero weights everywhere means an even split.
    """
    if not weights:
        return []
    weight_sum = sum(max(0.0, float(w)) for w in weights)
    if weight_sum <= 0:
        return split_evenly(total, len(weights))

    total_cents = to_cents(total)
    shares = [int(total_cents * max(0.0, float(w)) / weight_sum) for w in weights[:-1]]
    shares.append(total_cents - sum(shares))
    return [from_cents(s) for s in shares]
