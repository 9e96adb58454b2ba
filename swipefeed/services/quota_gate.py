"""
SwipeFeed — Quota gate.

Pure decision functions over a ledger count and a configured limit.
Nothing here touches state: the gate only observes, and the ledger
append that follows a ``PERMIT`` is the only thing that moves the count.

    check(count, limit)     -> PERMIT iff count < limit
    remaining(count, limit) -> max(0, limit - count)   (display only)
"""

from __future__ import annotations

from swipefeed.schemas.feed import QuotaDecision


def _validate_limit(limit: int) -> None:
    if limit < 0:
        raise ValueError(f"Swipe limit must be zero or positive, got {limit}")


def check(current_count: int, limit: int) -> QuotaDecision:
    _validate_limit(limit)
    if current_count < limit:
        return QuotaDecision.PERMIT
    return QuotaDecision.DENY


def remaining(count: int, limit: int) -> int:
    _validate_limit(limit)
    return max(0, limit - count)


def has_reached_limit(count: int, limit: int) -> bool:
    _validate_limit(limit)
    return count >= limit


class QuotaGate:
    """Binds the pure functions above to one configured limit."""

    def __init__(self, limit: int = 10) -> None:
        _validate_limit(limit)
        self.limit = limit

    def check(self, current_count: int) -> QuotaDecision:
        return check(current_count, self.limit)

    def remaining(self, count: int) -> int:
        return remaining(count, self.limit)

    def has_reached_limit(self, count: int) -> bool:
        return has_reached_limit(count, self.limit)

    def __repr__(self) -> str:
        return f"<QuotaGate limit={self.limit}>"
