"""
Allocation (stake) table.

Tracks stake[user] and the running total used as the shared denominator of
every token's accumulator.
"""

from __future__ import annotations

from typing import Dict

from ..core.errors import InsufficientStake
from ..core.types import UserId


class AllocationTable:
    """
    Mapping user -> stake, plus ``total`` == sum of all stakes.

    Zero stakes are omitted to keep the table sparse.
    """

    def __init__(self) -> None:
        self._stakes: Dict[UserId, int] = {}
        self._total = 0

    def get(self, user: UserId) -> int:
        """Stake of ``user``; 0 if never allocated."""
        return self._stakes.get(user, 0)

    @property
    def total(self) -> int:
        return self._total

    def set(self, user: UserId, stake: int) -> None:
        """Set the stake of ``user`` and adjust the total accordingly."""
        if not isinstance(stake, int) or isinstance(stake, bool):
            raise TypeError("stake must be an int")
        if stake < 0:
            raise InsufficientStake(f"stake cannot be negative: {stake}")
        previous = self.get(user)
        self._total += stake - previous
        if stake == 0:
            self._stakes.pop(user, None)
        else:
            self._stakes[user] = stake

    def get_all(self) -> Dict[UserId, int]:
        return dict(self._stakes)

    def verify_total(self) -> bool:
        """True when the running total matches the sum of stakes."""
        return self._total == sum(self._stakes.values())

    def copy(self) -> "AllocationTable":
        out = AllocationTable()
        out._stakes = dict(self._stakes)
        out._total = self._total
        return out

    def __repr__(self) -> str:
        return f"AllocationTable({len(self._stakes)} allocators, total={self._total})"
