"""
Bounded, ordered set of distributed tokens.

Iteration order is insertion order, so every multi-token operation (allocation
updates, harvest_all, settle_all) visits tokens deterministically.
"""

from __future__ import annotations

from typing import Iterable, List, Tuple

from ..core.errors import CapacityExceeded, InvalidToken
from ..core.types import TokenId


class DistributionRegistry:
    """Ordered set of at most ``capacity`` token ids."""

    def __init__(self, capacity: int, tokens: Iterable[TokenId] = ()) -> None:
        if not isinstance(capacity, int) or isinstance(capacity, bool) or capacity <= 0:
            raise ValueError(f"capacity must be a positive int: {capacity!r}")
        self._capacity = capacity
        self._tokens: List[TokenId] = []
        for token in tokens:
            self.add(token)

    @property
    def capacity(self) -> int:
        return self._capacity

    def contains(self, token: TokenId) -> bool:
        return token in self._tokens

    __contains__ = contains

    def add(self, token: TokenId) -> bool:
        """Add ``token``; returns False when it was already present."""
        if token in self._tokens:
            return False
        if len(self._tokens) >= self._capacity:
            raise CapacityExceeded(f"too many distributed tokens (max {self._capacity})")
        self._tokens.append(token)
        return True

    def remove(self, token: TokenId) -> None:
        if token not in self._tokens:
            raise InvalidToken(f"token not distributed: {token}")
        self._tokens.remove(token)

    def at(self, index: int) -> TokenId:
        if not 0 <= index < len(self._tokens):
            raise InvalidToken(f"distributed token index out of range: {index}")
        return self._tokens[index]

    def tokens(self) -> Tuple[TokenId, ...]:
        return tuple(self._tokens)

    def __len__(self) -> int:
        return len(self._tokens)

    def copy(self) -> "DistributionRegistry":
        return DistributionRegistry(self._capacity, self._tokens)

    def __repr__(self) -> str:
        return f"DistributionRegistry({len(self._tokens)}/{self._capacity})"
