"""
Distribution token table.

Maps token_id -> DistributionToken. Records are created on first enable and are
never erased: a token removed from the registry keeps its record for history
and snapshots.
"""

from __future__ import annotations

from typing import Dict, Iterator, Optional, Tuple

from ..core.errors import InvalidToken
from ..core.types import DistributionToken, TokenId


class DistributionTokenTable:
    """Mutable mapping token_id -> DistributionToken (insert/replace only)."""

    def __init__(self) -> None:
        self._tokens: Dict[TokenId, DistributionToken] = {}

    def get(self, token: TokenId) -> Optional[DistributionToken]:
        return self._tokens.get(token)

    def require(self, token: TokenId) -> DistributionToken:
        """Return the record for ``token`` or raise ``InvalidToken``."""
        info = self._tokens.get(token)
        if info is None:
            raise InvalidToken(f"unknown distributed token: {token}")
        return info

    def put(self, token: TokenId, info: DistributionToken) -> None:
        if not isinstance(info, DistributionToken):
            raise TypeError("info must be a DistributionToken")
        self._tokens[token] = info

    def __contains__(self, token: object) -> bool:
        return token in self._tokens

    def __iter__(self) -> Iterator[TokenId]:
        return iter(self._tokens)

    def __len__(self) -> int:
        return len(self._tokens)

    def items(self) -> Tuple[Tuple[TokenId, DistributionToken], ...]:
        return tuple(self._tokens.items())

    def copy(self) -> "DistributionTokenTable":
        # Records are frozen, so a shallow copy is a full staging copy.
        out = DistributionTokenTable()
        out._tokens = dict(self._tokens)
        return out

    def __repr__(self) -> str:
        return f"DistributionTokenTable({len(self._tokens)} tokens)"
