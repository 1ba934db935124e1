"""
Per-user, per-token settlement accounts.

Implements UserAccountTable[UserId, TokenId] -> UserTokenAccount.

Rows are created lazily on first write and are never deleted, not even when
both fields return to zero.
"""

from typing import Dict, Tuple

from ..core.types import TokenId, UserId, UserTokenAccount

_EMPTY = UserTokenAccount()


class UserAccountTable:
    """
    Mapping (user, token) -> UserTokenAccount.

    Do not rely on dict iteration order for anything commitment-related; the
    snapshot encoder sorts keys explicitly.
    """

    def __init__(self):
        self._accounts: Dict[Tuple[UserId, TokenId], UserTokenAccount] = {}

    def get(self, user: UserId, token: TokenId) -> UserTokenAccount:
        """Get the account for (user, token). Returns an empty account if not found."""
        return self._accounts.get((user, token), _EMPTY)

    def set(self, user: UserId, token: TokenId, account: UserTokenAccount) -> None:
        """
        Store the account for (user, token).

        Raises:
            ValueError: If either field is negative
        """
        if account.pending_dividends < 0 or account.reward_debt < 0:
            raise ValueError(f"account fields cannot be negative: {account}")
        self._accounts[(user, token)] = account

    def exists(self, user: UserId, token: TokenId) -> bool:
        return (user, token) in self._accounts

    def get_all(self) -> Dict[Tuple[UserId, TokenId], UserTokenAccount]:
        return dict(self._accounts)

    def copy(self) -> "UserAccountTable":
        out = UserAccountTable()
        out._accounts = dict(self._accounts)
        return out

    def __len__(self) -> int:
        return len(self._accounts)

    def __repr__(self) -> str:
        return f"UserAccountTable({len(self._accounts)} entries)"
