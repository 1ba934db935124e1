"""
Harvest engine.

Computes what a user is owed for one token from the accumulator, their stake
and their banked pending dividends, then resets the account. Paying the amount
out is left to the caller, which caps it at the vault balance.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .distribution import preview_settle, settle
from .math import accrued, checked_add, checked_sub
from .types import TokenId, UserId, UserTokenAccount

if TYPE_CHECKING:
    from ..state.ledger_state import LedgerState


def owed_amount(account: UserTokenAccount, stake: int, acc_dividends_per_share: int) -> int:
    """``pending + stake * acc // 1e18 - debt``."""
    return checked_add(
        account.pending_dividends,
        checked_sub(accrued(stake, acc_dividends_per_share), account.reward_debt),
    )


def harvest(state: "LedgerState", user: UserId, token_id: TokenId, now: int) -> int:
    """Settle ``token_id``, zero the user's account for it and return the amount owed."""
    token = settle(state, token_id, now)
    acc = token.acc_dividends_per_share
    stake = state.allocations.get(user)
    owed = owed_amount(state.accounts.get(user, token_id), stake, acc)
    state.accounts.set(
        user,
        token_id,
        UserTokenAccount(pending_dividends=0, reward_debt=accrued(stake, acc)),
    )
    return owed


def pending_dividends_amount(state: "LedgerState", user: UserId, token_id: TokenId, now: int) -> int:
    """What ``harvest`` would owe at ``now``; read-only."""
    token = preview_settle(state, token_id, now)
    return owed_amount(
        state.accounts.get(user, token_id),
        state.allocations.get(user),
        token.acc_dividends_per_share,
    )


def capped_payout(owed: int, available_balance: int) -> int:
    """Amount actually transferable: never more than the vault holds."""
    if owed <= 0 or available_balance <= 0:
        return 0
    return min(owed, available_balance)
