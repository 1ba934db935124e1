"""
Allocation ledger: stake changes with per-token settlement.

Every registered token is settled against the user's OLD stake before the
stake changes; the accrued delta is banked into ``pending_dividends`` and the
reward debt is re-based on the NEW stake. Reversing that order would split
historical accrual between users by their new stakes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .distribution import settle
from .errors import InsufficientStake
from .math import accrued, checked_add, checked_sub
from .types import Event, LedgerEvent, UserId, UserTokenAccount

if TYPE_CHECKING:
    from ..state.ledger_state import LedgerState


def update_user(state: "LedgerState", user: UserId, new_stake: int, now: int) -> LedgerEvent:
    """Move ``user`` to ``new_stake``, settling every registered token first."""
    previous_stake = state.allocations.get(user)
    for token_id in state.registry.tokens():
        token = settle(state, token_id, now)
        acc = token.acc_dividends_per_share
        account = state.accounts.get(user, token_id)
        pending = checked_sub(accrued(previous_stake, acc), account.reward_debt)
        state.accounts.set(
            user,
            token_id,
            UserTokenAccount(
                pending_dividends=checked_add(account.pending_dividends, pending),
                reward_debt=accrued(new_stake, acc),
            ),
        )
    state.allocations.set(user, new_stake)
    return LedgerEvent(Event.USER_UPDATED, user=user, previous=previous_stake, new=new_stake)


def allocate(state: "LedgerState", user: UserId, amount: int, now: int) -> LedgerEvent:
    new_stake = checked_add(state.allocations.get(user), amount)
    return update_user(state, user, new_stake, now)


def deallocate(state: "LedgerState", user: UserId, amount: int, now: int) -> LedgerEvent:
    current = state.allocations.get(user)
    if amount > current:
        raise InsufficientStake(f"cannot deallocate {amount}: allocation is {current}")
    return update_user(state, user, current - amount, now)
