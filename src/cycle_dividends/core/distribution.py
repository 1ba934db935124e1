"""Per-token distribution recurrence.

``settle_token`` is the heart of the ledger. Called before every read or write
touching a token, it:

1. crosses at most one cycle boundary: the unstreamed remainder of the previous
   cycle goes into the accumulator, the whole previous cycle amount is banked
   into ``distributed_amount`` and a ``cycle_dividends_percent`` slice of the
   pending slot becomes the new cycle's stream (zero when disabled);
2. streams ``elapsed * rate`` (capped at what is left of the cycle) into the
   accumulator.

Token-level functions are pure and return new frozen records. The state-level
wrappers at the bottom apply them to a staged ``LedgerState``.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from .cycle import CycleClock, advance_if_due, next_cycle_start_time
from .math import (
    acc_increment,
    checked_add,
    checked_mul,
    checked_sub,
    cycle_share,
    per_second_rate,
    scaled_amount,
)
from .types import DistributionToken, TokenId

if TYPE_CHECKING:
    from ..state.ledger_state import LedgerState


def remaining_scaled(token: DistributionToken) -> int:
    """Part of the current cycle (×100) not yet streamed into the accumulator."""
    return checked_sub(
        scaled_amount(token.current_distribution_amount),
        token.current_cycle_distributed_amount,
    )


def settle_token(
    token: DistributionToken,
    clock: CycleClock,
    total_stake: int,
    now: int,
) -> tuple[DistributionToken, CycleClock]:
    """Bring ``token`` up to ``now``. Returns the settled token and the clock."""
    if now <= token.last_update_time:
        return token, clock

    clock = advance_if_due(clock, now)

    # Nothing staked, or the first cycle has not started: funds sit idle.
    if total_stake == 0 or now < clock.cycle_start_time:
        return replace(token, last_update_time=now), clock

    acc = token.acc_dividends_per_share
    last_update_time = token.last_update_time
    pending = token.pending_amount
    current = token.current_distribution_amount
    cycle_distributed = token.current_cycle_distributed_amount
    rate = token.dividends_amount_per_second
    distributed = token.distributed_amount

    if last_update_time < clock.cycle_start_time:
        acc = checked_add(acc, acc_increment(remaining_scaled(token), total_stake))
        distributed = checked_add(distributed, current)
        if token.distribution_disabled:
            current = 0
            rate = 0
        else:
            current = cycle_share(pending, token.cycle_dividends_percent)
            rate = per_second_rate(current, clock.cycle_duration)
            pending = checked_sub(pending, current)
        cycle_distributed = 0
        last_update_time = clock.cycle_start_time

    to_distribute = checked_mul(now - last_update_time, rate)
    # A long service gap must not stream more than the cycle committed.
    cap = checked_sub(scaled_amount(current), cycle_distributed)
    if to_distribute > cap:
        to_distribute = cap

    settled = replace(
        token,
        pending_amount=pending,
        current_distribution_amount=current,
        dividends_amount_per_second=rate,
        current_cycle_distributed_amount=checked_add(cycle_distributed, to_distribute),
        distributed_amount=distributed,
        acc_dividends_per_share=checked_add(acc, acc_increment(to_distribute, total_stake)),
        last_update_time=now,
    )
    return settled, clock


def add_to_pending(token: DistributionToken, amount: int) -> DistributionToken:
    """Credit ``amount`` to the pending slot; it streams from the next boundary on."""
    return replace(
        token,
        pending_amount=checked_add(token.pending_amount, amount),
        deposited_amount=checked_add(token.deposited_amount, amount),
    )


def add_to_current_cycle(
    token: DistributionToken,
    clock: CycleClock,
    amount: int,
    now: int,
) -> DistributionToken:
    """Credit ``amount`` to the active stream of an already-settled token.

    The rate is re-derived so that everything left in the cycle streams over the
    time remaining until the next boundary. Before the first cycle starts, or
    while the clock lags behind ``now``, the rate is left alone and the boundary
    step accrues the amount as remainder.
    """
    updated = replace(
        token,
        current_distribution_amount=checked_add(token.current_distribution_amount, amount),
        deposited_amount=checked_add(token.deposited_amount, amount),
    )
    remaining_time = next_cycle_start_time(clock) - now
    if now < clock.cycle_start_time or remaining_time <= 0:
        return updated
    return replace(
        updated,
        dividends_amount_per_second=remaining_scaled(updated) // remaining_time,
    )


# -- State-level wrappers ----------------------------------------------------

def settle(state: "LedgerState", token_id: TokenId, now: int) -> DistributionToken:
    """Settle ``token_id`` inside a staged state and return the settled record."""
    token = state.tokens.require(token_id)
    settled, clock = settle_token(token, state.clock, state.allocations.total, now)
    state.tokens.put(token_id, settled)
    state.clock = clock
    return settled


def settle_all(state: "LedgerState", now: int) -> None:
    for token_id in state.registry.tokens():
        settle(state, token_id, now)


def preview_settle(state: "LedgerState", token_id: TokenId, now: int) -> DistributionToken:
    """Settled view of ``token_id`` at ``now`` without touching ``state``."""
    token = state.tokens.require(token_id)
    settled, _clock = settle_token(token, state.clock, state.allocations.total, now)
    return settled
