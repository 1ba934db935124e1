"""Invariant checkers for the dividends ledger.

Each function returns True when the invariant holds. ``check_all()`` returns
the list of violated invariant IDs (empty = all pass); token-scoped IDs are
prefixed with the token id (``"<token>:inv_cycle_cap"``).

Transition invariants compare a token before and after an operation and catch
anything that would move the accumulator or the distributed total backwards.
"""

from __future__ import annotations

from dataclasses import fields
from typing import TYPE_CHECKING, Callable, Optional

from .math import BPS_DENOM, scaled_amount
from .types import DistributionToken

if TYPE_CHECKING:
    from ..state.ledger_state import LedgerState


# -- Single-token invariants -------------------------------------------------

def inv_non_negative(t: DistributionToken) -> bool:
    return all(
        getattr(t, f.name) >= 0
        for f in fields(t)
        if not isinstance(getattr(t, f.name), bool)
    )


def inv_conservation(t: DistributionToken) -> bool:
    return t.pending_amount + t.current_distribution_amount + t.distributed_amount == t.deposited_amount


def inv_cycle_cap(t: DistributionToken) -> bool:
    return t.current_cycle_distributed_amount <= scaled_amount(t.current_distribution_amount)


def inv_percent_bounded(t: DistributionToken) -> bool:
    return 0 <= t.cycle_dividends_percent <= BPS_DENOM


TOKEN_INVARIANTS: dict[str, Callable[[DistributionToken], bool]] = {
    "inv_non_negative": inv_non_negative,
    "inv_conservation": inv_conservation,
    "inv_cycle_cap": inv_cycle_cap,
    "inv_percent_bounded": inv_percent_bounded,
}


# -- Transition invariants ---------------------------------------------------

def inv_acc_monotone(pre: DistributionToken, post: DistributionToken) -> bool:
    return post.acc_dividends_per_share >= pre.acc_dividends_per_share


def inv_distributed_monotone(pre: DistributionToken, post: DistributionToken) -> bool:
    return post.distributed_amount >= pre.distributed_amount


def inv_deposited_monotone(pre: DistributionToken, post: DistributionToken) -> bool:
    return post.deposited_amount >= pre.deposited_amount


def inv_time_monotone(pre: DistributionToken, post: DistributionToken) -> bool:
    return post.last_update_time >= pre.last_update_time


TRANSITION_INVARIANTS: dict[str, Callable[[DistributionToken, DistributionToken], bool]] = {
    "inv_acc_monotone": inv_acc_monotone,
    "inv_distributed_monotone": inv_distributed_monotone,
    "inv_deposited_monotone": inv_deposited_monotone,
    "inv_time_monotone": inv_time_monotone,
}


# -- Ledger-level ------------------------------------------------------------

def check_token(token: DistributionToken) -> list[str]:
    return [inv_id for inv_id, check_fn in TOKEN_INVARIANTS.items() if not check_fn(token)]


def check_transition(pre: DistributionToken, post: DistributionToken) -> list[str]:
    return [inv_id for inv_id, check_fn in TRANSITION_INVARIANTS.items() if not check_fn(pre, post)]


def check_all(state: "LedgerState", pre_state: Optional["LedgerState"] = None) -> list[str]:
    """Return list of violated invariant IDs (empty = all pass)."""
    violations: list[str] = []
    if not state.allocations.verify_total():
        violations.append("inv_total_allocation")
    if len(state.registry) > state.registry.capacity:
        violations.append("inv_registry_capacity")
    for token_id in state.registry.tokens():
        if token_id not in state.tokens:
            violations.append(f"{token_id}:inv_registered_has_record")

    for token_id, token in state.tokens.items():
        violations.extend(f"{token_id}:{inv_id}" for inv_id in check_token(token))
        if pre_state is None:
            continue
        pre = pre_state.tokens.get(token_id)
        if pre is not None:
            violations.extend(f"{token_id}:{inv_id}" for inv_id in check_transition(pre, token))
    return violations
