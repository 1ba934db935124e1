"""Dispatch-table engine for the dividends ledger.

``step(config, state, command)`` is the single entry point of the functional
core. It:

1. Validates the timestamp and runs the action's guard against the PRE-state.
2. Applies the action to a staged copy of the state (the input is untouched).
3. Checks every invariant on the staged post-state, including transition
   invariants against the pre-state.
4. Returns a ``LedgerStepResult`` (accepted, or rejected with reason + code).

Token transfers are not performed here: harvests come back as ``Payout``
requests that the imperative shell executes after committing.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from typing import TYPE_CHECKING, Callable, Optional

from . import allocation, distribution, harvest, lifecycle
from .config import DividendsConfig
from .cycle import advance_if_due
from .errors import DividendsError, InvariantViolation
from .guards import (
    guard_add_to_current_cycle,
    guard_add_to_pending,
    guard_allocation,
    guard_enable,
    guard_permissionless,
    guard_set_cycle_percent,
    guard_set_deposit_handler,
    guard_token_admin,
    guard_token_permissionless,
    require_timestamp,
)
from .invariants import check_all
from .types import Event, LedgerEvent, TokenId, UserId

if TYPE_CHECKING:
    from ..state.ledger_state import LedgerState


@unique
class Action(Enum):
    ALLOCATE = "allocate"
    DEALLOCATE = "deallocate"
    HARVEST = "harvest"
    HARVEST_ALL = "harvest_all"
    SETTLE = "settle"
    SETTLE_ALL = "settle_all"
    UPDATE_CYCLE_START_TIME = "update_cycle_start_time"
    ADD_TO_PENDING = "add_to_pending"
    ADD_TO_CURRENT_CYCLE = "add_to_current_cycle"
    ENABLE = "enable"
    DISABLE = "disable"
    REMOVE = "remove"
    SET_CYCLE_PERCENT = "set_cycle_percent"
    SET_DEPOSIT_HANDLER = "set_deposit_handler"


@dataclass(frozen=True)
class Command:
    """One ledger action. Unused fields default to None/0/False."""

    action: Action
    caller: str
    now: int
    user: Optional[UserId] = None     # allocate / deallocate / set_deposit_handler
    token: Optional[TokenId] = None
    amount: int = 0                   # allocate / deallocate / add_to_*
    percent: int = 0                  # set_cycle_percent
    allowed: bool = False             # set_deposit_handler


@dataclass(frozen=True)
class Payout:
    """Amount owed to ``to``; the shell caps it at the vault balance."""

    token: TokenId
    to: UserId
    owed: int


@dataclass(frozen=True)
class LedgerStepResult:
    ok: bool
    state: Optional["LedgerState"] = None
    events: tuple[LedgerEvent, ...] = ()
    payouts: tuple[Payout, ...] = ()
    error: Optional[str] = None
    code: Optional[str] = None


Effects = tuple[list[LedgerEvent], list[Payout]]
GuardFn = Callable[[DividendsConfig, "LedgerState", Command], None]
UpdateFn = Callable[[DividendsConfig, "LedgerState", Command], Effects]


# -- Updates (run against the staged copy) -----------------------------------

def _apply_allocate(config: DividendsConfig, state: "LedgerState", cmd: Command) -> Effects:
    return [allocation.allocate(state, cmd.user, cmd.amount, cmd.now)], []


def _apply_deallocate(config: DividendsConfig, state: "LedgerState", cmd: Command) -> Effects:
    return [allocation.deallocate(state, cmd.user, cmd.amount, cmd.now)], []


def _apply_harvest(config: DividendsConfig, state: "LedgerState", cmd: Command) -> Effects:
    owed = harvest.harvest(state, cmd.caller, cmd.token, cmd.now)
    return [], [Payout(token=cmd.token, to=cmd.caller, owed=owed)]


def _apply_harvest_all(config: DividendsConfig, state: "LedgerState", cmd: Command) -> Effects:
    payouts = [
        Payout(token=token_id, to=cmd.caller, owed=harvest.harvest(state, cmd.caller, token_id, cmd.now))
        for token_id in state.registry.tokens()
    ]
    return [], payouts


def _apply_settle(config: DividendsConfig, state: "LedgerState", cmd: Command) -> Effects:
    distribution.settle(state, cmd.token, cmd.now)
    return [], []


def _apply_settle_all(config: DividendsConfig, state: "LedgerState", cmd: Command) -> Effects:
    distribution.settle_all(state, cmd.now)
    return [], []


def _apply_update_cycle_start_time(config: DividendsConfig, state: "LedgerState", cmd: Command) -> Effects:
    state.clock = advance_if_due(state.clock, cmd.now)
    return [], []


def _apply_add_to_pending(config: DividendsConfig, state: "LedgerState", cmd: Command) -> Effects:
    info = state.tokens.require(cmd.token)
    state.tokens.put(cmd.token, distribution.add_to_pending(info, cmd.amount))
    return [LedgerEvent(Event.DIVIDENDS_ADDED_TO_PENDING, token=cmd.token, amount=cmd.amount)], []


def _apply_add_to_current_cycle(config: DividendsConfig, state: "LedgerState", cmd: Command) -> Effects:
    info = distribution.settle(state, cmd.token, cmd.now)
    state.tokens.put(
        cmd.token,
        distribution.add_to_current_cycle(info, state.clock, cmd.amount, cmd.now),
    )
    return [LedgerEvent(Event.DIVIDENDS_ADDED_TO_CURRENT_CYCLE, token=cmd.token, amount=cmd.amount)], []


def _apply_enable(config: DividendsConfig, state: "LedgerState", cmd: Command) -> Effects:
    return [lifecycle.enable(state, config, cmd.token, cmd.now)], []


def _apply_disable(config: DividendsConfig, state: "LedgerState", cmd: Command) -> Effects:
    return [lifecycle.disable(state, cmd.token, cmd.now)], []


def _apply_remove(config: DividendsConfig, state: "LedgerState", cmd: Command) -> Effects:
    return [lifecycle.remove(state, cmd.token, cmd.now)], []


def _apply_set_cycle_percent(config: DividendsConfig, state: "LedgerState", cmd: Command) -> Effects:
    return [lifecycle.set_cycle_percent(state, config, cmd.token, cmd.percent, cmd.now)], []


def _apply_set_deposit_handler(config: DividendsConfig, state: "LedgerState", cmd: Command) -> Effects:
    return [lifecycle.set_deposit_handler(state, cmd.user, cmd.allowed)], []


_DISPATCH: dict[Action, tuple[GuardFn, UpdateFn]] = {
    Action.ALLOCATE: (guard_allocation, _apply_allocate),
    Action.DEALLOCATE: (guard_allocation, _apply_deallocate),
    Action.HARVEST: (guard_token_permissionless, _apply_harvest),
    Action.HARVEST_ALL: (guard_permissionless, _apply_harvest_all),
    Action.SETTLE: (guard_token_permissionless, _apply_settle),
    Action.SETTLE_ALL: (guard_permissionless, _apply_settle_all),
    Action.UPDATE_CYCLE_START_TIME: (guard_permissionless, _apply_update_cycle_start_time),
    Action.ADD_TO_PENDING: (guard_add_to_pending, _apply_add_to_pending),
    Action.ADD_TO_CURRENT_CYCLE: (guard_add_to_current_cycle, _apply_add_to_current_cycle),
    Action.ENABLE: (guard_enable, _apply_enable),
    Action.DISABLE: (guard_token_admin, _apply_disable),
    Action.REMOVE: (guard_token_admin, _apply_remove),
    Action.SET_CYCLE_PERCENT: (guard_set_cycle_percent, _apply_set_cycle_percent),
    Action.SET_DEPOSIT_HANDLER: (guard_set_deposit_handler, _apply_set_deposit_handler),
}


def step_or_raise(config: DividendsConfig, state: "LedgerState", command: Command) -> LedgerStepResult:
    """Like ``step()`` but raises the ``DividendsError`` instead of returning it.

    ``state`` is never mutated; the accepted post-state is ``result.state``.
    """
    entry = _DISPATCH.get(command.action)
    if entry is None:
        raise ValueError(f"unknown action: {command.action}")
    guard_fn, update_fn = entry

    require_timestamp(command.now)
    guard_fn(config, state, command)

    staged = state.copy()
    events, payouts = update_fn(config, staged, command)

    violations = check_all(staged, state)
    if violations:
        raise InvariantViolation(violations)

    return LedgerStepResult(
        ok=True,
        state=staged,
        events=tuple(events),
        payouts=tuple(payouts),
    )


def step(config: DividendsConfig, state: "LedgerState", command: Command) -> LedgerStepResult:
    """Execute one action against ``state``.

    Returns ``LedgerStepResult`` with ``ok=True`` on success, or ``ok=False``
    with an ``error`` message and a stable ``code``.
    """
    try:
        return step_or_raise(config, state, command)
    except DividendsError as exc:
        return LedgerStepResult(ok=False, error=str(exc), code=exc.code)
