"""Guard functions for the dividends engine.

One function per action. Each raises a ``DividendsError`` subclass when the
action is not allowed in the given PRE-state; none of them mutates anything.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .config import DividendsConfig
from .errors import InvalidAmount, InvalidState, Unauthorized
from .lifecycle import require_registered

if TYPE_CHECKING:
    from ..state.ledger_state import LedgerState
    from .engine import Command


# -- Shared checks -----------------------------------------------------------

def require_positive_amount(amount: Any, *, name: str = "amount") -> int:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise InvalidAmount(f"{name} must be a positive int, got {amount!r}")
    return amount


def require_timestamp(now: Any) -> int:
    if not isinstance(now, int) or isinstance(now, bool) or now < 0:
        raise InvalidAmount(f"timestamp must be a non-negative int, got {now!r}")
    return now


def require_owner(config: DividendsConfig, caller: str) -> None:
    if caller != config.owner:
        raise Unauthorized(f"caller is not the owner: {caller}")


def require_allocation_source(config: DividendsConfig, caller: str) -> None:
    if caller != config.allocation_source:
        raise Unauthorized(f"caller is not the allocation source: {caller}")


def require_deposit_handler(state: "LedgerState", caller: str) -> None:
    if caller not in state.deposit_handlers:
        raise Unauthorized(f"caller is not a deposit handler: {caller}")


def _require_user(cmd: "Command") -> str:
    if not isinstance(cmd.user, str) or not cmd.user:
        raise InvalidState("command requires a user")
    return cmd.user


def _require_token(state: "LedgerState", cmd: "Command") -> None:
    if not isinstance(cmd.token, str) or not cmd.token:
        raise InvalidState("command requires a token")
    require_registered(state, cmd.token)


# -- Per-action guards -------------------------------------------------------

def guard_allocation(config: DividendsConfig, state: "LedgerState", cmd: "Command") -> None:
    require_allocation_source(config, cmd.caller)
    _require_user(cmd)
    require_positive_amount(cmd.amount)


def guard_permissionless(config: DividendsConfig, state: "LedgerState", cmd: "Command") -> None:
    return None


def guard_token_permissionless(config: DividendsConfig, state: "LedgerState", cmd: "Command") -> None:
    _require_token(state, cmd)


def guard_add_to_pending(config: DividendsConfig, state: "LedgerState", cmd: "Command") -> None:
    require_deposit_handler(state, cmd.caller)
    _require_token(state, cmd)
    require_positive_amount(cmd.amount)


def guard_add_to_current_cycle(config: DividendsConfig, state: "LedgerState", cmd: "Command") -> None:
    guard_add_to_pending(config, state, cmd)
    if state.allocations.total == 0:
        raise InvalidState("cannot add to the current cycle: nothing is allocated")


def guard_enable(config: DividendsConfig, state: "LedgerState", cmd: "Command") -> None:
    require_owner(config, cmd.caller)
    if not isinstance(cmd.token, str) or not cmd.token:
        raise InvalidState("command requires a token")


def guard_token_admin(config: DividendsConfig, state: "LedgerState", cmd: "Command") -> None:
    require_owner(config, cmd.caller)
    _require_token(state, cmd)


def guard_set_cycle_percent(config: DividendsConfig, state: "LedgerState", cmd: "Command") -> None:
    require_owner(config, cmd.caller)
    if not isinstance(cmd.percent, int) or isinstance(cmd.percent, bool):
        raise InvalidAmount(f"percent must be an int, got {cmd.percent!r}")


def guard_set_deposit_handler(config: DividendsConfig, state: "LedgerState", cmd: "Command") -> None:
    require_owner(config, cmd.caller)
    _require_user(cmd)
