"""
Distributed-token lifecycle: enable / disable / remove / cycle percent.

    Uninitialized -> Active <-> Disabled -> Removed

Disabling only flips a flag; the active stream keeps running until the next
boundary, which then pulls nothing. A token leaves the registry only once it is
disabled and its last stream has been fully accounted (``current == 0``).
Removed is terminal, and a removed token can no longer be harvested.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from .config import DividendsConfig
from .distribution import settle
from .errors import InvalidState, InvalidToken, OutOfBounds
from .types import DistributionToken, Event, LedgerEvent, TokenId, TokenStatus

if TYPE_CHECKING:
    from ..state.ledger_state import LedgerState


def token_status(state: "LedgerState", token_id: TokenId) -> TokenStatus:
    info = state.tokens.get(token_id)
    if info is None:
        return TokenStatus.UNINITIALIZED
    if not state.registry.contains(token_id):
        return TokenStatus.REMOVED
    if info.distribution_disabled:
        return TokenStatus.DISABLED
    return TokenStatus.ACTIVE


def require_registered(state: "LedgerState", token_id: TokenId) -> DistributionToken:
    """Record of an active or disabled token; ``InvalidToken`` otherwise."""
    if not state.registry.contains(token_id):
        raise InvalidToken(f"token not distributed: {token_id}")
    return state.tokens.require(token_id)


def enable(state: "LedgerState", config: DividendsConfig, token_id: TokenId, now: int) -> LedgerEvent:
    status = token_status(state, token_id)
    if status is TokenStatus.ACTIVE:
        raise InvalidState(f"token already enabled: {token_id}")
    if status is TokenStatus.REMOVED:
        raise InvalidState(f"token was removed and cannot be re-enabled: {token_id}")

    if status is TokenStatus.UNINITIALIZED:
        info = DistributionToken(last_update_time=now)
    else:
        info = settle(state, token_id, now)
    if info.cycle_dividends_percent == 0:
        info = replace(info, cycle_dividends_percent=config.default_cycle_dividends_percent)

    state.registry.add(token_id)
    state.tokens.put(token_id, replace(info, distribution_disabled=False))
    return LedgerEvent(Event.DISTRIBUTED_TOKEN_ENABLED, token=token_id)


def disable(state: "LedgerState", token_id: TokenId, now: int) -> LedgerEvent:
    require_registered(state, token_id)
    if token_status(state, token_id) is not TokenStatus.ACTIVE:
        raise InvalidState(f"token already disabled: {token_id}")
    # Boundaries already crossed are processed under the enabled flag.
    info = settle(state, token_id, now)
    state.tokens.put(token_id, replace(info, distribution_disabled=True))
    return LedgerEvent(Event.DISTRIBUTED_TOKEN_DISABLED, token=token_id)


def remove(state: "LedgerState", token_id: TokenId, now: int) -> LedgerEvent:
    require_registered(state, token_id)
    info = settle(state, token_id, now)
    if not info.distribution_disabled or info.current_distribution_amount != 0:
        raise InvalidState(f"token cannot be removed while enabled or streaming: {token_id}")
    state.registry.remove(token_id)
    return LedgerEvent(Event.DISTRIBUTED_TOKEN_REMOVED, token=token_id)


def set_cycle_percent(
    state: "LedgerState",
    config: DividendsConfig,
    token_id: TokenId,
    percent: int,
    now: int,
) -> LedgerEvent:
    if not (config.min_cycle_dividends_percent <= percent <= config.max_cycle_dividends_percent):
        raise OutOfBounds(
            f"cycle dividends percent {percent} outside "
            f"[{config.min_cycle_dividends_percent}, {config.max_cycle_dividends_percent}]"
        )
    require_registered(state, token_id)
    info = settle(state, token_id, now)
    state.tokens.put(token_id, replace(info, cycle_dividends_percent=percent))
    return LedgerEvent(
        Event.CYCLE_DIVIDENDS_PERCENT_UPDATED,
        token=token_id,
        previous=info.cycle_dividends_percent,
        new=percent,
    )


def set_deposit_handler(state: "LedgerState", handler: str, allowed: bool) -> LedgerEvent:
    if not isinstance(handler, str) or not handler:
        raise InvalidState("deposit handler must be a non-empty string")
    previous = handler in state.deposit_handlers
    if allowed:
        state.deposit_handlers = state.deposit_handlers | {handler}
    else:
        state.deposit_handlers = state.deposit_handlers - {handler}
    return LedgerEvent(
        Event.DEPOSIT_HANDLER_UPDATED,
        user=handler,
        previous=int(previous),
        new=int(bool(allowed)),
    )
