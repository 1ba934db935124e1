"""
Dividends ledger: imperative shell around the functional core.

Every mutating entry point:
- rejects nested calls (a transfer recipient calling back in) with
  ``ReentrancyRejected``,
- runs the action through ``engine.step_or_raise`` against a staged copy,
- commits the staged state, then executes payouts through the ``TokenVault``.

If a payout transfer fails the committed state is restored, so a failed
operation leaves no trace in the ledger. Each step carries at most one payout:
``harvest_all`` commits one token at a time, so a transfer refused for one token
never rolls back accounts of tokens that were already paid.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from ..core.config import DividendsConfig
from ..core.cycle import next_cycle_start_time
from ..core.engine import Action, Command, LedgerStepResult, Payout, step_or_raise
from ..core.errors import DividendsError, InvalidState, ReentrancyRejected, TransferFailed
from ..core.guards import require_owner, require_timestamp
from ..core.harvest import capped_payout, pending_dividends_amount
from ..core.lifecycle import require_registered, token_status
from ..core.types import (
    DistributionToken,
    Event,
    LedgerEvent,
    TokenId,
    TokenStatus,
    UserId,
    UserTokenAccount,
)
from ..state.ledger_state import LedgerState, initial_state
from .snapshot import DividendsSnapshot, snapshot_from_state
from .vault import TokenVault

logger = logging.getLogger(__name__)

TimeSource = Callable[[], int]


def _wall_clock() -> int:
    return int(time.time())


class DividendsLedger:
    """Multi-token, stake-weighted, cycle-throttled dividends ledger."""

    def __init__(
        self,
        config: DividendsConfig,
        vault: TokenVault,
        *,
        time_source: Optional[TimeSource] = None,
        state: Optional[LedgerState] = None,
    ) -> None:
        self._config = config
        self._vault = vault
        self._time_source = time_source or _wall_clock
        self._state = state if state is not None else initial_state(config)
        self._events: List[LedgerEvent] = []
        self._entered = False

    # -- Plumbing ------------------------------------------------------------

    @contextmanager
    def _non_reentrant(self, operation: str) -> Iterator[None]:
        if self._entered:
            logger.warning(
                "Nested ledger call rejected",
                extra={"event": "dividends.reentrancy_rejected", "operation": operation},
            )
            raise ReentrancyRejected(f"{operation} called while another operation is in flight")
        self._entered = True
        try:
            yield
        finally:
            self._entered = False

    def _now(self) -> int:
        return require_timestamp(self._time_source())

    def _run(self, command: Command) -> LedgerStepResult:
        try:
            return step_or_raise(self._config, self._state, command)
        except DividendsError as exc:
            logger.warning(
                "Ledger operation rejected",
                extra={
                    "event": "dividends.rejected",
                    "operation": command.action.value,
                    "caller": command.caller,
                    "code": exc.code,
                    "reason": str(exc),
                },
            )
            raise

    def _pay(self, payouts: Sequence[Payout]) -> Tuple[List[LedgerEvent], Dict[TokenId, int]]:
        events: List[LedgerEvent] = []
        paid: Dict[TokenId, int] = {}
        for payout in payouts:
            amount = capped_payout(payout.owed, self._vault.balance_of(payout.token))
            if amount < payout.owed:
                logger.warning(
                    "Payout capped at vault balance",
                    extra={
                        "event": "dividends.payout_capped",
                        "token": payout.token,
                        "user": payout.to,
                        "owed": payout.owed,
                        "paid": amount,
                    },
                )
            if amount > 0 and not self._vault.transfer(payout.token, payout.to, amount):
                raise TransferFailed(f"transfer of {amount} {payout.token} to {payout.to} failed")
            paid[payout.token] = amount
            events.append(
                LedgerEvent(Event.DIVIDENDS_COLLECTED, token=payout.token, user=payout.to, amount=amount)
            )
        return events, paid

    def _commit(self, result: LedgerStepResult) -> Dict[TokenId, int]:
        previous = self._state
        self._state = result.state
        try:
            payout_events, paid = self._pay(result.payouts)
        except Exception:
            self._state = previous
            raise
        self._record(list(result.events) + payout_events)
        return paid

    def _record(self, events: Sequence[LedgerEvent]) -> None:
        for ev in events:
            self._events.append(ev)
            logger.info(
                ev.event.value,
                extra={
                    "event": f"dividends.{ev.event.value}",
                    "token": ev.token,
                    "user": ev.user,
                    "amount": ev.amount,
                    "previous": ev.previous,
                    "new": ev.new,
                },
            )

    def _execute(self, command: Command) -> Dict[TokenId, int]:
        with self._non_reentrant(command.action.value):
            return self._commit(self._run(command))

    def _deposit(self, action: Action, caller: str, token: TokenId, amount: int) -> int:
        with self._non_reentrant(action.value):
            now = self._now()
            # Reject before any funds move.
            self._run(Command(action, caller, now, token=token, amount=amount))
            before = self._vault.balance_of(token)
            if not self._vault.transfer_from(token, caller, amount):
                raise TransferFailed(f"transfer of {amount} {token} from {caller} failed")
            received = self._vault.balance_of(token) - before
            if received <= 0:
                logger.warning(
                    "Deposit credited nothing",
                    extra={
                        "event": "dividends.deposit_empty",
                        "operation": action.value,
                        "caller": caller,
                        "token": token,
                        "amount": amount,
                    },
                )
                return 0
            try:
                result = self._run(Command(action, caller, now, token=token, amount=received))
            except DividendsError:
                if not self._vault.transfer(token, caller, received):
                    logger.error(
                        "Deposit refund failed",
                        extra={
                            "event": "dividends.refund_failed",
                            "caller": caller,
                            "token": token,
                            "amount": received,
                        },
                    )
                raise
            self._commit(result)
            return received

    # -- Allocation ----------------------------------------------------------

    def allocate(self, caller: str, user: UserId, amount: int) -> None:
        self._execute(Command(Action.ALLOCATE, caller, self._now(), user=user, amount=amount))

    def deallocate(self, caller: str, user: UserId, amount: int) -> None:
        self._execute(Command(Action.DEALLOCATE, caller, self._now(), user=user, amount=amount))

    # -- Harvest / settlement ------------------------------------------------

    def harvest(self, caller: UserId, token: TokenId) -> int:
        """Pay ``caller`` everything owed for ``token``; returns the amount paid."""
        paid = self._execute(Command(Action.HARVEST, caller, self._now(), token=token))
        return paid.get(token, 0)

    def harvest_all(self, caller: UserId) -> Dict[TokenId, int]:
        """Harvest every distributed token in registry order, committing each one.

        A failed transfer aborts the loop; tokens paid before it stay paid and
        settled.
        """
        with self._non_reentrant(Action.HARVEST_ALL.value):
            now = self._now()
            paid: Dict[TokenId, int] = {}
            for token in self._state.registry.tokens():
                paid.update(self._commit(self._run(Command(Action.HARVEST, caller, now, token=token))))
            return paid

    def settle(self, token: TokenId) -> None:
        self._execute(Command(Action.SETTLE, "", self._now(), token=token))

    def settle_all(self) -> None:
        self._execute(Command(Action.SETTLE_ALL, "", self._now()))

    def update_cycle_start_time(self) -> None:
        self._execute(Command(Action.UPDATE_CYCLE_START_TIME, "", self._now()))

    # -- Deposits ------------------------------------------------------------

    def add_to_pending(self, caller: str, token: TokenId, amount: int) -> int:
        """Pull ``amount`` from ``caller`` into the pending slot; returns the amount credited."""
        return self._deposit(Action.ADD_TO_PENDING, caller, token, amount)

    def add_to_current_cycle(self, caller: str, token: TokenId, amount: int) -> int:
        """Pull ``amount`` from ``caller`` straight into the running cycle."""
        return self._deposit(Action.ADD_TO_CURRENT_CYCLE, caller, token, amount)

    # -- Administration ------------------------------------------------------

    def enable(self, caller: str, token: TokenId) -> None:
        self._execute(Command(Action.ENABLE, caller, self._now(), token=token))

    def disable(self, caller: str, token: TokenId) -> None:
        self._execute(Command(Action.DISABLE, caller, self._now(), token=token))

    def remove(self, caller: str, token: TokenId) -> None:
        self._execute(Command(Action.REMOVE, caller, self._now(), token=token))

    def set_cycle_percent(self, caller: str, token: TokenId, percent: int) -> None:
        self._execute(Command(Action.SET_CYCLE_PERCENT, caller, self._now(), token=token, percent=percent))

    def set_deposit_handler(self, caller: str, handler: str, allowed: bool) -> None:
        self._execute(
            Command(Action.SET_DEPOSIT_HANDLER, caller, self._now(), user=handler, allowed=allowed)
        )

    def emergency_withdraw(self, caller: str, token: TokenId) -> int:
        """Send the vault's whole ``token`` balance to the owner. Accounting is untouched."""
        with self._non_reentrant("emergency_withdraw"):
            return self._withdraw(caller, token)

    def emergency_withdraw_all(self, caller: str) -> Dict[TokenId, int]:
        """Emergency-withdraw every distributed token the vault holds a balance of."""
        with self._non_reentrant("emergency_withdraw_all"):
            require_owner(self._config, caller)
            return {
                token: self._withdraw(caller, token)
                for token in self._state.registry.tokens()
                if self._vault.balance_of(token) > 0
            }

    def _withdraw(self, caller: str, token: TokenId) -> int:
        try:
            require_owner(self._config, caller)
            balance = self._vault.balance_of(token)
            if balance <= 0:
                raise InvalidState(f"nothing to withdraw for {token}")
        except DividendsError as exc:
            logger.warning(
                "Emergency withdraw rejected",
                extra={"event": "dividends.rejected", "operation": "emergency_withdraw", "code": exc.code},
            )
            raise
        if not self._vault.transfer(token, self._config.owner, balance):
            raise TransferFailed(f"emergency withdraw of {balance} {token} failed")
        self._record([LedgerEvent(Event.EMERGENCY_WITHDRAWN, token=token, user=self._config.owner, amount=balance)])
        return balance

    # -- Views ---------------------------------------------------------------

    @property
    def config(self) -> DividendsConfig:
        return self._config

    @property
    def state(self) -> LedgerState:
        """Committed state. Treat as read-only; use ``snapshot()`` for a stable copy."""
        return self._state

    @property
    def events(self) -> Tuple[LedgerEvent, ...]:
        return tuple(self._events)

    def distributed_tokens(self) -> Tuple[TokenId, ...]:
        return self._state.registry.tokens()

    def distributed_tokens_length(self) -> int:
        return len(self._state.registry)

    def distributed_token(self, index: int) -> TokenId:
        return self._state.registry.at(index)

    def is_distributed_token(self, token: TokenId) -> bool:
        return self._state.registry.contains(token)

    def token_status(self, token: TokenId) -> TokenStatus:
        return token_status(self._state, token)

    def token_info(self, token: TokenId) -> Optional[DistributionToken]:
        return self._state.tokens.get(token)

    def user_info(self, user: UserId, token: TokenId) -> UserTokenAccount:
        return self._state.accounts.get(user, token)

    def allocation_of(self, user: UserId) -> int:
        return self._state.allocations.get(user)

    @property
    def total_allocation(self) -> int:
        return self._state.allocations.total

    @property
    def cycle_start_time(self) -> int:
        return self._state.clock.cycle_start_time

    @property
    def cycle_duration(self) -> int:
        return self._state.clock.cycle_duration

    def next_cycle_start_time(self) -> int:
        return next_cycle_start_time(self._state.clock)

    def pending_dividends_amount(self, user: UserId, token: TokenId) -> int:
        """What ``harvest`` would owe ``user`` right now, before the vault cap."""
        require_registered(self._state, token)
        return pending_dividends_amount(self._state, user, token, self._now())

    def snapshot(self) -> DividendsSnapshot:
        return snapshot_from_state(self._state)

    def __repr__(self) -> str:
        return (
            f"DividendsLedger({len(self._state.registry)} tokens, "
            f"total_allocation={self._state.allocations.total})"
        )
