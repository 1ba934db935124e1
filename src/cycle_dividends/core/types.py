"""Data types for the dividends ledger.

All types are frozen dataclasses (immutable). Updates go through
``dataclasses.replace()``.

Units/conventions:
- plain amounts are integer token units,
- ``*_per_second`` and ``current_cycle_distributed_amount`` are scaled by 100,
- ``acc_dividends_per_share`` is scaled by 1e18,
- ``*_percent`` values are basis points (1/10_000),
- times are integer unix seconds.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique

TokenId = str
UserId = str


@unique
class TokenStatus(Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    DISABLED = "disabled"
    REMOVED = "removed"


@unique
class Event(Enum):
    """One member per event the ledger records on commit."""
    USER_UPDATED = "UserUpdated"
    DIVIDENDS_COLLECTED = "DividendsCollected"
    DIVIDENDS_ADDED_TO_PENDING = "DividendsAddedToPending"
    DIVIDENDS_ADDED_TO_CURRENT_CYCLE = "DividendsAddedToCurrentCycle"
    CYCLE_DIVIDENDS_PERCENT_UPDATED = "CycleDividendsPercentUpdated"
    DISTRIBUTED_TOKEN_ENABLED = "DistributedTokenEnabled"
    DISTRIBUTED_TOKEN_DISABLED = "DistributedTokenDisabled"
    DISTRIBUTED_TOKEN_REMOVED = "DistributedTokenRemoved"
    DEPOSIT_HANDLER_UPDATED = "DepositHandlerUpdated"
    EMERGENCY_WITHDRAWN = "EmergencyWithdrawn"


@dataclass(frozen=True)
class DistributionToken:
    """Per reward-token distribution state."""

    # Slots
    pending_amount: int = 0
    current_distribution_amount: int = 0
    distributed_amount: int = 0

    # Active stream (×100)
    dividends_amount_per_second: int = 0
    current_cycle_distributed_amount: int = 0

    # Accumulator (×1e18)
    acc_dividends_per_share: int = 0
    last_update_time: int = 0

    # Control
    cycle_dividends_percent: int = 0
    distribution_disabled: bool = False

    # Lifetime deposits, for the conservation check
    deposited_amount: int = 0


@dataclass(frozen=True)
class UserTokenAccount:
    """Per (user, token) settlement bookkeeping."""

    pending_dividends: int = 0
    reward_debt: int = 0


@dataclass(frozen=True)
class LedgerEvent:
    """Observable record of a committed change. Unused fields default to None/0."""

    event: Event
    token: TokenId | None = None
    user: UserId | None = None
    amount: int = 0
    previous: int = 0
    new: int = 0
