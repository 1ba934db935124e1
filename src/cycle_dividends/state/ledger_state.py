"""
Complete durable state of one dividends ledger.

The tables are mutable; every public operation runs against ``copy()`` of the
committed state and the copy replaces it only when the operation succeeds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet

from ..core.config import DividendsConfig
from ..core.cycle import CycleClock
from .accounts import UserAccountTable
from .allocations import AllocationTable
from .registry import DistributionRegistry
from .tokens import DistributionTokenTable


@dataclass
class LedgerState:
    clock: CycleClock
    registry: DistributionRegistry
    tokens: DistributionTokenTable = field(default_factory=DistributionTokenTable)
    accounts: UserAccountTable = field(default_factory=UserAccountTable)
    allocations: AllocationTable = field(default_factory=AllocationTable)
    deposit_handlers: FrozenSet[str] = frozenset()

    def copy(self) -> "LedgerState":
        return LedgerState(
            clock=self.clock,
            registry=self.registry.copy(),
            tokens=self.tokens.copy(),
            accounts=self.accounts.copy(),
            allocations=self.allocations.copy(),
            deposit_handlers=self.deposit_handlers,
        )


def initial_state(config: DividendsConfig) -> LedgerState:
    """Empty ledger whose first cycle starts at ``config.start_time``."""
    return LedgerState(
        clock=CycleClock(
            cycle_start_time=config.start_time,
            cycle_duration=config.cycle_duration_seconds,
        ),
        registry=DistributionRegistry(config.max_distributed_tokens),
        deposit_handlers=config.deposit_handlers,
    )
