"""
State tables for the dividends ledger
"""

from .accounts import UserAccountTable
from .allocations import AllocationTable
from .ledger_state import LedgerState, initial_state
from .registry import DistributionRegistry
from .tokens import DistributionTokenTable

__all__ = [
    "UserAccountTable",
    "AllocationTable",
    "LedgerState",
    "initial_state",
    "DistributionRegistry",
    "DistributionTokenTable",
]
