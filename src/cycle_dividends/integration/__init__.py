"""
Imperative shell: ledger entry points, token vault, snapshots
"""

from .ledger import DividendsLedger
from .snapshot import DIVIDENDS_SNAPSHOT_VERSION, DividendsSnapshot, snapshot_from_state, state_from_snapshot
from .vault import InMemoryTokenVault, TokenVault

__all__ = [
    "DividendsLedger",
    "DIVIDENDS_SNAPSHOT_VERSION",
    "DividendsSnapshot",
    "snapshot_from_state",
    "state_from_snapshot",
    "InMemoryTokenVault",
    "TokenVault",
]
