"""
Multi-token, stake-weighted, cycle-throttled dividends ledger.
"""

from .core.config import DividendsConfig, load_config
from .core.errors import DividendsError
from .integration.ledger import DividendsLedger
from .integration.vault import InMemoryTokenVault, TokenVault

__version__ = "0.1.0"

__all__ = [
    "DividendsConfig",
    "load_config",
    "DividendsError",
    "DividendsLedger",
    "InMemoryTokenVault",
    "TokenVault",
]
