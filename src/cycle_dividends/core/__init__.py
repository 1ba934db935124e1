"""
Core dividends algorithms (functional core)
"""

from .config import DividendsConfig, config_from_mapping, load_config
from .cycle import CycleClock, advance_if_due, next_cycle_start_time
from .distribution import add_to_current_cycle, add_to_pending, preview_settle, settle_token
from .engine import Action, Command, LedgerStepResult, Payout, step, step_or_raise
from .errors import (
    ArithmeticOverflow,
    CapacityExceeded,
    DividendsError,
    InsufficientStake,
    InvalidAmount,
    InvalidState,
    InvalidToken,
    InvariantViolation,
    OutOfBounds,
    ReentrancyRejected,
    TransferFailed,
    Unauthorized,
)
from .types import DistributionToken, Event, LedgerEvent, TokenStatus, UserTokenAccount

__all__ = [
    "DividendsConfig",
    "config_from_mapping",
    "load_config",
    "CycleClock",
    "advance_if_due",
    "next_cycle_start_time",
    "add_to_current_cycle",
    "add_to_pending",
    "preview_settle",
    "settle_token",
    "Action",
    "Command",
    "LedgerStepResult",
    "Payout",
    "step",
    "step_or_raise",
    "ArithmeticOverflow",
    "CapacityExceeded",
    "DividendsError",
    "InsufficientStake",
    "InvalidAmount",
    "InvalidState",
    "InvalidToken",
    "InvariantViolation",
    "OutOfBounds",
    "ReentrancyRejected",
    "TransferFailed",
    "Unauthorized",
    "DistributionToken",
    "Event",
    "LedgerEvent",
    "TokenStatus",
    "UserTokenAccount",
]
