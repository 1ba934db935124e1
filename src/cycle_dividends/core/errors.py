"""Exception types for the dividends ledger.

Every error is raised before the staged state is committed, so a rejected
operation persists nothing. ``code`` is a stable machine-readable reason used by
``LedgerStepResult`` and in log lines.
"""

from __future__ import annotations


class DividendsError(Exception):
    """Base class for every rejection raised by the ledger."""

    code: str = "dividends_error"


class InvalidToken(DividendsError):
    """Operation on a token that is not (or no longer) distributed."""

    code = "invalid_token"


class CapacityExceeded(DividendsError):
    """The distributed-token registry is full."""

    code = "capacity_exceeded"


class InvalidState(DividendsError):
    """Lifecycle transition not allowed from the token's current state."""

    code = "invalid_state"


class Unauthorized(DividendsError):
    """Caller is not the owner / allocation source / deposit handler."""

    code = "unauthorized"


class InsufficientStake(DividendsError):
    """Deallocation larger than the user's current allocation."""

    code = "insufficient_stake"


class OutOfBounds(DividendsError):
    """Parameter outside its configured bounds."""

    code = "out_of_bounds"


class ReentrancyRejected(DividendsError):
    """Nested mutating call while another operation is in flight."""

    code = "reentrancy_rejected"


class InvalidAmount(DividendsError):
    """Amount is not a positive int."""

    code = "invalid_amount"


class ArithmeticOverflow(DividendsError):
    """A value left the uint256 domain."""

    code = "arithmetic_overflow"


class TransferFailed(DividendsError):
    """The token vault refused or failed a transfer."""

    code = "transfer_failed"


class InvariantViolation(DividendsError):
    """Raised when a post-state violates one or more invariants."""

    code = "invariant_violation"

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(f"invariant violations: {', '.join(violations)}")
