"""Fixed-point arithmetic for the dividends ledger.

Every function is stateless and operates on plain Python ints.

Python ints never overflow, so the uint256 domain of on-chain token amounts is
enforced explicitly: each checked helper raises ``ArithmeticOverflow`` when a
result leaves ``[0, MAX_UINT256]``. Division is floor division (``//``) on
non-negative operands.
"""

from __future__ import annotations

from .errors import ArithmeticOverflow

# Scaling constants
ACC_SCALE: int = 10**18  # acc_dividends_per_share unit
RATE_SCALE: int = 100  # per-second rate / cycle distributed amount
ACC_RATE_FACTOR: int = ACC_SCALE // RATE_SCALE  # 1e16
BPS_DENOM: int = 10_000

MAX_UINT256: int = 2**256 - 1


# -- Checked primitives ------------------------------------------------------

def _check(value: int, what: str) -> int:
    if value < 0:
        raise ArithmeticOverflow(f"{what} underflow: {value}")
    if value > MAX_UINT256:
        raise ArithmeticOverflow(f"{what} overflow")
    return value


def checked_add(a: int, b: int) -> int:
    return _check(a + b, "add")


def checked_sub(a: int, b: int) -> int:
    return _check(a - b, "sub")


def checked_mul(a: int, b: int) -> int:
    return _check(a * b, "mul")


def mul_div(a: int, b: int, denom: int) -> int:
    """``floor(a * b / denom)`` with the product checked against uint256."""
    if denom <= 0:
        raise ZeroDivisionError("mul_div denominator must be positive")
    return checked_mul(a, b) // denom


# -- Domain helpers ----------------------------------------------------------

def scaled_amount(amount: int) -> int:
    """Token amount in the ×100 stream unit."""
    return checked_mul(amount, RATE_SCALE)


def per_second_rate(amount: int, duration_seconds: int) -> int:
    """Stream rate (×100) that drains ``amount`` over ``duration_seconds``."""
    return mul_div(amount, RATE_SCALE, duration_seconds)


def cycle_share(pending_amount: int, percent_bps: int) -> int:
    """Part of the pending slot pulled into the next cycle."""
    return mul_div(pending_amount, percent_bps, BPS_DENOM)


def acc_increment(scaled_to_distribute: int, total_stake: int) -> int:
    """Accumulator increase (×1e18) for a ×100 amount spread over ``total_stake``."""
    return mul_div(scaled_to_distribute, ACC_RATE_FACTOR, total_stake)


def accrued(stake: int, acc_dividends_per_share: int) -> int:
    """``stake * acc // ACC_SCALE``: the user's lifetime accrual at ``acc``."""
    return mul_div(stake, acc_dividends_per_share, ACC_SCALE)
