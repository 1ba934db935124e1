"""
Token vault capability.

The ledger never moves value itself; it asks a ``TokenVault`` for balances and
transfers. ``InMemoryTokenVault`` is a complete in-process implementation used
by tests and simulations. It can charge a transfer fee on deposits (to exercise
balance-delta crediting) and can call a hook when an account receives tokens,
which is how a hostile recipient re-enters the ledger.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional, Protocol, Tuple

from ..core.math import BPS_DENOM

ReceiveHook = Callable[[str, str, int], None]  # (token, recipient, amount)


class TokenVault(Protocol):
    def balance_of(self, token: str) -> int:
        """Amount of ``token`` held on behalf of the ledger."""

    def transfer(self, token: str, to: str, amount: int) -> bool:
        """Send ``amount`` of ``token`` from the ledger to ``to``."""

    def transfer_from(self, token: str, sender: str, amount: int) -> bool:
        """Pull ``amount`` of ``token`` from ``sender`` into the ledger."""


class InMemoryTokenVault:
    """Ledger-held balances plus the external balances of every account."""

    def __init__(self) -> None:
        self._held: Dict[str, int] = {}
        self._accounts: Dict[Tuple[str, str], int] = {}
        self._fee_bps: Dict[str, int] = {}
        self._hooks: Dict[str, ReceiveHook] = {}

    # -- Setup helpers -------------------------------------------------------

    def mint(self, account: str, token: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"mint amount must be non-negative: {amount}")
        key = (account, token)
        self._accounts[key] = self._accounts.get(key, 0) + amount

    def set_transfer_fee(self, token: str, fee_bps: int) -> None:
        if not 0 <= fee_bps <= BPS_DENOM:
            raise ValueError(f"fee_bps must be in [0, {BPS_DENOM}]: {fee_bps}")
        self._fee_bps[token] = fee_bps

    def on_receive(self, account: str, hook: Optional[ReceiveHook]) -> None:
        if hook is None:
            self._hooks.pop(account, None)
        else:
            self._hooks[account] = hook

    def account_balance(self, account: str, token: str) -> int:
        return self._accounts.get((account, token), 0)

    # -- TokenVault ----------------------------------------------------------

    def balance_of(self, token: str) -> int:
        return self._held.get(token, 0)

    def transfer(self, token: str, to: str, amount: int) -> bool:
        if amount < 0 or amount > self.balance_of(token):
            return False
        self._held[token] = self.balance_of(token) - amount
        self._accounts[(to, token)] = self.account_balance(to, token) + amount
        hook = self._hooks.get(to)
        if hook is not None:
            try:
                hook(token, to, amount)
            except Exception:
                # A reverting recipient reverts the transfer as well.
                self._held[token] = self.balance_of(token) + amount
                self._accounts[(to, token)] = self.account_balance(to, token) - amount
                raise
        return True

    def transfer_from(self, token: str, sender: str, amount: int) -> bool:
        if amount < 0 or amount > self.account_balance(sender, token):
            return False
        fee = (amount * self._fee_bps.get(token, 0)) // BPS_DENOM
        self._accounts[(sender, token)] = self.account_balance(sender, token) - amount
        self._held[token] = self.balance_of(token) + amount - fee
        return True

    def __repr__(self) -> str:
        return f"InMemoryTokenVault({len(self._held)} tokens held)"
