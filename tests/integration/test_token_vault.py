"""Tests for cycle_dividends/integration/vault.py: in-memory token vault."""

import pytest

from cycle_dividends.integration.vault import InMemoryTokenVault, TokenVault


def _vault_with_deposit(amount: int = 1000) -> InMemoryTokenVault:
    vault = InMemoryTokenVault()
    vault.mint("handler", "WETH", amount)
    assert vault.transfer_from("WETH", "handler", amount)
    return vault


class TestInMemoryTokenVault:
    def test_satisfies_protocol(self):
        vault: TokenVault = InMemoryTokenVault()
        assert vault.balance_of("WETH") == 0

    def test_transfer_from_moves_into_vault(self):
        vault = _vault_with_deposit()
        assert vault.balance_of("WETH") == 1000
        assert vault.account_balance("handler", "WETH") == 0

    def test_transfer_from_insufficient(self):
        vault = InMemoryTokenVault()
        vault.mint("handler", "WETH", 10)
        assert vault.transfer_from("WETH", "handler", 11) is False
        assert vault.account_balance("handler", "WETH") == 10

    def test_transfer_out(self):
        vault = _vault_with_deposit()
        assert vault.transfer("WETH", "alice", 400)
        assert vault.balance_of("WETH") == 600
        assert vault.account_balance("alice", "WETH") == 400

    def test_transfer_more_than_held(self):
        vault = _vault_with_deposit(10)
        assert vault.transfer("WETH", "alice", 11) is False

    def test_transfer_fee(self):
        vault = InMemoryTokenVault()
        vault.set_transfer_fee("WETH", 250)
        vault.mint("handler", "WETH", 10_000)
        assert vault.transfer_from("WETH", "handler", 10_000)
        assert vault.balance_of("WETH") == 9_750

    def test_invalid_fee(self):
        with pytest.raises(ValueError):
            InMemoryTokenVault().set_transfer_fee("WETH", 10_001)

    def test_hook_called(self):
        vault = _vault_with_deposit()
        seen = []
        vault.on_receive("alice", lambda token, to, amount: seen.append((token, to, amount)))
        vault.transfer("WETH", "alice", 5)
        assert seen == [("WETH", "alice", 5)]

    def test_raising_hook_reverts_transfer(self):
        vault = _vault_with_deposit()

        def hook(token, to, amount):
            raise RuntimeError("recipient reverted")

        vault.on_receive("alice", hook)
        with pytest.raises(RuntimeError):
            vault.transfer("WETH", "alice", 5)
        assert vault.balance_of("WETH") == 1000
        assert vault.account_balance("alice", "WETH") == 0

    def test_hook_cleared(self):
        vault = _vault_with_deposit()
        vault.on_receive("alice", lambda *args: pytest.fail("hook should be cleared"))
        vault.on_receive("alice", None)
        assert vault.transfer("WETH", "alice", 5)
