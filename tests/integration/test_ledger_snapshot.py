"""Tests for cycle_dividends/integration/snapshot.py: deterministic snapshots."""

import copy

import pytest

from cycle_dividends.core.config import DividendsConfig
from cycle_dividends.integration.ledger import DividendsLedger
from cycle_dividends.integration.snapshot import (
    DIVIDENDS_SNAPSHOT_VERSION,
    snapshot_from_state,
    state_from_snapshot,
)
from cycle_dividends.integration.vault import InMemoryTokenVault

WEEK = 604_800
START = 1_000

CONFIG = DividendsConfig(
    owner="owner",
    allocation_source="xgrail",
    start_time=START,
    cycle_duration_seconds=WEEK,
    deposit_handlers=frozenset({"handler"}),
)


def _busy_ledger():
    now = [500]
    vault = InMemoryTokenVault()
    vault.mint("handler", "WETH", 10**9)
    ledger = DividendsLedger(CONFIG, vault, time_source=lambda: now[0])
    ledger.enable("owner", "WETH")
    ledger.enable("owner", "USDC")
    ledger.add_to_pending("handler", "WETH", 6_048_000)
    ledger.set_cycle_percent("owner", "WETH", 5000)
    now[0] = 600
    ledger.allocate("xgrail", "alice", 100)
    ledger.allocate("xgrail", "bob", 300)
    now[0] = START + 1234
    ledger.deallocate("xgrail", "bob", 100)
    return ledger, vault, now


class TestSnapshot:
    def test_round_trip(self):
        ledger, _vault, _now = _busy_ledger()
        snap = ledger.snapshot()
        restored = state_from_snapshot(snap.data)
        again = snapshot_from_state(restored)
        assert again.data == snap.data
        assert again.commitment_hex() == snap.commitment_hex()

    def test_accepts_snapshot_object(self):
        ledger, _vault, _now = _busy_ledger()
        restored = state_from_snapshot(ledger.snapshot())
        assert restored.registry.tokens() == ("WETH", "USDC")
        assert restored.allocations.total == 300

    def test_commitment_is_deterministic(self):
        a, _, _ = _busy_ledger()
        b, _, _ = _busy_ledger()
        assert a.snapshot().commitment_bytes() == b.snapshot().commitment_bytes()
        digest = a.snapshot().commitment_hex()
        assert digest == "0x" + a.snapshot().commitment_bytes().hex()
        assert len(digest) == 66

    def test_commitment_tracks_state(self):
        ledger, _vault, now = _busy_ledger()
        before = ledger.snapshot().commitment_hex()
        now[0] += 10
        ledger.settle("WETH")
        assert ledger.snapshot().commitment_hex() != before

    def test_restored_ledger_behaves_identically(self):
        ledger, vault, now = _busy_ledger()
        twin = DividendsLedger(CONFIG, vault, time_source=lambda: now[0], state=state_from_snapshot(ledger.snapshot()))
        now[0] = START + WEEK // 2
        assert twin.pending_dividends_amount("alice", "WETH") == ledger.pending_dividends_amount("alice", "WETH")
        assert twin.pending_dividends_amount("bob", "WETH") == ledger.pending_dividends_amount("bob", "WETH")

    def test_version_field(self):
        ledger, _vault, _now = _busy_ledger()
        assert ledger.snapshot().data["version"] == DIVIDENDS_SNAPSHOT_VERSION


class TestSnapshotValidation:
    def _data(self):
        ledger, _vault, _now = _busy_ledger()
        return copy.deepcopy(ledger.snapshot().data)

    def test_unsupported_version(self):
        data = self._data()
        data["version"] = DIVIDENDS_SNAPSHOT_VERSION + 1
        with pytest.raises(ValueError, match="unsupported"):
            state_from_snapshot(data)

    def test_duplicate_token(self):
        data = self._data()
        data["tokens"].append(dict(data["tokens"][0]))
        with pytest.raises(ValueError, match="duplicate"):
            state_from_snapshot(data)

    def test_broken_conservation(self):
        data = self._data()
        weth = next(t for t in data["tokens"] if t["token"] == "WETH")
        weth["deposited_amount"] += 1
        with pytest.raises(ValueError, match="inv_conservation"):
            state_from_snapshot(data)

    def test_negative_amount(self):
        data = self._data()
        data["allocations"][0]["stake"] = -1
        with pytest.raises(ValueError):
            state_from_snapshot(data)

    def test_registered_without_record(self):
        data = self._data()
        data["registry"]["tokens"].append("DAI")
        with pytest.raises(ValueError, match="inv_registered_has_record"):
            state_from_snapshot(data)

    def test_not_a_mapping(self):
        with pytest.raises(TypeError):
            state_from_snapshot([1, 2, 3])
