"""Tests for cycle_dividends/core/lifecycle.py: token state machine."""

import pytest

from cycle_dividends.core.config import DividendsConfig
from cycle_dividends.core.engine import Action, Command, step
from cycle_dividends.core.lifecycle import token_status
from cycle_dividends.core.types import Event, TokenStatus
from cycle_dividends.state.ledger_state import LedgerState, initial_state

WEEK = 604_800
START = 1_000

CONFIG = DividendsConfig(
    owner="owner",
    allocation_source="xgrail",
    start_time=START,
    cycle_duration_seconds=WEEK,
    max_distributed_tokens=2,
    deposit_handlers=frozenset({"handler"}),
)


def _run(state: LedgerState, *commands: Command) -> LedgerState:
    for cmd in commands:
        r = step(CONFIG, state, cmd)
        assert r.ok, r.error
        state = r.state
    return state


def _enabled(*tokens: str) -> LedgerState:
    return _run(initial_state(CONFIG), *(Command(Action.ENABLE, "owner", 500, token=t) for t in tokens))


def _streaming_then_disabled() -> LedgerState:
    """WETH pays 700 in the first cycle and is disabled half way through it."""
    return _run(
        _enabled("WETH"),
        Command(Action.SET_CYCLE_PERCENT, "owner", 500, token="WETH", percent=1000),
        Command(Action.ADD_TO_PENDING, "handler", 500, token="WETH", amount=7000),
        Command(Action.ALLOCATE, "xgrail", 600, user="alice", amount=100),
        Command(Action.DISABLE, "owner", START + WEEK // 2, token="WETH"),
    )


# ---------------------------------------------------------------------------
# enable
# ---------------------------------------------------------------------------

class TestEnable:
    def test_new_token(self):
        r = step(CONFIG, initial_state(CONFIG), Command(Action.ENABLE, "owner", 500, token="WETH"))
        assert r.ok
        assert token_status(r.state, "WETH") is TokenStatus.ACTIVE
        assert r.state.tokens.get("WETH").cycle_dividends_percent == CONFIG.default_cycle_dividends_percent
        assert r.state.tokens.get("WETH").last_update_time == 500
        assert r.events[0].event == Event.DISTRIBUTED_TOKEN_ENABLED

    def test_unknown_is_uninitialized(self):
        assert token_status(initial_state(CONFIG), "WETH") is TokenStatus.UNINITIALIZED

    def test_twice_rejected(self):
        r = step(CONFIG, _enabled("WETH"), Command(Action.ENABLE, "owner", 600, token="WETH"))
        assert r.code == "invalid_state"

    def test_owner_only(self):
        r = step(CONFIG, initial_state(CONFIG), Command(Action.ENABLE, "alice", 500, token="WETH"))
        assert r.code == "unauthorized"

    def test_capacity(self):
        r = step(CONFIG, _enabled("WETH", "USDC"), Command(Action.ENABLE, "owner", 600, token="DAI"))
        assert r.code == "capacity_exceeded"

    def test_disabled_token_still_counts(self):
        s = _run(_enabled("WETH", "USDC"), Command(Action.DISABLE, "owner", 600, token="USDC"))
        r = step(CONFIG, s, Command(Action.ENABLE, "owner", 600, token="DAI"))
        assert r.code == "capacity_exceeded"

    def test_reenable_keeps_percent(self):
        s = _run(
            _enabled("WETH"),
            Command(Action.SET_CYCLE_PERCENT, "owner", 600, token="WETH", percent=2500),
            Command(Action.DISABLE, "owner", 700, token="WETH"),
            Command(Action.ENABLE, "owner", 800, token="WETH"),
        )
        assert token_status(s, "WETH") is TokenStatus.ACTIVE
        assert s.tokens.get("WETH").cycle_dividends_percent == 2500


# ---------------------------------------------------------------------------
# disable / remove
# ---------------------------------------------------------------------------

class TestDisableRemove:
    def test_disable(self):
        s = _run(_enabled("WETH"), Command(Action.DISABLE, "owner", 600, token="WETH"))
        assert token_status(s, "WETH") is TokenStatus.DISABLED
        assert s.registry.contains("WETH")

    def test_disable_twice_rejected(self):
        s = _run(_enabled("WETH"), Command(Action.DISABLE, "owner", 600, token="WETH"))
        r = step(CONFIG, s, Command(Action.DISABLE, "owner", 600, token="WETH"))
        assert r.code == "invalid_state"

    def test_running_cycle_still_pays(self):
        s = _streaming_then_disabled()
        r = step(CONFIG, s, Command(Action.HARVEST, "alice", START + WEEK, token="WETH"))
        assert r.payouts[0].owed == 700
        token = r.state.tokens.get("WETH")
        assert token.current_distribution_amount == 0
        assert token.pending_amount == 6300

    def test_remove_active_rejected(self):
        r = step(CONFIG, _enabled("WETH"), Command(Action.REMOVE, "owner", 600, token="WETH"))
        assert r.code == "invalid_state"

    def test_remove_while_streaming_rejected(self):
        r = step(CONFIG, _streaming_then_disabled(), Command(Action.REMOVE, "owner", START + WEEK - 1, token="WETH"))
        assert r.code == "invalid_state"

    def test_remove_after_last_cycle(self):
        r = step(CONFIG, _streaming_then_disabled(), Command(Action.REMOVE, "owner", START + WEEK, token="WETH"))
        assert r.ok
        assert token_status(r.state, "WETH") is TokenStatus.REMOVED
        assert not r.state.registry.contains("WETH")
        # The record survives removal.
        assert r.state.tokens.get("WETH").distributed_amount == 700
        assert r.events[0].event == Event.DISTRIBUTED_TOKEN_REMOVED

    def test_removed_is_terminal(self):
        s = _run(_streaming_then_disabled(), Command(Action.REMOVE, "owner", START + WEEK, token="WETH"))
        r = step(CONFIG, s, Command(Action.ENABLE, "owner", START + WEEK, token="WETH"))
        assert r.code == "invalid_state"
        r = step(CONFIG, s, Command(Action.HARVEST, "alice", START + WEEK, token="WETH"))
        assert r.code == "invalid_token"

    def test_remove_frees_capacity(self):
        s = _run(
            _enabled("USDC"),
            Command(Action.DISABLE, "owner", 600, token="USDC"),
            Command(Action.REMOVE, "owner", 600, token="USDC"),
            Command(Action.ENABLE, "owner", 600, token="WETH"),
            Command(Action.ENABLE, "owner", 600, token="DAI"),
        )
        assert s.registry.tokens() == ("WETH", "DAI")


# ---------------------------------------------------------------------------
# set_cycle_percent
# ---------------------------------------------------------------------------

class TestCyclePercent:
    @pytest.mark.parametrize("percent", [0, 10_001])
    def test_out_of_bounds(self, percent):
        r = step(CONFIG, _enabled("WETH"), Command(Action.SET_CYCLE_PERCENT, "owner", 600, token="WETH", percent=percent))
        assert r.code == "out_of_bounds"

    def test_owner_only(self):
        r = step(CONFIG, _enabled("WETH"), Command(Action.SET_CYCLE_PERCENT, "alice", 600, token="WETH", percent=500))
        assert r.code == "unauthorized"

    def test_event_reports_change(self):
        r = step(CONFIG, _enabled("WETH"), Command(Action.SET_CYCLE_PERCENT, "owner", 600, token="WETH", percent=500))
        ev = r.events[0]
        assert ev.event == Event.CYCLE_DIVIDENDS_PERCENT_UPDATED
        assert (ev.previous, ev.new) == (CONFIG.default_cycle_dividends_percent, 500)

    def test_unregistered_token(self):
        r = step(CONFIG, initial_state(CONFIG), Command(Action.SET_CYCLE_PERCENT, "owner", 600, token="WETH", percent=500))
        assert r.code == "invalid_token"
