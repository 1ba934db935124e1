"""
Ledger state snapshot encoding.

Goals:
- Deterministic JSON serialization for hashing / state distribution.
- Round-trippable into ``LedgerState``.
- Explicit versioning so the layout can change without ambiguity.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping

from ..core.cycle import CycleClock
from ..core.invariants import check_all
from ..core.types import DistributionToken, UserTokenAccount
from ..state.accounts import UserAccountTable
from ..state.allocations import AllocationTable
from ..state.canonical import canonical_json_bytes, commitment_digest
from ..state.ledger_state import LedgerState
from ..state.registry import DistributionRegistry
from ..state.tokens import DistributionTokenTable


DIVIDENDS_SNAPSHOT_VERSION = 1

_TOKEN_FIELDS = tuple(f.name for f in fields(DistributionToken))


def _require_str(value: Any, *, name: str, max_len: int = 512) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string")
    if not value:
        raise ValueError(f"{name} must be non-empty")
    if len(value) > max_len:
        raise ValueError(f"{name} too large")
    return value


def _require_int(value: Any, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    return int(value)


def _require_list(snapshot: Mapping[str, Any], key: str, *, max_entries: int) -> list:
    entries = snapshot.get(key)
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise TypeError(f"snapshot.{key} must be a list")
    if len(entries) > max_entries:
        raise ValueError(f"too many {key} entries: {len(entries)} > {max_entries}")
    for entry in entries:
        if key != "deposit_handlers" and not isinstance(entry, Mapping):
            raise TypeError(f"snapshot.{key} entries must be objects")
    return entries


@dataclass(frozen=True)
class DividendsSnapshot:
    """
    Deterministic, versioned snapshot of ``LedgerState``.

    The commitment is *not* included inside ``data`` to avoid self-reference.
    """

    version: int
    data: Dict[str, Any]

    def canonical_bytes(self) -> bytes:
        return canonical_json_bytes(self.data)

    def commitment_bytes(self) -> bytes:
        return commitment_digest("dividends_snapshot", self.version, self.canonical_bytes())

    def commitment_hex(self) -> str:
        return "0x" + self.commitment_bytes().hex()


def snapshot_from_state(state: LedgerState, *, version: int = DIVIDENDS_SNAPSHOT_VERSION) -> DividendsSnapshot:
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")

    token_entries = []
    for token_id, info in state.tokens.items():
        entry: Dict[str, Any] = {"token": token_id}
        entry.update({name: getattr(info, name) for name in _TOKEN_FIELDS})
        token_entries.append(entry)
    token_entries.sort(key=lambda e: e["token"])

    account_entries = [
        {
            "user": user,
            "token": token_id,
            "pending_dividends": int(account.pending_dividends),
            "reward_debt": int(account.reward_debt),
        }
        for (user, token_id), account in state.accounts.get_all().items()
    ]
    account_entries.sort(key=lambda e: (e["user"], e["token"]))

    allocation_entries = [
        {"user": user, "stake": int(stake)} for user, stake in state.allocations.get_all().items()
    ]
    allocation_entries.sort(key=lambda e: e["user"])

    data: Dict[str, Any] = {
        "version": int(version),
        "clock": {
            "cycle_start_time": int(state.clock.cycle_start_time),
            "cycle_duration": int(state.clock.cycle_duration),
        },
        # Registry order is significant: it drives multi-token iteration.
        "registry": {
            "capacity": int(state.registry.capacity),
            "tokens": list(state.registry.tokens()),
        },
        "tokens": token_entries,
        "accounts": account_entries,
        "allocations": allocation_entries,
        "deposit_handlers": sorted(state.deposit_handlers),
    }
    return DividendsSnapshot(version=version, data=data)


def state_from_snapshot(
    snapshot: Mapping[str, Any],
    *,
    max_tokens: int = 1_000,
    max_accounts: int = 1_000_000,
    max_allocations: int = 1_000_000,
    max_handlers: int = 1_000,
) -> LedgerState:
    """Rebuild a ``LedgerState``; the result must satisfy every invariant."""
    if isinstance(snapshot, DividendsSnapshot):
        snapshot = snapshot.data
    if not isinstance(snapshot, Mapping):
        raise TypeError("snapshot must be a mapping")

    version = snapshot.get("version", DIVIDENDS_SNAPSHOT_VERSION)
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("snapshot.version must be a positive int")
    if version != DIVIDENDS_SNAPSHOT_VERSION:
        raise ValueError(f"unsupported snapshot version: {version}")

    clock_obj = snapshot.get("clock")
    if not isinstance(clock_obj, Mapping):
        raise TypeError("snapshot.clock must be an object")
    clock = CycleClock(
        cycle_start_time=_require_int(clock_obj.get("cycle_start_time"), name="clock.cycle_start_time"),
        cycle_duration=_require_int(clock_obj.get("cycle_duration"), name="clock.cycle_duration"),
    )

    registry_obj = snapshot.get("registry")
    if not isinstance(registry_obj, Mapping):
        raise TypeError("snapshot.registry must be an object")
    registry_tokens = registry_obj.get("tokens", [])
    if not isinstance(registry_tokens, list):
        raise TypeError("snapshot.registry.tokens must be a list")
    registry = DistributionRegistry(_require_int(registry_obj.get("capacity"), name="registry.capacity"))
    for token_id in registry_tokens:
        if not registry.add(_require_str(token_id, name="registry.token")):
            raise ValueError(f"duplicate registry entry: {token_id}")

    tokens = DistributionTokenTable()
    for entry in _require_list(snapshot, "tokens", max_entries=max_tokens):
        token_id = _require_str(entry.get("token"), name="token.token")
        if token_id in tokens:
            raise ValueError(f"duplicate token entry: {token_id}")
        kwargs: Dict[str, Any] = {}
        for name in _TOKEN_FIELDS:
            value = entry.get(name)
            if name == "distribution_disabled":
                if not isinstance(value, bool):
                    raise TypeError("token.distribution_disabled must be a bool")
                kwargs[name] = value
            else:
                kwargs[name] = _require_int(value, name=f"token.{name}")
        tokens.put(token_id, DistributionToken(**kwargs))

    accounts = UserAccountTable()
    for entry in _require_list(snapshot, "accounts", max_entries=max_accounts):
        user = _require_str(entry.get("user"), name="account.user")
        token_id = _require_str(entry.get("token"), name="account.token")
        if accounts.exists(user, token_id):
            raise ValueError("duplicate account entry (user, token)")
        accounts.set(
            user,
            token_id,
            UserTokenAccount(
                pending_dividends=_require_int(entry.get("pending_dividends"), name="account.pending_dividends"),
                reward_debt=_require_int(entry.get("reward_debt"), name="account.reward_debt"),
            ),
        )

    allocations = AllocationTable()
    for entry in _require_list(snapshot, "allocations", max_entries=max_allocations):
        user = _require_str(entry.get("user"), name="allocation.user")
        if allocations.get(user):
            raise ValueError(f"duplicate allocation entry: {user}")
        allocations.set(user, _require_int(entry.get("stake"), name="allocation.stake"))

    handlers = frozenset(
        _require_str(h, name="deposit_handler")
        for h in _require_list(snapshot, "deposit_handlers", max_entries=max_handlers)
    )

    state = LedgerState(
        clock=clock,
        registry=registry,
        tokens=tokens,
        accounts=accounts,
        allocations=allocations,
        deposit_handlers=handlers,
    )
    violations = check_all(state)
    if violations:
        raise ValueError(f"snapshot violates ledger invariants: {', '.join(violations)}")
    return state
