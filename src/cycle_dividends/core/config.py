"""
Ledger configuration.

``DividendsConfig`` is validated on construction. ``load_config()`` reads the
same fields from a YAML mapping; unknown keys are rejected so a typo never
silently falls back to a default.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, FrozenSet, Mapping

import yaml

from .math import BPS_DENOM

SECONDS_PER_DAY = 24 * 60 * 60
DEFAULT_CYCLE_DURATION_SECONDS = 7 * SECONDS_PER_DAY
DEFAULT_MAX_DISTRIBUTED_TOKENS = 10
MIN_CYCLE_DIVIDENDS_PERCENT = 1  # 0.01%
DEFAULT_CYCLE_DIVIDENDS_PERCENT = 100  # 1%
MAX_CYCLE_DIVIDENDS_PERCENT = BPS_DENOM  # 100%


def _require_int(name: str, value: Any, *, minimum: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}: {value}")


def _require_id(name: str, value: Any) -> None:
    if not isinstance(value, str) or not value:
        raise TypeError(f"{name} must be a non-empty string")


@dataclass(frozen=True)
class DividendsConfig:
    """Static parameters of one dividends ledger."""

    owner: str
    allocation_source: str
    start_time: int
    cycle_duration_seconds: int = DEFAULT_CYCLE_DURATION_SECONDS
    max_distributed_tokens: int = DEFAULT_MAX_DISTRIBUTED_TOKENS
    min_cycle_dividends_percent: int = MIN_CYCLE_DIVIDENDS_PERCENT
    default_cycle_dividends_percent: int = DEFAULT_CYCLE_DIVIDENDS_PERCENT
    max_cycle_dividends_percent: int = MAX_CYCLE_DIVIDENDS_PERCENT
    deposit_handlers: FrozenSet[str] = frozenset()

    def __post_init__(self) -> None:
        _require_id("owner", self.owner)
        _require_id("allocation_source", self.allocation_source)
        _require_int("start_time", self.start_time, minimum=0)
        _require_int("cycle_duration_seconds", self.cycle_duration_seconds, minimum=1)
        _require_int("max_distributed_tokens", self.max_distributed_tokens, minimum=1)
        for name in (
            "min_cycle_dividends_percent",
            "default_cycle_dividends_percent",
            "max_cycle_dividends_percent",
        ):
            _require_int(name, getattr(self, name), minimum=1)
        if self.max_cycle_dividends_percent > BPS_DENOM:
            raise ValueError(f"max_cycle_dividends_percent must be <= {BPS_DENOM}")
        if not (
            self.min_cycle_dividends_percent
            <= self.default_cycle_dividends_percent
            <= self.max_cycle_dividends_percent
        ):
            raise ValueError("cycle dividends percents must satisfy min <= default <= max")
        if not isinstance(self.deposit_handlers, frozenset):
            raise TypeError("deposit_handlers must be a frozenset")
        for handler in self.deposit_handlers:
            _require_id("deposit handler", handler)


_CONFIG_FIELDS = frozenset(f.name for f in fields(DividendsConfig))


def config_from_mapping(obj: Mapping[str, Any]) -> DividendsConfig:
    """Build a config from a plain mapping (e.g. parsed YAML)."""
    if not isinstance(obj, Mapping):
        raise TypeError("config must be a mapping")
    unknown = sorted(set(obj) - _CONFIG_FIELDS)
    if unknown:
        raise ValueError(f"unknown config keys: {', '.join(map(str, unknown))}")
    kwargs = dict(obj)
    handlers = kwargs.get("deposit_handlers")
    if handlers is not None:
        if isinstance(handlers, str) or not isinstance(handlers, (list, tuple, set, frozenset)):
            raise TypeError("deposit_handlers must be a list of ids")
        kwargs["deposit_handlers"] = frozenset(handlers)
    return DividendsConfig(**kwargs)


def load_config(path: Path | str) -> DividendsConfig:
    """Load a ``DividendsConfig`` from a YAML file."""
    obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if obj is None:
        obj = {}
    return config_from_mapping(obj)
