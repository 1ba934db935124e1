"""
Canonical encoding of ledger snapshots.

Two ledgers in the same state must produce byte-identical encodings, so the
encoding admits only JSON values with an exact representation: str-keyed
objects, lists, strings, ints of any size, bools and null.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

_SCALARS = (str, int, bool, type(None))


def _check_value(value: Any, path: str = "$") -> None:
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"{path}: object keys must be str, got {type(key).__name__}")
            _check_value(item, f"{path}.{key}")
    elif isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            _check_value(item, f"{path}[{i}]")
    elif not isinstance(value, _SCALARS):
        raise TypeError(f"{path}: {type(value).__name__} has no canonical encoding")


def canonical_json_bytes(value: Any) -> bytes:
    """Sorted keys, no whitespace, UTF-8. Lone surrogates fail to encode."""
    _check_value(value)
    text = json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return text.encode("utf-8")


def commitment_digest(label: str, version: int, payload: bytes) -> bytes:
    """SHA-256 over ``cycle_dividends:<label>:v<version>\\0`` followed by ``payload``."""
    if not label or not label.isascii() or "\x00" in label:
        raise ValueError(f"invalid commitment label: {label!r}")
    if isinstance(version, bool) or not isinstance(version, int) or version <= 0:
        raise ValueError(f"version must be a positive int: {version!r}")
    prefix = f"cycle_dividends:{label}:v{version}\x00".encode("ascii")
    return hashlib.sha256(prefix + payload).digest()
