"""Stable content fingerprints for units without a natural external identifier.

Responsibilities:
- Normalize identity payloads so cosmetic whitespace/key-order changes hash equally.
- Produce sha256-based fingerprints that are stable across process restarts.
"""

from __future__ import annotations

from hashlib import sha256
import json
from typing import Any, Mapping


def _normalize_identity_value(value: Any) -> Any:
    """Normalize identity payload values for stable fingerprint hashing."""

    if isinstance(value, str):
        return " ".join(value.split())
    if isinstance(value, list | tuple):
        return [_normalize_identity_value(item) for item in value]
    if isinstance(value, Mapping):
        return {
            str(key): _normalize_identity_value(value[key])
            for key in sorted(value.keys(), key=str)
        }
    return value


def canonical_identity(identity: Any) -> str:
    """Serialize an identity payload into canonical compact JSON text."""

    return json.dumps(
        _normalize_identity_value(identity),
        sort_keys=True,
        ensure_ascii=True,
        separators=(",", ":"),
    )


def stable_fingerprint(identity: Any, *, width: int | None = None) -> str:
    """Return a sha256 hex fingerprint of an identity payload, optionally truncated."""

    digest = sha256(canonical_identity(identity).encode("utf-8")).hexdigest()
    if width is None:
        return digest
    if width <= 0:
        raise ValueError("Fingerprint width must be a positive integer.")
    return digest[:width]
