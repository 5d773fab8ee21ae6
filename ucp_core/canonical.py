"""
ucp_core/canonical.py — Canonical JSON for merchant authorization signing.

Produces deterministic JSON bytes for a structured payload so that the
signer and every verifier hash the same byte string:

- object keys sorted at every nesting depth (code point order)
- arrays keep their order
- compact separators, no whitespace
- slashes and non-ASCII characters emitted unescaped (UTF-8)
- NaN and Infinity rejected

String escaping is delegated to json.dumps; only ordering and layout
are handled here.
"""

from __future__ import annotations

import json
import math
from typing import Any, Mapping


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def canonicalize(obj: Any) -> bytes:
    """Serialize a JSON-compatible Python object to canonical JSON bytes.

    Raises:
        ValueError: If input contains NaN, Infinity.
        TypeError: If input contains non-JSON types.
    """
    return _canonicalize_value(obj).encode("utf-8")


def canonicalize_excluding(payload: Mapping[str, Any], excluded_field: str) -> bytes:
    """Canonicalize `payload` with its top-level `excluded_field` removed.

    The caller's mapping is not mutated.
    """
    if not isinstance(payload, Mapping):
        raise TypeError(
            f"Payload must be a JSON object, got {type(payload).__name__}"
        )
    trimmed = dict(payload)
    trimmed.pop(excluded_field, None)
    return canonicalize(trimmed)


# ---------------------------------------------------------------------------
# Serializer
# ---------------------------------------------------------------------------

def _canonicalize_value(value: Any) -> str:
    """Recursively serialize a value to canonical JSON string."""
    if value is None or isinstance(value, (bool, int, str)):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise ValueError(
                f"Cannot canonicalize {value}: NaN and Infinity are not valid JSON"
            )
        return json.dumps(value)
    if isinstance(value, (list, tuple)):
        items = ",".join(_canonicalize_value(item) for item in value)
        return f"[{items}]"
    if isinstance(value, Mapping):
        return _serialize_object(value)
    raise TypeError(
        f"Cannot canonicalize type {type(value).__name__}. "
        f"Only JSON-compatible types are allowed."
    )


def _serialize_object(obj: Mapping) -> str:
    for k in obj.keys():
        if not isinstance(k, str):
            raise TypeError(f"Dict key must be string, got {type(k).__name__}: {k!r}")

    pairs = []
    for key in sorted(obj.keys()):
        k_str = json.dumps(key, ensure_ascii=False)
        v_str = _canonicalize_value(obj[key])
        pairs.append(f"{k_str}:{v_str}")
    return "{" + ",".join(pairs) + "}"
