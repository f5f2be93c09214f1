"""Decoding of dev-inspect return values.

A Move return value arrives as `[bytes, type]` where `bytes` is the BCS encoding,
given as a list of ints. Unsigned integers are little-endian, fixed width.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

CURVE_STATES = {
    0: "Active",
    1: "Paused",
    2: "Completed",
    3: "Graduated",
}
UNKNOWN_STATE = "Unknown"


def _as_bytes(raw: Sequence[int] | bytes) -> bytes:
    if isinstance(raw, bytes):
        return raw
    return bytes(int(b) for b in raw)


def decode_uint_le(raw: Sequence[int] | bytes, width: int) -> int:
    """Decode an unsigned little-endian integer of exactly `width` bytes."""
    data = _as_bytes(raw)
    if len(data) != width:
        raise ValueError(f"expected {width} bytes, got {len(data)}")
    return int.from_bytes(data, "little", signed=False)


def decode_u64(raw: Sequence[int] | bytes) -> int:
    return decode_uint_le(raw, 8)


def decode_curve_state(raw: Sequence[int] | bytes) -> str:
    """Map the enum discriminant byte to a state name; unrecognised values are 'Unknown'."""
    data = _as_bytes(raw)
    if not data:
        return UNKNOWN_STATE
    return CURVE_STATES.get(data[0], UNKNOWN_STATE)


def first_return_bytes(return_values: list[Any]) -> list[int]:
    """Pull the byte list out of the first `[bytes, type]` return value."""
    first = return_values[0]
    if isinstance(first, (list, tuple)) and first and isinstance(first[0], (list, tuple, bytes)):
        return list(first[0])
    raise ValueError(f"unexpected return value shape: {first!r}")
