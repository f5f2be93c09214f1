from __future__ import annotations

import hypothesis.strategies as st
import pytest
from hypothesis import given

from idol_launchpad.decode import decode_curve_state, decode_u64, decode_uint_le, first_return_bytes


def test_decode_u64_little_endian() -> None:
    assert decode_u64([1, 0, 0, 0, 0, 0, 0, 0]) == 1
    assert decode_u64([0, 0x94, 0x35, 0x77, 0, 0, 0, 0]) == 2_000_000_000
    assert decode_u64(bytes([0xFF] * 8)) == 2**64 - 1


@given(st.integers(min_value=0, max_value=2**64 - 1))
def test_decode_u64_matches_int_to_bytes(n: int) -> None:
    assert decode_u64(list(n.to_bytes(8, "little"))) == n


@pytest.mark.parametrize("raw", [[], [1, 2, 3], [0] * 9])
def test_decode_u64_rejects_wrong_width(raw: list[int]) -> None:
    with pytest.raises(ValueError):
        decode_u64(raw)


def test_decode_uint_le_u16() -> None:
    assert decode_uint_le([0x10, 0x27], 2) == 10_000


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ([0], "Active"),
        ([1], "Paused"),
        ([2], "Completed"),
        ([3], "Graduated"),
        ([4], "Unknown"),
        ([255], "Unknown"),
        ([], "Unknown"),
    ],
)
def test_decode_curve_state(raw: list[int], expected: str) -> None:
    assert decode_curve_state(raw) == expected


def test_first_return_bytes() -> None:
    assert first_return_bytes([[[1, 2], "u16"], [[3], "u8"]]) == [1, 2]


def test_first_return_bytes_bad_shape() -> None:
    with pytest.raises(ValueError):
        first_return_bytes(["nope"])
