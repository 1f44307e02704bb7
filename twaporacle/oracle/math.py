"""
Fixed-point helpers for the cumulative-price oracle.

Python integers never overflow, so the fixed-width behaviour of on-chain
accumulators is reproduced explicitly: every value that is stored in a
uint32 / uint256 slot goes through `wrap` and every difference between two
such values through `wrapping_sub`.
"""

from __future__ import annotations

from typing import Sequence

from ..constants import Q112, RESOLUTION, UINT32_BITS, UINT112_MAX, UINT256_BITS


def wrap(value: int, bits: int = UINT256_BITS) -> int:
    """Reduce *value* into an unsigned integer of *bits* width."""
    return value & ((1 << bits) - 1)


def wrapping_add(a: int, b: int, bits: int = UINT256_BITS) -> int:
    return wrap(a + b, bits)


def wrapping_sub(a: int, b: int, bits: int = UINT256_BITS) -> int:
    """a - b modulo 2**bits. Correct as long as the true delta fits in *bits*."""
    return wrap(a - b, bits)


def to_uint32_timestamp(timestamp: int) -> int:
    """Block timestamp as stored by V2 pairs (seconds mod 2**32)."""
    return wrap(int(timestamp), UINT32_BITS)


def mul_div(a: int, b: int, denominator: int) -> int:
    """floor(a * b / denominator) with full intermediate precision."""
    if denominator == 0:
        raise ZeroDivisionError("mul_div denominator is zero")
    return (a * b) // denominator


# -- UQ112x112 --------------------------------------------------------------

def uq_encode(y: int) -> int:
    """Encode a uint112 as UQ112x112."""
    if not 0 <= y <= UINT112_MAX:
        raise ValueError(f"{y} does not fit in uint112")
    return y * Q112


def uq_div(x: int, y: int) -> int:
    """Divide a UQ112x112 by a uint112, returning a UQ112x112."""
    if y == 0:
        raise ZeroDivisionError("uq_div by zero")
    return x // y


def uq_decode(x: int) -> int:
    return x >> RESOLUTION


# -- Search -----------------------------------------------------------------

def lower_bound(values: Sequence[int], target: int) -> int:
    """
    Index of the first element >= *target* in a sorted sequence.

    Returns len(values) when every element is smaller.
    """
    lo, hi = 0, len(values)
    while lo < hi:
        mid = (lo + hi) // 2
        if values[mid] < target:
            lo = mid + 1
        else:
            hi = mid
    return lo
