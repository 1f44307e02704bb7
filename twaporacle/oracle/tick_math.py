"""
Integer tick math (Uniswap V3 TickMath / OracleLibrary semantics).

  - get_sqrt_ratio_at_tick:  sqrt(1.0001^tick) * 2^96, rounded up
  - get_tick_at_sqrt_ratio:  greatest tick whose ratio is <= sqrt_price_x96
  - get_quote_at_tick:       amount of quote token received for base_amount
"""

from __future__ import annotations

from ..constants import MAX_SQRT_RATIO, MAX_TICK, MIN_SQRT_RATIO, MIN_TICK, UINT128_MAX
from ..exceptions import InvalidTick, SqrtPriceOutOfRange
from .math import mul_div
from .sources import is_token0

Q96 = 1 << 96
Q128 = 1 << 128
Q192 = 1 << 192
_UINT256_MAX = (1 << 256) - 1

# sqrt(1.0001^-(2^i)) in Q128.128 for i in 0..19
_TICK_RATIOS = (
    0xfffcb933bd6fad37aa2d162d1a594001,
    0xfff97272373d413259a46990580e213a,
    0xfff2e50f5f656932ef12357cf3c7fdcc,
    0xffe5caca7e10e4e61c3624eaa0941cd0,
    0xffcb9843d60f6159c9db58835c926644,
    0xff973b41fa98c081472e6896dfb254c0,
    0xff2ea16466c96a3843ec78b326b52861,
    0xfe5dee046a99a2a811c461f1969c3053,
    0xfcbe86c7900a88aedcffc83b479aa3a4,
    0xf987a7253ac413176f2b074cf7815e54,
    0xf3392b0822b70005940c7a398e4b70f3,
    0xe7159475a2c29b7443b29c7fa6e889d9,
    0xd097f3bdfd2022b8845ad8f792aa5825,
    0xa9f746462d870fdf8a65dc1f90e061e5,
    0x70d869a156d2a1b890bb3df62baf32f7,
    0x31be135f97d08fd981231505542fcfa6,
    0x9aa508b5b7a84e1c677de54f3e99bc9,
    0x5d6af8dedb81196699c329225ee604,
    0x2216e584f5fa1ea926041bedfe98,
    0x48a170391f7dc42444e8fa2,
)


def get_sqrt_ratio_at_tick(tick: int) -> int:
    """sqrt(1.0001^tick) as a Q64.96, bit-exact with the on-chain library."""
    if tick < MIN_TICK or tick > MAX_TICK:
        raise InvalidTick(tick)
    abs_tick = -tick if tick < 0 else tick

    ratio = Q128
    for i, factor in enumerate(_TICK_RATIOS):
        if abs_tick & (1 << i):
            ratio = (ratio * factor) >> 128

    if tick > 0:
        ratio = _UINT256_MAX // ratio

    # Q128.128 -> Q64.96, rounding up
    return (ratio >> 32) + (0 if ratio % (1 << 32) == 0 else 1)


def get_tick_at_sqrt_ratio(sqrt_price_x96: int) -> int:
    """Greatest tick such that get_sqrt_ratio_at_tick(tick) <= sqrt_price_x96."""
    if sqrt_price_x96 < MIN_SQRT_RATIO or sqrt_price_x96 >= MAX_SQRT_RATIO:
        raise SqrtPriceOutOfRange(sqrt_price_x96)

    lo, hi = MIN_TICK, MAX_TICK
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if get_sqrt_ratio_at_tick(mid) <= sqrt_price_x96:
            lo = mid
        else:
            hi = mid - 1
    return lo


def get_quote_at_tick(tick: int, base_amount: int, base_token: str, quote_token: str) -> int:
    """
    Amount of *quote_token* received for *base_amount* of *base_token* at *tick*.

    The tick expresses token1/token0, so the direction is decided by the
    canonical ordering of the two token addresses.
    """
    sqrt_ratio_x96 = get_sqrt_ratio_at_tick(tick)
    base_is_token0 = is_token0(base_token, quote_token)

    # Avoid precision loss when the squared ratio would not fit in 256 bits
    if sqrt_ratio_x96 <= UINT128_MAX:
        ratio_x192 = sqrt_ratio_x96 * sqrt_ratio_x96
        if base_is_token0:
            return mul_div(ratio_x192, base_amount, Q192)
        return mul_div(Q192, base_amount, ratio_x192)

    ratio_x128 = mul_div(sqrt_ratio_x96, sqrt_ratio_x96, 1 << 64)
    if base_is_token0:
        return mul_div(ratio_x128, base_amount, Q128)
    return mul_div(Q128, base_amount, ratio_x128)
