"""
Collaborator interfaces consumed by the oracle engines.

The engines never talk to a chain directly: pairs, pools, factories,
token metadata and the clock are injected. Anything that satisfies these
protocols works, including the simulated pools in `twaporacle.amm`.
"""

from __future__ import annotations

from typing import List, NamedTuple, Optional, Protocol, Sequence, Tuple

from eth_utils import to_canonical_address, to_checksum_address

from ..constants import UINT32_BITS
from .math import to_uint32_timestamp, uq_div, uq_encode, wrapping_add, wrapping_sub

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


# ---------------------------------------------------------------------------
# Token helpers
# ---------------------------------------------------------------------------

def normalize_token(token: str) -> str:
    """Checksummed form of a token address. Raises ValueError when malformed."""
    return to_checksum_address(token)


def sort_tokens(token_a: str, token_b: str) -> Tuple[str, str]:
    """(token0, token1) in the canonical pool ordering."""
    a = normalize_token(token_a)
    b = normalize_token(token_b)
    if to_canonical_address(a) < to_canonical_address(b):
        return a, b
    return b, a


def is_token0(token: str, other: str) -> bool:
    return sort_tokens(token, other)[0] == normalize_token(token)


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------

class Clock(Protocol):
    def now(self) -> int:
        """Current block timestamp in whole seconds."""
        ...


# ---------------------------------------------------------------------------
# V2: cumulative-price pairs
# ---------------------------------------------------------------------------

class V2Pair(Protocol):
    address: str
    token0: str
    token1: str
    price0_cumulative_last: int
    price1_cumulative_last: int

    def get_reserves(self) -> Tuple[int, int, int]:
        """(reserve0, reserve1, block_timestamp_last)."""
        ...


class V2Factory(Protocol):
    def get_pair(self, token_a: str, token_b: str) -> Optional[V2Pair]:
        ...


class CumulativePrices(NamedTuple):
    price0_cumulative: int
    price1_cumulative: int
    block_timestamp: int


def current_cumulative_prices(pair: V2Pair, now: int) -> CumulativePrices:
    """
    Cumulative prices of *pair* as of *now*, without waiting for the pair
    to be touched.

    Accrues the counterfactual price * elapsed since the pair's last update
    using the stored reserves. Accumulators wrap at 2**256, timestamps at
    2**32.
    """
    block_timestamp = to_uint32_timestamp(now)
    price0_cumulative = pair.price0_cumulative_last
    price1_cumulative = pair.price1_cumulative_last

    reserve0, reserve1, block_timestamp_last = pair.get_reserves()
    if block_timestamp_last != block_timestamp and reserve0 != 0 and reserve1 != 0:
        time_elapsed = wrapping_sub(block_timestamp, block_timestamp_last, UINT32_BITS)
        price0_cumulative = wrapping_add(
            price0_cumulative, uq_div(uq_encode(reserve1), reserve0) * time_elapsed
        )
        price1_cumulative = wrapping_add(
            price1_cumulative, uq_div(uq_encode(reserve0), reserve1) * time_elapsed
        )

    return CumulativePrices(price0_cumulative, price1_cumulative, block_timestamp)


# ---------------------------------------------------------------------------
# V3: tick-cumulative pools
# ---------------------------------------------------------------------------

class Slot0(NamedTuple):
    sqrt_price_x96: int
    tick: int
    observation_index: int
    observation_cardinality: int
    observation_cardinality_next: int


class PoolObservation(NamedTuple):
    block_timestamp: int
    tick_cumulative: int
    seconds_per_liquidity_cumulative_x128: int
    initialized: bool


class V3Pool(Protocol):
    address: str
    token0: str
    token1: str
    fee: int

    def slot0(self) -> Slot0:
        ...

    def observations(self, index: int) -> PoolObservation:
        ...

    def observe(self, seconds_agos: Sequence[int]) -> Tuple[List[int], List[int]]:
        """(tick_cumulatives, seconds_per_liquidity_cumulative_x128s)."""
        ...


class V3Factory(Protocol):
    def get_pool(self, token_a: str, token_b: str, fee: int) -> Optional[V3Pool]:
        ...


class TokenMetadata(Protocol):
    def decimals(self, token: str) -> int:
        ...
