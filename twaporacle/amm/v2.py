"""
Simulated constant-product (V2-style) pairs and factory.

Pairs keep reserves and the UQ112x112 cumulative-price accumulators exactly
as the on-chain pair does, updated on every reserve change:
  - price0_cumulative += (reserve1 / reserve0) * elapsed
  - price1_cumulative += (reserve0 / reserve1) * elapsed
Timestamps wrap at 2**32, accumulators at 2**256.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from ..constants import UINT32_BITS, UINT112_MAX
from ..exceptions import InsufficientLiquidity, PoolAlreadyExists
from ..oracle.math import to_uint32_timestamp, uq_div, uq_encode, wrapping_add, wrapping_sub
from ..oracle.sources import Clock, normalize_token, sort_tokens
from .addresses import v2_pair_address

logger = logging.getLogger(__name__)

UNISWAP_V2_FACTORY = "0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f"
SWAP_FEE_BPS = 30  # 0.30 %


def get_amount_out(amount_in: int, reserve_in: int, reserve_out: int) -> int:
    """Constant-product output for *amount_in* after the 0.30 % fee."""
    if amount_in <= 0:
        raise ValueError("Swap amount must be positive")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity("No liquidity in pair")
    amount_in_with_fee = amount_in * (10_000 - SWAP_FEE_BPS)
    return (amount_in_with_fee * reserve_out) // (reserve_in * 10_000 + amount_in_with_fee)


class UniswapV2PairSim:
    """Single constant-product pair."""

    def __init__(self, address: str, token0: str, token1: str, clock: Clock):
        self.address = address
        self.token0 = token0
        self.token1 = token1
        self._clock = clock

        self.reserve0 = 0
        self.reserve1 = 0
        self.block_timestamp_last = 0
        self.price0_cumulative_last = 0
        self.price1_cumulative_last = 0

        self._locked = False  # reentrancy guard

    def __repr__(self) -> str:
        return f"UniswapV2PairSim({self.address}, {self.token0}/{self.token1})"

    # -- Reentrancy guard ---------------------------------------------------

    def _acquire_lock(self) -> None:
        if self._locked:
            raise RuntimeError("Reentrancy detected, pair is locked")
        self._locked = True

    def _release_lock(self) -> None:
        self._locked = False

    # -- Views --------------------------------------------------------------

    def get_reserves(self) -> Tuple[int, int, int]:
        return self.reserve0, self.reserve1, self.block_timestamp_last

    # -- Mutations ----------------------------------------------------------

    def mint(self, amount0: int, amount1: int) -> None:
        """Add liquidity (no LP token accounting)."""
        if amount0 < 0 or amount1 < 0:
            raise ValueError("Liquidity amounts must be non-negative")
        self._acquire_lock()
        try:
            self._update(self.reserve0 + amount0, self.reserve1 + amount1)
        finally:
            self._release_lock()

    def swap(
        self,
        amount0_out: int,
        amount1_out: int,
        amount0_in: int = 0,
        amount1_in: int = 0,
    ) -> None:
        """
        Move reserves by the given in/out amounts.

        The constant-product invariant is not enforced here so tests can
        place the price exactly; use `swap_exact_in` for a priced trade.
        """
        if amount0_out <= 0 and amount1_out <= 0:
            raise ValueError("Insufficient output amount")
        if amount0_out >= self.reserve0 or amount1_out >= self.reserve1:
            raise InsufficientLiquidity(
                f"Output ({amount0_out}, {amount1_out}) exceeds reserves "
                f"({self.reserve0}, {self.reserve1})"
            )
        self._acquire_lock()
        try:
            self._update(
                self.reserve0 - amount0_out + amount0_in,
                self.reserve1 - amount1_out + amount1_in,
            )
        finally:
            self._release_lock()

    def swap_exact_in(self, token_in: str, amount_in: int) -> int:
        """Constant-product trade of *amount_in* of *token_in*. Returns amount out."""
        token_in = normalize_token(token_in)
        if token_in == self.token0:
            amount_out = get_amount_out(amount_in, self.reserve0, self.reserve1)
            self.swap(0, amount_out, amount0_in=amount_in)
        elif token_in == self.token1:
            amount_out = get_amount_out(amount_in, self.reserve1, self.reserve0)
            self.swap(amount_out, 0, amount1_in=amount_in)
        else:
            raise ValueError(f"Token {token_in} is not in pair {self.address}")
        return amount_out

    def sync(self, balance0: int, balance1: int) -> None:
        """Force reserves to match balances."""
        self._acquire_lock()
        try:
            self._update(balance0, balance1)
        finally:
            self._release_lock()

    # -- Internal -----------------------------------------------------------

    def _update(self, balance0: int, balance1: int) -> None:
        if not (0 <= balance0 <= UINT112_MAX and 0 <= balance1 <= UINT112_MAX):
            raise OverflowError("Reserves must fit in uint112")

        block_timestamp = to_uint32_timestamp(self._clock.now())
        time_elapsed = wrapping_sub(block_timestamp, self.block_timestamp_last, UINT32_BITS)
        if time_elapsed > 0 and self.reserve0 != 0 and self.reserve1 != 0:
            self.price0_cumulative_last = wrapping_add(
                self.price0_cumulative_last,
                uq_div(uq_encode(self.reserve1), self.reserve0) * time_elapsed,
            )
            self.price1_cumulative_last = wrapping_add(
                self.price1_cumulative_last,
                uq_div(uq_encode(self.reserve0), self.reserve1) * time_elapsed,
            )

        self.reserve0 = balance0
        self.reserve1 = balance1
        self.block_timestamp_last = block_timestamp


class UniswapV2FactorySim:
    """
    Registry of simulated pairs.

    Pair addresses are derived with CREATE2 from the factory address and the
    sorted token pair, so they match the canonical deployment.
    """

    def __init__(self, clock: Clock, address: str = UNISWAP_V2_FACTORY):
        self.address = normalize_token(address)
        self._clock = clock
        self._pairs: Dict[Tuple[str, str], UniswapV2PairSim] = {}
        self._all_pairs: List[UniswapV2PairSim] = []

    @property
    def pair_count(self) -> int:
        return len(self._all_pairs)

    def create_pair(
        self,
        token_a: str,
        token_b: str,
        reserve_a: int = 0,
        reserve_b: int = 0,
    ) -> UniswapV2PairSim:
        """Create a pair, optionally seeding reserves (given in token_a/token_b order)."""
        token_a = normalize_token(token_a)
        token_b = normalize_token(token_b)
        if token_a == token_b:
            raise ValueError("Identical addresses")

        token0, token1 = sort_tokens(token_a, token_b)
        if (token0, token1) in self._pairs:
            raise PoolAlreadyExists(f"Pair already exists for {token0}/{token1}")

        pair = UniswapV2PairSim(v2_pair_address(self.address, token0, token1), token0, token1, self._clock)
        self._pairs[(token0, token1)] = pair
        self._all_pairs.append(pair)

        if reserve_a or reserve_b:
            if token0 == token_a:
                pair.mint(reserve_a, reserve_b)
            else:
                pair.mint(reserve_b, reserve_a)

        logger.info("Pair %s created: %s/%s", pair.address, token0, token1)
        return pair

    def get_pair(self, token_a: str, token_b: str) -> Optional[UniswapV2PairSim]:
        return self._pairs.get(sort_tokens(token_a, token_b))

    def all_pairs(self) -> List[UniswapV2PairSim]:
        return list(self._all_pairs)
