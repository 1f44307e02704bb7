"""
Tick-cumulative TWAP oracle over V3-style pools.

Reads each pool's own observation ring buffer:
  - arithmetic-mean tick over the requested period (floor rounding)
  - period clamped to the oldest observation the pool still holds
  - quote converted between the decimals of the two hop tokens
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Sequence, Tuple

from ..exceptions import (
    InvalidPath,
    OldestObservationOnCurrentBlock,
    PathFeeLengthMismatch,
    PeriodExceedsCurrentTime,
    PeriodIsZero,
    PoolDoesNotExist,
    PoolNotInitialized,
)
from .sources import ZERO_ADDRESS, Clock, TokenMetadata, V3Factory, V3Pool, normalize_token
from .tick_math import get_quote_at_tick

logger = logging.getLogger(__name__)

_UINT160_MAX = (1 << 160) - 1


@dataclass(frozen=True)
class ConsultResult:
    arithmetic_mean_tick: int
    harmonic_mean_liquidity: int


def get_oldest_observation_seconds_ago(pool: V3Pool, now: int) -> int:
    """Age in seconds of the oldest observation held by *pool*."""
    slot0 = pool.slot0()
    if slot0.observation_cardinality == 0:
        raise PoolNotInitialized(f"Pool {pool.address} is not initialized")

    # The slot after the current index is the oldest once the buffer is full
    oldest = pool.observations((slot0.observation_index + 1) % slot0.observation_cardinality)
    if not oldest.initialized:
        oldest = pool.observations(0)

    return now - oldest.block_timestamp


def consult(pool: V3Pool, seconds_ago: int) -> ConsultResult:
    """
    Time-weighted means of tick and liquidity over the last *seconds_ago*.

    Raises:
        PeriodIsZero: seconds_ago is 0
    """
    if seconds_ago == 0:
        raise PeriodIsZero()

    tick_cumulatives, seconds_per_liquidity = pool.observe([seconds_ago, 0])

    tick_delta = tick_cumulatives[1] - tick_cumulatives[0]
    # Floor division rounds negative means towards negative infinity
    arithmetic_mean_tick = tick_delta // seconds_ago

    liquidity_delta = seconds_per_liquidity[1] - seconds_per_liquidity[0]
    harmonic_mean_liquidity = 0
    if liquidity_delta > 0:
        harmonic_mean_liquidity = (seconds_ago * _UINT160_MAX) // (liquidity_delta << 32)

    return ConsultResult(arithmetic_mean_tick, harmonic_mean_liquidity)


def convert_decimals(amount: int, decimals_from: int, decimals_to: int) -> int:
    """Rescale *amount* between decimal bases, rounding down."""
    if decimals_to >= decimals_from:
        return amount * 10 ** (decimals_to - decimals_from)
    return amount // 10 ** (decimals_from - decimals_to)


class UniswapV3Oracle:
    """
    Prices a token amount along a path of V3 pools.

    Each hop uses the pool's arithmetic-mean tick over the requested period.
    When a pool does not remember that far back, the hop's period shrinks to
    the age of its oldest observation and the caller sees the shortest
    period actually averaged.
    """

    def __init__(self, factory: V3Factory, tokens: TokenMetadata, clock: Clock):
        self._factory = factory
        self._tokens = tokens
        self._clock = clock
        self._lock = threading.RLock()

    @property
    def factory(self) -> V3Factory:
        return self._factory

    def get_price_of_token_in_token(
        self,
        path: Sequence[str],
        fees: Sequence[int],
        amount: int,
        period: int,
    ) -> Tuple[int, int]:
        """
        Convert *amount* of path[0] into path[-1].

        Args:
            path: token route, at least two tokens
            fees: fee tier of each hop's pool, len(path) - 1 entries
            amount: input amount in path[0] base units
            period: requested averaging period in seconds

        Returns:
            (amount_out, min_period): output in path[-1] base units and the
            shortest period actually averaged across hops

        Raises:
            InvalidPath, PathFeeLengthMismatch, PeriodExceedsCurrentTime,
            PeriodIsZero, PoolDoesNotExist, OldestObservationOnCurrentBlock,
            InvalidTick
        """
        if len(path) < 2:
            raise InvalidPath(path[0] if path else ZERO_ADDRESS, len(path))
        if len(path) != len(fees) + 1:
            raise PathFeeLengthMismatch(len(path), len(fees))

        with self._lock:
            now = self._clock.now()
            if period >= now:
                raise PeriodExceedsCurrentTime(period, now)
            if period == 0:
                raise PeriodIsZero()

            if amount == 0:
                return 0, 0

            tokens = [normalize_token(token) for token in path]
            min_period = period
            for i, fee in enumerate(fees):
                amount, hop_period = self._quote_hop(tokens[i], tokens[i + 1], amount, fee, period, now)
                min_period = min(min_period, hop_period)

            return amount, min_period

    def _quote_hop(
        self,
        base_token: str,
        quote_token: str,
        amount: int,
        fee: int,
        period: int,
        now: int,
    ) -> Tuple[int, int]:
        if base_token == quote_token:
            return amount, period

        pool = self._factory.get_pool(base_token, quote_token, fee)
        if pool is None:
            raise PoolDoesNotExist(base_token, quote_token, fee)

        oldest = get_oldest_observation_seconds_ago(pool, now)
        if oldest == 0:
            raise OldestObservationOnCurrentBlock(pool.address)

        if period > oldest:
            logger.warning(
                "Pool %s remembers %ds, clamping requested period %ds", pool.address, oldest, period
            )
            period = oldest

        tick = consult(pool, period).arithmetic_mean_tick

        base_decimals = self._tokens.decimals(base_token)
        quote_decimals = self._tokens.decimals(quote_token)

        one_base = 10 ** base_decimals
        price = convert_decimals(
            get_quote_at_tick(tick, one_base, base_token, quote_token),
            base_decimals,
            quote_decimals,
        )
        amount_out = amount * price // one_base

        logger.debug(
            "Hop %s -> %s via %s: tick %d over %ds, %d -> %d",
            base_token, quote_token, pool.address, tick, period, amount, amount_out,
        )
        return amount_out, period
