"""
Simulated concentrated-liquidity (V3-style) pools and factory.

Only the price oracle surface of a pool is modelled: the current tick,
in-range liquidity and the observation ring buffer. Observations follow
the on-chain rules:
  - one observation per timestamp, written before the tick changes
  - cardinality grows lazily when the write index reaches the end
  - observe() interpolates between the two surrounding observations
Timestamps are kept as plain integers (no uint32 wrap).
"""

from __future__ import annotations

import logging
from decimal import Decimal, localcontext
from enum import IntEnum
from typing import Dict, List, Optional, Sequence, Tuple

from ..constants import FEE_TICK_SPACINGS, MAX_OBSERVATION_CARDINALITY, MAX_TICK, MIN_TICK
from ..exceptions import ObservationTooOld, PoolAlreadyExists, PoolError, PoolNotInitialized
from ..oracle.sources import Clock, PoolObservation, Slot0, normalize_token, sort_tokens
from ..oracle.tick_math import get_sqrt_ratio_at_tick, get_tick_at_sqrt_ratio
from .addresses import v3_pool_address

logger = logging.getLogger(__name__)

UNISWAP_V3_FACTORY = "0x1F98431c8aD98523631AE4a59f267346ea31F984"

_EMPTY_OBSERVATION = PoolObservation(0, 0, 0, False)


class FeeTier(IntEnum):
    """Fee tiers in hundredths of a basis point."""
    LOWEST = 100      # 0.01 %
    LOW = 500         # 0.05 %
    MEDIUM = 3000     # 0.30 %
    HIGH = 10000      # 1.00 %

    @property
    def rate(self) -> Decimal:
        return Decimal(int(self)) / Decimal("1000000")

    @property
    def tick_spacing(self) -> int:
        return FEE_TICK_SPACINGS[int(self)]


def encode_price_sqrt(reserve1: int, reserve0: int) -> int:
    """sqrt(reserve1 / reserve0) as a Q64.96, rounded down."""
    if reserve0 <= 0 or reserve1 <= 0:
        raise ValueError("Reserves must be positive")
    with localcontext() as ctx:
        ctx.prec = 78
        return int((Decimal(reserve1) / Decimal(reserve0)).sqrt() * (Decimal(2) ** 96))


def _div_trunc(a: int, b: int) -> int:
    """Signed division rounding towards zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q


class UniswapV3PoolSim:
    """Oracle-facing part of a single concentrated-liquidity pool."""

    def __init__(
        self,
        address: str,
        token0: str,
        token1: str,
        fee: int,
        clock: Clock,
        liquidity: int = 10**18,
    ):
        self.address = address
        self.token0 = token0
        self.token1 = token1
        self.fee = int(fee)
        self.liquidity = liquidity
        self._clock = clock

        self.sqrt_price_x96 = 0
        self.tick = 0
        self.observation_index = 0
        self.observation_cardinality = 0
        self.observation_cardinality_next = 0
        self._observations: List[PoolObservation] = []

    def __repr__(self) -> str:
        return f"UniswapV3PoolSim({self.address}, {self.token0}/{self.token1}, fee={self.fee})"

    @property
    def initialized(self) -> bool:
        return self.sqrt_price_x96 != 0

    # -- Views --------------------------------------------------------------

    def slot0(self) -> Slot0:
        return Slot0(
            self.sqrt_price_x96,
            self.tick,
            self.observation_index,
            self.observation_cardinality,
            self.observation_cardinality_next,
        )

    def observations(self, index: int) -> PoolObservation:
        if not 0 <= index < MAX_OBSERVATION_CARDINALITY:
            raise IndexError(f"Observation index out of range: {index}")
        if index < len(self._observations):
            return self._observations[index]
        return _EMPTY_OBSERVATION

    # -- Mutations ----------------------------------------------------------

    def initialize(self, sqrt_price_x96: int) -> None:
        if self.initialized:
            raise PoolError(f"Pool {self.address} already initialized")
        tick = get_tick_at_sqrt_ratio(sqrt_price_x96)

        self.sqrt_price_x96 = sqrt_price_x96
        self.tick = tick
        self._observations = [PoolObservation(self._clock.now(), 0, 0, True)]
        self.observation_index = 0
        self.observation_cardinality = 1
        self.observation_cardinality_next = 1

        logger.debug("Pool %s initialized at tick %d", self.address, tick)

    def increase_observation_cardinality_next(self, cardinality_next: int) -> None:
        """Reserve ring-buffer slots; they become live on the next wrap."""
        self._require_initialized()
        if cardinality_next > MAX_OBSERVATION_CARDINALITY:
            raise ValueError(f"Cardinality too large: {cardinality_next}")
        current = self.observation_cardinality_next
        if cardinality_next <= current:
            return
        # Non-zero timestamp pre-pays the storage slot; still uninitialized
        for index in range(current, cardinality_next):
            if index < len(self._observations):
                self._observations[index] = PoolObservation(1, 0, 0, False)
            else:
                self._observations.append(PoolObservation(1, 0, 0, False))
        self.observation_cardinality_next = cardinality_next
        logger.debug("Pool %s cardinality next %d -> %d", self.address, current, cardinality_next)

    def add_observation(self, tick: int) -> None:
        """Record the running tick at the current timestamp, then move to *tick*."""
        self._require_initialized()
        self._write(self._clock.now())
        self.tick = tick
        # Out-of-range ticks are stored as-is; sqrt price keeps its last value
        if MIN_TICK <= tick <= MAX_TICK:
            self.sqrt_price_x96 = get_sqrt_ratio_at_tick(tick)

    def set_liquidity(self, liquidity: int) -> None:
        self._require_initialized()
        if liquidity < 0:
            raise ValueError("Liquidity must be non-negative")
        self._write(self._clock.now())
        self.liquidity = liquidity

    def observe(self, seconds_agos: Sequence[int]) -> Tuple[List[int], List[int]]:
        """Cumulative tick and seconds-per-liquidity at each seconds-ago."""
        self._require_initialized()
        now = self._clock.now()
        tick_cumulatives = []
        seconds_per_liquidity = []
        for seconds_ago in seconds_agos:
            tick_cumulative, spl = self._observe_single(now, seconds_ago)
            tick_cumulatives.append(tick_cumulative)
            seconds_per_liquidity.append(spl)
        return tick_cumulatives, seconds_per_liquidity

    # -- Internal -----------------------------------------------------------

    def _require_initialized(self) -> None:
        if not self.initialized:
            raise PoolNotInitialized(f"Pool {self.address} is not initialized")

    def _transform(self, last: PoolObservation, timestamp: int) -> PoolObservation:
        delta = timestamp - last.block_timestamp
        return PoolObservation(
            timestamp,
            last.tick_cumulative + self.tick * delta,
            last.seconds_per_liquidity_cumulative_x128 + (delta << 128) // max(self.liquidity, 1),
            True,
        )

    def _write(self, timestamp: int) -> None:
        last = self._observations[self.observation_index]
        if last.block_timestamp == timestamp:
            return

        cardinality = self.observation_cardinality
        if (
            self.observation_cardinality_next > cardinality
            and self.observation_index == cardinality - 1
        ):
            cardinality = self.observation_cardinality_next

        index = (self.observation_index + 1) % cardinality
        observation = self._transform(last, timestamp)
        if index < len(self._observations):
            self._observations[index] = observation
        else:
            self._observations.append(observation)

        self.observation_index = index
        self.observation_cardinality = cardinality

    def _observe_single(self, now: int, seconds_ago: int) -> Tuple[int, int]:
        if seconds_ago == 0:
            last = self._observations[self.observation_index]
            if last.block_timestamp != now:
                last = self._transform(last, now)
            return last.tick_cumulative, last.seconds_per_liquidity_cumulative_x128

        target = now - seconds_ago
        before, after = self._surrounding_observations(target)

        if target == before.block_timestamp:
            return before.tick_cumulative, before.seconds_per_liquidity_cumulative_x128
        if target == after.block_timestamp:
            return after.tick_cumulative, after.seconds_per_liquidity_cumulative_x128

        observation_delta = after.block_timestamp - before.block_timestamp
        target_delta = target - before.block_timestamp
        tick_cumulative = before.tick_cumulative + _div_trunc(
            after.tick_cumulative - before.tick_cumulative, observation_delta
        ) * target_delta
        spl = before.seconds_per_liquidity_cumulative_x128 + (
            (after.seconds_per_liquidity_cumulative_x128 - before.seconds_per_liquidity_cumulative_x128)
            * target_delta
            // observation_delta
        )
        return tick_cumulative, spl

    def _surrounding_observations(self, target: int) -> Tuple[PoolObservation, PoolObservation]:
        newest = self._observations[self.observation_index]
        if newest.block_timestamp <= target:
            if newest.block_timestamp == target:
                return newest, _EMPTY_OBSERVATION
            return newest, self._transform(newest, target)

        cardinality = self.observation_cardinality
        oldest = self.observations((self.observation_index + 1) % cardinality)
        if not oldest.initialized:
            oldest = self._observations[0]
        if oldest.block_timestamp > target:
            raise ObservationTooOld(target, oldest.block_timestamp)

        return self._binary_search(target)

    def _binary_search(self, target: int) -> Tuple[PoolObservation, PoolObservation]:
        cardinality = self.observation_cardinality
        left = (self.observation_index + 1) % cardinality
        right = left + cardinality - 1
        while True:
            i = (left + right) // 2
            before = self.observations(i % cardinality)
            if not before.initialized:
                left = i + 1
                continue
            after = self.observations((i + 1) % cardinality)

            target_at_or_after = before.block_timestamp <= target
            if target_at_or_after and target <= after.block_timestamp:
                return before, after
            if not target_at_or_after:
                right = i - 1
            else:
                left = i + 1


class UniswapV3FactorySim:
    """Registry of simulated pools keyed by (token0, token1, fee)."""

    def __init__(self, clock: Clock, address: str = UNISWAP_V3_FACTORY):
        self.address = normalize_token(address)
        self._clock = clock
        self._pools: Dict[Tuple[str, str, int], UniswapV3PoolSim] = {}

    @property
    def pool_count(self) -> int:
        return len(self._pools)

    def create_pool(
        self,
        token_a: str,
        token_b: str,
        fee: int = FeeTier.MEDIUM,
        sqrt_price_x96: Optional[int] = None,
        liquidity: int = 10**18,
    ) -> UniswapV3PoolSim:
        """Create a pool, initializing it when *sqrt_price_x96* is given."""
        fee_tier = FeeTier(int(fee))
        token_a = normalize_token(token_a)
        token_b = normalize_token(token_b)
        if token_a == token_b:
            raise ValueError("Identical addresses")

        token0, token1 = sort_tokens(token_a, token_b)
        key = (token0, token1, int(fee_tier))
        if key in self._pools:
            raise PoolAlreadyExists(f"Pool already exists for {token0}/{token1} fee {int(fee_tier)}")

        pool = UniswapV3PoolSim(
            v3_pool_address(self.address, token0, token1, int(fee_tier)),
            token0,
            token1,
            int(fee_tier),
            self._clock,
            liquidity=liquidity,
        )
        self._pools[key] = pool
        if sqrt_price_x96 is not None:
            pool.initialize(sqrt_price_x96)

        logger.info(
            "Pool %s created: %s/%s fee=%s spacing=%d",
            pool.address, token0, token1, fee_tier.rate, fee_tier.tick_spacing,
        )
        return pool

    def get_pool(self, token_a: str, token_b: str, fee: int) -> Optional[UniswapV3PoolSim]:
        token0, token1 = sort_tokens(token_a, token_b)
        return self._pools.get((token0, token1, int(fee)))
