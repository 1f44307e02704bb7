"""
Cumulative-price TWAP oracle over V2-style pairs.

  - Multi-hop paths, one per input token, backed by reference-counted pairs
  - One observation per pair per timestamp (same-block samples are skipped)
  - Window lookup: lower_bound(now - time_window) stepped back by one
  - Average price = Δcumulative / Δt in UQ112x112, chained hop by hop

All public operations run under a single re-entrant lock, so a host calling
from several threads sees one total order of state transitions.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, List, Sequence, Tuple

from ..constants import Q112, UINT32_BITS
from ..exceptions import (
    InvalidPath,
    PairDoesNotExist,
    PathAlreadyRegistered,
    StaleObservation,
    TimeWindowIsZero,
)
from .math import mul_div, wrapping_sub
from .observations import Observation
from .registry import PairRegistry, Path, PathTable, hops
from .sources import (
    ZERO_ADDRESS,
    Clock,
    V2Factory,
    V2Pair,
    current_cumulative_prices,
    normalize_token,
)

logger = logging.getLogger(__name__)


class UniswapV2Oracle:
    """
    Time-weighted average price oracle over V2-style pairs.

    Sampling is driven externally: every `update_prices` call appends one
    observation per tracked pair. Reads (`get_price`) compare the live
    cumulative prices against the stored sample closest to
    `now - time_window`.
    """

    def __init__(self, factory: V2Factory, time_window: int, clock: Clock):
        if time_window <= 0:
            raise TimeWindowIsZero()
        self._factory = factory
        self._clock = clock
        self._time_window = int(time_window)
        self._pairs = PairRegistry()
        self._paths = PathTable()
        self._lock = threading.RLock()

    # -- Configuration ------------------------------------------------------

    @property
    def factory(self) -> V2Factory:
        return self._factory

    def get_time_window(self) -> int:
        return self._time_window

    def set_time_window(self, time_window: int) -> None:
        if time_window <= 0:
            raise TimeWindowIsZero()
        with self._lock:
            logger.info("Time window changed %d -> %d", self._time_window, time_window)
            self._time_window = int(time_window)

    # -- Paths --------------------------------------------------------------

    def add_paths(self, paths: Iterable[Sequence[str]]) -> None:
        """
        Register a route for each path's first token.

        The whole batch is validated before anything is stored, so a failure
        leaves the oracle unchanged. Newly tracked pairs get their first
        observation immediately.

        Raises:
            InvalidPath: path shorter than two tokens
            PathAlreadyRegistered: input token already has a route
            PairDoesNotExist: a hop has no pair in the factory
        """
        with self._lock:
            resolved: List[Tuple[Path, List[V2Pair]]] = []
            pending = set()

            for raw_path in paths:
                tokens = tuple(normalize_token(token) for token in raw_path)
                if len(tokens) < 2:
                    raise InvalidPath(tokens[0] if tokens else ZERO_ADDRESS, len(tokens))

                token_in = tokens[0]
                if token_in in self._paths or token_in in pending:
                    raise PathAlreadyRegistered(token_in)

                pairs = [self._resolve_pair(a, b) for a, b in hops(tokens)]
                resolved.append((Path(tokens, tuple(p.address for p in pairs)), pairs))
                pending.add(token_in)

            for path, pairs in resolved:
                for pair in pairs:
                    self._pairs.acquire(pair)
                self._paths.register(path)
                logger.info("Path registered for %s: %s", path.token_in, " -> ".join(path.tokens))

            self._sample()

    def remove_paths(self, tokens: Iterable[str]) -> None:
        """
        Drop the route of each token. Tokens without a route are ignored.

        Every token is checked before any route is dropped, so a malformed
        address leaves the oracle unchanged.
        """
        tokens = [normalize_token(token) for token in tokens]
        with self._lock:
            for token in tokens:
                path = self._paths.remove(token)
                if path is None:
                    continue
                for pair_address in path.pairs:
                    self._pairs.release(pair_address)
                logger.info("Path removed for %s", path.token_in)

    def _resolve_pair(self, token_a: str, token_b: str) -> V2Pair:
        pair = self._factory.get_pair(token_a, token_b)
        if pair is None:
            raise PairDoesNotExist(token_a, token_b)
        return pair

    # -- Sampling -----------------------------------------------------------

    def update_prices(self) -> int:
        """
        Append a fresh observation for every tracked pair.

        Pairs whose timestamp did not advance since their last sample are
        skipped, so repeated calls at the same instant are no-ops.

        Returns:
            Number of observations appended
        """
        with self._lock:
            return self._sample()

    def _sample(self) -> int:
        now = self._clock.now()
        appended = 0
        for info in self._pairs:
            sample = Observation(*current_cumulative_prices(info.pair, now))
            if info.observations.append(sample):
                appended += 1
                logger.debug(
                    "Pair %s round %d at %d", info.address, info.rounds - 1, sample.block_timestamp
                )
        return appended

    # -- Pricing ------------------------------------------------------------

    def get_price(self, token_in: str, amount: int) -> Tuple[int, str]:
        """
        Convert *amount* of *token_in* along its registered path.

        A hop with a zero average price ends the walk with a zero result.

        Returns:
            (amount_out, token_out)

        Raises:
            InvalidPath: no route registered for token_in
            StaleObservation: no time elapsed since the selected sample
        """
        token_in = normalize_token(token_in)
        with self._lock:
            path = self._paths.get(token_in)
            if path is None:
                raise InvalidPath(token_in, 0)

            for (current, _), pair_address in zip(hops(path.tokens), path.pairs):
                price = self._get_average_price(pair_address, current)
                logger.debug("Hop %s via %s: price %d", current, pair_address, price)
                if price == 0:
                    return 0, path.token_out
                amount = mul_div(price, amount, Q112)

            return amount, path.token_out

    def _get_average_price(self, pair_address: str, token_in: str) -> int:
        """Average UQ112x112 price of token_in over the configured window."""
        info = self._pairs.get(pair_address)
        price0_cumulative, price1_cumulative, now = current_cumulative_prices(
            info.pair, self._clock.now()
        )

        target = now - self._time_window if now > self._time_window else 0
        _, old = info.observations.lookup(target)

        elapsed = wrapping_sub(now, old.block_timestamp, UINT32_BITS)
        if elapsed == 0:
            raise StaleObservation(pair_address, now)

        # adapters may report token0 in any address casing
        if token_in == normalize_token(info.pair.token0):
            return wrapping_sub(price0_cumulative, old.price0_cumulative) // elapsed
        return wrapping_sub(price1_cumulative, old.price1_cumulative) // elapsed

    # -- Introspection ------------------------------------------------------

    def get_path(self, token: str) -> List[str]:
        """Registered route of *token*, or an empty list."""
        path = self._paths.get(normalize_token(token))
        return list(path.tokens) if path else []

    def get_pairs(self) -> List[str]:
        """Tracked pair addresses in first-registration order."""
        return self._pairs.addresses()

    def get_pair_rounds(self, pair: str) -> int:
        info = self._pairs.get(pair)
        return info.rounds if info else 0

    def get_pair_info(self, pair: str, round_index: int) -> Observation:
        """
        Observation *round_index* of *pair*.

        Raises:
            IndexError: unknown pair or round out of range
        """
        info = self._pairs.get(pair)
        if info is None:
            raise IndexError(f"Pair {pair} is not tracked")
        if not 0 <= round_index < info.rounds:
            raise IndexError(f"Round {round_index} out of range for pair {pair}")
        return info.observations[round_index]

    def get_pair_refs(self, pair: str) -> int:
        return self._pairs.refs(pair)

    def is_pair_registered(self, pair: str) -> bool:
        return pair in self._pairs
