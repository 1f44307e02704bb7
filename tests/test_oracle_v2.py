"""
Test suite for the cumulative-price (V2) TWAP oracle

Covers:
  - Time window configuration
  - Path registration and removal with pair reference counting
  - Sampling (update_prices)
  - Price resolution along single and multi-hop paths
"""

import threading

import pytest

from twaporacle.constants import Q112
from twaporacle.exceptions import (
    InvalidPath,
    PairDoesNotExist,
    PathAlreadyRegistered,
    StaleObservation,
    TimeWindowIsZero,
)
from twaporacle.oracle import UniswapV2Oracle

A_TOKEN = "0xaAaAaAaaAaAaAaaAaAAAAAAAAaaaAaAaAaaAaaAa"
B_TOKEN = "0xbBbBBBBbbBBBbbbBbbBbbbbBBbBbbbbBbBbbBBbB"
C_TOKEN = "0xCcCCccccCCCCcCCCCCCcCcCccCcCCCcCcccccccC"

A_C_PATH = [A_TOKEN, C_TOKEN]
C_A_C_PATH = [C_TOKEN, A_TOKEN, C_TOKEN]
B_A_C_PATH = [B_TOKEN, A_TOKEN, C_TOKEN]

TIME_WINDOW = 1
ONE = 10**18


class LowercasePair:
    """Pair adapter reporting its tokens as lowercase hex."""

    def __init__(self, pair):
        self._pair = pair
        self.token0 = pair.token0.lower()
        self.token1 = pair.token1.lower()

    def __getattr__(self, name):
        return getattr(self._pair, name)


class LowercaseFactory:
    def __init__(self, factory):
        self._factory = factory

    def get_pair(self, token_a, token_b):
        pair = self._factory.get_pair(token_a, token_b)
        return LowercasePair(pair) if pair is not None else None


@pytest.fixture
def oracle(v2_factory, clock):
    return UniswapV2Oracle(v2_factory, TIME_WINDOW, clock)


@pytest.fixture
def pairs(v2_factory):
    """A/C and A/B pairs with 1:1 reserves."""
    a_c = v2_factory.create_pair(A_TOKEN, C_TOKEN, ONE, ONE)
    a_b = v2_factory.create_pair(A_TOKEN, B_TOKEN, ONE, ONE)
    return a_c, a_b


# ============================================================================
#  CONFIGURATION
# ============================================================================

class TestTimeWindow:
    """Averaging window get/set."""

    def test_initial_state(self, oracle, v2_factory):
        assert oracle.factory is v2_factory
        assert oracle.get_time_window() == TIME_WINDOW

    def test_set_time_window(self, oracle):
        oracle.set_time_window(20)
        assert oracle.get_time_window() == 20

    def test_zero_time_window_rejected(self, oracle):
        with pytest.raises(TimeWindowIsZero, match="can't be 0"):
            oracle.set_time_window(0)
        assert oracle.get_time_window() == TIME_WINDOW

    def test_zero_time_window_at_construction(self, v2_factory, clock):
        with pytest.raises(TimeWindowIsZero):
            UniswapV2Oracle(v2_factory, 0, clock)


# ============================================================================
#  PATHS
# ============================================================================

class TestAddPaths:
    """Route registration."""

    def test_add_paths(self, oracle, pairs):
        a_c, a_b = pairs
        oracle.add_paths([A_C_PATH, B_A_C_PATH])

        assert oracle.get_path(A_TOKEN) == A_C_PATH
        assert oracle.get_path(B_TOKEN) == B_A_C_PATH
        assert oracle.get_pairs() == [a_c.address, a_b.address]

    def test_refcounts(self, oracle, pairs):
        a_c, a_b = pairs
        oracle.add_paths([A_C_PATH, B_A_C_PATH, C_A_C_PATH])

        # C -> A -> C takes the same pair twice
        assert oracle.get_pair_refs(a_c.address) == 4
        assert oracle.get_pair_refs(a_b.address) == 1

    def test_path_too_short(self, oracle):
        with pytest.raises(InvalidPath, match="length 1") as exc_info:
            oracle.add_paths([[C_TOKEN]])
        assert exc_info.value.token == C_TOKEN
        assert exc_info.value.length == 1

    def test_missing_pair(self, oracle):
        with pytest.raises(PairDoesNotExist) as exc_info:
            oracle.add_paths([A_C_PATH])
        assert exc_info.value.token_a == A_TOKEN
        assert exc_info.value.token_b == C_TOKEN

    def test_same_path_twice_in_batch(self, oracle, pairs):
        with pytest.raises(PathAlreadyRegistered) as exc_info:
            oracle.add_paths([A_C_PATH, A_C_PATH])
        assert exc_info.value.token == A_TOKEN

    def test_failed_batch_leaves_state_unchanged(self, oracle, pairs):
        with pytest.raises(PathAlreadyRegistered):
            oracle.add_paths([A_C_PATH, A_C_PATH])
        assert oracle.get_path(A_TOKEN) == []
        assert oracle.get_pairs() == []

    def test_already_registered(self, oracle, pairs):
        oracle.add_paths([A_C_PATH])
        with pytest.raises(PathAlreadyRegistered):
            oracle.add_paths([[A_TOKEN, B_TOKEN]])
        assert oracle.get_path(A_TOKEN) == A_C_PATH

    def test_lowercase_addresses_are_normalized(self, oracle, pairs):
        oracle.add_paths([[A_TOKEN.lower(), C_TOKEN.lower()]])
        assert oracle.get_path(A_TOKEN) == A_C_PATH


class TestRemovePaths:
    """Route removal and pair retirement."""

    def test_remove_paths(self, oracle, pairs):
        a_c, a_b = pairs
        oracle.add_paths([A_C_PATH])
        oracle.add_paths([B_A_C_PATH])
        oracle.add_paths([C_A_C_PATH])

        oracle.remove_paths([A_TOKEN])
        assert oracle.get_path(A_TOKEN) == []
        assert oracle.get_pairs() == [a_c.address, a_b.address]

        oracle.remove_paths([B_TOKEN, B_TOKEN])
        assert oracle.get_path(B_TOKEN) == []
        assert oracle.get_pairs() == [a_c.address]

        oracle.remove_paths([C_TOKEN])
        assert oracle.get_path(C_TOKEN) == []
        assert oracle.get_pairs() == []

    def test_remove_unknown_token_is_noop(self, oracle, pairs):
        a_c, _ = pairs
        oracle.add_paths([A_C_PATH])
        assert oracle.get_pair_refs(a_c.address) == 1

        oracle.remove_paths([B_TOKEN])

        assert oracle.get_path(A_TOKEN) == A_C_PATH
        assert oracle.get_pairs() == [a_c.address]
        assert oracle.get_pair_refs(a_c.address) == 1

    def test_malformed_token_leaves_routes(self, oracle, pairs):
        a_c, _ = pairs
        oracle.add_paths([A_C_PATH])

        with pytest.raises(ValueError):
            oracle.remove_paths([A_TOKEN, "not-an-address"])

        assert oracle.get_path(A_TOKEN) == A_C_PATH
        assert oracle.get_pairs() == [a_c.address]
        assert oracle.get_pair_refs(a_c.address) == 1

    def test_retired_pair_forgets_history(self, oracle, pairs, clock):
        a_c, _ = pairs
        oracle.add_paths([A_C_PATH])
        clock.advance(1)
        oracle.update_prices()
        oracle.remove_paths([A_TOKEN])

        assert not oracle.is_pair_registered(a_c.address)
        assert oracle.get_pair_rounds(a_c.address) == 0
        with pytest.raises(IndexError):
            oracle.get_pair_info(a_c.address, 0)

        oracle.add_paths([A_C_PATH])
        assert oracle.get_pair_rounds(a_c.address) == 1


# ============================================================================
#  SAMPLING
# ============================================================================

class TestUpdatePrices:
    """Observation sampling."""

    def test_update_price(self, oracle, pairs, clock):
        a_c, _ = pairs
        oracle.add_paths([A_C_PATH])

        assert oracle.get_pair_rounds(a_c.address) == 1
        assert oracle.get_pair_info(a_c.address, 0).block_timestamp == clock.now() % 2**32

        clock.advance(1)
        assert oracle.update_prices() == 1
        assert oracle.get_pair_rounds(a_c.address) == 2

    def test_same_timestamp_is_skipped(self, oracle, pairs, clock):
        a_c, _ = pairs
        oracle.add_paths([A_C_PATH])
        clock.advance(1)

        assert oracle.update_prices() == 1
        assert oracle.update_prices() == 0
        assert oracle.get_pair_rounds(a_c.address) == 2

    def test_timestamps_strictly_increase(self, oracle, pairs, clock):
        a_c, _ = pairs
        oracle.add_paths([A_C_PATH])
        for step in (1, 0, 3, 0, 2):
            clock.advance(step)
            oracle.update_prices()

        rounds = oracle.get_pair_rounds(a_c.address)
        stamps = [oracle.get_pair_info(a_c.address, i).block_timestamp for i in range(rounds)]
        assert rounds == 4
        assert stamps == sorted(set(stamps))

    def test_shared_pair_sampled_once(self, oracle, pairs, clock):
        oracle.add_paths([A_C_PATH, C_A_C_PATH])
        clock.advance(1)
        assert oracle.update_prices() == 1

    def test_round_out_of_range(self, oracle, pairs):
        a_c, _ = pairs
        oracle.add_paths([A_C_PATH])
        with pytest.raises(IndexError, match="out of range"):
            oracle.get_pair_info(a_c.address, 1)

    def test_concurrent_updates(self, oracle, pairs, clock):
        a_c, _ = pairs
        oracle.add_paths([A_C_PATH])
        clock.advance(1)

        results = []
        threads = [threading.Thread(target=lambda: results.append(oracle.update_prices())) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(results) == [0] * 7 + [1]
        assert oracle.get_pair_rounds(a_c.address) == 2


# ============================================================================
#  PRICING
# ============================================================================

class TestGetPrice:
    """Price resolution."""

    def test_get_price(self, oracle, pairs, clock):
        oracle.add_paths([A_C_PATH])
        clock.advance(1)
        oracle.update_prices()

        assert oracle.get_price(A_TOKEN, 10) == (10, C_TOKEN)

    def test_complex_price(self, oracle, v2_factory, clock):
        start = clock.now()
        pair = v2_factory.create_pair(A_TOKEN, C_TOKEN, 6 * ONE, 6 * ONE)
        oracle.add_paths([A_C_PATH])

        clock.set(start + 10)
        # A is token0; reserves become 1:6
        pair.swap(5 * ONE, 0)

        clock.set(start + 20)
        # price 1 for 10s then 6 for 10s
        assert oracle.get_price(A_TOKEN, 10) == (35, C_TOKEN)

    def test_lowercase_pair_tokens(self, v2_factory, clock):
        v2_factory.create_pair(A_TOKEN, C_TOKEN, ONE, 4 * ONE)
        oracle = UniswapV2Oracle(LowercaseFactory(v2_factory), TIME_WINDOW, clock)
        oracle.add_paths([A_C_PATH])
        clock.advance(5)

        assert oracle.get_price(A_TOKEN, 100) == (400, C_TOKEN)
        assert oracle.get_price(A_TOKEN.lower(), 100) == (400, C_TOKEN)

    def test_reverse_direction(self, oracle, v2_factory, clock):
        v2_factory.create_pair(A_TOKEN, C_TOKEN, ONE, 4 * ONE)
        oracle.add_paths([[C_TOKEN, A_TOKEN]])
        clock.advance(5)

        assert oracle.get_price(C_TOKEN, 100) == (25, A_TOKEN)

    def test_multi_hop(self, oracle, v2_factory, clock):
        v2_factory.create_pair(B_TOKEN, A_TOKEN, ONE, 2 * ONE)
        v2_factory.create_pair(A_TOKEN, C_TOKEN, ONE, 3 * ONE)
        oracle.add_paths([B_A_C_PATH])
        clock.advance(1)

        assert oracle.get_price(B_TOKEN, 10) == (60, C_TOKEN)

    def test_zero_price_short_circuits(self, oracle, v2_factory, clock):
        v2_factory.create_pair(A_TOKEN, B_TOKEN, ONE, ONE)
        # No liquidity: the cumulative price never moves
        v2_factory.create_pair(A_TOKEN, C_TOKEN)
        oracle.add_paths([B_A_C_PATH])
        clock.advance(1)

        assert oracle.get_price(B_TOKEN, 10) == (0, C_TOKEN)

    def test_zero_amount(self, oracle, pairs, clock):
        oracle.add_paths([B_A_C_PATH])
        clock.advance(1)
        assert oracle.get_price(B_TOKEN, 0) == (0, C_TOKEN)

    def test_no_path(self, oracle):
        with pytest.raises(InvalidPath) as exc_info:
            oracle.get_price(A_TOKEN, 10)
        assert exc_info.value.token == A_TOKEN
        assert exc_info.value.length == 0

    def test_no_elapsed_time(self, oracle, pairs):
        oracle.add_paths([A_C_PATH])
        with pytest.raises(StaleObservation):
            oracle.get_price(A_TOKEN, 10)

    def test_window_selects_older_sample(self, oracle, v2_factory, clock):
        start = clock.now()
        pair = v2_factory.create_pair(A_TOKEN, C_TOKEN, ONE, ONE)
        oracle.add_paths([A_C_PATH])
        oracle.set_time_window(10)

        clock.set(start + 100)
        oracle.update_prices()
        pair.sync(ONE, 3 * ONE)

        clock.set(start + 120)
        # window reaches start + 110; the sample at start + 100 is the last older one
        assert oracle.get_price(A_TOKEN, 10) == (30, C_TOKEN)

    def test_cumulative_accrual_matches_pair(self, oracle, pairs, clock):
        a_c, _ = pairs
        oracle.add_paths([A_C_PATH])
        clock.advance(7)
        a_c.sync(ONE, ONE)
        oracle.update_prices()

        info = oracle.get_pair_info(a_c.address, 1)
        assert info.price0_cumulative == a_c.price0_cumulative_last == 7 * Q112
