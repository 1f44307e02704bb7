"""
Test suite for the simulated pairs, pools and token registry
"""

from decimal import Decimal

import pytest
from eth_utils import is_checksum_address

from twaporacle.amm import (
    FeeTier,
    TokenRegistry,
    UniswapV2FactorySim,
    encode_price_sqrt,
    get_amount_out,
    v2_pair_address,
    v3_pool_address,
)
from twaporacle.constants import Q112
from twaporacle.exceptions import (
    InsufficientLiquidity,
    ObservationTooOld,
    PoolAlreadyExists,
    PoolError,
    PoolNotInitialized,
)
from twaporacle.oracle.tick_math import Q96

A_TOKEN = "0xaAaAaAaaAaAaAaaAaAAAAAAAAaaaAaAaAaaAaaAa"
B_TOKEN = "0xbBbBBBBbbBBBbbbBbbBbbbbBBbBbbbbBbBbbBBbB"
C_TOKEN = "0xCcCCccccCCCCcCCCCCCcCcCccCcCCCcCcccccccC"

WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"

ONE = 10**18


# ============================================================================
#  ADDRESSES
# ============================================================================

class TestAddresses:
    """CREATE2 pair and pool addresses."""

    def test_v2_pair_address_mainnet(self):
        # USDC/WETH pair on the canonical factory
        assert v2_pair_address(
            "0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f", WETH, USDC
        ) == "0xB4e16d0168e52d35CaCD2c6185b44281Ec28C9Dc"

    def test_v3_pool_address_mainnet(self):
        # USDC/WETH 0.05 % pool on the canonical factory
        assert v3_pool_address(
            "0x1F98431c8aD98523631AE4a59f267346ea31F984", USDC, WETH, 500
        ) == "0x88e6A0c2dDD26FEEb64F039a2c41296FcB3f5640"

    def test_order_independent(self):
        factory = "0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f"
        assert v2_pair_address(factory, A_TOKEN, B_TOKEN) == v2_pair_address(factory, B_TOKEN, A_TOKEN)


# ============================================================================
#  V2
# ============================================================================

class TestUniswapV2Sim:
    """Constant-product pair with cumulative prices."""

    def test_create_pair(self, v2_factory):
        pair = v2_factory.create_pair(C_TOKEN, A_TOKEN, 2 * ONE, ONE)

        assert is_checksum_address(pair.address)
        assert (pair.token0, pair.token1) == (A_TOKEN, C_TOKEN)
        # reserves follow the sorted order
        assert pair.get_reserves()[:2] == (ONE, 2 * ONE)
        assert v2_factory.get_pair(A_TOKEN, C_TOKEN) is pair
        assert v2_factory.get_pair(C_TOKEN, A_TOKEN) is pair
        assert v2_factory.pair_count == 1
        assert v2_factory.all_pairs() == [pair]

    def test_missing_pair(self, v2_factory):
        assert v2_factory.get_pair(A_TOKEN, B_TOKEN) is None

    def test_duplicate_pair(self, v2_factory):
        v2_factory.create_pair(A_TOKEN, B_TOKEN)
        with pytest.raises(PoolAlreadyExists):
            v2_factory.create_pair(B_TOKEN, A_TOKEN)

    def test_identical_tokens(self, v2_factory):
        with pytest.raises(ValueError, match="Identical"):
            v2_factory.create_pair(A_TOKEN, A_TOKEN)

    def test_cumulative_prices_accrue(self, v2_factory, clock):
        pair = v2_factory.create_pair(A_TOKEN, B_TOKEN, ONE, 2 * ONE)
        clock.advance(10)
        pair.sync(ONE, 2 * ONE)

        assert pair.price0_cumulative_last == 2 * Q112 * 10
        assert pair.price1_cumulative_last == (Q112 // 2) * 10
        assert pair.block_timestamp_last == clock.now()

    def test_no_accrual_without_reserves(self, v2_factory, clock):
        pair = v2_factory.create_pair(A_TOKEN, B_TOKEN)
        clock.advance(10)
        pair.mint(ONE, ONE)
        assert pair.price0_cumulative_last == 0

    def test_swap(self, v2_factory):
        pair = v2_factory.create_pair(A_TOKEN, B_TOKEN, 6 * ONE, 6 * ONE)
        pair.swap(5 * ONE, 0)
        assert pair.get_reserves()[:2] == (ONE, 6 * ONE)

    def test_swap_exceeding_reserves(self, v2_factory):
        pair = v2_factory.create_pair(A_TOKEN, B_TOKEN, ONE, ONE)
        with pytest.raises(InsufficientLiquidity):
            pair.swap(ONE, 0)

    def test_swap_exact_in(self, v2_factory):
        pair = v2_factory.create_pair(A_TOKEN, B_TOKEN, 1000, 1000)
        out = pair.swap_exact_in(A_TOKEN, 100)

        assert out == get_amount_out(100, 1000, 1000) == 90
        assert pair.get_reserves()[:2] == (1100, 910)

    def test_reserves_must_fit_uint112(self, v2_factory):
        pair = v2_factory.create_pair(A_TOKEN, B_TOKEN)
        with pytest.raises(OverflowError):
            pair.sync(2**112, 1)

    def test_pair_address_matches_factory(self, clock):
        factory = UniswapV2FactorySim(clock)
        pair = factory.create_pair(A_TOKEN, B_TOKEN)
        assert pair.address == v2_pair_address(factory.address, A_TOKEN, B_TOKEN)


# ============================================================================
#  V3
# ============================================================================

class TestUniswapV3Sim:
    """Observation ring buffer."""

    def test_fee_tiers(self):
        assert FeeTier.MEDIUM.tick_spacing == 60
        assert FeeTier.LOW.rate == Decimal("0.0005")

    def test_encode_price_sqrt(self):
        assert encode_price_sqrt(1, 1) == Q96
        assert encode_price_sqrt(4, 1) == 2 * Q96

    def test_create_pool(self, v3_factory):
        pool = v3_factory.create_pool(B_TOKEN, A_TOKEN, FeeTier.MEDIUM, sqrt_price_x96=encode_price_sqrt(1, 1))

        assert (pool.token0, pool.token1) == (A_TOKEN, B_TOKEN)
        assert v3_factory.get_pool(A_TOKEN, B_TOKEN, 3000) is pool
        assert v3_factory.get_pool(A_TOKEN, B_TOKEN, 500) is None
        assert pool.slot0().tick == 0
        assert pool.slot0().observation_cardinality == 1

    def test_unknown_fee(self, v3_factory):
        with pytest.raises(ValueError):
            v3_factory.create_pool(A_TOKEN, B_TOKEN, 1234)

    def test_duplicate_pool(self, v3_factory):
        v3_factory.create_pool(A_TOKEN, B_TOKEN, FeeTier.LOW)
        v3_factory.create_pool(A_TOKEN, B_TOKEN, FeeTier.MEDIUM)
        with pytest.raises(PoolAlreadyExists):
            v3_factory.create_pool(B_TOKEN, A_TOKEN, FeeTier.LOW)
        assert v3_factory.pool_count == 2

    def test_uninitialized_pool(self, v3_factory):
        pool = v3_factory.create_pool(A_TOKEN, B_TOKEN)
        assert pool.slot0().observation_cardinality == 0
        with pytest.raises(PoolNotInitialized):
            pool.observe([0])

    def test_initialize_twice(self, v3_factory):
        pool = v3_factory.create_pool(A_TOKEN, B_TOKEN, sqrt_price_x96=Q96)
        with pytest.raises(PoolError, match="already initialized"):
            pool.initialize(Q96)

    def test_cardinality_grows_lazily(self, v3_factory, clock):
        pool = v3_factory.create_pool(A_TOKEN, B_TOKEN, sqrt_price_x96=Q96)
        pool.increase_observation_cardinality_next(3)

        slot0 = pool.slot0()
        assert (slot0.observation_cardinality, slot0.observation_cardinality_next) == (1, 3)
        assert pool.observations(1).initialized is False
        assert pool.observations(1).block_timestamp == 1

        clock.advance(1)
        pool.add_observation(10)
        assert pool.slot0().observation_cardinality == 3
        assert pool.slot0().observation_index == 1

    def test_one_observation_per_timestamp(self, v3_factory, clock):
        pool = v3_factory.create_pool(A_TOKEN, B_TOKEN, sqrt_price_x96=Q96)
        pool.increase_observation_cardinality_next(4)
        clock.advance(1)
        pool.add_observation(10)
        pool.add_observation(20)
        assert pool.slot0().observation_index == 1
        assert pool.slot0().tick == 20

    def test_observe_interpolates(self, v3_factory, clock):
        pool = v3_factory.create_pool(A_TOKEN, B_TOKEN, sqrt_price_x96=Q96)
        pool.increase_observation_cardinality_next(4)
        pool.add_observation(100)
        clock.advance(10)
        pool.add_observation(-50)
        clock.advance(5)

        tick_cumulatives, _ = pool.observe([15, 10, 5, 0])
        assert tick_cumulatives == [0, 500, 1000, 750]

    def test_observe_too_old(self, v3_factory, clock):
        pool = v3_factory.create_pool(A_TOKEN, B_TOKEN, sqrt_price_x96=Q96)
        clock.advance(5)
        with pytest.raises(ObservationTooOld):
            pool.observe([6])

    def test_liquidity_accumulator(self, v3_factory, clock):
        pool = v3_factory.create_pool(A_TOKEN, B_TOKEN, sqrt_price_x96=Q96, liquidity=2**64)
        clock.advance(4)
        _, seconds_per_liquidity = pool.observe([4, 0])
        assert seconds_per_liquidity[1] - seconds_per_liquidity[0] == (4 << 128) // 2**64

    def test_set_liquidity_checkpoints(self, v3_factory, clock):
        pool = v3_factory.create_pool(A_TOKEN, B_TOKEN, sqrt_price_x96=Q96, liquidity=2**64)
        pool.increase_observation_cardinality_next(2)
        clock.advance(4)
        pool.set_liquidity(2**65)
        clock.advance(4)

        _, spl = pool.observe([8, 4, 0])
        assert spl[1] - spl[0] == (4 << 128) // 2**64
        assert spl[2] - spl[1] == (4 << 128) // 2**65

        with pytest.raises(ValueError):
            pool.set_liquidity(-1)


# ============================================================================
#  TOKENS
# ============================================================================

class TestTokenRegistry:
    """Decimals lookup."""

    def test_register(self):
        registry = TokenRegistry()
        registry.register(A_TOKEN.lower(), decimals=6, symbol="A")
        assert registry.decimals(A_TOKEN) == 6
        assert A_TOKEN in registry

    def test_unknown_token(self):
        with pytest.raises(KeyError):
            TokenRegistry().decimals(A_TOKEN)

    def test_decimals_out_of_range(self):
        with pytest.raises(ValueError, match="Decimals"):
            TokenRegistry().register(A_TOKEN, decimals=78)
