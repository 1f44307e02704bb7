"""Shared fixtures for the oracle test suites."""

import pytest

from twaporacle.amm import TokenRegistry, UniswapV2FactorySim, UniswapV3FactorySim
from twaporacle.clock import ManualClock

A_TOKEN = "0xaAaAaAaaAaAaAaaAaAAAAAAAAaaaAaAaAaaAaaAa"
B_TOKEN = "0xbBbBBBBbbBBBbbbBbbBbbbbBBbBbbbbBbBbbBBbB"
C_TOKEN = "0xCcCCccccCCCCcCCCCCCcCcCccCcCCCcCcccccccC"


@pytest.fixture
def clock():
    return ManualClock(start=1_700_000_000)


@pytest.fixture
def v2_factory(clock):
    return UniswapV2FactorySim(clock)


@pytest.fixture
def v3_factory(clock):
    return UniswapV3FactorySim(clock)


@pytest.fixture
def make_tokens():
    """Factory registering A/B/C with the given decimals."""

    def _make(*decimals):
        registry = TokenRegistry()
        for address, symbol, dec in zip((A_TOKEN, B_TOKEN, C_TOKEN), "ABC", decimals):
            registry.register(address, decimals=dec, symbol=symbol)
        return registry
    return _make
