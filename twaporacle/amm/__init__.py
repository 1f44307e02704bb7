"""
Simulated AMM collaborators

In-memory stand-ins for the on-chain contracts the oracles read:
  - Constant-product pairs with cumulative prices (V2 model)
  - Concentrated-liquidity pools with an observation ring buffer (V3 model)
  - Token decimals registry
Pair and pool addresses are CREATE2-derived like the canonical deployments.
"""

from .addresses import (
    create2_address,
    v2_pair_address,
    v3_pool_address,
)
from .tokens import (
    TokenInfo,
    TokenRegistry,
)
from .v2 import (
    UNISWAP_V2_FACTORY,
    UniswapV2FactorySim,
    UniswapV2PairSim,
    get_amount_out,
)
from .v3 import (
    UNISWAP_V3_FACTORY,
    FeeTier,
    UniswapV3FactorySim,
    UniswapV3PoolSim,
    encode_price_sqrt,
)

__all__ = [
    # Addresses
    "create2_address",
    "v2_pair_address",
    "v3_pool_address",
    # Tokens
    "TokenInfo",
    "TokenRegistry",
    # V2
    "UNISWAP_V2_FACTORY",
    "UniswapV2FactorySim",
    "UniswapV2PairSim",
    "get_amount_out",
    # V3
    "UNISWAP_V3_FACTORY",
    "FeeTier",
    "UniswapV3FactorySim",
    "UniswapV3PoolSim",
    "encode_price_sqrt",
]
