"""
TWAP Oracle Engines

  - UniswapV2Oracle: windowed average of cumulative prices over registered paths
  - UniswapV3Oracle: arithmetic-mean tick over pool observations
  - PriceFeed: picks one of the two per request
"""

from .observations import (
    Observation,
    ObservationStore,
    PairInfo,
)
from .registry import (
    Path,
    PairRegistry,
    PathTable,
)
from .sources import (
    ZERO_ADDRESS,
    CumulativePrices,
    PoolObservation,
    Slot0,
    current_cumulative_prices,
    normalize_token,
    sort_tokens,
)
from .v2 import UniswapV2Oracle
from .v3 import (
    ConsultResult,
    UniswapV3Oracle,
    consult,
    convert_decimals,
    get_oldest_observation_seconds_ago,
)
from .feed import (
    AveragingMethod,
    PriceFeed,
    Quote,
)
from .factory import build_oracles

__all__ = [
    # Storage
    "Observation",
    "ObservationStore",
    "PairInfo",
    "Path",
    "PairRegistry",
    "PathTable",
    # Sources
    "ZERO_ADDRESS",
    "CumulativePrices",
    "PoolObservation",
    "Slot0",
    "current_cumulative_prices",
    "normalize_token",
    "sort_tokens",
    # Engines
    "UniswapV2Oracle",
    "ConsultResult",
    "UniswapV3Oracle",
    "consult",
    "convert_decimals",
    "get_oldest_observation_seconds_ago",
    # Feed
    "AveragingMethod",
    "PriceFeed",
    "Quote",
    "build_oracles",
]
