"""
Price feed front-end over the two averaging models.

The averaging algorithm is picked per call from a closed set:
  - CUMULATIVE_PRICE: windowed average of V2 cumulative prices
  - TICK_MEAN:        arithmetic-mean tick of V3 pool observations
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Sequence

from ..exceptions import ConfigurationError
from .v2 import UniswapV2Oracle
from .v3 import UniswapV3Oracle

logger = logging.getLogger(__name__)


class AveragingMethod(Enum):
    CUMULATIVE_PRICE = "cumulative_price"
    TICK_MEAN = "tick_mean"


@dataclass(frozen=True)
class Quote:
    """Result of a price lookup."""
    amount: int
    token_out: str
    period: int  # configured window (CUMULATIVE_PRICE) or clamped period (TICK_MEAN)
    method: AveragingMethod


class PriceFeed:
    """
    Dispatches price requests to the oracle matching the averaging method.

    Either oracle may be omitted; asking for a method whose oracle is not
    configured raises ConfigurationError.
    """

    def __init__(
        self,
        v2: Optional[UniswapV2Oracle] = None,
        v3: Optional[UniswapV3Oracle] = None,
        default_period: int = 1800,
    ):
        self.v2 = v2
        self.v3 = v3
        self.default_period = default_period
        self._handlers: Dict[AveragingMethod, Callable[..., Quote]] = {
            AveragingMethod.CUMULATIVE_PRICE: self._quote_cumulative,
            AveragingMethod.TICK_MEAN: self._quote_tick_mean,
        }

    def quote(
        self,
        method: AveragingMethod,
        path: Sequence[str],
        amount: int,
        fees: Sequence[int] = (),
        period: Optional[int] = None,
    ) -> Quote:
        """
        Price *amount* of path[0].

        CUMULATIVE_PRICE only uses path[0]; the route is the one registered
        in the V2 oracle. TICK_MEAN walks *path* with *fees*.
        """
        method = AveragingMethod(method)
        if not path:
            raise ValueError("path must contain at least the input token")
        return self._handlers[method](path, amount, fees, period)

    def _quote_cumulative(self, path, amount, fees, period) -> Quote:
        if self.v2 is None:
            raise ConfigurationError("No cumulative-price oracle configured")
        amount_out, token_out = self.v2.get_price(path[0], amount)
        return Quote(amount_out, token_out, self.v2.get_time_window(), AveragingMethod.CUMULATIVE_PRICE)

    def _quote_tick_mean(self, path, amount, fees, period) -> Quote:
        if self.v3 is None:
            raise ConfigurationError("No tick-mean oracle configured")
        requested = period if period is not None else self.default_period
        amount_out, min_period = self.v3.get_price_of_token_in_token(path, fees, amount, requested)
        return Quote(amount_out, path[-1], min_period, AveragingMethod.TICK_MEAN)
