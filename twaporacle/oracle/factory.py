"""
Engine wiring from configuration.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..clock import SystemClock
from ..config import OracleConfig, load_config
from ..exceptions import ConfigurationError
from ..logger import configure_logging
from .feed import PriceFeed
from .sources import Clock, TokenMetadata, V2Factory, V3Factory
from .v2 import UniswapV2Oracle
from .v3 import UniswapV3Oracle

logger = logging.getLogger(__name__)


def build_oracles(
    config: Optional[OracleConfig] = None,
    clock: Optional[Clock] = None,
    v2_factory: Optional[V2Factory] = None,
    v3_factory: Optional[V3Factory] = None,
    tokens: Optional[TokenMetadata] = None,
    setup_logging: bool = True,
) -> PriceFeed:
    """
    Build a PriceFeed over whichever factories are supplied.

    Args:
        config: loaded configuration; read via `load_config()` when omitted
        clock: block-time source, wall clock by default
        v2_factory: enables the cumulative-price oracle
        v3_factory: enables the tick-mean oracle (requires *tokens*)
        tokens: decimals lookup for the tick-mean oracle
        setup_logging: configure the root logger from `config.logging`

    Raises:
        ConfigurationError: invalid config, or a V3 factory without tokens
    """
    if config is None:
        config = load_config()
    else:
        config.validate()

    if setup_logging:
        configure_logging(
            log_level=config.logging.level,
            log_file=config.logging.file,
            console_output=config.logging.console_output,
            file_output=config.logging.file_output,
        )

    if clock is None:
        clock = SystemClock()

    v2 = None
    if v2_factory is not None:
        v2 = UniswapV2Oracle(v2_factory, config.oracle.time_window, clock)

    v3 = None
    if v3_factory is not None:
        if tokens is None:
            raise ConfigurationError("Tick-mean oracle needs a token registry")
        v3 = UniswapV3Oracle(v3_factory, tokens, clock)

    logger.info(
        "Price feed ready: cumulative=%s tick_mean=%s window=%ds period=%ds",
        v2 is not None, v3 is not None, config.oracle.time_window, config.oracle.default_period,
    )
    return PriceFeed(v2=v2, v3=v3, default_period=config.oracle.default_period)
