"""
TWAP Oracle Package

Core imports are lazily loaded so that importing a submodule does not pull
in the whole engine. For direct module access, import from submodules:

    from twaporacle.oracle import UniswapV2Oracle, UniswapV3Oracle
    from twaporacle.amm import UniswapV2FactorySim
    from twaporacle.exceptions import InvalidPath
"""

__version__ = "0.1.0"


# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'UniswapV2Oracle':
        from .oracle import UniswapV2Oracle
        return UniswapV2Oracle
    elif name == 'UniswapV3Oracle':
        from .oracle import UniswapV3Oracle
        return UniswapV3Oracle
    elif name == 'PriceFeed':
        from .oracle import PriceFeed
        return PriceFeed
    elif name == 'AveragingMethod':
        from .oracle import AveragingMethod
        return AveragingMethod
    elif name == 'build_oracles':
        from .oracle import build_oracles
        return build_oracles
    elif name == 'OracleError':
        from .exceptions import OracleError
        return OracleError
    raise AttributeError(f"module 'twaporacle' has no attribute {name!r}")

__all__ = [
    'UniswapV2Oracle',
    'UniswapV3Oracle',
    'PriceFeed',
    'AveragingMethod',
    'build_oracles',
    'OracleError',
]
