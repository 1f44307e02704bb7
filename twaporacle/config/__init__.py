"""
TWAP Oracle Configuration

Loads twaporacle.toml at startup.
Environment variables override TOML values.
"""

from .loader import (
    OracleConfig,
    OracleSectionConfig,
    LoggingSectionConfig,
    load_config,
)

__all__ = [
    "OracleConfig",
    "OracleSectionConfig",
    "LoggingSectionConfig",
    "load_config",
]
