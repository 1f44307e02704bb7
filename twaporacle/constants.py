"""
Constants and environment defaults for twaporacle.

Settings that operators may override come from a ``.env`` file in the
working directory (read once, at import). Each one is exposed as a module
attribute wrapped in :class:`ConfigString` or :class:`ConfigBool`, so code can
ask for the built-in default with ``.default()`` when an override is unusable.
"""
from typing import Dict, Union

from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT DEFAULTS
# =============================================================================
_env = dotenv_values(".env")

ORACLE_DEFAULTS = {
    'TWAP_TIME_WINDOW':          '1800',
    'TWAP_DEFAULT_PERIOD':       '1800',
    'TWAP_CONFIG':               'twaporacle.toml',
}

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                 'INFO',
    'LOG_FORMAT':                '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':           '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':  'True',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5


# =============================================================================
# FIXED-POINT AND ACCUMULATOR WIDTHS
# =============================================================================
# Cumulative prices are uint256 accumulators that wrap on overflow.
UINT256_BITS = 256
# Block timestamps are stored modulo 2**32.
UINT32_BITS = 32
# UQ112x112 price resolution.
RESOLUTION = 112
Q112 = 1 << RESOLUTION
UINT112_MAX = Q112 - 1
UINT128_MAX = (1 << 128) - 1


# =============================================================================
# TICK PARAMETERS
# =============================================================================
MIN_TICK = -887272
MAX_TICK = 887272
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342

# Uniswap V3 ring buffers are capped at uint16 slots.
MAX_OBSERVATION_CARDINALITY = 65535

# Fee tier -> tick spacing
FEE_TICK_SPACINGS = {
    100: 1,
    500: 10,
    3000: 60,
    10000: 200,
}


# =============================================================================
# SETTING WRAPPERS
# =============================================================================
class ConfigString(str):
    """A ``str`` setting that remembers its built-in default."""

    def __new__(cls, value, default):
        obj = super().__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default


class ConfigBool(int):
    """A boolean setting that remembers its built-in default.

    Subclasses ``int`` because ``bool`` cannot be subclassed.
    """

    def __new__(cls, value, default):
        obj = super().__new__(cls, 1 if value else 0)
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __eq__(self, other):
        return bool(self) == other

    __hash__ = int.__hash__

    def __str__(self):
        return "True" if self else "False"

    __repr__ = __str__


def parse_bool(v):
    """Map "true"/"false" (any case, surrounding blanks ignored) to bool; return anything else as-is."""
    if not isinstance(v, str):
        return v
    lowered = v.strip().casefold()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return v


def _setting(raw: str, default_raw: str) -> Union[ConfigString, ConfigBool]:
    value, default = parse_bool(raw), parse_bool(default_raw)
    if isinstance(value, bool):
        return ConfigBool(value, default)
    return ConfigString(raw, default)


def _load_settings(defaults: Dict[str, str]) -> Dict[str, Union[ConfigString, ConfigBool]]:
    # dotenv yields None for keys declared without a value
    return {
        key: _setting(default_raw if _env.get(key) is None else _env[key], default_raw)
        for key, default_raw in defaults.items()
    }


globals().update(_load_settings({**ORACLE_DEFAULTS, **LOGGER_DEFAULTS}))
