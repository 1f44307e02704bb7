"""
TWAP Oracle Exceptions

Custom exception classes for the oracle engine and simulated pools.
Every error carries the offending values as attributes so callers can
react without parsing messages.
"""


class TwapOracleException(Exception):
    """Base exception for twaporacle."""
    pass


class ConfigurationError(TwapOracleException):
    """Configuration error."""
    pass


# ---------------------------------------------------------------------------
# Oracle engine errors
# ---------------------------------------------------------------------------

class OracleError(TwapOracleException):
    """Base class for errors raised by the oracle engines."""
    pass


class InvalidPath(OracleError):
    """Path is shorter than two tokens, or no path is registered."""

    def __init__(self, token: str, length: int):
        self.token = token
        self.length = length
        super().__init__(f"Invalid path for {token}: length {length}")


class PathAlreadyRegistered(OracleError):
    """A path is already registered for this input token."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Path already registered for {token}")


class PathFeeLengthMismatch(OracleError):
    """V3 path and fee arrays do not line up."""

    def __init__(self, path_length: int, fees_length: int):
        self.path_length = path_length
        self.fees_length = fees_length
        super().__init__(
            f"Path/fee lengths do not match: {path_length} tokens, {fees_length} fees"
        )


class PairDoesNotExist(OracleError):
    """The V2 factory has no pair for these tokens."""

    def __init__(self, token_a: str, token_b: str):
        self.token_a = token_a
        self.token_b = token_b
        super().__init__(f"Pair {token_a}/{token_b} does not exist")


class PoolDoesNotExist(OracleError):
    """The V3 factory has no pool for these tokens and fee."""

    def __init__(self, token_a: str, token_b: str, fee: int):
        self.token_a = token_a
        self.token_b = token_b
        self.fee = fee
        super().__init__(f"Pool {token_a}/{token_b} with fee {fee} does not exist")


class TimeWindowIsZero(OracleError):
    """The averaging window must be positive."""

    def __init__(self):
        super().__init__("Time window can't be 0")


class StaleObservation(OracleError):
    """No time has elapsed between the stored and the current sample."""

    def __init__(self, pair: str, timestamp: int):
        self.pair = pair
        self.timestamp = timestamp
        super().__init__(f"No time elapsed for pair {pair} since {timestamp}")


class OldestObservationOnCurrentBlock(OracleError):
    """The pool's only observation was written at the current timestamp."""

    def __init__(self, pool: str):
        self.pool = pool
        super().__init__(f"The oldest observation of {pool} is on current block")


class PeriodIsZero(OracleError):
    """The requested averaging period is zero."""

    def __init__(self):
        super().__init__("Period can't be 0")


class PeriodExceedsCurrentTime(OracleError):
    """The requested averaging period reaches before genesis."""

    def __init__(self, period: int, now: int):
        self.period = period
        self.now = now
        super().__init__(f"Period {period} larger than current timestamp {now}")


class InvalidTick(OracleError):
    """Tick outside of [MIN_TICK, MAX_TICK]."""

    def __init__(self, tick: int):
        self.tick = tick
        super().__init__(f"Invalid tick {tick}")


# ---------------------------------------------------------------------------
# Simulated pool errors
# ---------------------------------------------------------------------------

class PoolError(TwapOracleException):
    """Error raised by a simulated pair or pool."""
    pass


class InsufficientLiquidity(PoolError):
    """Swap would drain the pool or the pool holds no reserves."""
    pass


class PoolAlreadyExists(PoolError):
    """A pair or pool already exists for these tokens (and fee)."""
    pass


class PoolNotInitialized(PoolError):
    """The V3 pool has no price and no observations yet."""
    pass


class SqrtPriceOutOfRange(PoolError):
    """sqrt price outside of [MIN_SQRT_RATIO, MAX_SQRT_RATIO)."""

    def __init__(self, sqrt_price_x96: int):
        self.sqrt_price_x96 = sqrt_price_x96
        super().__init__(f"sqrtPriceX96 {sqrt_price_x96} not in range")


class ObservationTooOld(PoolError):
    """Requested seconds-ago reaches before the oldest stored observation."""

    def __init__(self, target: int, oldest: int):
        self.target = target
        self.oldest = oldest
        super().__init__(f"Target {target} is older than oldest observation {oldest}")
