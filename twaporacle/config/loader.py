"""
TWAP Oracle TOML Configuration Loader

Loads the sections of twaporacle.toml at startup with environment variable
overrides (dataclass + from_dict + from_file).

Environment variable mapping:
    [oracle] time_window     → TWAP_TIME_WINDOW
    [oracle] default_period  → TWAP_DEFAULT_PERIOD
    [logging] level          → TWAP_LOG_LEVEL
    [logging] file           → TWAP_LOG_FILE

Example:
    [oracle]
    time_window = 1800
    default_period = 600

    [logging]
    level = "DEBUG"
    file_output = false
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..constants import TWAP_CONFIG, TWAP_DEFAULT_PERIOD, TWAP_TIME_WINDOW
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class OracleSectionConfig:
    """[oracle] section."""
    time_window: int = int(TWAP_TIME_WINDOW)
    default_period: int = int(TWAP_DEFAULT_PERIOD)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OracleSectionConfig":
        return cls(
            time_window=int(data.get("time_window", int(TWAP_TIME_WINDOW))),
            default_period=int(data.get("default_period", int(TWAP_DEFAULT_PERIOD))),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("TWAP_TIME_WINDOW"):
            self.time_window = int(v)
        if v := os.environ.get("TWAP_DEFAULT_PERIOD"):
            self.default_period = int(v)

    def validate(self) -> None:
        if self.time_window <= 0:
            raise ConfigurationError("oracle.time_window must be > 0")
        if self.default_period <= 0:
            raise ConfigurationError("oracle.default_period must be > 0")


@dataclass
class LoggingSectionConfig:
    """[logging] section."""
    level: str = "INFO"
    file: Optional[str] = None
    console_output: bool = True
    file_output: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingSectionConfig":
        return cls(
            level=str(data.get("level", "INFO")).upper(),
            file=data.get("file"),
            console_output=data.get("console_output", True),
            file_output=data.get("file_output", True),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("TWAP_LOG_LEVEL"):
            self.level = v.upper()
        if v := os.environ.get("TWAP_LOG_FILE"):
            self.file = v

    def validate(self) -> None:
        if self.level not in _LOG_LEVELS:
            raise ConfigurationError(f"Invalid logging.level: {self.level}")


@dataclass
class OracleConfig:
    """
    Unified oracle configuration.

    Loads every section of the TOML file and applies environment variable
    overrides.
    """
    oracle: OracleSectionConfig = field(default_factory=OracleSectionConfig)
    logging: LoggingSectionConfig = field(default_factory=LoggingSectionConfig)

    # --- factories --------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OracleConfig":
        """Create OracleConfig from a parsed TOML dict."""
        return cls(
            oracle=OracleSectionConfig.from_dict(data.get("oracle", {})),
            logging=LoggingSectionConfig.from_dict(data.get("logging", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "OracleConfig":
        """
        Load configuration from a TOML file.

        A missing file falls back to defaults with env overrides.
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        with open(path, "rb") as f:
            try:
                raw = tomli.load(f)
            except tomli.TOMLDecodeError as e:
                raise ConfigurationError(f"Malformed config file {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.oracle.apply_env()
        self.logging.apply_env()

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ConfigurationError: on invalid config
        """
        self.oracle.validate()
        self.logging.validate()
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics, NOT for re-creating TOML)."""
        return {
            "oracle": {
                "time_window": self.oracle.time_window,
                "default_period": self.oracle.default_period,
            },
            "logging": {
                "level": self.logging.level,
                "file": self.logging.file,
                "console_output": self.logging.console_output,
                "file_output": self.logging.file_output,
            },
        }


def load_config(path: Optional[str] = None) -> OracleConfig:
    """
    Load oracle configuration.

    Resolution order:
        1. Explicit *path* argument
        2. TWAP_CONFIG env var
        3. TWAP_CONFIG from .env / default (./twaporacle.toml)
    """
    if path is None:
        path = os.environ.get("TWAP_CONFIG", str(TWAP_CONFIG))

    cfg = OracleConfig.from_file(path)
    cfg.validate()
    return cfg
