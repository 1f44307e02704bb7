"""
Logging for twaporacle.

Every module logs through ``logging.getLogger(__name__)``. Nothing is
configured on import: applications call :func:`configure_logging` once (or let
:func:`twaporacle.oracle.build_oracles` do it from the ``[logging]`` section)
and get a ``rich`` console handler plus a rotating UTC log file.

Usage:
    >>> from twaporacle.logger import configure_logging, get_logger
    >>> configure_logging(log_level="DEBUG", file_output=False)
    >>> get_logger(__name__).info("Paths registered")
"""

import logging
import logging.handlers
import re
import sys
import threading
import time
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.highlighter import RegexHighlighter
from rich.logging import RichHandler
from rich.theme import Theme

from .constants import (
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_HIGHLIGHTING,
    LOG_DATE_FORMAT,
    LOG_FORMAT,
    LOG_LEVEL,
    LOG_MAX_FILE_SIZE,
)

DEFAULT_LOG_FILE = Path("logs") / "twaporacle.log"

ORACLE_THEME = Theme(
    {
        "twap.address": "cyan",
        "twap.number": "bold blue",
        "twap.logger_name": "magenta",
        "twap.timestamp": "dim cyan",
        "twap.level_debug": "dim",
        "twap.level_info": "bold green",
        "twap.level_warning": "bold yellow",
        "twap.level_error": "bold red",
        "twap.level_critical": "bold red reverse",
    }
)

# Attributes a format string may reference on a LogRecord
_RECORD_FIELDS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}

_PLACEHOLDER_RE = re.compile(r"%\((?P<field>[A-Za-z_]\w*)\)[-#0 +]*\d*(?:\.\d+)?[diouxXeEfFgGcrsa]")
_BARE_FIELD_RE = re.compile(r"\([A-Za-z_]\w*\)[A-Za-z]")
_DATE_DIRECTIVE_RE = re.compile(r"%[-_0^#]?[EO]?[A-Za-z]")
_DATE_FORMAT_RE = re.compile(r"(?:%[-_0^#]?[EO]?[A-Za-z]|%%|[\s\d:\-/.,TZ+])+")


def _fallback_notice(reason: str) -> None:
    # Logging is not set up yet, so report straight to stderr
    print(
        f"{time.strftime(str(LOG_DATE_FORMAT.default()))} - twaporacle.logger - "
        f"{reason}. Using default.",
        file=sys.stderr,
    )


class OracleLogHighlighter(RegexHighlighter):
    """Highlights addresses, numbers, logger names and levels."""

    base_style = "twap."
    highlights = [
        r"(?P<timestamp>^\S+ UTC)",
        r"(?P<address>\b0x[0-9a-fA-F]{40}\b)",
        r"(?P<number>(?<![\w.])-?\d+(?![\w.]))",
        r"-\s(?P<logger_name>twaporacle(?:\.\w+)*)\s-",
        r"(?P<level_debug>\bDEBUG\b)",
        r"(?P<level_info>\bINFO\b)",
        r"(?P<level_warning>\bWARNING\b)",
        r"(?P<level_error>\bERROR\b)",
        r"(?P<level_critical>\bCRITICAL\b)",
    ]


class TerminalSafeFormatter(logging.Formatter):
    """
    Formatter that drops ANSI escapes and control characters.

    Token symbols and pool identifiers are attacker-controlled on a public
    chain, so nothing they contain may reach a terminal unfiltered.
    """

    _unsafe_re = re.compile(
        r"\x1b\[[0-?]*[ -/]*[@-~]"  # CSI sequences
        r"|\x1b[@-Z\\-_]"           # two-byte escapes
        r"|[\x00-\x08\x0B-\x1F\x7F]"  # controls other than tab and newline
    )

    @classmethod
    def sanitize(cls, text: str) -> str:
        if not text:
            return text
        return cls._unsafe_re.sub("", text)

    def format(self, record: logging.LogRecord) -> str:
        return self.sanitize(super().format(record))


class LogManager:
    """
    Process-wide logging setup.

    A singleton: the first :meth:`configure` call installs handlers on the
    root logger and later calls are no-ops until :meth:`reset`.
    """

    _instance: Optional["LogManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "LogManager":
        with cls._lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance._configured = False
                instance._handlers = []
                cls._instance = instance
        return cls._instance

    # --- format validation -------------------------------------------------

    @staticmethod
    def validate_log_format(log_format: str) -> str:
        """
        Return *log_format* if it is usable, else the default format.

        A format is rejected when a placeholder names an attribute a
        ``LogRecord`` does not carry, when a ``(name)s`` fragment is missing
        its ``%``, or when formatting a sample record fails.
        """
        default_format = str(LOG_FORMAT.default())
        if not log_format:
            return default_format

        log_format = str(log_format)
        fields = [m.group("field") for m in _PLACEHOLDER_RE.finditer(log_format)]
        unknown = [f for f in fields if f not in _RECORD_FIELDS]
        if unknown:
            _fallback_notice(f"Unknown log record field(s) {', '.join(unknown)}")
            return default_format
        if _BARE_FIELD_RE.search(_PLACEHOLDER_RE.sub("", log_format)):
            _fallback_notice("Malformed log format placeholder")
            return default_format

        sample = logging.LogRecord("twaporacle", logging.INFO, "", 0, "sample", (), None)
        try:
            logging.Formatter(fmt=log_format).format(sample)
        except (ValueError, KeyError, TypeError) as e:
            _fallback_notice(f"Log format error: {e}")
            return default_format
        return log_format

    @staticmethod
    def validate_date_format(date_format: str) -> str:
        """Accept strftime directives separated by digits and punctuation."""
        default_format = str(LOG_DATE_FORMAT.default())
        if not date_format:
            return default_format

        date_format = str(date_format)
        if not (_DATE_DIRECTIVE_RE.search(date_format) and _DATE_FORMAT_RE.fullmatch(date_format)):
            _fallback_notice(f"Invalid date format {date_format!r}")
            return default_format
        return date_format

    # --- handlers ------------------------------------------------------------

    @staticmethod
    def _console_handler(formatter: logging.Formatter) -> logging.Handler:
        if LOG_CONSOLE_HIGHLIGHTING:
            handler: logging.Handler = RichHandler(
                console=Console(theme=ORACLE_THEME, highlight=False),
                highlighter=OracleLogHighlighter(),
                keywords=[],
                rich_tracebacks=True,
                show_path=False,
                show_time=False,
                show_level=False,
                markup=False,
            )
        else:
            handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)
        return handler

    @staticmethod
    def _file_handler(path: Path, formatter: logging.Formatter) -> logging.Handler:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            filename=str(path),
            maxBytes=LOG_MAX_FILE_SIZE,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        handler.setFormatter(formatter)
        return handler

    def configure(
        self,
        log_level: Optional[str] = None,
        log_file: Optional[Union[str, Path]] = None,
        console_output: bool = True,
        file_output: bool = True,
    ) -> None:
        """
        Install handlers on the root logger.

        Args:
            log_level: Level name; defaults to ``LOG_LEVEL`` from the environment.
            log_file: Rotating log file; defaults to ``logs/twaporacle.log``.
            console_output: Attach the rich console handler.
            file_output: Attach the rotating file handler.
        """
        with self._lock:
            if self._configured:
                return

            level = getattr(logging, str(log_level or LOG_LEVEL).upper(), logging.INFO)

            # Timestamps are always UTC
            formatter = TerminalSafeFormatter(
                fmt=self.validate_log_format(LOG_FORMAT),
                datefmt=self.validate_date_format(LOG_DATE_FORMAT) + " UTC",
            )
            formatter.converter = time.gmtime

            handlers = []
            if console_output:
                handlers.append(self._console_handler(formatter))
            if file_output:
                handlers.append(self._file_handler(Path(log_file or DEFAULT_LOG_FILE), formatter))

            root = logging.getLogger()
            root.setLevel(level)
            for handler in handlers:
                handler.setLevel(level)
                root.addHandler(handler)

            self._handlers = handlers
            self._configured = True

    def reset(self) -> None:
        """Detach the handlers installed by :meth:`configure`."""
        with self._lock:
            root = logging.getLogger()
            for handler in self._handlers:
                root.removeHandler(handler)
                handler.close()
            self._handlers = []
            self._configured = False

    @property
    def is_configured(self) -> bool:
        return self._configured


def configure_logging(
    log_level: Optional[str] = None,
    log_file: Optional[Union[str, Path]] = None,
    console_output: bool = True,
    file_output: bool = True,
) -> None:
    """Configure logging once; later calls are ignored."""
    LogManager().configure(
        log_level=log_level,
        log_file=log_file,
        console_output=console_output,
        file_output=file_output,
    )


def get_logger(name: str) -> logging.Logger:
    """Return the logger for *name*, configuring defaults on first use."""
    manager = LogManager()
    if not manager.is_configured:
        manager.configure()
    return logging.getLogger(name)
