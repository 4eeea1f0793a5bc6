# src/windpack/logs.py
"""CLI logger for windpack.

Extra levels (TEST, TRACE, SILENT), tagged output, and a handler that keeps
warnings and errors on stderr while everything chattier goes to stdout.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from contextlib import suppress
from typing import Any, TextIO, cast

from .constants import DEFAULT_ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL
from .meta import PROGRAM_ENV, PROGRAM_PACKAGE


# --- Constants ---------------------------------------------------------------

LOG_LEVEL_ENV_VARS: list[str] = [
    f"{PROGRAM_ENV}_{DEFAULT_ENV_LOG_LEVEL}",
    DEFAULT_ENV_LOG_LEVEL,
]

# ANSI Colors
RESET = "\033[0m"
CYAN = "\033[36m"
GRAY = "\033[90m"

# Logger levels
TEST_LEVEL = logging.DEBUG - 10  # most verbose, bypasses capture
TRACE_LEVEL = logging.DEBUG - 5
SILENT_LEVEL = logging.CRITICAL + 1  # one above the highest builtin level

LEVEL_ORDER = [
    "test",
    "trace",
    "debug",
    "info",
    "warning",
    "error",
    "critical",
    "silent",  # disables all logging
]

TAG_STYLES = {
    "TEST": (GRAY, "[TEST]"),
    "TRACE": (GRAY, "[TRACE]"),
    "DEBUG": (CYAN, "[DEBUG]"),
    "WARNING": ("", "⚠️ "),
    "ERROR": ("", "❌ "),
    "CRITICAL": ("", "💥 "),
}

# sanity check
assert set(TAG_STYLES.keys()) <= {lvl.upper() for lvl in LEVEL_ORDER}, (  # noqa: S101
    "TAG_STYLES contains unknown levels"
)


# --- Logging that bypasses streams -------------------------------------------


def safe_log(msg: str) -> None:
    """Emergency logger that never fails."""
    stream = cast("TextIO", sys.__stderr__)
    try:
        print(msg, file=stream)
    except Exception:  # noqa: BLE001
        # never crash during crash reporting
        with suppress(Exception):
            stream.write(f"[INTERNAL] {msg}\n")


# --- App logger --------------------------------------------------------------


class AppLogger(logging.Logger):
    """Logger used by every windpack module."""

    enable_color: bool = False

    _logging_module_extended: bool = False

    # if stdout or stderr are redirected, we need to repoint
    _last_stream_ids: tuple[TextIO, TextIO] | None = None

    def __init__(
        self,
        name: str,
        level: int = logging.NOTSET,
        *,
        enable_color: bool | None = None,
    ) -> None:
        super().__init__(name, level)

        if self.level == logging.NOTSET:
            self.setLevel(self.determine_log_level())

        self.enable_color = (
            enable_color
            if enable_color is not None
            else type(self).determine_color_enabled()
        )

        self.propagate = False  # avoid duplicate root logs

    def ensure_handlers(self) -> None:
        if self._last_stream_ids is None or not self.handlers:
            rebuild = True
        else:
            last_stdout, last_stderr = self._last_stream_ids
            rebuild = (last_stdout is not sys.stdout) or (last_stderr is not sys.stderr)

        if rebuild:
            self.handlers.clear()
            h = DualStreamHandler()
            h.setFormatter(TagFormatter("%(message)s"))
            h.enable_color = self.enable_color
            self.addHandler(h)
            self._last_stream_ids = (sys.stdout, sys.stderr)

    def _log(  # type: ignore[override]
        self, level: int, msg: str, args: tuple[Any, ...], **kwargs: Any
    ) -> None:
        self.ensure_handlers()
        super()._log(level, msg, args, **kwargs)

    def setLevel(self, level: int | str) -> None:  # noqa: N802
        """Case insensitive version"""
        if isinstance(level, str):
            level = level.upper()
        super().setLevel(level)

    @classmethod
    def determine_color_enabled(cls) -> bool:
        """Return True if colored output should be enabled."""
        if "NO_COLOR" in os.environ:
            return False
        if os.getenv("FORCE_COLOR", "").lower() in {"1", "true", "yes"}:
            return True

        return sys.stdout.isatty()

    @classmethod
    def extend_logging_module(cls) -> bool:
        """Register the extra level names once; returns False if already done."""
        if cls._logging_module_extended:
            return False
        cls._logging_module_extended = True

        logging.addLevelName(TEST_LEVEL, "TEST")
        logging.addLevelName(TRACE_LEVEL, "TRACE")
        logging.addLevelName(SILENT_LEVEL, "SILENT")

        logging.TEST = TEST_LEVEL  # type: ignore[attr-defined]
        logging.TRACE = TRACE_LEVEL  # type: ignore[attr-defined]
        logging.SILENT = SILENT_LEVEL  # type: ignore[attr-defined]

        return True

    def determine_log_level(
        self,
        *,
        args: argparse.Namespace | None = None,
    ) -> str:
        """Resolve log level from CLI → env → default."""
        args_level = getattr(args, "log_level", None)
        if args_level is not None:
            return cast("str", args_level).upper()

        for env_var in LOG_LEVEL_ENV_VARS:
            env_log_level = os.getenv(env_var)
            if env_log_level:
                return env_log_level.upper()

        return DEFAULT_LOG_LEVEL.upper()

    @property
    def level_name(self) -> str:
        """Return the current effective level name."""
        return logging.getLevelName(self.getEffectiveLevel())

    def error_if_not_debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log an error; include the traceback only when debug is enabled."""
        exc_info = kwargs.pop("exc_info", True)
        stacklevel = kwargs.pop("stacklevel", 2)  # skip helper frame
        if self.isEnabledFor(logging.DEBUG):
            self.exception(msg, *args, exc_info=exc_info, stacklevel=stacklevel)
        else:
            self.error(msg, *args)

    def critical_if_not_debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log a critical error; include the traceback only when debug is enabled."""
        exc_info = kwargs.pop("exc_info", True)
        stacklevel = kwargs.pop("stacklevel", 2)
        if self.isEnabledFor(logging.DEBUG):
            self.exception(msg, *args, exc_info=exc_info, stacklevel=stacklevel)
        else:
            self.critical(msg, *args)

    def trace(self, msg: str, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(TRACE_LEVEL):
            self._log(TRACE_LEVEL, msg, args, **kwargs)

    def test(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log a test-level message (most verbose, bypasses capture)."""
        if self.isEnabledFor(TEST_LEVEL):
            self._log(TEST_LEVEL, msg, args, **kwargs)

    def resolve_level_name(self, level_name: str) -> int | None:
        """logging.getLevelNamesMapping() is only introduced in 3.11"""
        return getattr(logging, level_name.upper(), None)

    def log_dynamic(
        self, level: str | int, msg: str, *args: Any, **kwargs: Any
    ) -> None:
        if isinstance(level, str):
            level_no = self.resolve_level_name(level)
            if not isinstance(level_no, int):
                self.error("Unknown log level: %r", level)
                return
        else:
            level_no = level

        if self.isEnabledFor(level_no):
            self._log(level_no, msg, args, **kwargs)


# --- Tag formatter -----------------------------------------------------------


class TagFormatter(logging.Formatter):
    def format(self: TagFormatter, record: logging.LogRecord) -> str:
        tag_color, tag_text = TAG_STYLES.get(record.levelname, ("", ""))
        msg = super().format(record)
        if tag_text:
            if getattr(record, "enable_color", False) and tag_color:
                prefix = f"{tag_color}{tag_text}{RESET}"
            else:
                prefix = tag_text
            return f"{prefix} {msg}"
        return msg


# --- DualStreamHandler -------------------------------------------------------


class DualStreamHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """Send info/debug/trace to stdout, everything else to stderr.

    When the logger level is TEST, TRACE/DEBUG/TEST messages bypass capture
    by writing to sys.__stdout__ instead of sys.stdout.
    """

    enable_color: bool = False

    def __init__(self) -> None:
        super().__init__()  # pyright: ignore[reportUnknownMemberType]

    def emit(self, record: logging.LogRecord) -> None:
        level = record.levelno

        logger_instance = logging.getLogger(record.name)
        is_test_mode = (
            isinstance(logger_instance, AppLogger)
            and logger_instance.getEffectiveLevel() == TEST_LEVEL
        )

        if level >= logging.WARNING:
            self.stream = sys.stderr
        elif is_test_mode and level < logging.INFO:
            self.stream = sys.__stdout__
        else:
            self.stream = sys.stdout

        # used by TagFormatter
        record.enable_color = getattr(
            logger_instance, "enable_color", getattr(self, "enable_color", False)
        )

        super().emit(record)


# --- Logger initialization ---------------------------------------------------

AppLogger.extend_logging_module()

# Only our own logger gets the app class; third-party loggers stay untouched.
_previous_logger_class = logging.getLoggerClass()
logging.setLoggerClass(AppLogger)
try:
    _APP_LOGGER = cast("AppLogger", logging.getLogger(PROGRAM_PACKAGE))
finally:
    logging.setLoggerClass(_previous_logger_class)


def get_app_logger() -> AppLogger:
    """Return the configured app logger."""
    return _APP_LOGGER
