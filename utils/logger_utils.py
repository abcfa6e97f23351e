"""Logging setup shared by every TextReader module.

Handlers are attached once, to the ``TextReader`` namespace logger. Modules obtain
their loggers with ``LoggerUtils.get_logger(__name__)`` and never add handlers of
their own, so records from the engine, the controller and the console all end up in
the same console and file outputs.
"""

from __future__ import annotations

import logging
import sys
import warnings
from logging import Formatter, NullHandler, StreamHandler
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING, ClassVar, Final, Literal, NamedTuple, Self, TextIO

if TYPE_CHECKING:
    from pathlib import Path

__all__: list[str] = ["LogLevel", "LoggerUtils"]

type LevelType = Literal[
    "NOTSET",
    "DEBUG",
    "INFO",
    "WARNING",
    "ERROR",
    "CRITICAL",
]

_LOG_FILE_SIZE: Final[int] = 2 * 1024 * 1024  # 2MB
_LOG_BACKUP_COUNT: Final[int] = 2

DEFAULT_LOG_LEVEL: Final[int] = logging.INFO
DEFAULT_NAMESPACE: Final[str] = "TextReader"

_FILE_FORMAT: Final[str] = "%(asctime)s %(levelname)-8s %(lineno)4d %(name)-40s\t%(funcName)s\t%(message)s"


class LogLevel(NamedTuple):
    """A logging level as reported by ``LoggerUtils.get_level``.

    Attributes:
        name (str): Level name, e.g. 'DEBUG'.
        value (int): Numeric level, e.g. ``logging.DEBUG``.
    """

    name: str
    value: int


class LoggerUtils:
    """Process-wide logging setup for the reader.

    The first instantiation attaches a console handler (WARNING and above, message only)
    and, when a file name is given, a rotating UTF-8 file handler that records everything
    from DEBUG upwards. Later instantiations return the same object and change nothing.

    Module code never configures handlers itself; it only calls ``get_logger(__name__)``,
    which places every logger below the ``TextReader`` namespace.

    Attributes:
        _LOGGER_NAMESPACE (str): Name of the namespace root logger.
        _configured (bool): True once handlers have been attached.
        _instance (LoggerUtils | None): The singleton instance.
    """

    _LOGGER_NAMESPACE: ClassVar[str] = DEFAULT_NAMESPACE
    _configured: ClassVar[bool] = False
    _instance: ClassVar[Self | None] = None

    def __new__(cls, *args, **kwargs) -> Self:
        """Return the singleton, creating it on first use.

        Arguments are accepted only so that construction with ``__init__``'s
        parameters does not fail.
        """
        _ = args, kwargs
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, filename: str | Path = "", *, use_null_console: bool = False) -> None:
        """Configure the namespace root logger once.

        Args:
            filename (str | Path): Absolute path of the log file. Empty disables file logging.
                The console resolves ``GENERAL.LOG_FILE`` with ``FileUtils.resolve_path``
                before passing it here.
            use_null_console (bool): Replace the console handler with a NullHandler.
                Used by tests, and forced when there is no stderr.
        """
        if LoggerUtils._configured:
            return

        self.root_logger: logging.Logger = logging.getLogger(self._LOGGER_NAMESPACE)
        # The logger level must not be stricter than the handlers or records are dropped early.
        self.root_logger.setLevel(DEFAULT_LOG_LEVEL)
        self._use_null_console: bool = bool(use_null_console) or sys.stderr is None

        self._console_logging()
        filename = str(filename)
        if filename.strip():
            self._file_logging(filename)
        else:
            self.root_logger.debug("No log file configured.")

        warnings.showwarning = self.warning_to_log
        LoggerUtils._configured = True

    def warning_to_log(
        self,
        message: Warning | str,
        category: type[Warning],
        filename: str,
        lineno: int,
        file: TextIO | None = None,
        line: str | None = None,
    ) -> None:
        """Write a ``warnings.warn`` message to the log instead of stderr.

        Installed as ``warnings.showwarning``, so the signature must match it.

        Args:
            message (Warning | str): The warning message or instance.
            category (type[Warning]): Warning class.
            filename (str): File that issued the warning.
            lineno (int): Line that issued the warning.
            file (TextIO | None): Unused.
            line (str | None): Unused.
        """
        _ = file, line
        self.root_logger.warning("%s:%d: %s: %s", filename, lineno, category.__name__, message)

    def _console_logging(self) -> None:
        """Attach the console handler.

        Only WARNING and above reach the console, printed as the bare message, so that
        log output does not clutter the interactive prompt.
        """
        if self._use_null_console:
            if not self._has_handler(NullHandler):
                self.root_logger.addHandler(NullHandler())
            return

        if self._has_handler(StreamHandler):
            self.root_logger.warning("Console logging is already configured.")
            return

        console_handler: StreamHandler[TextIO] = StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(Formatter("%(message)s"))
        self.root_logger.addHandler(console_handler)

    def _file_logging(self, filename: str) -> None:
        """Attach a rotating UTF-8 file handler recording DEBUG and above.

        An unusable path is reported on the console and file logging is skipped.

        Args:
            filename (str): Absolute path of the log file.
        """
        if self._has_handler(RotatingFileHandler):
            self.root_logger.warning("File logging is already configured.")
            return

        try:
            file_handler = RotatingFileHandler(
                filename=filename,
                maxBytes=_LOG_FILE_SIZE,
                backupCount=_LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
        except (FileNotFoundError, PermissionError):
            self.root_logger.error("Cannot open log file '%s'; file logging disabled.", filename)
            return

        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(Formatter(_FILE_FORMAT))
        self.root_logger.addHandler(file_handler)

    def _has_handler(self, handler_type: type) -> bool:
        return any(isinstance(h, handler_type) for h in self.root_logger.handlers)

    def set_level(self, level: LevelType | str) -> None:
        """Set the level of the namespace root logger.

        The name is case-insensitive, so ``LOG_LEVEL = debug`` in the INI file works.

        Args:
            level (LevelType | str): Level name. Unknown names fall back to INFO with a warning.
        """
        level_map: dict[str, int] = logging.getLevelNamesMapping()
        try:
            self.root_logger.setLevel(level_map[level.upper()])
        except KeyError:
            self.root_logger.setLevel(DEFAULT_LOG_LEVEL)
            self.root_logger.warning("Unknown logging level '%s'; using 'INFO'.", level)

    def get_level(self) -> LogLevel:
        """Return the effective level of the namespace root logger.

        Returns:
            LogLevel: Level name and numeric value.
        """
        level_value: int = self.root_logger.getEffectiveLevel()
        return LogLevel(name=logging.getLevelName(level_value), value=level_value)

    @staticmethod
    def get_logger(name: str | None = None) -> logging.Logger:
        """Return a logger below the reader namespace.

        Args:
            name (str | None): Module name. None returns the namespace root logger.

        Returns:
            logging.Logger: The logger instance.
        """
        namespace: str = LoggerUtils._LOGGER_NAMESPACE
        return logging.getLogger(f"{namespace}.{name}" if name else namespace)
