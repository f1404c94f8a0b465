"""Per-device logging with the configurable verbosity levels."""

from __future__ import annotations

import logging
from typing import Any

from .const import LoggingLevel


class DeviceLogger:
    """Prefix log records with the device and apply the device logging level.

    ``standard`` emits info, warning and error records. ``debug`` additionally
    emits debug records at info/warning/error level tagged ``[DEBUG]``.
    ``debugMode`` emits debug records at DEBUG level. ``none`` is silent.
    """

    def __init__(
        self,
        logger: logging.Logger,
        device_type: str,
        display_name: str,
        level: LoggingLevel = LoggingLevel.STANDARD,
    ) -> None:
        """Bind ``logger`` to one device."""

        self._logger = logger
        self.prefix = f"{device_type}: {display_name}"
        self.level = level

    @property
    def enabled(self) -> bool:
        """Return True unless logging is disabled for the device."""

        return self.level is not LoggingLevel.NONE

    @property
    def debug_enabled(self) -> bool:
        """Return True when debug output is requested."""

        return self.level in (LoggingLevel.DEBUG, LoggingLevel.DEBUG_MODE)

    def _log(self, level: int, msg: str, args: tuple[Any, ...]) -> None:
        self._logger.log(level, "%s " + msg, self.prefix, *args)

    def info(self, msg: str, *args: Any) -> None:
        """Log an informational message."""

        if self.enabled:
            self._log(logging.INFO, msg, args)

    def warning(self, msg: str, *args: Any) -> None:
        """Log a warning message."""

        if self.enabled:
            self._log(logging.WARNING, msg, args)

    def error(self, msg: str, *args: Any) -> None:
        """Log an error message."""

        if self.enabled:
            self._log(logging.ERROR, msg, args)

    def debug(self, msg: str, *args: Any) -> None:
        """Log a debug message, at info level prefixed ``[DEBUG]`` in debug mode."""

        if self.level is LoggingLevel.DEBUG_MODE:
            self._log(logging.DEBUG, msg, args)
        elif self.level is LoggingLevel.DEBUG:
            self._log(logging.INFO, "[DEBUG] " + msg, args)

    def debug_warning(self, msg: str, *args: Any) -> None:
        """Log a warning only when debug output is requested."""

        if self.debug_enabled:
            self._log(logging.WARNING, "[DEBUG] " + msg, args)
