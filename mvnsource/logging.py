"""Logging utilities for mvnsource."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "mvnsource"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the mvnsource hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Configure the mvnsource logger with console output and optional file sink."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when configured more than once.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter("[mvnsource] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


class ProjectLogger:
    """Prefixes messages with the display name of the module being processed."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def is_debug_enabled(self) -> bool:
        return self._logger.isEnabledFor(logging.DEBUG)

    def debug(self, project_name: str, message: str, *args: object) -> None:
        self._logger.debug("Project [%s] " + message, project_name, *args)

    def info(self, project_name: str, message: str, *args: object) -> None:
        self._logger.info("Project [%s] " + message, project_name, *args)

    def warning(self, project_name: str, message: str, *args: object) -> None:
        self._logger.warning("Project [%s] " + message, project_name, *args)

    def error(self, project_name: str, message: str, *args: object) -> None:
        self._logger.error("Project [%s] " + message, project_name, *args)


__all__ = ["ProjectLogger", "configure_logging", "get_logger"]
