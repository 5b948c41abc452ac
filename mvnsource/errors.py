"""Exception types raised by mvnsource components."""

from __future__ import annotations


class MvnSourceError(RuntimeError):
    """Base class for errors raised while listing project source files."""


class ConfigError(MvnSourceError):
    """Raised when the configuration file cannot be parsed."""


class FatalConfigurationError(MvnSourceError):
    """Aborts the whole run; names the module that could not be processed."""

    def __init__(self, project: str, message: str) -> None:
        super().__init__(f"Project [{project}] {message}")
        self.project = project


class DependencyResolutionRequired(MvnSourceError):
    """Raised by a module model whose classpath has not been resolved."""


class DecryptionError(MvnSourceError):
    """Raised when a server credential cannot be decrypted."""


__all__ = [
    "ConfigError",
    "DecryptionError",
    "DependencyResolutionRequired",
    "FatalConfigurationError",
    "MvnSourceError",
]
