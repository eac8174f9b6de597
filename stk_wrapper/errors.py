"""Exceptions raised by the wrapper."""

from pathlib import Path


class WrapperError(Exception):
    """Base class for all wrapper errors."""


class LogNotFoundError(WrapperError):
    """The server log file never appeared within the retry budget."""

    def __init__(self, path: Path, attempts: int):
        self.path = path
        self.attempts = attempts
        super().__init__(f"Log file {path} not found after {attempts} attempt(s)")


class LogReadError(WrapperError):
    """The followed log file became unreadable."""


class ServerStartError(WrapperError):
    """The server subprocess could not be started."""
