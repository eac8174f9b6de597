"""Locates the server log file, waiting for the server to create it."""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiofiles
from aiofiles.threadpool.binary import AsyncBufferedReader

from ..config import LogLocationSettings
from ..errors import LogNotFoundError
from ..logger import logger


@dataclass
class RetryState:
    """Attempt bookkeeping for a single locate() call."""

    remaining: int
    delay: float
    attempts: int = 0


class LogLocator:
    """Opens the server log once it exists.

    The server creates its log some time after the process starts, so the
    open is retried a bounded number of times before giving up.
    """

    def __init__(
        self,
        base_dir: Path,
        relative_path: Path,
        max_attempts: int = 10,
        retry_delay: float = 1.0,
        backoff_factor: float = 1.0,
        max_retry_delay: float = 30.0,
    ):
        """
        Args:
            base_dir: Directory the log path is relative to (usually $HOME)
            relative_path: Log path below base_dir
            max_attempts: Number of open attempts before failing
            retry_delay: Seconds to wait after the first failed attempt
            backoff_factor: Multiplier applied to the delay after each failure
            max_retry_delay: Upper bound for a single delay
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.path = Path(base_dir) / relative_path
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.backoff_factor = backoff_factor
        self.max_retry_delay = max_retry_delay

        # Attempts used by the last locate() call
        self.attempts = 0

    @classmethod
    def from_settings(
        cls, location: LogLocationSettings, base_dir: Optional[Path] = None
    ) -> "LogLocator":
        return cls(
            base_dir=base_dir or location.base_dir,
            relative_path=location.relative_path,
            max_attempts=location.max_attempts,
            retry_delay=location.retry_delay,
            backoff_factor=location.backoff_factor,
            max_retry_delay=location.max_retry_delay,
        )

    async def locate(self) -> AsyncBufferedReader:
        """Open the log file for reading, retrying while it does not exist.

        Returns:
            Open binary handle positioned at the start of the file

        Raises:
            LogNotFoundError: If every attempt failed
        """
        state = RetryState(remaining=self.max_attempts, delay=self.retry_delay)

        while True:
            state.attempts += 1
            self.attempts = state.attempts
            try:
                handle = await aiofiles.open(self.path, "rb")
            except OSError as e:
                state.remaining -= 1
                logger.warning(
                    f"Log file not available (attempt {state.attempts}/{self.max_attempts}): {e}"
                )
                if state.remaining <= 0:
                    raise LogNotFoundError(self.path, state.attempts) from e

                await asyncio.sleep(state.delay)
                state.delay = min(
                    state.delay * self.backoff_factor, self.max_retry_delay
                )
                continue

            logger.info(
                f"Opened log file {self.path} after {state.attempts} attempt(s)"
            )
            return handle
