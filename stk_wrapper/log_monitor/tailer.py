"""Live tail of the server log using watchfiles."""

import asyncio
import os
from contextlib import aclosing
from pathlib import Path
from typing import AsyncIterator, List, Optional

from aiofiles import os as aioos
from aiofiles.threadpool.binary import AsyncBufferedReader
from watchfiles import awatch

from ..errors import LogReadError
from ..logger import logger


class LogTailer:
    """Follows an open log file and yields lines as they are appended.

    The tailer owns the handle it is given and closes it when the follow
    sequence ends. A tailer can only be followed once.
    """

    def __init__(
        self,
        handle: AsyncBufferedReader,
        path: Path,
        poll_interval: float = 1.0,
        debounce_ms: int = 1600,
        encoding: str = "utf-8",
        from_start: bool = False,
        force_polling: Optional[bool] = None,
    ):
        """
        Args:
            handle: Binary handle returned by LogLocator.locate()
            path: Path of the open file, its directory is watched for changes
            poll_interval: Seconds between reads when no change is reported
            debounce_ms: Maximum time watchfiles groups changes for
            encoding: Log file encoding
            from_start: Also yield lines that existed before following began
            force_polling: Passed through to watchfiles
        """
        self._handle = handle
        self.path = Path(path)
        self.poll_interval = poll_interval
        self.debounce_ms = debounce_ms
        self.encoding = encoding
        self.from_start = from_start
        self.force_polling = force_polling

        self._position = 0
        self._partial = b""
        self._closed = False
        self._stop_event = asyncio.Event()

    @property
    def position(self) -> int:
        """Byte offset of the next unread data."""
        return self._position

    @property
    def closed(self) -> bool:
        return self._closed

    async def follow(self) -> AsyncIterator[str]:
        """Yield newly appended lines until stopped or the file fails.

        Lines are yielded without their line terminator. A trailing line
        without a newline is held back until the newline arrives.

        Raises:
            LogReadError: If the file can no longer be read, or the tailer
                was already closed
        """
        if self._closed:
            raise LogReadError(f"Tailer for {self.path} is closed")

        try:
            await self._attach()

            changes = awatch(
                self.path.parent,
                stop_event=self._stop_event,
                debounce=self.debounce_ms,
                rust_timeout=max(1, int(self.poll_interval * 1000)),
                yield_on_timeout=True,
                recursive=False,
                force_polling=self.force_polling,
            )
            async with aclosing(changes):
                # Changes are only a wake-up signal, every wake re-reads from
                # the cursor so nothing appended in between is missed
                async for _ in changes:
                    for line in await self._read_new_lines():
                        yield line
                        if self._stop_event.is_set():
                            return
        except OSError as e:
            raise LogReadError(f"Failed to watch log file {self.path}: {e}") from e
        finally:
            await self.close()

    def stop(self) -> None:
        """Ask the follow loop to finish after the current line."""
        self._stop_event.set()

    async def close(self) -> None:
        """Stop following and release the file handle."""
        if self._closed:
            return
        self._closed = True
        self._stop_event.set()
        try:
            await self._handle.close()
        except OSError as e:
            logger.warning(f"Error closing log file {self.path}: {e}")
        logger.debug(f"Stopped following {self.path}")

    async def _attach(self) -> None:
        try:
            if self.from_start:
                self._position = await self._handle.seek(0)
            else:
                self._position = await self._handle.seek(0, os.SEEK_END)
        except (OSError, ValueError) as e:
            raise LogReadError(f"Failed to seek log file {self.path}: {e}") from e
        logger.info(f"Following {self.path} from offset {self._position}")

    async def _read_new_lines(self) -> List[str]:
        try:
            size = (await aioos.stat(self._handle.fileno())).st_size

            # File shrank, it was truncated in place
            if size < self._position:
                logger.info(f"Log file {self.path} truncated, reading from beginning")
                self._position = await self._handle.seek(0)
                self._partial = b""

            if size == self._position:
                return []

            chunk = await self._handle.read()
            self._position = await self._handle.tell()
        except (OSError, ValueError) as e:
            raise LogReadError(f"Failed to read log file {self.path}: {e}") from e

        *complete, self._partial = (self._partial + chunk).split(b"\n")
        return [
            raw.decode(self.encoding, errors="ignore").rstrip("\r")
            for raw in complete
        ]
