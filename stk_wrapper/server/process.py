"""
Server subprocess handling.
"""

import asyncio
import shlex
from typing import Optional

from ..errors import ServerStartError
from ..logger import logger


class ServerProcess:
    """Runs the server command with its output passed straight through."""

    def __init__(self, command: str):
        """
        Args:
            command: Command line of the server binary and its arguments
        """
        self.command = command
        self._process: Optional[asyncio.subprocess.Process] = None

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode if self._process else None

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def start(self) -> None:
        """
        Start the server.

        Raises:
            ServerStartError: If the command is empty or cannot be executed
        """
        args = shlex.split(self.command)
        if not args:
            raise ServerStartError("No server command given")

        logger.info(f"Command being run for SuperTuxKart server: {self.command}")
        try:
            # stdout and stderr are inherited from the wrapper
            self._process = await asyncio.create_subprocess_exec(*args)
        except OSError as e:
            raise ServerStartError(f"Error starting cmd: {e}") from e
        logger.info(f"Server started with pid {self._process.pid}")

    async def wait(self) -> int:
        """Wait for the server to exit and return its exit code."""
        if self._process is None:
            raise ServerStartError("Server has not been started")
        return await self._process.wait()

    async def terminate(self, timeout: float = 10.0) -> Optional[int]:
        """
        Terminate the server, killing it if it does not exit in time.

        Returns:
            Exit code, or None if the server was never started
        """
        if self._process is None:
            return None
        if self._process.returncode is not None:
            return self._process.returncode

        logger.info(f"Terminating server (pid {self._process.pid})")
        try:
            self._process.terminate()
        except ProcessLookupError:
            return await self._process.wait()

        try:
            return await asyncio.wait_for(self._process.wait(), timeout)
        except TimeoutError:
            logger.warning(f"Server did not exit within {timeout}s, killing it")
            self._process.kill()
            return await self._process.wait()
