"""Runs the server process and its log monitor side by side."""

import asyncio
from typing import Set

from ..errors import WrapperError
from ..events.base import (
    PlayerJoinedEvent,
    PlayerLeftEvent,
    ServerReadyEvent,
    ServerShutdownEvent,
)
from ..events.dispatcher import EventDispatcher
from ..log_monitor.monitor import LogMonitor
from ..logger import logger
from .process import ServerProcess


class Supervisor:
    """Supervises the server process using events from its log.

    Tracks readiness, the connected players and whether the server asked to
    be shut down. Acting on a shutdown request is left to the caller.
    """

    def __init__(
        self,
        process: ServerProcess,
        monitor: LogMonitor,
        event_dispatcher: EventDispatcher,
        stop_timeout: float = 5.0,
    ):
        self.process = process
        self.monitor = monitor
        self.stop_timeout = stop_timeout

        self.ready = False
        self.players: Set[str] = set()
        self.shutdown_requested = False

        event_dispatcher.on_server_ready(self._on_server_ready)
        event_dispatcher.on_player_joined(self._on_player_joined)
        event_dispatcher.on_player_left(self._on_player_left)
        event_dispatcher.on_server_shutdown(self._on_server_shutdown)

    async def run(self) -> int:
        """Start the server and monitor it until it exits.

        Returns:
            The server's exit code

        Raises:
            ServerStartError: If the server could not be started
            LogNotFoundError: If the server log never appeared
            LogReadError: If the server log became unreadable
            WrapperError: If monitoring ended while the server was running
        """
        await self.process.start()

        process_task = asyncio.create_task(self.process.wait())
        monitor_task = asyncio.create_task(self.monitor.run())
        try:
            await asyncio.wait(
                {process_task, monitor_task}, return_when=asyncio.FIRST_COMPLETED
            )

            if process_task.done():
                returncode = process_task.result()
                logger.info(f"Server exited with code {returncode}")
                await self._stop_monitor(monitor_task)
                return returncode

            # Monitoring ended while the server is still running
            await self.process.terminate()
            error = monitor_task.exception()
            if error is not None:
                raise error
            raise WrapperError("tail ended")
        finally:
            for task in (process_task, monitor_task):
                if not task.done():
                    task.cancel()
            await asyncio.gather(process_task, monitor_task, return_exceptions=True)
            if self.process.running:
                await self.process.terminate()

    async def _stop_monitor(self, monitor_task: asyncio.Task) -> None:
        self.monitor.stop()
        try:
            await asyncio.wait_for(monitor_task, self.stop_timeout)
        except TimeoutError:
            logger.warning("Log monitor did not stop in time, cancelled it")
        except WrapperError as e:
            logger.warning(f"Log monitoring failed after server exit: {e}")

    async def _on_server_ready(self, event: ServerReadyEvent) -> None:
        self.ready = True
        logger.info("Server is ready")

    async def _on_player_joined(self, event: PlayerJoinedEvent) -> None:
        self.players.add(event.player_name)
        logger.info(f"Players connected: {len(self.players)}")

    async def _on_player_left(self, event: PlayerLeftEvent) -> None:
        self.players.discard(event.player_name)
        logger.info(f"Players connected: {len(self.players)}")

    async def _on_server_shutdown(self, event: ServerShutdownEvent) -> None:
        self.shutdown_requested = True
        logger.info("Server has no players left, shutdown requested")
