"""Log file monitoring: locate, follow, classify and dispatch."""

from contextlib import aclosing
from typing import Optional

from ..config import TailSettings
from ..errors import LogReadError
from ..events.base import (
    BaseEvent,
    PlayerJoinedEvent,
    PlayerLeftEvent,
    ServerReadyEvent,
    ServerShutdownEvent,
)
from ..events.dispatcher import EventDispatcher
from ..events.types import EventType
from ..logger import log_exception, logger
from .classifier import LineClassifier
from .locator import LogLocator
from .tailer import LogTailer


class LogMonitor:
    """Follows the server log and emits lifecycle events in log order."""

    def __init__(
        self,
        event_dispatcher: EventDispatcher,
        classifier: LineClassifier,
        locator: LogLocator,
        tail_settings: Optional[TailSettings] = None,
    ):
        """Initialize log monitor.

        Args:
            event_dispatcher: Event dispatcher for emitting events
            classifier: Classifier for log lines
            locator: Locator for the server log file
            tail_settings: Options for following the file
        """
        self.event_dispatcher = event_dispatcher
        self.classifier = classifier
        self.locator = locator
        self.tail_settings = tail_settings or TailSettings()

        self._tailer: Optional[LogTailer] = None
        self._stop_flag = False

    async def run(self) -> None:
        """Monitor the log until stopped.

        Raises:
            LogNotFoundError: If the log file never appeared
            LogReadError: If the log file became unreadable while following
        """
        handle = await self.locator.locate()
        self._tailer = LogTailer(
            handle,
            self.locator.path,
            poll_interval=self.tail_settings.poll_interval,
            debounce_ms=self.tail_settings.debounce_ms,
            encoding=self.tail_settings.encoding,
            from_start=self.tail_settings.from_start,
            force_polling=self.tail_settings.force_polling,
        )
        if self._stop_flag:
            await self._tailer.close()
            return

        try:
            async with aclosing(self._tailer.follow()) as lines:
                async for line in lines:
                    await self._process_line(line)
                    if self._stop_flag:
                        break
        except LogReadError as e:
            # Reported once by whoever handles the error
            logger.debug(f"Log monitoring ended: {e}")
            raise

        logger.info("Stopped log monitoring")

    def stop(self) -> None:
        """Stop monitoring once the line being processed is dispatched."""
        self._stop_flag = True
        if self._tailer is not None:
            self._tailer.stop()

    async def _process_line(self, line: str) -> None:
        line = line.strip()
        if not line:
            return

        event = self.classifier.classify(line)
        if event.event_type is EventType.NONE:
            return
        await self._dispatch_event(event)

    @log_exception("Dispatching {event}")
    async def _dispatch_event(self, event: BaseEvent) -> None:
        """Dispatch an event through the event dispatcher.

        Args:
            event: Event to dispatch
        """
        match event:
            case ServerReadyEvent():
                await self.event_dispatcher.dispatch_server_ready(event)
            case PlayerJoinedEvent():
                await self.event_dispatcher.dispatch_player_joined(event)
            case PlayerLeftEvent():
                await self.event_dispatcher.dispatch_player_left(event)
            case ServerShutdownEvent():
                await self.event_dispatcher.dispatch_server_shutdown(event)
            case _:
                logger.warning(f"Unhandled event type: {type(event).__name__}")
