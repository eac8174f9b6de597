"""Line classifier for SuperTuxKart server logs."""

import re
from typing import Optional

from ..config import ClassifierSettings, settings
from ..events.base import (
    NO_EVENT,
    Event,
    PlayerJoinedEvent,
    PlayerLeftEvent,
    ServerReadyEvent,
    ServerShutdownEvent,
)
from ..logger import logger


class LineClassifier:
    """Maps server log lines to lifecycle events.

    Rules are checked in a fixed order and the first match wins:
    ready, player join, player leave, shutdown.
    """

    def __init__(self, classifier_config: Optional[ClassifierSettings] = None):
        """Compile the classification patterns.

        Args:
            classifier_config: Patterns to use, defaults to the configured ones
        """
        classifier_config = classifier_config or settings.classifier
        self._ready = re.compile(classifier_config.ready_pattern)
        self._join = re.compile(classifier_config.join_pattern)
        self._leave = re.compile(classifier_config.leave_pattern)
        self._shutdown = re.compile(classifier_config.shutdown_pattern)

    def classify(self, line: str) -> Event:
        """Classify a log line.

        Args:
            line: Log line to classify

        Returns:
            The matching event, or NO_EVENT if no rule matched
        """
        line = line.strip()

        if self._ready.search(line):
            logger.info("Server ready")
            return ServerReadyEvent()

        player_name = self._extract_player(self._join, line)
        if player_name:
            logger.info(f"Player {player_name} joined")
            return PlayerJoinedEvent(player_name=player_name)

        player_name = self._extract_player(self._leave, line)
        if player_name:
            logger.info(f"Player {player_name} disconnected")
            return PlayerLeftEvent(player_name=player_name)

        if self._shutdown.search(line):
            logger.info("Server has no more players")
            return ServerShutdownEvent()

        return NO_EVENT

    @staticmethod
    def _extract_player(pattern: re.Pattern[str], line: str) -> Optional[str]:
        match = pattern.search(line)
        if not match:
            return None

        player_name = (match.group(1) or "").strip()
        if not player_name:
            logger.warning(
                f"Failed to extract player name from line (empty group): {line}"
            )
        return player_name
