"""
Log monitoring for the SuperTuxKart server.

Waits for the server log to appear, follows it and emits parsed events.
"""

from .classifier import LineClassifier
from .locator import LogLocator
from .monitor import LogMonitor
from .tailer import LogTailer

__all__ = [
    "LineClassifier",
    "LogLocator",
    "LogMonitor",
    "LogTailer",
]
