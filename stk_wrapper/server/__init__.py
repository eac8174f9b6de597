"""Server process management."""

from .process import ServerProcess
from .supervisor import Supervisor

__all__ = [
    "ServerProcess",
    "Supervisor",
]
