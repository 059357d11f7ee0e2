"""
Рой пиров: соединения и реестр
"""

from .connection import Connection
from .peer import PeerRecord, Priority
from .swarm import Swarm

__all__ = [
    "Connection",
    "PeerRecord",
    "Priority",
    "Swarm",
]
