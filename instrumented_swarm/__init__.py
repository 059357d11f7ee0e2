"""
instrumented_swarm - счетчики соединений и интроспекция роя и его DHT
"""

from instrumented_swarm.api import IntrospectionAPI
from instrumented_swarm.config import Config
from instrumented_swarm.instrumented import InstrumentedSwarm
from instrumented_swarm.models import DHTNodeInfo, MetricsSnapshot, PeerInfo
from instrumented_swarm.swarm import Connection, PeerRecord, Priority, Swarm

__version__ = "0.1.0"

__all__ = [
    "Config",
    "Connection",
    "DHTNodeInfo",
    "InstrumentedSwarm",
    "IntrospectionAPI",
    "MetricsSnapshot",
    "PeerInfo",
    "PeerRecord",
    "Priority",
    "Swarm",
]
