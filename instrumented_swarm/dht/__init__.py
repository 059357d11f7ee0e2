"""
Модуль DHT: идентификаторы узлов и таблица маршрутизации
"""

from .dht import DHT
from .node import DHTNode, NodeID, peer_id
from .routing_table import KBucket, OrderedNodeSet, RoutingTable

__all__ = [
    "DHT",
    "DHTNode",
    "NodeID",
    "peer_id",
    "KBucket",
    "OrderedNodeSet",
    "RoutingTable",
]
