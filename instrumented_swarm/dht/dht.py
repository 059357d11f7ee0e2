"""
Локальное представление DHT: собственный адрес и таблица маршрутизации
"""

import os
from typing import Optional

from instrumented_swarm.dht.node import NODE_ID_SIZE, DHTNode, NodeID, peer_id
from instrumented_swarm.dht.routing_table import RoutingTable
from instrumented_swarm.logger import get_logger


class DHT:
    """
    Адрес узла DHT и его таблица маршрутизации

    Поиск и обновление таблицы по сети здесь не выполняются: таблицу
    наполняет владелец (add_node / remove_node).
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 0, k: int = 20,
                 node_id: Optional[NodeID] = None):
        self.host = host
        self.port = port
        self.bootstrapped = False
        self.node_id = node_id or NodeID(id=os.urandom(NODE_ID_SIZE))
        self.nodes = RoutingTable(self.node_id, k=k)
        self.logger = get_logger("dht")

    def bind(self, host: str, port: int) -> None:
        """Фиксация адреса после того, как рой занял сокет"""
        self.host = host
        self.port = port
        self.bootstrapped = True

    def add_node(self, host: str, port: int) -> Optional[DHTNode]:
        """
        Добавление узла по адресу

        Returns:
            Узел из таблицы или None, если бакет полон
        """
        node = DHTNode.from_address(host, port)
        if not self.nodes.add_node(node):
            self.logger.debug("Routing table bucket full", host=host, port=port)
            return None
        return self.nodes.get(node.node_id.id)

    def remove_node(self, host: str, port: int) -> bool:
        """Удаление узла по адресу; False если узла не было"""
        node = self.nodes.get(peer_id(host, port))
        if node is None:
            return False
        self.nodes.remove_node(node)
        return True

    def __repr__(self):
        return f"DHT({self.host}:{self.port}, nodes={len(self.nodes)})"
