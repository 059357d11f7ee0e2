"""
Таблица маршрутизации DHT (k-бакеты на связных упорядоченных множествах)
"""

import time
from typing import Dict, Iterator, List, Optional, Set

from instrumented_swarm.dht.node import NODE_ID_SIZE, DHTNode, NodeID
from instrumented_swarm.exceptions import NodeNotFoundError
from instrumented_swarm.utils.crypto import compute_distance


class OrderedNodeSet:
    """
    Упорядоченное множество узлов на двусвязном списке

    Ссылки хранятся прямо в узлах (node.prev / node.next).
    """

    def __init__(self):
        self.head: Optional[DHTNode] = None
        self.tail: Optional[DHTNode] = None
        self._members: Set[int] = set()

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[DHTNode]:
        node = self.head
        while node is not None:
            # next читаем до yield: потребитель может удалить узел
            following = node.next
            yield node
            node = following

    def __contains__(self, node: DHTNode) -> bool:
        return id(node) in self._members

    def add(self, node: DHTNode) -> bool:
        """Добавление в конец; False если узел уже в множестве"""
        if node in self:
            return False
        node.prev = self.tail
        node.next = None
        if self.tail is not None:
            self.tail.next = node
        else:
            self.head = node
        self.tail = node
        self._members.add(id(node))
        return True

    def remove(self, node: DHTNode) -> bool:
        """Удаление узла; False если узла нет в множестве"""
        if node not in self:
            return False
        if node.prev is not None:
            node.prev.next = node.next
        else:
            self.head = node.next
        if node.next is not None:
            node.next.prev = node.prev
        else:
            self.tail = node.prev
        node.prev = None
        node.next = None
        self._members.discard(id(node))
        return True

    def move_to_tail(self, node: DHTNode) -> None:
        if self.remove(node):
            self.add(node)


class KBucket:
    """k-бакет для хранения узлов на определенном расстоянии"""

    def __init__(self, k: int = 20):
        self.k = k
        self.nodes = OrderedNodeSet()
        self.last_updated = time.time()

    def add_node(self, node: DHTNode) -> bool:
        """
        Добавление узла в бакет

        Returns:
            True если узел добавлен, False если бакет полон
        """
        # Уже есть - перемещаем в конец (LRU)
        if node in self.nodes:
            self.nodes.move_to_tail(node)
            self.last_updated = time.time()
            return True

        if len(self.nodes) < self.k:
            self.nodes.add(node)
            self.last_updated = time.time()
            return True

        return False

    def remove_node(self, node: DHTNode) -> bool:
        """Удаление узла из бакета"""
        removed = self.nodes.remove(node)
        if removed:
            self.last_updated = time.time()
        return removed

    def get_nodes(self, limit: Optional[int] = None) -> List[DHTNode]:
        """Получение узлов из бакета"""
        nodes = list(self.nodes)
        if limit:
            nodes = nodes[:limit]
        return nodes

    def is_full(self) -> bool:
        """Проверка, полон ли бакет"""
        return len(self.nodes) >= self.k

    def __len__(self) -> int:
        return len(self.nodes)


class RoutingTable:
    """Таблица маршрутизации"""

    def __init__(self, node_id: NodeID, k: int = 20):
        self.node_id = node_id
        self.k = k
        self.buckets: List[KBucket] = [KBucket(k) for _ in range(NODE_ID_SIZE * 8)]
        self._index: Dict[bytes, DHTNode] = {}

    def _get_bucket_index(self, target_id: NodeID) -> int:
        """Индекс бакета: позиция первого ненулевого бита XOR-расстояния"""
        distance = compute_distance(self.node_id.id, target_id.id)

        for i, byte in enumerate(distance):
            if byte != 0:
                return i * 8 + (8 - byte.bit_length())

        # Расстояние 0 - это сам узел
        return len(self.buckets) - 1

    def add_node(self, node: DHTNode) -> bool:
        """Добавление узла в таблицу маршрутизации"""
        if node.node_id == self.node_id:
            return False  # Не добавляем себя

        existing = self._index.get(node.node_id.id)
        if existing is not None and existing is not node:
            # Тот же id - обновляем запись, а не дублируем
            existing.host = node.host
            existing.port = node.port
            existing.update_seen()
            node = existing

        bucket = self.buckets[self._get_bucket_index(node.node_id)]

        if node not in bucket.nodes and bucket.is_full():
            stale_nodes = [n for n in bucket.nodes if n.is_stale()]
            if not stale_nodes:
                return False
            self.remove_node(stale_nodes[0])

        added = bucket.add_node(node)
        if added:
            self._index[node.node_id.id] = node
        return added

    def remove_node(self, node: DHTNode) -> None:
        """
        Удаление узла из таблицы маршрутизации

        Raises:
            NodeNotFoundError: Если узла нет в таблице
        """
        stored = self._index.pop(node.node_id.id, None)
        if stored is None:
            raise NodeNotFoundError(f"Node not in routing table: {node.node_id.hex()}")
        self.buckets[self._get_bucket_index(stored.node_id)].remove_node(stored)

    def get(self, node_id: bytes) -> Optional[DHTNode]:
        return self._index.get(node_id)

    def has(self, node_id: bytes) -> bool:
        return node_id in self._index

    def find_closest_nodes(self, target_id: NodeID, count: int) -> List[DHTNode]:
        """Поиск ближайших узлов к целевому ID"""
        nodes = sorted(
            self._index.values(), key=lambda n: compute_distance(n.node_id.id, target_id.id)
        )
        return nodes[:count]

    def to_array(self) -> List[DHTNode]:
        """Все узлы таблицы: по бакетам, внутри бакета в порядке LRU"""
        all_nodes: List[DHTNode] = []
        for bucket in self.buckets:
            all_nodes.extend(bucket.nodes)
        return all_nodes

    def __len__(self) -> int:
        return len(self._index)
