"""
Представление узла в DHT
"""

import hashlib
import ipaddress
import time
from dataclasses import dataclass, field
from typing import Optional

from instrumented_swarm.utils.crypto import compute_distance

NODE_ID_SIZE = 32


def peer_id(host: str, port: int) -> bytes:
    """
    Идентификатор узла DHT по адресу

    BLAKE2b-256 от упакованного IP-адреса и порта (uint16, little-endian).
    Тем же способом получены ключи таблицы маршрутизации, поэтому
    результат можно напрямую сравнивать с NodeID.

    Args:
        host: IPv4/IPv6 адрес
        port: Порт (0-65535)

    Returns:
        32 байта идентификатора
    """
    if not 0 <= port <= 0xFFFF:
        raise ValueError(f"Invalid port: {port}")
    address = ipaddress.ip_address(host).packed + port.to_bytes(2, "little")
    return hashlib.blake2b(address, digest_size=NODE_ID_SIZE).digest()


@dataclass
class NodeID:
    """256-битный идентификатор узла"""
    id: bytes  # 32 байта

    def __post_init__(self):
        if len(self.id) != NODE_ID_SIZE:
            raise ValueError(f"Node ID must be exactly {NODE_ID_SIZE} bytes")

    @classmethod
    def from_address(cls, host: str, port: int) -> "NodeID":
        return cls(id=peer_id(host, port))

    def distance_to(self, other: "NodeID") -> bytes:
        """Вычисление XOR-расстояния до другого узла"""
        return compute_distance(self.id, other.id)

    def hex(self) -> str:
        return self.id.hex()

    def __eq__(self, other):
        if not isinstance(other, NodeID):
            return False
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return f"NodeID({self.id.hex()[:16]}...)"


@dataclass(eq=False)
class DHTNode:
    """
    Узел в таблице маршрутизации

    prev/next - ссылки упорядоченного множества бакета. Они образуют циклы
    и наружу не отдаются никогда.
    """
    node_id: NodeID
    host: str
    port: int
    added: float = field(default_factory=time.time)
    last_seen: float = 0.0
    failed_pings: int = 0
    prev: Optional["DHTNode"] = field(default=None, repr=False)
    next: Optional["DHTNode"] = field(default=None, repr=False)

    def __post_init__(self):
        if self.last_seen == 0.0:
            self.last_seen = self.added

    @classmethod
    def from_address(cls, host: str, port: int) -> "DHTNode":
        return cls(node_id=NodeID.from_address(host, port), host=host, port=port)

    def update_seen(self):
        """Обновление времени последнего контакта"""
        self.last_seen = time.time()
        self.failed_pings = 0

    def record_failed_ping(self):
        """Запись неудачного ping"""
        self.failed_pings += 1

    def is_stale(self, timeout: float = 3600.0) -> bool:
        """Проверка, является ли узел устаревшим"""
        return (time.time() - self.last_seen) > timeout

    def __eq__(self, other):
        if not isinstance(other, DHTNode):
            return False
        return self.node_id == other.node_id

    def __hash__(self):
        return hash(self.node_id)

    def __repr__(self):
        return f"DHTNode({self.node_id}, {self.host}:{self.port})"
