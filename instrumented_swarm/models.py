"""
Внешние представления состояния роя

Все структуры строятся заново при каждом чтении и безопасны для
сериализации: никаких ссылок на внутренние объекты роя и DHT.
"""

from dataclasses import dataclass
from typing import Any, Dict, List

from instrumented_swarm.dht.node import DHTNode


@dataclass(frozen=True)
class PeerInfo:
    """Соединение, сопоставленное с реестром пиров и таблицей DHT"""

    remote_host: str
    remote_port: int
    own_port: int
    public_key: str  # hex
    banned: bool
    priority: int
    client: bool
    topics: List[str]  # hex
    on_dht: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "remoteHost": self.remote_host,
            "remotePort": self.remote_port,
            "ownPort": self.own_port,
            "publicKey": self.public_key,
            "banned": self.banned,
            "priority": self.priority,
            "client": self.client,
            "topics": list(self.topics),
            "onDht": self.on_dht,
        }


@dataclass(frozen=True)
class DHTNodeInfo:
    """
    Узел таблицы маршрутизации без внутренних ссылок

    Поля переносятся поштучно (allowlist): новое внутреннее поле DHTNode
    не попадет наружу, пока его не добавят сюда явно.
    """

    id: str  # hex
    host: str
    port: int
    added: float
    last_seen: float
    failed_pings: int

    @classmethod
    def from_node(cls, node: DHTNode) -> "DHTNodeInfo":
        return cls(
            id=node.node_id.id.hex(),
            host=node.host,
            port=node.port,
            added=node.added,
            last_seen=node.last_seen,
            failed_pings=node.failed_pings,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "host": self.host,
            "port": self.port,
            "added": self.added,
            "lastSeen": self.last_seen,
            "failedPings": self.failed_pings,
        }


@dataclass(frozen=True)
class MetricsSnapshot:
    """Агрегированные счетчики на момент чтения"""

    nr_swarm_peers: int
    nr_swarm_hosts: int
    nr_dht_peers: int
    nr_dht_hosts: int
    connections_opened: int
    connections_closed: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "nrSwarmPeers": self.nr_swarm_peers,
            "nrSwarmHosts": self.nr_swarm_hosts,
            "nrDhtPeers": self.nr_dht_peers,
            "nrDhtHosts": self.nr_dht_hosts,
            "connectionsOpened": self.connections_opened,
            "connectionsClosed": self.connections_closed,
        }
