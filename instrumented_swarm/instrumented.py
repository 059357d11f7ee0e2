"""
Инструментированный рой: счетчики соединений и сопоставленные представления
"""

from typing import TYPE_CHECKING, Any, Dict, Optional, Set

from instrumented_swarm.api import IntrospectionAPI
from instrumented_swarm.config import Config
from instrumented_swarm.dht.node import peer_id
from instrumented_swarm.exceptions import InvariantViolationError
from instrumented_swarm.logger import get_logger, setup_logging
from instrumented_swarm.models import DHTNodeInfo, MetricsSnapshot, PeerInfo

if TYPE_CHECKING:
    from instrumented_swarm.swarm.connection import Connection
    from instrumented_swarm.swarm.peer import PeerRecord
    from instrumented_swarm.swarm.swarm import Swarm


class InstrumentedSwarm:
    """
    Обертка над роем и его таблицей DHT

    От роя требуется: connections (итерируемое открытых соединений),
    peers (hex публичного ключа -> PeerRecord), dht.nodes.to_array(),
    dht.host / dht.port, key_pair.public_key и событие "connection".

    Все представления (peer_infos, dht_nodes, get_metrics) вычисляются
    заново при каждом вызове за O(peers + nodes) без кэширования.
    Единственное долгоживущее изменяемое состояние - два счетчика.
    """

    def __init__(self, swarm: "Swarm", host: Optional[str] = None, port: Optional[int] = None):
        """
        Args:
            swarm: Инструментируемый рой
            host: Адрес HTTP интерфейса (по умолчанию 127.0.0.1)
            port: Порт HTTP интерфейса (по умолчанию выбирает ОС)
        """
        self.swarm = swarm
        self.host = host or "127.0.0.1"
        self.port = port or 0
        self.logger = get_logger("instrumented")

        self.connections_opened = 0
        self.connections_closed = 0

        # Подписка на весь срок жизни роя, независимо от open()/close()
        self.swarm.on("connection", self._on_connection)

        self._api: Optional[IntrospectionAPI] = None

    @classmethod
    def from_config(cls, swarm: "Swarm", config: Config) -> "InstrumentedSwarm":
        """Создание с адресом из секции instrumentation и настройкой логирования"""
        setup_logging(
            log_level=config.log_level,
            log_file=config.log_file,
            node_id=swarm.key_pair.public_key.hex(),
        )
        return cls(swarm, host=config.instrumentation.host, port=config.instrumentation.port)

    def _on_connection(self, connection: "Connection", *_: Any) -> None:
        self.connections_opened += 1
        # Предыдущий слушатель "connection" мог уже закрыть соединение
        if getattr(connection, "closed", False):
            self.connections_closed += 1
            return
        connection.once("close", self._on_connection_closed)

    def _on_connection_closed(self, *_: Any) -> None:
        self.connections_closed += 1

    @property
    def public_key(self) -> str:
        return self.swarm.key_pair.public_key.hex()

    @property
    def own_host(self) -> str:
        return self.swarm.dht.host

    @property
    def own_port(self) -> int:
        return self.swarm.dht.port

    def peers(self) -> Dict[str, "PeerRecord"]:
        """Реестр пиров роя как есть"""
        return self.swarm.peers

    def connections(self) -> Set["Connection"]:
        """Открытые соединения роя как есть"""
        return self.swarm.connections

    def dht_nodes(self) -> Dict[str, DHTNodeInfo]:
        """
        Узлы таблицы маршрутизации по hex-идентификатору

        Ссылки prev/next упорядоченного множества наружу не попадают.
        """
        nodes: Dict[str, DHTNodeInfo] = {}
        for node in self.swarm.dht.nodes.to_array():
            info = DHTNodeInfo.from_node(node)
            nodes[info.id] = info
        return nodes

    def peer_infos(self) -> Dict[str, PeerInfo]:
        """
        Сведения об открытых соединениях по hex публичного ключа

        Соединение сопоставляется с записью реестра и с таблицей DHT
        (по идентификатору, выведенному из адреса удаленной стороны).

        Raises:
            InvariantViolationError: Если для открытого соединения нет
                записи в реестре пиров
        """
        peers = self.swarm.peers
        dht_nodes = self.dht_nodes()
        infos: Dict[str, PeerInfo] = {}

        for connection in list(self.swarm.connections):
            public_key = connection.remote_public_key.hex()
            record = peers.get(public_key)
            if record is None:
                self.logger.error(
                    "Open connection without peer record",
                    public_key=public_key,
                    remote_host=connection.remote_host,
                    remote_port=connection.remote_port,
                )
                raise InvariantViolationError(
                    f"No peer record for open connection {public_key}"
                )

            try:
                dht_id = peer_id(connection.remote_host, connection.remote_port).hex()
            except ValueError:
                # Не IP-адрес: идентификатор DHT вывести нельзя
                dht_id = None

            infos[public_key] = PeerInfo(
                remote_host=connection.remote_host,
                remote_port=connection.remote_port,
                own_port=connection.local_port,
                public_key=public_key,
                banned=record.banned,
                priority=int(record.priority),
                client=record.client,
                topics=[topic.hex() for topic in record.topics],
                on_dht=dht_id is not None and dht_id in dht_nodes,
            )

        return infos

    def get_metrics(self) -> MetricsSnapshot:
        """Агрегаты по одному свежему снимку peer_infos и dht_nodes"""
        infos = self.peer_infos()
        dht_nodes = self.dht_nodes()

        return MetricsSnapshot(
            nr_swarm_peers=len(infos),
            nr_swarm_hosts=len({info.remote_host for info in infos.values()}),
            nr_dht_peers=len(dht_nodes),
            nr_dht_hosts=len({node.host for node in dht_nodes.values()}),
            connections_opened=self.connections_opened,
            connections_closed=self.connections_closed,
        )

    @property
    def api(self) -> IntrospectionAPI:
        if self._api is None:
            self._api = IntrospectionAPI(self, host=self.host, port=self.port)
        return self._api

    async def open(self) -> None:
        """Запуск HTTP интерфейса"""
        await self.api.open()

    async def close(self) -> None:
        """Остановка HTTP интерфейса; счетчики продолжают работать"""
        if self._api is not None:
            await self._api.close()

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
