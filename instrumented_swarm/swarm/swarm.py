"""
Рой: множество открытых соединений и реестр известных пиров

Минимальный движок поверх TCP: рукопожатие обменивается публичными
ключами и топиками, дальше соединение отдается владельцу как есть.
Обход NAT, шифрование и репликация здесь не реализуются.
"""

import asyncio
import contextlib
from typing import Dict, List, Optional, Set, Union

from instrumented_swarm.config import Config
from instrumented_swarm.dht.dht import DHT
from instrumented_swarm.events import EventEmitter
from instrumented_swarm.exceptions import BindError, HandshakeError, NetworkError
from instrumented_swarm.logger import get_logger
from instrumented_swarm.swarm.connection import Connection
from instrumented_swarm.swarm.peer import PeerRecord
from instrumented_swarm.utils.crypto import PUBLIC_KEY_SIZE, KeyPair, generate_keypair
from instrumented_swarm.utils.serialization import (
    FRAME_HEADER_SIZE,
    decode_frame,
    decode_frame_length,
    encode_frame,
)


class Swarm(EventEmitter):
    """
    Рой пиров

    События:
        "connection" (Connection, PeerRecord) - соединение открыто; запись
            реестра к этому моменту уже существует
    """

    def __init__(
        self,
        key_pair: Optional[KeyPair] = None,
        seed: Optional[bytes] = None,
        host: str = "127.0.0.1",
        port: int = 0,
        dht: Optional[DHT] = None,
        k: int = 20,
        handshake_timeout: float = 10.0,
    ):
        super().__init__()
        self.key_pair = key_pair or generate_keypair(seed)
        self.host = host
        self.port = port
        self.dht = dht or DHT(host=host, port=port, k=k)
        self.handshake_timeout = handshake_timeout

        self.connections: Set[Connection] = set()
        self.peers: Dict[str, PeerRecord] = {}
        self.topics: List[bytes] = []

        self.server: Optional[asyncio.AbstractServer] = None
        self.destroyed = False
        self._handshakes: Set[asyncio.Task] = set()

        self.logger = get_logger("swarm").bind(public_key=self.key_pair.public_key_hex[:16])

    @classmethod
    def from_config(cls, config: Config) -> "Swarm":
        """Создание роя по секциям swarm и dht конфигурации"""
        seed = bytes.fromhex(config.swarm.secret_key) if config.swarm.secret_key else None
        return cls(
            seed=seed,
            host=config.swarm.listen_host,
            port=config.swarm.listen_port,
            k=config.dht.k,
            handshake_timeout=config.swarm.handshake_timeout,
        )

    @property
    def public_key(self) -> bytes:
        return self.key_pair.public_key

    async def listen(self) -> None:
        """
        Начало приема входящих соединений

        Raises:
            BindError: Если адрес занят или недоступен
        """
        if self.server is not None:
            return

        try:
            self.server = await asyncio.start_server(self._on_inbound, self.host, self.port)
        except OSError as e:
            raise BindError(self.host, self.port, str(e)) from e

        host, port = self.server.sockets[0].getsockname()[:2]
        self.port = port
        self.dht.bind(host, port)
        self.logger.info("Swarm listening", host=host, port=port)

    def join(self, topic: bytes) -> None:
        """Объявление интереса к топику"""
        if topic not in self.topics:
            self.topics.append(topic)
            self.logger.debug("Joined topic", topic=topic.hex()[:16])

    def leave(self, topic: bytes) -> None:
        if topic in self.topics:
            self.topics.remove(topic)
            self.logger.debug("Left topic", topic=topic.hex()[:16])

    async def connect(self, host: str, port: int) -> Connection:
        """
        Исходящее соединение с пиром

        Raises:
            NetworkError: Если пир недоступен
            HandshakeError: Если рукопожатие не удалось
        """
        if self.destroyed:
            raise HandshakeError("Swarm is destroyed")
        try:
            reader, writer = await asyncio.open_connection(host, port)
        except OSError as e:
            raise NetworkError(f"Failed to connect to {host}:{port}: {e}") from e
        return await self._handshake(reader, writer, is_initiator=True)

    async def _on_inbound(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        task = asyncio.current_task()
        self._handshakes.add(task)
        try:
            await self._handshake(reader, writer, is_initiator=False)
        except HandshakeError as e:
            self.logger.debug("Inbound handshake rejected", error=str(e))
        except asyncio.CancelledError:
            writer.close()
            raise
        finally:
            self._handshakes.discard(task)

    async def _handshake(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter, is_initiator: bool
    ) -> Connection:
        try:
            writer.write(
                encode_frame({"publicKey": self.key_pair.public_key, "topics": list(self.topics)})
            )
            await writer.drain()
            header = await asyncio.wait_for(
                reader.readexactly(FRAME_HEADER_SIZE), self.handshake_timeout
            )
            body = await asyncio.wait_for(
                reader.readexactly(decode_frame_length(header)), self.handshake_timeout
            )
            frame = decode_frame(body)
        except (asyncio.TimeoutError, asyncio.IncompleteReadError, ConnectionError, ValueError) as e:
            writer.close()
            raise HandshakeError(f"Handshake failed: {e}") from e

        remote_key = frame.get("publicKey")
        remote_topics = frame.get("topics")
        if not isinstance(remote_topics, list):
            remote_topics = []
        if not isinstance(remote_key, bytes) or len(remote_key) != PUBLIC_KEY_SIZE:
            writer.close()
            raise HandshakeError("Handshake carried an invalid public key")
        if remote_key == self.key_pair.public_key:
            writer.close()
            raise HandshakeError("Refusing connection to self")
        if self.destroyed:
            writer.close()
            raise HandshakeError("Swarm is destroyed")

        remote_hex = remote_key.hex()
        record = self.peers.get(remote_hex)
        if record is not None and record.banned:
            writer.close()
            raise HandshakeError(f"Peer is banned: {remote_hex[:16]}")

        # Запись реестра появляется раньше, чем соединение становится видимым
        if record is None:
            record = PeerRecord(public_key=remote_key)
            self.peers[remote_hex] = record
        record.client = is_initiator
        record.add_topics(t for t in remote_topics if t in self.topics)

        connection = Connection(reader, writer, remote_key, is_initiator)
        self.connections.add(connection)
        connection.once("close", self._on_connection_closed)
        connection.start()

        self.logger.debug(
            "Connection opened",
            remote=remote_hex[:16],
            remote_host=connection.remote_host,
            remote_port=connection.remote_port,
            initiator=is_initiator,
        )
        self.emit("connection", connection, record)
        return connection

    def _on_connection_closed(self, connection: Connection) -> None:
        self.connections.discard(connection)
        self.logger.debug("Connection closed", remote=connection.remote_public_key_hex[:16])

    async def ban(self, public_key: Union[bytes, str]) -> None:
        """Бан пира и закрытие его текущих соединений"""
        key = bytes.fromhex(public_key) if isinstance(public_key, str) else public_key
        record = self.peers.get(key.hex())
        if record is None:
            record = PeerRecord(public_key=key)
            self.peers[key.hex()] = record
        record.ban()

        to_close = [c for c in self.connections if c.remote_public_key == key]
        for connection in to_close:
            await connection.close()
        self.logger.info("Peer banned", remote=key.hex()[:16], closed=len(to_close))

    async def flush(self) -> None:
        """Ожидание завершения входящих рукопожатий"""
        while self._handshakes:
            await asyncio.gather(*list(self._handshakes), return_exceptions=True)

    async def destroy(self) -> None:
        """Остановка приема и закрытие всех соединений"""
        if self.destroyed:
            return
        self.destroyed = True

        if self.server is not None:
            self.server.close()

        for task in list(self._handshakes):
            task.cancel()
        for connection in list(self.connections):
            await connection.close()
        if self._handshakes:
            await asyncio.gather(*list(self._handshakes), return_exceptions=True)

        if self.server is not None:
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self.server.wait_closed(), timeout=5.0)
            self.server = None

        self.logger.info("Swarm destroyed")
