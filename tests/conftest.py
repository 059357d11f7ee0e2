"""
Общие фикстуры для тестов
"""

import logging
import os
from typing import List, Tuple

import pytest
import pytest_asyncio
import structlog

from instrumented_swarm.dht.dht import DHT
from instrumented_swarm.events import EventEmitter
from instrumented_swarm.swarm.peer import PeerRecord
from instrumented_swarm.swarm.swarm import Swarm
from instrumented_swarm.utils.crypto import generate_keypair


class FakeConnection(EventEmitter):
    """Соединение без сокета: только атрибуты и событие close"""

    def __init__(self, remote_public_key: bytes, remote_host: str, remote_port: int,
                 local_port: int):
        super().__init__()
        self.remote_public_key = remote_public_key
        self.remote_host = remote_host
        self.remote_port = remote_port
        self.local_port = local_port
        self.closed = False

    def close(self):
        if self.closed:
            return
        self.closed = True
        self.emit("close", self)


class FakeSwarm(EventEmitter):
    """Рой в памяти с тем же интерфейсом, что и Swarm"""

    def __init__(self, host: str = "127.0.0.1", port: int = 49737):
        super().__init__()
        self.key_pair = generate_keypair()
        self.dht = DHT(host=host, port=port)
        self.connections = set()
        self.peers = {}

    def open_connection(self, remote_host: str = "10.0.0.2", remote_port: int = 40000,
                        local_port: int = 49737, public_key: bytes = None,
                        register: bool = True) -> FakeConnection:
        public_key = public_key or os.urandom(32)
        if register:
            self.peers.setdefault(public_key.hex(), PeerRecord(public_key=public_key))
        connection = FakeConnection(public_key, remote_host, remote_port, local_port)
        self.connections.add(connection)
        connection.once("close", self.connections.discard)
        self.emit("connection", connection, self.peers.get(public_key.hex()))
        return connection


def create_testnet(size: int, host: str = "127.0.0.1",
                   base_port: int = 30000) -> List[Tuple[str, int]]:
    """Адреса узлов тестовой DHT; первый - bootstrap"""
    return [(host, base_port + i) for i in range(size)]


@pytest.fixture(name="create_testnet")
def create_testnet_fixture():
    return create_testnet


@pytest.fixture
def fake_swarm():
    return FakeSwarm()


@pytest_asyncio.fixture
async def swarm_factory():
    """Фабрика слушающих роев с автоматическим уничтожением"""
    swarms: List[Swarm] = []

    async def _create(**kwargs) -> Swarm:
        swarm = Swarm(**kwargs)
        await swarm.listen()
        swarms.append(swarm)
        return swarm

    yield _create

    for swarm in swarms:
        await swarm.destroy()


@pytest.fixture
def reset_logging():
    """Возврат structlog и корневого logging в исходное состояние после теста"""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level

    yield

    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
    structlog.reset_defaults()
