"""
Открытое соединение с удаленным пиром поверх asyncio streams
"""

import asyncio
import contextlib
from typing import Optional

from instrumented_swarm.events import EventEmitter
from instrumented_swarm.exceptions import NetworkError
from instrumented_swarm.logger import get_logger

READ_CHUNK_SIZE = 64 * 1024


class Connection(EventEmitter):
    """
    Соединение после завершенного рукопожатия

    События:
        "data" (bytes) - очередной фрагмент входящих данных
        "close" (Connection) - соединение закрыто, ровно один раз
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        remote_public_key: bytes,
        is_initiator: bool,
    ):
        super().__init__()
        self.reader = reader
        self.writer = writer
        self.remote_public_key = remote_public_key
        self.is_initiator = is_initiator

        peername = writer.get_extra_info("peername")
        sockname = writer.get_extra_info("sockname")
        self.remote_host: str = peername[0]
        self.remote_port: int = peername[1]
        self.local_port: int = sockname[1]

        self.closed = False
        self._read_task: Optional[asyncio.Task] = None
        self.logger = get_logger("swarm.connection")

    @property
    def remote_public_key_hex(self) -> str:
        return self.remote_public_key.hex()

    def start(self) -> None:
        """Запуск чтения входящих данных"""
        if self._read_task is None:
            self._read_task = asyncio.create_task(self._read_loop())

    async def _read_loop(self):
        try:
            while True:
                data = await self.reader.read(READ_CHUNK_SIZE)
                if not data:
                    break
                self.emit("data", data)
        except ConnectionError as e:
            self.logger.debug(
                "Connection read failed", remote=self.remote_public_key_hex[:16], error=str(e)
            )
        finally:
            self._finalize()

    def write(self, data: bytes) -> None:
        if self.closed:
            raise NetworkError("Connection is closed")
        self.writer.write(data)

    async def close(self) -> None:
        """Закрытие соединения и ожидание освобождения сокета"""
        self._finalize()

        task = self._read_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        with contextlib.suppress(ConnectionError):
            await self.writer.wait_closed()

    def _finalize(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.writer.close()
        self.emit("close", self)

    def __repr__(self):
        return (
            f"Connection({self.remote_public_key_hex[:16]}..., "
            f"{self.remote_host}:{self.remote_port} <- :{self.local_port})"
        )
