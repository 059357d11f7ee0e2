"""
HTTP интерфейс только для чтения поверх InstrumentedSwarm

Эндпоинты:
    GET /swarm/peerinfo?port=<p>&host=<h>  - список PeerInfo (фильтры опциональны)
    GET /swarm/peerinfo/{publicKey}        - один PeerInfo или 404
    GET /swarm/dhtnode                     - узлы таблицы маршрутизации
    GET /swarm/summary                     - агрегированные метрики
"""

import asyncio
from typing import TYPE_CHECKING, Optional

from aiohttp import web

from instrumented_swarm.exceptions import BindError, InvariantViolationError
from instrumented_swarm.logger import get_logger

if TYPE_CHECKING:
    from instrumented_swarm.instrumented import InstrumentedSwarm


class IntrospectionAPI:
    """HTTP сервер инструментирования с явными open() / close()"""

    def __init__(self, instrumented: "InstrumentedSwarm", host: str = "127.0.0.1", port: int = 0):
        self.instrumented = instrumented
        self.host = host
        self.port = port  # после open() - фактически занятый порт
        self._configured_port = port
        self.runner: Optional[web.AppRunner] = None
        self.site: Optional[web.TCPSite] = None
        self._lock: Optional[asyncio.Lock] = None  # open/close по одному
        self.logger = get_logger("api")

    @property
    def is_running(self) -> bool:
        return self.runner is not None

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def _create_app(self) -> web.Application:
        app = web.Application(middlewares=[self._error_middleware])
        app.router.add_get("/swarm/peerinfo", self._get_peer_infos)
        app.router.add_get("/swarm/peerinfo/{publicKey}", self._get_peer_info)
        app.router.add_get("/swarm/dhtnode", self._get_dht_nodes)
        app.router.add_get("/swarm/summary", self._get_summary)
        return app

    @web.middleware
    async def _error_middleware(self, request: web.Request, handler) -> web.StreamResponse:
        try:
            return await handler(request)
        except InvariantViolationError as e:
            self.logger.error(
                "Invariant violation while serving request", path=request.path, error=str(e)
            )
            return web.json_response({"error": str(e)}, status=500)

    def _get_lock(self) -> asyncio.Lock:
        # Создается внутри работающего цикла событий
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def open(self) -> None:
        """
        Запуск HTTP сервера; возвращает управление, когда сокет принимает соединения

        Одновременные вызовы open() / close() выполняются по очереди.

        Raises:
            BindError: Если не удалось занять host:port
        """
        async with self._get_lock():
            if self.runner is not None:
                return
            await self._start()

    async def _start(self) -> None:
        runner = web.AppRunner(self._create_app(), access_log=None)
        await runner.setup()
        try:
            site = web.TCPSite(runner, host=self.host, port=self._configured_port)
            await site.start()
        except OSError as e:
            await runner.cleanup()
            self.logger.error(
                "Failed to start introspection server",
                host=self.host,
                port=self._configured_port,
                error=str(e),
            )
            raise BindError(self.host, self._configured_port, str(e)) from e

        self.runner = runner
        self.site = site
        if runner.addresses:
            self.port = runner.addresses[0][1]

        self.logger.info("Introspection server started", host=self.host, port=self.port)

    async def close(self) -> None:
        """Остановка HTTP сервера"""
        async with self._get_lock():
            if self.runner is None:
                return

            runner = self.runner
            self.runner = None
            self.site = None
            await runner.cleanup()

            self.logger.info("Introspection server stopped", host=self.host, port=self.port)
            self.port = self._configured_port

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _get_peer_infos(self, request: web.Request) -> web.Response:
        port = request.query.get("port")
        host = request.query.get("host")

        infos = [
            info.to_dict()
            for info in self.instrumented.peer_infos().values()
            if (port is None or str(info.remote_port) == port)
            and (host is None or info.remote_host == host)
        ]
        return web.json_response(infos)

    async def _get_peer_info(self, request: web.Request) -> web.Response:
        public_key = request.match_info["publicKey"]
        info = self.instrumented.peer_infos().get(public_key)
        if info is None:
            return web.Response(status=404)
        return web.json_response(info.to_dict())

    async def _get_dht_nodes(self, request: web.Request) -> web.Response:
        nodes = [node.to_dict() for node in self.instrumented.dht_nodes().values()]
        return web.json_response(nodes)

    async def _get_summary(self, request: web.Request) -> web.Response:
        return web.json_response(self.instrumented.get_metrics().to_dict())
