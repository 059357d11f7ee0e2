"""
Исключения для instrumented_swarm
"""


class SwarmError(Exception):
    """Базовое исключение для instrumented_swarm"""
    pass


class NetworkError(SwarmError):
    """Ошибка сетевых операций"""
    pass


class BindError(NetworkError):
    """Не удалось занять адрес для прослушивания"""

    def __init__(self, host: str, port: int, reason: str = ""):
        self.host = host
        self.port = port
        message = f"Failed to bind {host}:{port}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class HandshakeError(NetworkError):
    """Ошибка рукопожатия с удаленным пиром"""
    pass


class DHTError(SwarmError):
    """Ошибка операций с таблицей маршрутизации DHT"""
    pass


class NodeNotFoundError(DHTError):
    """Узел не найден в таблице маршрутизации"""
    pass


class InvariantViolationError(SwarmError):
    """
    Нарушение внутренней согласованности

    Открытое соединение без записи в реестре пиров. Такое состояние
    означает ошибку корреляции между роем и инструментированием и
    никогда не маскируется пустой записью.
    """
    pass
