"""
Простой эмиттер событий для роя и соединений
"""

from collections import defaultdict
from typing import Any, Callable, Dict, List

from instrumented_swarm.logger import get_logger

Listener = Callable[..., Any]


class EventEmitter:
    """Синхронная рассылка событий подписчикам"""

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._events_logger = get_logger("events")

    def on(self, event: str, listener: Listener) -> None:
        """Подписка на событие"""
        self._listeners[event].append(listener)

    def once(self, event: str, listener: Listener) -> None:
        """Подписка на первое срабатывание события"""

        def _wrapper(*args: Any) -> None:
            self.off(event, _wrapper)
            listener(*args)

        self.on(event, _wrapper)

    def off(self, event: str, listener: Listener) -> None:
        """Отписка от события"""
        listeners = self._listeners.get(event)
        if not listeners:
            return
        try:
            listeners.remove(listener)
        except ValueError:
            pass

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> None:
        """
        Вызов подписчиков события

        Исключение в подписчике логируется и не прерывает остальных.
        """
        for listener in list(self._listeners.get(event, [])):
            try:
                listener(*args)
            except Exception as e:
                self._events_logger.error(
                    "Error in event listener", event_name=event, error=str(e), exc_info=True
                )
