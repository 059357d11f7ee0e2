"""
Запись реестра пиров роя
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable, List


class Priority(IntEnum):
    """Приоритет переподключения к пиру"""
    VERY_LOW = 0
    LOW = 1
    NORMAL = 2
    HIGH = 3
    VERY_HIGH = 4


@dataclass
class PeerRecord:
    """
    Локальные сведения о публичном ключе

    Живет независимо от текущих соединений: запись создается при первом
    рукопожатии и остается после отключения.
    """
    public_key: bytes
    banned: bool = False
    priority: Priority = Priority.NORMAL
    client: bool = False  # True - соединение инициировали мы
    topics: List[bytes] = field(default_factory=list)

    @property
    def hex(self) -> str:
        return self.public_key.hex()

    def ban(self) -> None:
        self.banned = True
        self.priority = Priority.VERY_LOW

    def add_topics(self, topics: Iterable[bytes]) -> None:
        """Добавление топиков без дубликатов с сохранением порядка"""
        for topic in topics:
            if topic not in self.topics:
                self.topics.append(topic)
