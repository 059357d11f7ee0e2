"""
Модуль конфигурации instrumented_swarm
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

load_dotenv()


@dataclass
class DHTConfig:
    """Конфигурация таблицы маршрутизации DHT"""
    k: int = 20  # Размер k-бакета


@dataclass
class SwarmConfig:
    """Конфигурация роя"""
    listen_host: str = "127.0.0.1"
    listen_port: int = 0  # 0 - выбирает ОС
    secret_key: Optional[str] = None  # hex-seed для детерминированной пары ключей
    handshake_timeout: float = 10.0  # Таймаут рукопожатия (секунды)


@dataclass
class InstrumentationConfig:
    """Конфигурация HTTP интерфейса инструментирования"""
    host: str = field(default_factory=lambda: os.getenv("INSTRUMENTATION_HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("INSTRUMENTATION_PORT", "0")))


@dataclass
class Config:
    """Главная конфигурация"""
    dht: DHTConfig
    swarm: SwarmConfig
    instrumentation: InstrumentationConfig
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @classmethod
    def default(cls) -> "Config":
        """Конфигурация по умолчанию"""
        return cls(
            dht=DHTConfig(),
            swarm=SwarmConfig(),
            instrumentation=InstrumentationConfig(),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    @classmethod
    def from_file(cls, config_path: Optional[Path] = None) -> "Config":
        """Загрузка конфигурации из файла"""
        if config_path is None:
            config_path = Path("config.yaml")

        if config_path.exists():
            with open(config_path, "r") as f:
                config_data = yaml.safe_load(f) or {}
        else:
            config_data = {}

        return cls(
            dht=DHTConfig(**config_data.get("dht", {})),
            swarm=SwarmConfig(**config_data.get("swarm", {})),
            instrumentation=InstrumentationConfig(**config_data.get("instrumentation", {})),
            log_level=config_data.get("log_level", os.getenv("LOG_LEVEL", "INFO")),
            log_file=Path(config_data["log_file"]) if config_data.get("log_file") else None,
        )

    def to_file(self, config_path: Path) -> None:
        """Сохранение конфигурации в файл"""
        config_data = {
            "dht": {
                "k": self.dht.k,
            },
            "swarm": {
                "listen_host": self.swarm.listen_host,
                "listen_port": self.swarm.listen_port,
                "secret_key": self.swarm.secret_key,
                "handshake_timeout": self.swarm.handshake_timeout,
            },
            "instrumentation": {
                "host": self.instrumentation.host,
                "port": self.instrumentation.port,
            },
            "log_level": self.log_level,
        }

        if self.log_file:
            config_data["log_file"] = str(self.log_file)

        with open(config_path, "w") as f:
            yaml.dump(config_data, f, default_flow_style=False, sort_keys=False)
