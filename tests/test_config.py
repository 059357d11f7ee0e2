"""
Тесты конфигурации
"""

from pathlib import Path

from instrumented_swarm.config import (
    Config,
    DHTConfig,
    InstrumentationConfig,
    SwarmConfig,
)
from instrumented_swarm.instrumented import InstrumentedSwarm
from instrumented_swarm.swarm.swarm import Swarm


def test_default_config():
    """Тест конфигурации по умолчанию"""
    config = Config.default()
    assert config.dht.k == 20
    assert config.swarm.listen_host == "127.0.0.1"
    assert config.swarm.secret_key is None
    assert config.instrumentation.host == "127.0.0.1"


def test_missing_file_gives_defaults(tmp_path):
    """Тест загрузки несуществующего файла"""
    config = Config.from_file(tmp_path / "missing.yaml")
    assert config.dht == DHTConfig()
    assert config.swarm == SwarmConfig()
    assert config.log_file is None


def test_save_and_load(tmp_path):
    """Тест сохранения и загрузки"""
    config = Config(
        dht=DHTConfig(k=8),
        swarm=SwarmConfig(listen_port=40000, secret_key="11" * 32, handshake_timeout=2.5),
        instrumentation=InstrumentationConfig(host="0.0.0.0", port=9100),
        log_level="DEBUG",
        log_file=Path("swarm.log"),
    )
    path = tmp_path / "config.yaml"
    config.to_file(path)

    loaded = Config.from_file(path)
    assert loaded.dht.k == 8
    assert loaded.swarm.listen_port == 40000
    assert loaded.swarm.secret_key == "11" * 32
    assert loaded.swarm.handshake_timeout == 2.5
    assert loaded.instrumentation.host == "0.0.0.0"
    assert loaded.instrumentation.port == 9100
    assert loaded.log_level == "DEBUG"
    assert loaded.log_file == Path("swarm.log")


def test_instrumentation_env_fallback(monkeypatch):
    """Тест переменных окружения для адреса HTTP интерфейса"""
    monkeypatch.setenv("INSTRUMENTATION_HOST", "10.1.2.3")
    monkeypatch.setenv("INSTRUMENTATION_PORT", "9200")

    section = InstrumentationConfig()
    assert section.host == "10.1.2.3"
    assert section.port == 9200


def test_from_config_wiring(reset_logging):
    """Тест создания роя и обертки из конфигурации"""
    config = Config.default()
    config.dht.k = 4
    config.swarm.secret_key = "22" * 32
    config.instrumentation.port = 9300

    swarm = Swarm.from_config(config)
    same_key = Swarm.from_config(config)
    assert swarm.public_key == same_key.public_key
    assert swarm.dht.nodes.k == 4

    instrumented = InstrumentedSwarm.from_config(swarm, config)
    assert instrumented.host == "127.0.0.1"
    assert instrumented.port == 9300
    assert instrumented.api.port == 9300
