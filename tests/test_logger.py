"""
Тесты настройки логирования
"""

import json
import logging

import structlog

from instrumented_swarm.logger import get_logger, setup_logging


def test_log_file_single_handler(tmp_path, reset_logging):
    """Тест: повторная настройка не оставляет лишних открытых файлов"""
    log_file = tmp_path / "swarm.log"
    setup_logging("INFO", log_file)
    first = [h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)]
    setup_logging("INFO", log_file, node_id="ab" * 32)

    file_handlers = [
        h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)
    ]
    assert len(file_handlers) == 1
    assert first[0] not in file_handlers
    assert first[0].stream is None

    structlog.get_logger().info("Swarm listening", port=1234)

    lines = log_file.read_text().splitlines()
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert record["event"] == "Swarm listening"
    assert record["port"] == 1234
    assert record["level"] == "info"


def test_level_filtering(tmp_path, reset_logging):
    """Тест фильтрации по уровню"""
    log_file = tmp_path / "swarm.log"
    setup_logging("WARNING", log_file)

    logger = get_logger("events")
    logger.info("Connection opened")
    logger.error("Error in event listener")

    records = [json.loads(line) for line in log_file.read_text().splitlines()]
    assert [r["event"] for r in records] == ["Error in event listener"]
    assert records[0]["module"] == "events"
