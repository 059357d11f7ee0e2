"""
Утилиты для сериализации данных
"""

from typing import Any

import msgpack

FRAME_HEADER_SIZE = 4
MAX_FRAME_SIZE = 64 * 1024


def serialize(data: Any) -> bytes:
    """
    Сериализация данных в msgpack

    Args:
        data: Данные для сериализации

    Returns:
        Сериализованные данные в виде bytes
    """
    return msgpack.packb(data, use_bin_type=True)


def deserialize(data: bytes) -> Any:
    """Десериализация msgpack"""
    return msgpack.unpackb(data, raw=False)


def encode_frame(payload: Any) -> bytes:
    """Упаковка msgpack-кадра с 4-байтовым префиксом длины (big-endian)"""
    body = serialize(payload)
    if len(body) > MAX_FRAME_SIZE:
        raise ValueError(f"Frame too large: {len(body)} bytes")
    return len(body).to_bytes(FRAME_HEADER_SIZE, "big") + body


def decode_frame_length(header: bytes) -> int:
    """Длина тела кадра по заголовку"""
    if len(header) != FRAME_HEADER_SIZE:
        raise ValueError(f"Invalid frame header length: {len(header)}")
    length = int.from_bytes(header, "big")
    if length > MAX_FRAME_SIZE:
        raise ValueError(f"Frame too large: {length} bytes")
    return length


def decode_frame(body: bytes) -> dict:
    """
    Распаковка тела кадра

    Raises:
        ValueError: Если тело не является msgpack-словарем
    """
    try:
        payload = deserialize(body)
    except (msgpack.UnpackException, ValueError) as e:
        raise ValueError(f"Malformed frame: {e}") from e
    if not isinstance(payload, dict):
        raise ValueError("Frame payload must be a map")
    return payload
