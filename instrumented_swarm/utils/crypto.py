"""
Криптографические утилиты
"""

from dataclasses import dataclass
from typing import Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

PUBLIC_KEY_SIZE = 32


@dataclass(frozen=True)
class KeyPair:
    """Пара ключей роя (сырые байты Ed25519)"""
    public_key: bytes  # 32 байта
    secret_key: bytes  # 32 байта (seed)

    @property
    def public_key_hex(self) -> str:
        return self.public_key.hex()


def generate_keypair(seed: Optional[bytes] = None) -> KeyPair:
    """
    Генерация пары ключей Ed25519

    Args:
        seed: 32 байта seed для детерминированной генерации (опционально)

    Returns:
        KeyPair с сырыми публичным и секретным ключами
    """
    if seed is not None:
        if len(seed) != 32:
            raise ValueError(f"Invalid seed length: {len(seed)}, expected 32")
        private_key = ed25519.Ed25519PrivateKey.from_private_bytes(seed)
    else:
        private_key = ed25519.Ed25519PrivateKey.generate()

    secret_bytes = private_key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_bytes = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw, format=serialization.PublicFormat.Raw
    )
    return KeyPair(public_key=public_bytes, secret_key=secret_bytes)


def compute_distance(node_id1: bytes, node_id2: bytes) -> bytes:
    """
    Вычисление XOR-расстояния между двумя идентификаторами

    Args:
        node_id1: Первый идентификатор
        node_id2: Второй идентификатор той же длины

    Returns:
        XOR-расстояние
    """
    if len(node_id1) != len(node_id2):
        raise ValueError("Node IDs must have the same length")

    return bytes(a ^ b for a, b in zip(node_id1, node_id2))
