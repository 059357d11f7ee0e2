"""
Утилиты для instrumented_swarm
"""

from .crypto import KeyPair, compute_distance, generate_keypair
from .serialization import (
    FRAME_HEADER_SIZE,
    decode_frame,
    decode_frame_length,
    deserialize,
    encode_frame,
    serialize,
)

__all__ = [
    "KeyPair",
    "generate_keypair",
    "compute_distance",
    "serialize",
    "deserialize",
    "encode_frame",
    "decode_frame",
    "decode_frame_length",
    "FRAME_HEADER_SIZE",
]
