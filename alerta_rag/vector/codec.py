"""
Vector codec: float32 vector <-> byte blob.

Blobs are the raw big-endian IEEE-754 float32 values, four bytes per
dimension, with no header.  The dimension is stored next to the blob by
the backing store, so ``decode`` always receives it explicitly.
"""

from __future__ import annotations

import numbers
from typing import Sequence, Union

import numpy as np

from ..errors import CorruptDataError

# Network byte order, so blobs are portable between hosts.
WIRE_DTYPE = np.dtype(">f4")
BYTES_PER_FLOAT = WIRE_DTYPE.itemsize

VectorLike = Union[Sequence[float], np.ndarray]


def encode(vector: VectorLike) -> bytes:
    """Serialise *vector* to ``4 * len(vector)`` bytes."""
    return np.asarray(vector, dtype=np.float32).astype(WIRE_DTYPE).tobytes()


def decode(data: bytes, dimension: int) -> np.ndarray:
    """
    Deserialise *data* into a native-endian float32 vector.

    Raises
    ------
    CorruptDataError
        If *dimension* is not positive or the blob length is not
        ``4 * dimension``.
    """
    if not isinstance(dimension, numbers.Integral) or isinstance(dimension, bool) or dimension <= 0:
        raise CorruptDataError(f"invalid stored dimension: {dimension!r}")
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise CorruptDataError(f"vector blob has type {type(data).__name__}, expected bytes")
    dimension = int(dimension)
    expected = BYTES_PER_FLOAT * dimension
    if len(data) != expected:
        raise CorruptDataError(
            f"blob has {len(data)} bytes, expected {expected} for dimension {dimension}"
        )
    return np.frombuffer(data, dtype=WIRE_DTYPE).astype(np.float32)
