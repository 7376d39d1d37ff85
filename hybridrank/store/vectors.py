"""Embedding vector serialization.

Vectors are stored as little-endian float32 BLOBs. Rows written by older
deployments may still hold a JSON array of numbers; those are decoded too.
"""

import json
from collections.abc import Sequence

import numpy as np

from hybridrank.store.errors import VectorEncodingError
from hybridrank.store.models import Vector


_DTYPE = np.dtype("<f4")


def encode_vector(values: Sequence[float] | Vector) -> bytes:
    """Serialize a vector into its BLOB form.

    Args:
        values: One-dimensional sequence of finite numbers.

    Returns:
        Packed float32 bytes.

    Raises:
        VectorEncodingError: If the vector is empty, not 1-D or non-finite.
    """
    try:
        array = np.asarray(values, dtype=_DTYPE)
    except (TypeError, ValueError) as e:
        raise VectorEncodingError(f"Vector is not numeric: {e}") from e

    if array.ndim != 1 or array.size == 0:
        msg = f"Vector must be a non-empty 1-D array, got shape {array.shape}"
        raise VectorEncodingError(msg)
    if not np.all(np.isfinite(array)):
        raise VectorEncodingError("Vector contains non-finite components")
    return array.tobytes()


def decode_vector(payload: bytes | str | Sequence[float] | None) -> Vector | None:
    """Decode a stored vector, tolerating malformed payloads.

    The format follows the column type SQLite hands back: bytes are always
    a float32 BLOB, text is always a legacy JSON array.

    Args:
        payload: BLOB bytes, legacy JSON text, an already-decoded sequence,
            or None.

    Returns:
        A float32 array, or None when the payload is absent, unparseable or
        holds non-finite components.
    """
    if payload is None:
        return None

    if isinstance(payload, str):
        return _finite_or_none(_decode_json(payload))

    if isinstance(payload, bytes | bytearray | memoryview):
        raw = bytes(payload)
        if not raw or len(raw) % _DTYPE.itemsize != 0:
            return None
        return _finite_or_none(np.frombuffer(raw, dtype=_DTYPE).astype(np.float32))

    try:
        array = np.asarray(payload, dtype=np.float32)
    except (TypeError, ValueError):
        return None
    if array.ndim != 1 or array.size == 0:
        return None
    return _finite_or_none(array)


def _finite_or_none(array: Vector | None) -> Vector | None:
    if array is None or not np.all(np.isfinite(array)):
        return None
    return array


def _decode_json(text: str) -> Vector | None:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, list) or not data:
        return None
    try:
        array = np.asarray(data, dtype=np.float32)
    except (TypeError, ValueError):
        return None
    return array if array.ndim == 1 else None
