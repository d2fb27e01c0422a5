"""
serialization.py
~~~~~~~~~~~~~~~~

Versioned encoding of networks to and from bytes.

A network is stored as a JSON document holding the format version, the
configuration fields and one text-safe string per weight matrix:

    {"version": 1, "config": {...}, "layers": ["<base64>", ...]}

Each layer string is the base64 encoding of a compact binary matrix:
two little-endian uint64 values (rows, cols) followed by rows * cols
little-endian float64 values in row-major order.
"""

import base64
import binascii
import json
import struct
from typing import Any, Dict

import numpy as np

from neuralnet import matutil
from neuralnet.errors import DecodeError
from neuralnet.matutil import Matrix
from neuralnet.network import Network, NetworkConfig

FORMAT_VERSION = 1

_HEADER = struct.Struct('<QQ')
_FLOAT64 = np.dtype('<f8')


def encode_matrix(m: Matrix) -> bytes:
    """
    Encode a matrix as a shape header followed by its raw values.

    Args:
        m: Matrix to encode

    Returns:
        Binary representation of the matrix
    """
    arr = matutil.as_matrix(m)
    rows, cols = arr.shape
    payload = np.ascontiguousarray(arr, dtype=_FLOAT64).tobytes(order='C')
    return _HEADER.pack(rows, cols) + payload


def decode_matrix(data: bytes) -> Matrix:
    """
    Decode a matrix produced by encode_matrix().

    Raises:
        DecodeError: If the header is truncated or the payload size
            does not match the encoded shape
    """
    if len(data) < _HEADER.size:
        raise DecodeError(
            f"matrix data too short: {len(data)} bytes, "
            f"header needs {_HEADER.size}"
        )
    rows, cols = _HEADER.unpack_from(data)
    if rows == 0 or cols == 0:
        raise DecodeError(f"matrix has zero dimension: {rows}x{cols}")
    expected = rows * cols * _FLOAT64.itemsize
    payload = data[_HEADER.size:]
    if len(payload) != expected:
        raise DecodeError(
            f"matrix payload is {len(payload)} bytes, "
            f"{rows}x{cols} needs {expected}"
        )
    values = np.frombuffer(payload, dtype=_FLOAT64).astype(np.float64)
    return matutil.new_matrix(rows, cols, values)


def matrix_to_text(m: Matrix) -> str:
    """Encode a matrix as a base64 string."""
    return base64.b64encode(encode_matrix(m)).decode('ascii')


def matrix_from_text(text: str) -> Matrix:
    """
    Decode a matrix from a base64 string.

    Raises:
        DecodeError: If the text is not valid base64 or not a valid matrix
    """
    if not isinstance(text, str):
        raise DecodeError(f"layer must be a base64 string, got {type(text).__name__}")
    try:
        data = base64.b64decode(text.encode('ascii'), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise DecodeError(f"base64 decoding: {e}") from e
    return decode_matrix(data)


def to_document(network: Network) -> Dict[str, Any]:
    """Build the JSON-ready document for a network."""
    return {
        'version': FORMAT_VERSION,
        'config': network.config.to_dict(),
        'layers': [matrix_to_text(w) for w in network.weights],
    }


def from_document(document: Any) -> Network:
    """
    Rebuild a network from a decoded JSON document.

    Weights go through the same validated constructor as programmatic
    construction, so shape disagreements raise ConfigMismatch.

    Raises:
        DecodeError: If the document is malformed or of an unknown version
        ConfigMismatch: If the weights disagree with the configuration
    """
    if not isinstance(document, dict):
        raise DecodeError("model document must be a JSON object")

    version = document.get('version')
    if version != FORMAT_VERSION:
        raise DecodeError(f"unsupported model format version: {version!r}")

    layers = document.get('layers')
    if not isinstance(layers, list):
        raise DecodeError("model document 'layers' must be a list")

    config_data = document.get('config')
    if not isinstance(config_data, dict):
        raise DecodeError("model document 'config' must be an object")
    try:
        config = NetworkConfig.from_dict(config_data)
    except KeyError as e:
        raise DecodeError(f"model config is missing field {e}") from e
    except TypeError as e:
        raise DecodeError(f"model config is malformed: {e}") from e

    weights = [matrix_from_text(layer) for layer in layers]
    return Network.new(config, weights)


def dumps(network: Network) -> bytes:
    """Serialize a network to UTF-8 JSON bytes."""
    return json.dumps(to_document(network)).encode('utf-8')


def loads(data: bytes) -> Network:
    """
    Deserialize a network from bytes produced by dumps().

    Raises:
        DecodeError: If the bytes are not a valid model document
        ConfigMismatch: If the weights disagree with the configuration
    """
    try:
        document = json.loads(data)
    except (UnicodeDecodeError, ValueError) as e:
        raise DecodeError(f"json decoding: {e}") from e
    return from_document(document)
