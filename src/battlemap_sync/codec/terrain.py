"""Run-length codec for per-cell background values.

Stream layout, walked in row-major order:

- ``0xFF value count``: ``count`` cells (3..255) with ``value``
- any other byte: one cell, low 5 bits are the value

Values never exceed 0x1F so a raw byte can only equal 0xFF on malformed
input. The decoder reads ``0xFF`` as a run marker only when two more bytes
follow; a trailing ``0xFF`` becomes a raw cell value.
"""

import base64
from typing import Sequence

from ..maps.models import MAX_TERRAIN_VALUE

RUN_MARKER = 0xFF
MIN_RUN = 3
MAX_RUN = 255


def encode_backgrounds(values: Sequence[int], grid_width: int, grid_height: int) -> bytes:
    """Encode ``grid_width * grid_height`` background values.

    Missing values are encoded as 0 and values are masked to 5 bits.

    Returns:
        Encoded stream
    """
    total = grid_width * grid_height

    def value_at(index: int) -> int:
        return (values[index] if index < len(values) else 0) & MAX_TERRAIN_VALUE

    output = bytearray()
    i = 0
    while i < total:
        current = value_at(i)
        run = 1
        while i + run < total and run < MAX_RUN and value_at(i + run) == current:
            run += 1

        if run >= MIN_RUN:
            output += bytes((RUN_MARKER, current, run))
        else:
            output.extend(current for _ in range(run))
        i += run

    return bytes(output)


def decode_backgrounds(data: bytes, grid_width: int, grid_height: int) -> list[int]:
    """Decode a stream into exactly ``grid_width * grid_height`` values.

    A truncated stream is padded with 0 and surplus bytes are ignored.
    """
    total = grid_width * grid_height
    result: list[int] = []
    pos = 0

    while len(result) < total and pos < len(data):
        if data[pos] == RUN_MARKER and pos + 2 < len(data):
            value = data[pos + 1] & MAX_TERRAIN_VALUE
            count = min(data[pos + 2], total - len(result))
            result.extend([value] * count)
            pos += 3
        else:
            result.append(data[pos] & MAX_TERRAIN_VALUE)
            pos += 1

    result.extend([0] * (total - len(result)))
    return result


def decode_nibble_backgrounds(encoded: str, grid_width: int, grid_height: int) -> list[int]:
    """Decode the older base64 form holding two 4-bit values per byte.

    The even cell sits in the low nibble. Missing bytes read as 0.
    """
    data = b64decode_any(encoded)
    total = grid_width * grid_height
    result = []
    for i in range(total):
        byte = data[i >> 1] if (i >> 1) < len(data) else 0
        result.append(byte & 0x0F if i % 2 == 0 else (byte >> 4) & 0x0F)
    return result


def b64decode_any(encoded: str) -> bytes:
    """Decode base64 in either the URL-safe or the standard alphabet.

    Padding is optional.

    Raises:
        binascii.Error: If the text is not base64
    """
    text = encoded.strip().replace("-", "+").replace("_", "/")
    text += "=" * (-len(text) % 4)
    return base64.b64decode(text, validate=True)
