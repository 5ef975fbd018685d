"""Bit-packed water mask: 8 cells per byte, cell ``i`` in bit ``i % 8`` of byte ``i // 8``."""

from typing import Sequence


def encode_water(flags: Sequence[bool], grid_width: int, grid_height: int) -> bytes:
    """Pack water flags for a grid.

    Trailing bits of the last byte are left clear.
    """
    total = grid_width * grid_height
    output = bytearray((total + 7) // 8)
    for i in range(min(total, len(flags))):
        if flags[i]:
            output[i >> 3] |= 1 << (i & 7)
    return bytes(output)


def decode_water(data: bytes, grid_width: int, grid_height: int) -> list[bool]:
    """Unpack exactly ``grid_width * grid_height`` flags.

    Missing bytes read as no water, surplus bits are ignored.
    """
    total = grid_width * grid_height
    return [
        (i >> 3) < len(data) and bool((data[i >> 3] >> (i & 7)) & 1)
        for i in range(total)
    ]
