"""
Binary records for environment objects.

Each object is stored without its id as::

    type:u8  x:u16le  y:u16le  flags:u8  [r:u8 g:u8 b:u8]  [size:u8]

``flags`` bit 0 marks the color triple, bit 1 the size byte. Decoding stops
at the first incomplete record; whatever was read before is kept.
"""

import logging
import struct
from typing import Iterable, Optional

from ..maps.models import EnvObject, EnvObjectType

logger = logging.getLogger(__name__)

_PREFIX = struct.Struct("<BHHB")

FLAG_COLOR = 0x01
FLAG_SIZE = 0x02


def hex_to_rgb(color: str) -> tuple[int, int, int]:
    """Parse ``#rrggbb`` (the ``#`` is optional).

    Components that are missing or not hex read as 0.
    """
    digits = color.replace("#", "", 1)
    components = []
    for start in (0, 2, 4):
        try:
            components.append(int(digits[start:start + 2], 16) & 0xFF)
        except ValueError:
            components.append(0)
    return components[0], components[1], components[2]


def rgb_to_hex(red: int, green: int, blue: int) -> str:
    """Format a color as lowercase ``#rrggbb``."""
    return f"#{red:02x}{green:02x}{blue:02x}"


def encode_objects(objects: Iterable[EnvObject]) -> bytes:
    """Pack objects into consecutive records.

    Coordinates are rounded and wrapped to 16 bits, sizes clamped to 0..255.
    """
    output = bytearray()
    for obj in objects:
        has_color = bool(obj.color)
        has_size = obj.size is not None

        flags = 0
        if has_color:
            flags |= FLAG_COLOR
        if has_size:
            flags |= FLAG_SIZE

        output += _PREFIX.pack(
            int(obj.type),
            round(obj.x) & 0xFFFF,
            round(obj.y) & 0xFFFF,
            flags,
        )
        if has_color:
            output += bytes(hex_to_rgb(obj.color))
        if has_size:
            output.append(max(0, min(255, round(obj.size))))

    return bytes(output)


def decode_objects(data: bytes) -> list[EnvObject]:
    """Unpack records, assigning ids from 1 in stream order."""
    objects: list[EnvObject] = []
    pos = 0
    record_start = 0

    while pos + _PREFIX.size <= len(data):
        record_start = pos
        type_index, x, y, flags = _PREFIX.unpack_from(data, pos)
        pos += _PREFIX.size

        color: Optional[str] = None
        if flags & FLAG_COLOR:
            if pos + 3 > len(data):
                break
            color = rgb_to_hex(data[pos], data[pos + 1], data[pos + 2])
            pos += 3

        size: Optional[int] = None
        if flags & FLAG_SIZE:
            if pos >= len(data):
                break
            size = data[pos]
            pos += 1

        objects.append(
            EnvObject(
                id=len(objects) + 1,
                type=EnvObjectType.from_index(type_index),
                x=x,
                y=y,
                color=color,
                size=size,
            )
        )
    else:
        record_start = pos

    if record_start < len(data):
        logger.debug(f"Dropped {len(data) - record_start} trailing bytes of a truncated object record")

    return objects
