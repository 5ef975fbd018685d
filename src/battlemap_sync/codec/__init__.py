"""
Compact binary codecs for map snapshots.
"""

from .map_state import (
    MapCodecError,
    encode_map_state,
    decode_map_state,
    decode_map_state_or_default,
    default_map_state,
    pack_envelope,
    expand_envelope,
)
from .terrain import encode_backgrounds, decode_backgrounds
from .water import encode_water, decode_water
from .objects import encode_objects, decode_objects

__all__ = [
    "MapCodecError",
    "encode_map_state",
    "decode_map_state",
    "decode_map_state_or_default",
    "default_map_state",
    "pack_envelope",
    "expand_envelope",
    "encode_backgrounds",
    "decode_backgrounds",
    "encode_water",
    "decode_water",
    "encode_objects",
    "decode_objects",
]
