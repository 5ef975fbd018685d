"""
Server synchronization: wire format, transport and polling controller.
"""

from .wire import (
    WireFormatError,
    token_to_wire,
    token_from_wire,
    battlemap_to_wire,
    battlemap_from_wire,
)
from .transport import BattlemapTransport, QtBattlemapTransport
from .controller import SyncController, compute_token_hash, merge_tokens

__all__ = [
    "WireFormatError",
    "token_to_wire",
    "token_from_wire",
    "battlemap_to_wire",
    "battlemap_from_wire",
    "BattlemapTransport",
    "QtBattlemapTransport",
    "SyncController",
    "compute_token_hash",
    "merge_tokens",
]
