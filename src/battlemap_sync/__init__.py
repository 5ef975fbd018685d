"""
battlemap-sync: Shared tabletop battlemap codec and synchronization client

Encodes grid maps (terrain, water, tokens, objects, fog of war) into compact
URL-safe snapshots and keeps a session battlemap in sync with the server by
optimistic debounced saves and polling.
"""

__version__ = "0.1.0"
__author__ = "battlemap-sync Contributors"

from .utils.logging_config import setup_logging

# Main data models
from .maps.models import Token, EnvObject, EnvObjectType, MapState, Battlemap
from .maps.session import BattlemapSession

# Codecs and sync
from .codec import MapCodecError, encode_map_state, decode_map_state, decode_map_state_or_default
from .sync import SyncController, QtBattlemapTransport, WireFormatError

__all__ = [
    # Logging
    'setup_logging',

    # Data models
    'Token',
    'EnvObject',
    'EnvObjectType',
    'MapState',
    'Battlemap',
    'BattlemapSession',

    # Codecs
    'MapCodecError',
    'encode_map_state',
    'decode_map_state',
    'decode_map_state_or_default',

    # Sync
    'SyncController',
    'QtBattlemapTransport',
    'WireFormatError',
]
