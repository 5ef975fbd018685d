"""
Map snapshot envelope.

A snapshot is a compact JSON object, optionally gzip-compressed, carried as
unpadded base64url so it fits in a ``data`` query parameter::

    {"gw": 16, "gh": 16, "ts": [...], "eob": [...], "bgp": [...], "wp": [...], "fr": [...]}

``eob``, ``bgp``, ``wp`` and ``fr`` are omitted when they would only carry
defaults. Byte streams are stored as lists of ints because they compress
better than nested base64. Older snapshots used long key names, 4-bit
packed backgrounds in a base64 string and plain JSON object lists; those
are still read.
"""

import base64
import binascii
import gzip
import logging
import zlib
from typing import Any, Optional

import orjson

from ..maps.models import (
    MAX_TERRAIN_VALUE,
    Cell,
    EnvObject,
    EnvObjectType,
    MapState,
    Token,
    clamp_grid_size,
)
from .objects import decode_objects, encode_objects
from .terrain import b64decode_any, decode_backgrounds, decode_nibble_backgrounds, encode_backgrounds
from .water import decode_water, encode_water

logger = logging.getLogger(__name__)

DEFAULT_GRID = 16
GZIP_LEVEL = 6
DEFAULT_COMPRESSION_MARGIN = 20
# Canvas pixels per cell in snapshots that stored canvas size instead of grid size
LEGACY_CELL_PIXELS = 32


class MapCodecError(ValueError):
    """Snapshot text or payload could not be decoded."""


def token_to_envelope(token: Token) -> dict[str, Any]:
    """Short-key form of a token, omitting unset fields."""
    result: dict[str, Any] = {"tid": token.id, "x": token.x, "y": token.y}
    if token.is_gm_only:
        result["gm"] = True
    if token.color:
        result["color"] = token.color
    if token.avatar_url:
        result["url"] = token.avatar_url
    if token.border_color:
        result["bc"] = token.border_color
    if token.name:
        result["name"] = token.name
    if token.character_id is not None:
        result["characterId"] = token.character_id
    return result


def token_from_envelope(raw: dict[str, Any], fallback_id: int) -> Token:
    """Read a token written with either short or long keys."""
    token_id = _first(raw, "tid", "tokenId", "id")
    character_id = raw.get("characterId")
    return Token(
        id=int(token_id) if token_id is not None else fallback_id,
        x=float(raw.get("x", 0)),
        y=float(raw.get("y", 0)),
        is_gm_only=bool(_first(raw, "gm", "isGmOnly") or False),
        color=_optional_str(raw.get("color"), "color"),
        avatar_url=_optional_str(_first(raw, "url", "avatarUrl"), "url"),
        border_color=_optional_str(_first(raw, "bc", "borderColor"), "bc"),
        name=_optional_str(raw.get("name"), "name"),
        character_id=int(character_id) if character_id is not None else None,
    )


def _optional_str(value: Any, field: str) -> Optional[str]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise TypeError(f"{field} must be a string, got {type(value).__name__}")
    return value


def _first(raw: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def pack_envelope(state: MapState) -> dict[str, Any]:
    """Build the compact envelope for a map state."""
    gw, gh = state.grid_width, state.grid_height
    envelope: dict[str, Any] = {
        "gw": gw,
        "gh": gh,
        "ts": [token_to_envelope(token) for token in state.tokens],
    }

    if state.environment_objects:
        envelope["eob"] = list(encode_objects(state.environment_objects))

    if state.has_custom_backgrounds():
        envelope["bgp"] = list(encode_backgrounds(state.cell_backgrounds, gw, gh))

    if state.has_water():
        envelope["wp"] = list(encode_water(state.cell_water, gw, gh))

    if state.fog_revealed_areas:
        envelope["fr"] = [coord for cell in sorted(state.fog_revealed_areas) for coord in cell]

    return envelope


def expand_envelope(
    raw: Any, default_width: int = DEFAULT_GRID, default_height: int = DEFAULT_GRID
) -> MapState:
    """Build a map state from a parsed envelope (current or older layout).

    ``default_width`` and ``default_height`` apply when the envelope has no
    grid or canvas dimensions.

    Raises:
        MapCodecError: If the payload is not an object or has unusable fields
    """
    if not isinstance(raw, dict):
        raise MapCodecError(f"Snapshot payload must be an object, got {type(raw).__name__}")

    try:
        gw, gh = _grid_dimensions(raw, default_width, default_height)
        total = gw * gh

        backgrounds = _expand_backgrounds(raw, gw, gh)
        water = _expand_water(raw, gw, gh)
        if water is None or len(water) != total:
            water = [False] * total

        tokens = [
            token_from_envelope(item, index + 1)
            for index, item in enumerate(raw.get("ts") or raw.get("tokens") or [])
            if isinstance(item, dict)
        ]

        return MapState(
            grid_width=gw,
            grid_height=gh,
            cell_backgrounds=backgrounds,
            cell_water=water,
            tokens=tokens,
            environment_objects=_expand_objects(raw),
            fog_revealed_areas=_expand_fog(raw.get("fr")),
        )
    except MapCodecError:
        raise
    except (TypeError, ValueError) as e:
        raise MapCodecError(f"Malformed snapshot field: {e}") from e


def _grid_dimensions(
    raw: dict[str, Any], default_width: int, default_height: int
) -> tuple[int, int]:
    def dimension(short: str, long: str, canvas: str, default: int) -> int:
        value = _first(raw, short, long)
        if value is None and raw.get(canvas) is not None:
            value = int(raw[canvas]) // LEGACY_CELL_PIXELS
        if value is None:
            value = default
        return clamp_grid_size(value)

    return (
        dimension("gw", "gridWidth", "canvasWidth", default_width),
        dimension("gh", "gridHeight", "canvasHeight", default_height),
    )


def _expand_backgrounds(raw: dict[str, Any], gw: int, gh: int) -> Optional[list[int]]:
    plain = raw.get("cellBackgrounds")
    if isinstance(plain, list):
        if len(plain) == gw * gh:
            return [int(value) & MAX_TERRAIN_VALUE for value in plain]
        logger.warning(f"Ignoring cellBackgrounds with {len(plain)} entries for {gw}x{gh} grid")
        return None

    packed = raw.get("bgp")
    if isinstance(packed, list):
        return decode_backgrounds(bytes(packed), gw, gh)
    if isinstance(packed, str):
        return decode_nibble_backgrounds(packed, gw, gh)
    return None


def _expand_water(raw: dict[str, Any], gw: int, gh: int) -> Optional[list[bool]]:
    plain = raw.get("cellWater")
    if isinstance(plain, list):
        return [bool(flag) for flag in plain]

    packed = raw.get("wp")
    if isinstance(packed, list):
        return decode_water(bytes(packed), gw, gh)
    if isinstance(packed, str):
        return decode_water(b64decode_any(packed), gw, gh)
    return None


def _expand_objects(raw: dict[str, Any]) -> list[EnvObject]:
    packed = raw.get("eob")
    if isinstance(packed, list):
        return decode_objects(bytes(packed))

    listed = raw.get("eo")
    if not isinstance(listed, list):
        listed = raw.get("environmentObjects")
    if not isinstance(listed, list):
        return []

    objects = []
    for index, item in enumerate(listed, start=1):
        if not isinstance(item, dict):
            continue
        size = item.get("size")
        objects.append(
            EnvObject(
                id=int(item.get("id") or index),
                type=EnvObjectType.from_label(item.get("type")),
                x=float(item.get("x", 0)),
                y=float(item.get("y", 0)),
                color=_optional_str(item.get("color"), "color"),
                size=int(size) if size is not None else None,
            )
        )
    return objects


def _expand_fog(flat: Any) -> set[Cell]:
    if not isinstance(flat, list):
        return set()
    return {(int(flat[i]), int(flat[i + 1])) for i in range(0, len(flat) - 1, 2)}


def encode_map_state(state: MapState, compression_margin: int = DEFAULT_COMPRESSION_MARGIN) -> str:
    """Encode a map state as URL-safe snapshot text.

    The gzip form is kept only when it saves more than ``compression_margin``
    bytes over the plain JSON.

    Args:
        state: Map state to encode
        compression_margin: Minimum saving in bytes for compression to be used

    Returns:
        Unpadded base64url text
    """
    raw = orjson.dumps(pack_envelope(state))
    compressed = gzip.compress(raw, compresslevel=GZIP_LEVEL, mtime=0)

    if len(compressed) < len(raw) - compression_margin:
        body = compressed
    else:
        body = raw

    logger.debug(
        f"Encoded {state.grid_width}x{state.grid_height} map: json={len(raw)} bytes, "
        f"gzip={len(compressed)} bytes, used={'gzip' if body is compressed else 'json'}"
    )
    return base64.urlsafe_b64encode(body).rstrip(b"=").decode("ascii")


def _decompress(data: bytes) -> bytes:
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error):
        pass
    try:
        return zlib.decompress(data)
    except zlib.error:
        return data


def decode_map_state(
    data: str, default_width: int = DEFAULT_GRID, default_height: int = DEFAULT_GRID
) -> MapState:
    """Decode snapshot text produced by :func:`encode_map_state` or older clients.

    Raises:
        MapCodecError: If the text is not a valid snapshot
    """
    try:
        body = b64decode_any(data)
    except (binascii.Error, ValueError) as e:
        raise MapCodecError(f"Snapshot is not base64: {e}") from e

    try:
        parsed = orjson.loads(_decompress(body))
    except orjson.JSONDecodeError as e:
        raise MapCodecError(f"Snapshot is not JSON: {e}") from e

    return expand_envelope(parsed, default_width, default_height)


def decode_map_state_or_default(
    data: Optional[str], default_width: int = DEFAULT_GRID, default_height: int = DEFAULT_GRID
) -> MapState:
    """Decode snapshot text, falling back to an empty default map.

    Never raises for malformed input; the failure is logged as a warning.
    """
    if not data:
        return default_map_state(default_width, default_height)
    try:
        return decode_map_state(data, default_width, default_height)
    except MapCodecError as e:
        logger.warning(f"Could not decode map snapshot, using default map: {e}")
        return default_map_state(default_width, default_height)


def default_map_state(grid_width: int = DEFAULT_GRID, grid_height: int = DEFAULT_GRID) -> MapState:
    """Empty map with water materialized and default terrain."""
    return MapState(
        grid_width=grid_width,
        grid_height=grid_height,
        cell_water=[False] * (grid_width * grid_height),
    )
