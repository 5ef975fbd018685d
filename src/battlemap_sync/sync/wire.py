"""
Wire format of the session battlemap endpoint.

The server speaks camelCase JSON with short token aliases (``tid``, ``gm``,
``url``, ``bc``). These functions are the only place that knows the wire
names; everything else works with :mod:`battlemap_sync.maps.models`.
"""

from typing import Any, Optional

from ..maps.models import Battlemap, Cell, Token, clamp_grid_size


class WireFormatError(ValueError):
    """Payload from the server does not match the battlemap wire format."""


def token_to_wire(token: Token) -> dict[str, Any]:
    """Convert a token to its wire dict."""
    result: dict[str, Any] = {
        "tid": token.id,
        "x": token.x,
        "y": token.y,
        "gm": token.is_gm_only,
    }
    if token.color is not None:
        result["color"] = token.color
    if token.avatar_url is not None:
        result["url"] = token.avatar_url
    if token.border_color is not None:
        result["bc"] = token.border_color
    if token.name is not None:
        result["name"] = token.name
    if token.character_id is not None:
        result["characterId"] = token.character_id
    return result


def token_from_wire(raw: Any) -> Token:
    """Convert a wire dict to a token.

    ``tokenId`` is accepted when ``tid`` is missing.

    Raises:
        WireFormatError: If the id or coordinates are missing or not numeric
    """
    if not isinstance(raw, dict):
        raise WireFormatError(f"Token must be an object, got {type(raw).__name__}")

    token_id = raw.get("tid")
    if token_id is None:
        token_id = raw.get("tokenId")

    try:
        return Token(
            id=_require_int(token_id, "tid"),
            x=_require_number(raw.get("x"), "x"),
            y=_require_number(raw.get("y"), "y"),
            is_gm_only=bool(raw.get("gm") or False),
            color=_optional_str(raw.get("color")),
            avatar_url=_optional_str(raw.get("url")),
            border_color=_optional_str(raw.get("bc")),
            name=_optional_str(raw.get("name")),
            character_id=_optional_int(raw.get("characterId")),
        )
    except WireFormatError as e:
        raise WireFormatError(f"Invalid token {raw!r}: {e}") from e


def battlemap_to_wire(battlemap: Battlemap) -> dict[str, Any]:
    """Convert a battlemap to the PUT body."""
    result: dict[str, Any] = {
        "gridSize": battlemap.grid_size,
        "canvasWidth": battlemap.canvas_width,
        "canvasHeight": battlemap.canvas_height,
    }
    if battlemap.map_image_url is not None:
        result["mapImageUrl"] = battlemap.map_image_url
    result["tokens"] = [token_to_wire(token) for token in battlemap.tokens]
    result["fogRevealedAreas"] = [
        {"gridX": x, "gridY": y} for x, y in sorted(battlemap.fog_revealed_areas)
    ]
    return result


def battlemap_from_wire(raw: Any, defaults: Optional[Battlemap] = None) -> Battlemap:
    """Convert a GET/PUT response body to a battlemap.

    Missing scalar fields take their value from ``defaults`` (or the model
    defaults). ``gridSize`` is clamped to the supported range.

    Raises:
        WireFormatError: If the body or one of its entries is malformed
    """
    if not isinstance(raw, dict):
        raise WireFormatError(f"Battlemap must be an object, got {type(raw).__name__}")

    base = defaults or Battlemap()

    grid_size = raw.get("gridSize")
    canvas_width = raw.get("canvasWidth")
    canvas_height = raw.get("canvasHeight")

    tokens_raw = raw.get("tokens") or []
    fog_raw = raw.get("fogRevealedAreas") or []
    if not isinstance(tokens_raw, list):
        raise WireFormatError("tokens must be a list")
    if not isinstance(fog_raw, list):
        raise WireFormatError("fogRevealedAreas must be a list")

    return Battlemap(
        grid_size=clamp_grid_size(
            _require_int(grid_size, "gridSize") if grid_size is not None else base.grid_size
        ),
        canvas_width=(
            _require_int(canvas_width, "canvasWidth") if canvas_width is not None else base.canvas_width
        ),
        canvas_height=(
            _require_int(canvas_height, "canvasHeight") if canvas_height is not None else base.canvas_height
        ),
        map_image_url=_optional_str(raw.get("mapImageUrl")),
        tokens=[token_from_wire(item) for item in tokens_raw],
        fog_revealed_areas={_cell_from_wire(item) for item in fog_raw},
    )


def _cell_from_wire(raw: Any) -> Cell:
    if not isinstance(raw, dict):
        raise WireFormatError(f"Fog area must be an object, got {type(raw).__name__}")
    return (_require_int(raw.get("gridX"), "gridX"), _require_int(raw.get("gridY"), "gridY"))


def _require_number(value: Any, name: str) -> float:
    # bool is an int subclass but never a valid coordinate
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise WireFormatError(f"{name} must be a number, got {value!r}")
    return float(value)


def _require_int(value: Any, name: str) -> int:
    number = _require_number(value, name)
    if not number.is_integer():
        raise WireFormatError(f"{name} must be an integer, got {value!r}")
    return int(number)


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    return _require_int(value, "characterId")


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise WireFormatError(f"Expected a string, got {value!r}")
    return value
