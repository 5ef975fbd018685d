"""Tests for the battlemap wire format."""

import pytest

from battlemap_sync.maps.models import Battlemap, Token
from battlemap_sync.sync.wire import (
    WireFormatError,
    battlemap_from_wire,
    battlemap_to_wire,
    token_from_wire,
    token_to_wire,
)


class TestTokenWire:
    """Test token conversion."""

    def test_to_wire_aliases(self) -> None:
        """Test short aliases and omitted unset fields."""
        token = Token(id=7, x=12.5, y=3.0, avatar_url="a.png", border_color="#111111")
        assert token_to_wire(token) == {
            "tid": 7,
            "x": 12.5,
            "y": 3.0,
            "gm": False,
            "url": "a.png",
            "bc": "#111111",
        }

    def test_from_wire(self) -> None:
        """Test all fields are read."""
        raw = {
            "id": 991,
            "tid": 7,
            "x": 12,
            "y": 3.5,
            "gm": True,
            "color": "#ff0000",
            "url": "a.png",
            "bc": "#111111",
            "name": "Alrik",
            "characterId": 12,
        }
        assert token_from_wire(raw) == Token(
            id=7,
            x=12.0,
            y=3.5,
            is_gm_only=True,
            color="#ff0000",
            avatar_url="a.png",
            border_color="#111111",
            name="Alrik",
            character_id=12,
        )

    def test_token_id_fallback(self) -> None:
        """Test tokenId is used when tid is absent."""
        assert token_from_wire({"tokenId": 4, "x": 0, "y": 0}).id == 4

    def test_empty_strings_are_unset(self) -> None:
        """Test empty optional strings read as None."""
        token = token_from_wire({"tid": 1, "x": 0, "y": 0, "url": "", "name": ""})
        assert token.avatar_url is None
        assert token.name is None

    @pytest.mark.parametrize(
        "raw",
        [
            {"x": 0, "y": 0},
            {"tid": 1, "x": "left", "y": 0},
            {"tid": 1, "x": True, "y": 0},
            {"tid": 1.5, "x": 0, "y": 0},
            {"tid": 1, "x": 0, "y": 0, "color": 5},
            [1, 2, 3],
        ],
    )
    def test_invalid_tokens(self, raw: object) -> None:
        """Test malformed tokens are rejected."""
        with pytest.raises(WireFormatError):
            token_from_wire(raw)


class TestBattlemapWire:
    """Test battlemap conversion."""

    def test_to_wire(self) -> None:
        """Test field names, sorted fog areas and optional image URL."""
        battlemap = Battlemap(
            grid_size=12,
            canvas_width=600,
            canvas_height=400,
            tokens=[Token(id=1, x=25.0, y=25.0)],
            fog_revealed_areas={(2, 1), (0, 3)},
        )
        assert battlemap_to_wire(battlemap) == {
            "gridSize": 12,
            "canvasWidth": 600,
            "canvasHeight": 400,
            "tokens": [{"tid": 1, "x": 25.0, "y": 25.0, "gm": False}],
            "fogRevealedAreas": [{"gridX": 0, "gridY": 3}, {"gridX": 2, "gridY": 1}],
        }

    def test_round_trip(self) -> None:
        """Test conversion there and back is lossless."""
        battlemap = Battlemap(
            grid_size=20,
            canvas_width=800,
            canvas_height=800,
            map_image_url="/maps/1.svg",
            tokens=[Token(id=2, x=60.0, y=100.0, is_gm_only=True, name="Trap", character_id=3)],
            fog_revealed_areas={(1, 1)},
        )
        assert battlemap_from_wire(battlemap_to_wire(battlemap)) == battlemap

    def test_grid_size_clamped(self) -> None:
        """Test gridSize is clamped to 1..50."""
        assert battlemap_from_wire({"gridSize": 80}).grid_size == 50
        assert battlemap_from_wire({"gridSize": 0}).grid_size == 1

    def test_missing_fields_use_defaults(self) -> None:
        """Test absent scalars come from the given defaults."""
        defaults = Battlemap(grid_size=8, canvas_width=640, canvas_height=480)
        battlemap = battlemap_from_wire({"tokens": None}, defaults=defaults)
        assert (battlemap.grid_size, battlemap.canvas_width, battlemap.canvas_height) == (8, 640, 480)
        assert battlemap.tokens == []
        assert battlemap.fog_revealed_areas == set()

    @pytest.mark.parametrize(
        "raw",
        [
            "battlemap",
            {"tokens": {"tid": 1}},
            {"fogRevealedAreas": [{"gridX": 1}]},
            {"fogRevealedAreas": [[1, 2]]},
            {"canvasWidth": "wide"},
        ],
    )
    def test_invalid_battlemaps(self, raw: object) -> None:
        """Test malformed bodies are rejected."""
        with pytest.raises(WireFormatError):
            battlemap_from_wire(raw)
