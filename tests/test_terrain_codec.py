"""Tests for the background run-length codec."""

import random

import pytest

from battlemap_sync.codec.terrain import (
    b64decode_any,
    decode_backgrounds,
    decode_nibble_backgrounds,
    encode_backgrounds,
)


class TestTerrainEncode:
    """Test run-length encoding."""

    def test_empty_grid(self) -> None:
        """Test a zero-size grid encodes to nothing."""
        assert encode_backgrounds([], 0, 0) == b""
        assert decode_backgrounds(b"", 0, 0) == []

    def test_short_runs_are_raw(self) -> None:
        """Test runs shorter than three are stored byte by byte."""
        assert encode_backgrounds([1, 2, 2, 3], 2, 2) == bytes([1, 2, 2, 3])

    def test_long_runs_are_split(self) -> None:
        """Test runs longer than 255 cells use several records."""
        encoded = encode_backgrounds([4] * 600, 30, 20)
        assert encoded == bytes([0xFF, 4, 255, 0xFF, 4, 255, 0xFF, 4, 90])

    def test_multi_run_scenario(self) -> None:
        """Test a 16x16 map of value 2 with cells 10-14 set to 5."""
        values = [2] * 256
        values[10:15] = [5] * 5

        encoded = encode_backgrounds(values, 16, 16)

        assert encoded == bytes([0xFF, 2, 10, 0xFF, 5, 5, 0xFF, 2, 241])
        assert encoded.count(bytes([0xFF, 5, 5])) == 1
        assert decode_backgrounds(encoded, 16, 16) == values

    def test_values_masked_to_five_bits(self) -> None:
        """Test values above 31 keep their low five bits."""
        assert encode_backgrounds([33], 1, 1) == bytes([1])

    def test_missing_values_encode_as_zero(self) -> None:
        """Test a short value list is padded with zeros."""
        assert encode_backgrounds([7], 2, 2) == bytes([7, 0xFF, 0, 3])


class TestTerrainDecode:
    """Test decoding including malformed streams."""

    def test_truncated_stream_padded(self) -> None:
        """Test missing cells decode as 0."""
        assert decode_backgrounds(bytes([0xFF, 3, 2]), 2, 2) == [3, 3, 0, 0]

    def test_surplus_ignored(self) -> None:
        """Test a run longer than the grid is cut off."""
        assert decode_backgrounds(bytes([0xFF, 1, 10, 9]), 2, 2) == [1, 1, 1, 1]

    def test_trailing_marker_is_raw(self) -> None:
        """Test 0xFF without two following bytes is read as a value."""
        assert decode_backgrounds(bytes([1, 0xFF]), 2, 1) == [1, 31]
        assert decode_backgrounds(bytes([0xFF, 4]), 3, 1) == [31, 4, 0]


class TestTerrainRoundTrip:
    """Test decode(encode(v)) == v."""

    @pytest.mark.parametrize("width, height", [(1, 1), (3, 7), (16, 16), (50, 50)])
    def test_random_values(self, width: int, height: int) -> None:
        """Test random grids in the full value range."""
        rng = random.Random(width * 100 + height)
        values = [rng.randint(0, 31) for _ in range(width * height)]
        encoded = encode_backgrounds(values, width, height)
        assert decode_backgrounds(encoded, width, height) == values

    def test_marker_lookalike_values(self) -> None:
        """Test streams dense in 31 (the masked marker value) still round-trip."""
        rng = random.Random(31)
        for _ in range(200):
            count = rng.randint(0, 300)
            values = [rng.choice((31, 31, 31, 0, 1, 2, 30)) for _ in range(count)]
            encoded = encode_backgrounds(values, count, 1)
            assert decode_backgrounds(encoded, count, 1) == values


class TestLegacyFormats:
    """Test older background encodings."""

    def test_nibble_backgrounds(self) -> None:
        """Test two 4-bit values per byte, low nibble first."""
        # bytes 0x21 0x03
        assert decode_nibble_backgrounds("IQM", 2, 2) == [1, 2, 3, 0]

    def test_nibble_backgrounds_short_input(self) -> None:
        """Test missing bytes decode as 0."""
        assert decode_nibble_backgrounds("IQ", 2, 2) == [1, 2, 0, 0]

    def test_b64_alphabets(self) -> None:
        """Test URL-safe and standard alphabets both decode."""
        assert b64decode_any("-_8") == b"\xfb\xff"
        assert b64decode_any("+/8=") == b"\xfb\xff"
