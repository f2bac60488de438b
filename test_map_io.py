"""
Tests for the map file codec.
"""

import orjson
import pytest

from map_io import MapFormatError, decode_map, encode_map, map_to_dict, read_map, write_map
from map_types import DungeonMap, Floor, Loop, Room, Row


def sample_map() -> DungeonMap:
    return DungeonMap({
        1: Floor(0, 1, {
            0: Row(0, 1, {0: Room(e=True, u=True), 1: Room(w=True, s=True, note="altar", color=3)}),
            1: Row(1, 1, {1: Room(n=True, d=True, trap=True)}),
        }, Loop(n=0, s=1)),
        0: Floor(0, 0, {0: Row(0, 0, {0: Room(d=True)})}),
    })


# =============================================================================
# Test Encoding
# =============================================================================


class TestEncode:
    """Tests for converting maps to JSON data."""

    def test_room_keys(self) -> None:
        """Test the compact room representation."""
        data = map_to_dict(sample_map())
        assert data["1"]["0"]["0"] == {"e": 1, "u": 1}
        assert data["1"]["0"]["1"] == {"s": 1, "w": 1, "a": "altar", "c": 3}
        assert data["1"]["1"]["1"] == {"n": 1, "d": 1, "t": 1}

    def test_bounds_and_loop(self) -> None:
        """Test that bounds are written on every floor and row, and loops only when set."""
        data = map_to_dict(sample_map())
        assert (data["1"]["min"], data["1"]["max"]) == (0, 1)
        assert (data["1"]["0"]["min"], data["1"]["0"]["max"]) == (0, 1)
        assert data["1"]["loop"] == {"n": 0, "s": 1}
        assert "loop" not in data["0"]

    def test_encode_is_json(self) -> None:
        """Test that encoded bytes parse back to the same data."""
        dmap = sample_map()
        assert orjson.loads(encode_map(dmap)) == map_to_dict(dmap)


# =============================================================================
# Test Decoding
# =============================================================================


class TestDecode:
    """Tests for reading maps back."""

    def test_decode_restores_map(self) -> None:
        """Test that decoding an encoded map restores it exactly."""
        dmap = sample_map()
        assert decode_map(encode_map(dmap)) == dmap

    def test_missing_bounds_are_computed(self) -> None:
        """Test files that omit min/max."""
        dmap = decode_map('{"2": {"-1": {"3": {"n": 1}, "5": {}}, "4": {"0": {}}}}')
        floor = dmap.floors[2]
        assert (floor.min, floor.max) == (-1, 4)
        assert (floor.rows[-1].min, floor.rows[-1].max) == (3, 5)
        assert floor.rows[-1].rooms[3] == Room(n=True)
        assert floor.rows[-1].rooms[5] == Room()

    def test_stale_bounds_are_widened(self) -> None:
        """Test that stored bounds never exclude a present room."""
        dmap = decode_map(b'{"1": {"min": 0, "max": 0, "0": {"min": 0, "max": 0, "0": {}, "4": {}}}}')
        row = dmap.floors[1].rows[0]
        assert (row.min, row.max) == (0, 4)

    def test_partial_loop(self) -> None:
        """Test a loop with only one side configured."""
        dmap = decode_map(b'{"1": {"loop": {"w": -2}, "0": {"0": {}}}}')
        assert dmap.floors[1].loop == Loop(w=-2)

    def test_unknown_keys_are_skipped(self) -> None:
        """Test that extra non-coordinate keys do not reject the whole file."""
        dmap = decode_map(b'{"meta": {"v": 2}, "1": {"note": "x", "0": {"label": 3, "0": {"e": 1}}}}')
        assert list(dmap.floors) == [1]
        assert list(dmap.floors[1].rows) == [0]
        assert dmap.floors[1].rows[0].rooms == {0: Room(e=True)}

    def test_empty_document(self) -> None:
        """Test that an empty object is an empty map."""
        assert decode_map(b"{}") == DungeonMap()

    @pytest.mark.parametrize(
        "raw",
        [
            b'{"1": {"0": ',
            b"[1, 2]",
            b'{"1": {"0": "room"}}',
            b'{"1": {"loop": 3}}',
        ],
    )
    def test_bad_documents(self, raw: bytes) -> None:
        """Test that malformed documents raise MapFormatError."""
        with pytest.raises(MapFormatError):
            decode_map(raw)


# =============================================================================
# Test Files
# =============================================================================


class TestFiles:
    """Tests for reading and writing map files."""

    def test_write_then_read(self, tmp_path) -> None:
        """Test a file written by write_map is read back."""
        path = tmp_path / "dungeon.json"
        write_map(path, encode_map(sample_map()))
        assert read_map(path) == sample_map()

    def test_missing_file(self, tmp_path) -> None:
        """Test that a missing file reads as None."""
        assert read_map(tmp_path / "nope.json") is None

    def test_corrupt_file(self, tmp_path) -> None:
        """Test that a corrupt file reads as None."""
        path = tmp_path / "dungeon.json"
        path.write_text("not json at all")
        assert read_map(path) is None

    def test_directory_is_unreadable(self, tmp_path) -> None:
        """Test that an OS error while reading is reported as None."""
        assert read_map(tmp_path) is None
