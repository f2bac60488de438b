"""
Map file encoding and decoding for dungcart.

The on-disk format is a single JSON document mirroring the nested
floor -> row -> room structure:

    {
        "1": {
            "min": 0, "max": 0,
            "loop": {"n": 0, "s": 2},
            "0": {"min": 0, "max": 1, "0": {"e": 1, "u": 1}, "1": {"w": 1, "a": "stairs?"}}
        }
    }

Exit flags are stored as the literal 1, a trapped down exit as "t": 1, the
note as "a" and the colour as "c". Keys that are absent are simply unset.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import orjson

from map_types import EXIT_FIELDS, DungeonMap, Floor, Loop, Room, Row

__all__ = [
    "MapFormatError",
    "decode_map",
    "encode_map",
    "map_from_dict",
    "map_to_dict",
    "read_map",
    "write_map",
]

logger = logging.getLogger(__name__)

_BOUND_KEYS = ("min", "max")
_LOOP_KEYS = ("n", "s", "w", "e")


class MapFormatError(ValueError):
    """Raised when a document does not describe a map."""


# =============================================================================
# Encoding
# =============================================================================


def room_to_dict(room: Room) -> dict[str, Any]:
    data: dict[str, Any] = {key: 1 for key in EXIT_FIELDS if getattr(room, key)}
    if room.trap:
        data["t"] = 1
    if room.note:
        data["a"] = room.note
    if room.color:
        data["c"] = room.color
    return data


def map_to_dict(dmap: DungeonMap) -> dict[str, Any]:
    """Convert a map into plain JSON-ready data with string keys."""
    result: dict[str, Any] = {}
    for z, floor in dmap.floors.items():
        floor_data: dict[str, Any] = {"min": floor.min, "max": floor.max}
        if floor.loop is not None:
            floor_data["loop"] = {
                key: getattr(floor.loop, key)
                for key in _LOOP_KEYS
                if getattr(floor.loop, key) is not None
            }
        for y, row in floor.rows.items():
            row_data: dict[str, Any] = {"min": row.min, "max": row.max}
            for x, room in row.rooms.items():
                row_data[str(x)] = room_to_dict(room)
            floor_data[str(y)] = row_data
        result[str(z)] = floor_data
    return result


def encode_map(dmap: DungeonMap) -> bytes:
    return orjson.dumps(map_to_dict(dmap))


# =============================================================================
# Decoding
# =============================================================================


def _expect_dict(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise MapFormatError(f"Expected an object for {what}, got {type(value).__name__}")
    return value


def _coordinate_items(data: dict[str, Any], reserved: tuple[str, ...]) -> list[tuple[int, Any]]:
    items = []
    for key, value in data.items():
        if key in reserved:
            continue
        try:
            coordinate = int(key)
        except ValueError:
            logger.debug("Skipping unknown key %r", key)
            continue
        items.append((coordinate, value))
    return items


def _bounds(data: dict[str, Any], coordinates: list[int]) -> tuple[int, int]:
    """Stored bounds, widened to cover every present coordinate."""
    low = data.get("min")
    high = data.get("max")
    if coordinates:
        low = min(coordinates) if not isinstance(low, int) else min(low, *coordinates)
        high = max(coordinates) if not isinstance(high, int) else max(high, *coordinates)
    low = low if isinstance(low, int) else 0
    high = high if isinstance(high, int) else low
    return low, max(low, high)


def room_from_dict(data: Any) -> Room:
    data = _expect_dict(data, "room")
    room = Room(
        trap=bool(data.get("t")),
        note=str(data["a"]) if data.get("a") else None,
        color=int(data.get("c") or 0),
    )
    for key in EXIT_FIELDS:
        if data.get(key):
            setattr(room, key, True)
    return room


def row_from_dict(data: Any) -> Row:
    data = _expect_dict(data, "row")
    rooms = {x: room_from_dict(value) for x, value in _coordinate_items(data, _BOUND_KEYS)}
    low, high = _bounds(data, list(rooms))
    return Row(low, high, rooms)


def floor_from_dict(data: Any) -> Floor:
    data = _expect_dict(data, "floor")
    rows = {
        y: row_from_dict(value)
        for y, value in _coordinate_items(data, _BOUND_KEYS + ("loop",))
    }
    low, high = _bounds(data, list(rows))
    loop = None
    if "loop" in data:
        loop_data = _expect_dict(data["loop"], "loop")
        loop = Loop(**{
            key: int(loop_data[key])
            for key in _LOOP_KEYS
            if isinstance(loop_data.get(key), (int, float))
        })
    return Floor(low, high, rows, loop)


def map_from_dict(data: Any) -> DungeonMap:
    """Build a map from decoded JSON data, tolerating absent fields."""
    data = _expect_dict(data, "map")
    return DungeonMap({z: floor_from_dict(value) for z, value in _coordinate_items(data, ())})


def decode_map(raw: bytes | str) -> DungeonMap:
    """
    Decode a serialized map.

    Raises:
        MapFormatError: If the document is not valid JSON or not shaped like a map
    """
    try:
        data = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise MapFormatError(f"Invalid map JSON: {e}") from e
    try:
        return map_from_dict(data)
    except MapFormatError:
        raise
    except (TypeError, ValueError) as e:
        raise MapFormatError(f"Invalid map data: {e}") from e


# =============================================================================
# Files
# =============================================================================


def read_map(path: Path) -> DungeonMap | None:
    """
    Read a map file.

    Returns:
        The decoded map, or None when the file is missing or unreadable
    """
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        logger.info("No map file at %s, starting fresh", path)
        return None
    except OSError as e:
        logger.warning("Could not read map file %s: %s", path, e)
        return None

    try:
        return decode_map(raw)
    except MapFormatError as e:
        logger.warning("Ignoring unreadable map file %s: %s", path, e)
        return None


def write_map(path: Path, raw: bytes) -> None:
    """Overwrite the map file with an already encoded map."""
    path.write_bytes(raw)
    logger.debug("Wrote %d bytes to %s", len(raw), path)
