"""
Shared type definitions for the dungcart mapper.

A map is a sparse stack of floors (Z), each a sparse set of rows (Y), each a
sparse set of rooms (X). Floors and rows carry inclusive min/max bounds of
their occupied range; see dungcart.validate for how those are kept tight.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum


class Direction(Enum):
    """Compass and vertical directions with their coordinate offsets."""

    N = ("n", 0, -1, 0)  # Decreasing row
    S = ("s", 0, 1, 0)  # Increasing row
    E = ("e", 1, 0, 0)  # Increasing column
    W = ("w", -1, 0, 0)  # Decreasing column
    NE = ("ne", 1, -1, 0)
    SE = ("se", 1, 1, 0)
    SW = ("sw", -1, 1, 0)
    NW = ("nw", -1, -1, 0)
    U = ("u", 0, 0, -1)  # Floor numbers grow downward
    D = ("d", 0, 0, 1)

    def __init__(self, key: str, dx: int, dy: int, dz: int) -> None:
        self.key = key
        self.dx = dx
        self.dy = dy
        self.dz = dz

    @property
    def is_vertical(self) -> bool:
        return self.dz != 0

    @property
    def opposite(self) -> Direction:
        return rotate(self, 2)

    @classmethod
    def from_key(cls, key: str) -> Direction:
        for direction in cls:
            if direction.key == key:
                return direction
        raise ValueError(f"Unknown direction key: {key!r}")


COMPASS = (Direction.N, Direction.S, Direction.E, Direction.W)

_RING_FOUR = (Direction.N, Direction.E, Direction.S, Direction.W)
_RING_EIGHT = (
    Direction.N,
    Direction.NE,
    Direction.E,
    Direction.SE,
    Direction.S,
    Direction.SW,
    Direction.W,
    Direction.NW,
)


def rotate(direction: Direction, by: int, eight: bool = False) -> Direction:
    """
    Rotate a direction by a signed number of steps.

    `by` is taken modulo 4: 1 steps clockwise, 3 (or -1) counter-clockwise and
    2 always turns around. In eight-direction mode a step is an eighth turn,
    otherwise a quarter turn. Up and down never rotate. A direction that is not
    on the active ring (a diagonal in four-direction mode) resolves to north.
    """
    if direction.is_vertical:
        return direction

    by %= 4
    if by == 0:
        return direction

    if by == 2:
        ring = _RING_EIGHT
        steps = 4
    else:
        ring = _RING_EIGHT if eight else _RING_FOUR
        steps = 1 if by == 1 else -1

    if direction not in ring:
        return Direction.N
    return ring[(ring.index(direction) + steps) % len(ring)]


# =============================================================================
# Map Structure
# =============================================================================


@dataclass(frozen=True)
class Location:
    """An absolute room coordinate."""

    z: int
    y: int
    x: int

    def __str__(self) -> str:
        return f"{self.z},{self.y},{self.x}"

    def step(self, direction: Direction) -> Location:
        return Location(self.z + direction.dz, self.y + direction.dy, self.x + direction.dx)


@dataclass
class Room:
    """A single cell: exit flags plus trap, note and colour metadata."""

    n: bool = False
    s: bool = False
    e: bool = False
    w: bool = False
    ne: bool = False
    se: bool = False
    sw: bool = False
    nw: bool = False
    u: bool = False
    d: bool = False
    trap: bool = False  # Only meaningful when d is set
    note: str | None = None
    color: int = 0

    def has_exit(self, direction: Direction) -> bool:
        return getattr(self, direction.key)

    def set_exit(self, direction: Direction, value: bool = True) -> None:
        setattr(self, direction.key, value)

    @property
    def exits(self) -> tuple[Direction, ...]:
        return tuple(d for d in Direction if self.has_exit(d))

    @property
    def is_bare(self) -> bool:
        return not self.exits

    def same_shape(self, other: Room) -> bool:
        """
        True when both rooms have the same exits, trap and colour presence.

        Notes and the colour value itself are ignored.
        """
        return (
            self.exits == other.exits
            and self.trap == other.trap
            and bool(self.color) == bool(other.color)
        )


EXIT_FIELDS = tuple(d.key for d in Direction)
ROOM_FIELDS = tuple(f.name for f in fields(Room))


@dataclass
class Loop:
    """Inclusive wrap boundaries. An axis loops only when both ends are set."""

    n: int | None = None
    s: int | None = None
    w: int | None = None
    e: int | None = None

    @property
    def loops_y(self) -> bool:
        return self.n is not None and self.s is not None

    @property
    def loops_x(self) -> bool:
        return self.w is not None and self.e is not None


@dataclass
class Row:
    """Rooms keyed by X, with the inclusive bounds of the occupied range."""

    min: int
    max: int
    rooms: dict[int, Room] = field(default_factory=dict)

    def __contains__(self, x: int) -> bool:
        return x in self.rooms

    def get(self, x: int) -> Room | None:
        return self.rooms.get(x)


@dataclass
class Floor:
    """Rows keyed by Y, with bounds and optional loop configuration."""

    min: int
    max: int
    rows: dict[int, Row] = field(default_factory=dict)
    loop: Loop | None = None

    def __contains__(self, y: int) -> bool:
        return y in self.rows

    def get(self, y: int) -> Row | None:
        return self.rows.get(y)

    def room_at(self, y: int, x: int) -> Room | None:
        row = self.rows.get(y)
        return row.rooms.get(x) if row is not None else None

    def room_count(self) -> int:
        return sum(len(row.rooms) for row in self.rows.values())


@dataclass
class DungeonMap:
    """The whole persisted map: floors keyed by Z."""

    floors: dict[int, Floor] = field(default_factory=dict)

    def __contains__(self, z: int) -> bool:
        return z in self.floors

    def get(self, z: int) -> Floor | None:
        return self.floors.get(z)

    def room_at(self, z: int, y: int, x: int) -> Room | None:
        floor = self.floors.get(z)
        return floor.room_at(y, x) if floor is not None else None

    def room_at_location(self, location: Location) -> Room | None:
        return self.room_at(location.z, location.y, location.x)

    def locations(self) -> list[Location]:
        """All occupied locations, ordered by Z, Y, X."""
        return [
            Location(z, y, x)
            for z in sorted(self.floors)
            for y in sorted(self.floors[z].rows)
            for x in sorted(self.floors[z].rows[y].rooms)
        ]
