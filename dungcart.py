"""
Grid state engine for the dungcart mapper.

Holds the operations on a sparse floor -> row -> room map: bound tracking and
pruning, cursor movement with optional digging, exit editing, painting,
toroidal looping with room merging, floor shifting, and snapshot based
persistence with undo. Every operation takes an explicit MapperContext (or a
bare DungeonMap for the pure grid-store helpers); nothing is kept in module
globals.

Soft failures are reported through return values (MoveOutcome, RoomMove,
booleans). Exceptions are reserved for invalid arguments.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

from map_io import decode_map, encode_map, read_map, write_map
from map_types import (
    COMPASS,
    Direction,
    DungeonMap,
    Floor,
    Location,
    Loop,
    Room,
    Row,
    rotate,
)
from undo_log import DEFAULT_MAX_BYTES, DEFAULT_MAX_ENTRIES, UndoLog

logger = logging.getLogger(__name__)

HOME_FLOOR = 1
BOOKMARK_IDS = range(1, 5)


class Mode(Enum):
    """Interaction mode of the cursor."""

    EXPLORE = "x"  # Move relative to facing, digging if enabled
    READ = "r"  # Move in absolute directions, never digging
    PAINT = "p"  # Move in absolute directions, digging and painting


class MoveOutcome(Enum):
    """Result of a cursor move."""

    BLOCKED = "blocked"  # Destination does not exist and digging was off
    MOVED = "moved"  # Cursor moved onto existing geography
    DUG = "dug"  # A new room was created


class RoomMove(Enum):
    """Result of relocating a room onto another coordinate."""

    MOVED = "moved"  # Target was empty
    MERGED = "merged"  # Target held a room of the same shape
    CONFLICT = "conflict"  # Target held a different room; source left in place
    MISSING = "missing"  # No room at the source

    @property
    def succeeded(self) -> bool:
        return self in (RoomMove.MOVED, RoomMove.MERGED)


@dataclass(frozen=True)
class MapperConfig:
    """Settings for a mapping session."""

    undo_max_entries: int = DEFAULT_MAX_ENTRIES
    undo_max_bytes: int = DEFAULT_MAX_BYTES
    eight_directions: bool = False


# =============================================================================
# Session State
# =============================================================================


class Bookmarks:
    """Numbered flags placed on locations. One flag per location and vice versa."""

    def __init__(self) -> None:
        self._locations: dict[int, Location] = {}
        self._flags: dict[Location, int] = {}

    def __len__(self) -> int:
        return len(self._locations)

    def toggle(self, flag: int, location: Location) -> int | None:
        """
        Place `flag` at `location`, or remove it if it is already there.

        A flag already at the location is replaced; a flag placed elsewhere
        moves here.

        Returns:
            The flag now at the location, or None if it was removed
        """
        if flag not in BOOKMARK_IDS:
            raise ValueError(f"Bookmark id must be in 1-4, got {flag}")

        old_flag = self._flags.pop(location, None)
        if old_flag is not None:
            del self._locations[old_flag]
            if old_flag == flag:
                return None

        old_location = self._locations.pop(flag, None)
        if old_location is not None:
            del self._flags[old_location]

        self._locations[flag] = location
        self._flags[location] = flag
        return flag

    def flag_at(self, location: Location) -> int | None:
        return self._flags.get(location)

    def location_of(self, flag: int) -> Location | None:
        return self._locations.get(flag)


@dataclass
class Session:
    """Cursor and editing state. Never persisted."""

    z: int = HOME_FLOOR
    y: int = 0
    x: int = 0
    direction: Direction = Direction.N
    mode: Mode = Mode.EXPLORE
    dig_while_exploring: bool = False
    color: int = 0
    eight: bool = False
    small_view: bool = False
    bookmarks: Bookmarks = field(default_factory=Bookmarks)

    @property
    def location(self) -> Location:
        return Location(self.z, self.y, self.x)

    @property
    def digging(self) -> bool:
        return self.mode is Mode.EXPLORE and self.dig_while_exploring

    @property
    def mode_label(self) -> str:
        match self.mode:
            case Mode.EXPLORE:
                return "Digging" if self.dig_while_exploring else "Exploring"
            case Mode.READ:
                return "Reading"
            case Mode.PAINT:
                return "Painting"


@dataclass
class MapperContext:
    """Everything one editing session owns: the map, cursor, history and file."""

    dmap: DungeonMap
    session: Session = field(default_factory=Session)
    undo_log: UndoLog = field(default_factory=UndoLog)
    path: Path | None = None

    @property
    def floor(self) -> Floor | None:
        return self.dmap.get(self.session.z)

    @property
    def room(self) -> Room | None:
        return self.dmap.room_at(self.session.z, self.session.y, self.session.x)


def starting_floor() -> Floor:
    """The floor a brand new map begins with: one room at the origin with an up exit."""
    floor = new_floor(0, 0)
    floor.rows[0].rooms[0].u = True
    return floor


def load_context(path: Path | None, config: MapperConfig | None = None) -> MapperContext:
    """
    Load a map file into a fresh editing context.

    A missing or unreadable file is not an error: the context starts with a
    new map and digging enabled. The initial state is the first undo entry.
    """
    config = config or MapperConfig()
    dmap = read_map(path) if path is not None else None
    session = Session(eight=config.eight_directions)

    if dmap is None:
        dmap = DungeonMap()
    if HOME_FLOOR not in dmap:
        dmap.floors[HOME_FLOOR] = starting_floor()
        session.dig_while_exploring = True

    ctx = MapperContext(
        dmap,
        session,
        UndoLog(config.undo_max_entries, config.undo_max_bytes),
        path,
    )
    ctx.undo_log.push(encode_map(dmap))
    logger.info("Loaded map with %d floor(s) from %s", len(dmap.floors), path)
    return ctx


# =============================================================================
# Grid Store
# =============================================================================


def new_floor(y: int, x: int) -> Floor:
    """A floor holding exactly one empty room at (y, x)."""
    return Floor(y, y, {y: Row(x, x, {x: Room()})})


def _ensure_row(dmap: DungeonMap, z: int, y: int, x: int) -> Row:
    floor = dmap.floors.get(z)
    if floor is None:
        floor = dmap.floors[z] = Floor(y, y)

    row = floor.rows.get(y)
    if row is None:
        row = floor.rows[y] = Row(x, x)
        floor.min = min(floor.min, y)
        floor.max = max(floor.max, y)
    return row


def ensure_room(dmap: DungeonMap, z: int, y: int, x: int) -> Room:
    """Return the room at (z, y, x), creating it and widening bounds as needed."""
    row = _ensure_row(dmap, z, y, x)
    room = row.rooms.get(x)
    if room is None:
        room = row.rooms[x] = Room()
        row.min = min(row.min, x)
        row.max = max(row.max, x)
    return room


def delete_room(dmap: DungeonMap, z: int, y: int, x: int) -> bool:
    """Remove a room. Bounds are left alone until the next validate()."""
    floor = dmap.floors.get(z)
    row = floor.rows.get(y) if floor is not None else None
    if row is None or x not in row.rooms:
        return False
    del row.rooms[x]
    return True


def validate(
    dmap: DungeonMap,
    z: int | None = None,
    y: int | None = None,
    *,
    active_z: int | None = None,
) -> None:
    """
    Contract bounds past empty extremes and prune empty rows and floors.

    With no coordinates every floor is validated; with `z` every row of that
    floor; with `z` and `y` only that row. A floor is only deleted when it is
    neither the home floor nor `active_z`.
    """
    if z is None:
        for each_z in list(dmap.floors):
            validate(dmap, each_z, active_z=active_z)
        return

    floor = dmap.floors.get(z)
    if floor is None:
        return

    if y is None:
        for each_y in range(floor.min, floor.max + 1):
            validate(dmap, z, each_y, active_z=active_z)
            if each_y == floor.min and each_y not in floor.rows:
                floor.min += 1
        while floor.max >= floor.min and floor.max not in floor.rows:
            floor.max -= 1
        if floor.max < floor.min:
            floor.max = floor.min
        if (
            z != HOME_FLOOR
            and z != active_z
            and floor.min == floor.max
            and floor.min not in floor.rows
        ):
            logger.debug("Pruning empty floor %d", z)
            del dmap.floors[z]
        return

    row = floor.rows.get(y)
    if row is None:
        return

    while row.min <= row.max and row.min not in row.rooms:
        row.min += 1
    if row.min > row.max:
        row.min = row.max
    while row.max >= row.min and row.max not in row.rooms:
        row.max -= 1
    if row.max < row.min:
        row.max = row.min
    if row.min == row.max and row.min not in row.rooms:
        del floor.rows[y]


# =============================================================================
# Looping & Merge
# =============================================================================


def _wrap(value: int, low: int, high: int) -> int:
    if high < low:
        low, high = high, low
    return low + (value - low) % (high - low + 1)


def loop_y(floor: Floor | None, y: int) -> int:
    """Normalize a row coordinate into the floor's N/S loop window, if it has one."""
    loop = floor.loop if floor is not None else None
    if loop is None or not loop.loops_y:
        return y
    return _wrap(y, loop.n, loop.s)  # type: ignore[arg-type]


def loop_x(floor: Floor | None, x: int) -> int:
    """Normalize a column coordinate into the floor's W/E loop window, if it has one."""
    loop = floor.loop if floor is not None else None
    if loop is None or not loop.loops_x:
        return x
    return _wrap(x, loop.w, loop.e)  # type: ignore[arg-type]


def move_room(dmap: DungeonMap, source: Location, target: Location) -> RoomMove:
    """
    Relocate a room, merging it into an existing room at the target if possible.

    Two rooms merge only when they have the same shape (see Room.same_shape);
    the target keeps its colour and the notes are joined as "target/source".
    Otherwise the source stays where it is. The map must be validated and
    saved afterwards.
    """
    from_floor = dmap.floors.get(source.z)
    from_row = from_floor.rows.get(source.y) if from_floor is not None else None
    from_room = from_row.rooms.get(source.x) if from_row is not None else None
    if from_row is None or from_room is None:
        return RoomMove.MISSING

    to_room = dmap.room_at_location(target)
    if to_room is None:
        to_row = _ensure_row(dmap, target.z, target.y, target.x)
        to_row.rooms[target.x] = from_room
        to_row.min = min(to_row.min, target.x)
        to_row.max = max(to_row.max, target.x)
        del from_row.rooms[source.x]
        return RoomMove.MOVED

    if not from_room.same_shape(to_room):
        logger.warning("Cannot merge %s into %s: rooms differ", source, target)
        return RoomMove.CONFLICT

    if from_room.note:
        to_room.note = f"{to_room.note}/{from_room.note}" if to_room.note else from_room.note
    del from_row.rooms[source.x]
    return RoomMove.MERGED


def merge_loop(dmap: DungeonMap, z: int) -> list[Location]:
    """
    Fold every room lying outside a floor's loop window back into it.

    Rows are folded first, then columns.

    Returns:
        Locations of rooms that could not be merged and were left in place
    """
    floor = dmap.floors.get(z)
    if floor is None or floor.loop is None:
        return []

    conflicts: list[Location] = []

    def fold(source: Location, target: Location) -> None:
        if move_room(dmap, source, target) is RoomMove.CONFLICT:
            conflicts.append(source)

    if floor.loop.loops_y:
        for from_y in range(floor.min, floor.max + 1):
            row = floor.rows.get(from_y)
            if row is None:
                continue
            to_y = loop_y(floor, from_y)
            if to_y == from_y:
                continue
            for x in range(row.min, row.max + 1):
                if x in row.rooms:
                    fold(Location(z, from_y, x), Location(z, to_y, x))

    if floor.loop.loops_x:
        for y in range(floor.min, floor.max + 1):
            row = floor.rows.get(y)
            if row is None:
                continue
            for from_x in range(row.min, row.max + 1):
                if from_x not in row.rooms:
                    continue
                to_x = loop_x(floor, from_x)
                if to_x != from_x:
                    fold(Location(z, y, from_x), Location(z, y, to_x))

    if conflicts:
        logger.warning("Loop merge on floor %d left %d room(s) unmerged", z, len(conflicts))
    return conflicts


def set_loop(ctx: MapperContext, side: Direction) -> list[Location]:
    """
    Set one loop boundary of the current floor at the cursor.

    N and S take the cursor row, W and E the cursor column. An inverted pair
    is swapped. Rooms outside the new window are merged into it.

    Returns:
        Locations left unmerged because of conflicts
    """
    if side not in COMPASS:
        raise ValueError(f"Loop boundary must be N, S, W or E, got {side}")

    floor = ctx.floor
    if floor is None:
        return []

    loop = floor.loop = floor.loop or Loop()
    setattr(loop, side.key, ctx.session.x if side in (Direction.W, Direction.E) else ctx.session.y)
    if loop.loops_y and loop.s < loop.n:  # type: ignore[operator]
        loop.n, loop.s = loop.s, loop.n
    if loop.loops_x and loop.e < loop.w:  # type: ignore[operator]
        loop.w, loop.e = loop.e, loop.w

    conflicts = merge_loop(ctx.dmap, ctx.session.z)
    validate(ctx.dmap, active_z=ctx.session.z)
    save(ctx)
    return conflicts


def clear_loop(ctx: MapperContext) -> bool:
    floor = ctx.floor
    if floor is None or floor.loop is None:
        return False
    floor.loop = None
    validate(ctx.dmap, active_z=ctx.session.z)
    save(ctx)
    return True


def _shift_floors(
    ctx: MapperContext,
    all_floors: bool,
    shift: Callable[[Floor], None],
) -> list[Location]:
    conflicts: list[Location] = []
    for z, floor in list(ctx.dmap.floors.items()):
        if not all_floors and z != ctx.session.z:
            continue
        shift(floor)
        if floor.loop is not None:
            conflicts.extend(merge_loop(ctx.dmap, z))
    validate(ctx.dmap, active_z=ctx.session.z)
    save(ctx)
    return conflicts


def move_floor_x(ctx: MapperContext, by: int, all_floors: bool = False) -> list[Location]:
    """Shift every room on the current floor (or all floors) by `by` columns."""

    def shift(floor: Floor) -> None:
        for row in floor.rows.values():
            row.rooms = {x + by: room for x, room in row.rooms.items()}
            row.min += by
            row.max += by

    return _shift_floors(ctx, all_floors, shift)


def move_floor_y(ctx: MapperContext, by: int, all_floors: bool = False) -> list[Location]:
    """Shift every room on the current floor (or all floors) by `by` rows."""

    def shift(floor: Floor) -> None:
        floor.rows = {y + by: row for y, row in floor.rows.items()}
        floor.min += by
        floor.max += by

    return _shift_floors(ctx, all_floors, shift)


# =============================================================================
# Mutation Engine
# =============================================================================


def _find_existing(dmap: DungeonMap, target: Location) -> Location | None:
    if dmap.room_at_location(target) is not None:
        return target
    floor = dmap.get(target.z)
    wrapped = Location(target.z, loop_y(floor, target.y), loop_x(floor, target.x))
    if dmap.room_at_location(wrapped) is not None:
        return wrapped
    return None


def _change_floor(ctx: MapperContext, z: int) -> None:
    # Validation never prunes the active floor, so a floor we just left
    # only goes away once we are off it.
    ctx.session.z = z
    validate(ctx.dmap, active_z=z)
    save(ctx)


def _step(ctx: MapperContext, direction: Direction, dig: bool) -> MoveOutcome:
    session = ctx.session
    dmap = ctx.dmap
    source = ctx.room
    target = session.location.step(direction)

    if not dig:
        found = _find_existing(dmap, target)
        if found is None:
            return MoveOutcome.BLOCKED
        if found.z != session.z:
            _change_floor(ctx, found.z)
        session.y, session.x = found.y, found.x
        return MoveOutcome.MOVED

    floor = dmap.get(target.z) if target.z in dmap else ctx.floor
    y = loop_y(floor, target.y)
    x = loop_x(floor, target.x)
    is_new = dmap.room_at(target.z, y, x) is None

    if target.z not in dmap:
        dmap.floors[target.z] = new_floor(y, x)
    if target.z != session.z:
        _change_floor(ctx, target.z)
    session.y, session.x = y, x

    room = ensure_room(dmap, target.z, y, x)
    if not is_new:
        return MoveOutcome.MOVED

    if direction is Direction.U:
        room.d = True
    elif direction is not Direction.D:
        if source is not None:
            source.set_exit(direction)
        room.set_exit(direction.opposite)
    if session.color:
        room.color = session.color

    logger.debug("Dug %s into %s", direction.key, session.location)
    return MoveOutcome.DUG


def move(ctx: MapperContext, direction: Direction, dig: bool = False) -> MoveOutcome:
    """
    Move the cursor one step, optionally digging new geography.

    Without `dig` the move only succeeds onto an existing room (looked up at
    the raw coordinate first, then wrapped through the floor's loop). With
    `dig` the destination is wrapped first, missing floors, rows and rooms are
    created, and a new room is linked back to where we came from: a horizontal
    move links both rooms, moving up gives the new room a down exit, and
    moving down links nothing (it may have been a trap).

    Returns:
        DUG if a room was created (and the map saved), MOVED if the cursor
        moved onto existing geography, BLOCKED otherwise
    """
    outcome = _step(ctx, direction, dig)
    if outcome is MoveOutcome.DUG:
        save(ctx)
    return outcome


def toggle_exit(ctx: MapperContext, direction: Direction) -> bool:
    """
    Flip one exit of the current room.

    The down exit cycles through three states: none, exit, exit with trap.
    """
    room = ctx.room
    if room is None:
        return False

    if direction is Direction.D:
        if not room.d:
            room.d = True
        elif not room.trap:
            room.trap = True
        else:
            room.d = False
            room.trap = False
    else:
        room.set_exit(direction, not room.has_exit(direction))

    save(ctx)
    return True


def _paint_at(dmap: DungeonMap, z: int, y: int, x: int) -> None:
    floor = dmap.get(z)
    if floor is None:
        return
    room = floor.room_at(y, x)
    for direction in COMPASS:
        neighbor = floor.room_at(loop_y(floor, y + direction.dy), loop_x(floor, x + direction.dx))
        if room is not None and neighbor is not None:
            room.set_exit(direction)
            neighbor.set_exit(direction.opposite)
        elif room is not None:
            room.set_exit(direction, False)
        elif neighbor is not None:
            neighbor.set_exit(direction.opposite, False)


def one_way_exits(floor: Floor | None, y: int, x: int) -> tuple[Direction, ...]:
    """Compass exits of the room at (y, x) with no matching exit back from the neighbour."""
    if floor is None:
        return ()
    room = floor.room_at(y, x)
    if room is None:
        return ()
    result = []
    for direction in COMPASS:
        if not room.has_exit(direction):
            continue
        neighbor = floor.room_at(loop_y(floor, y + direction.dy), loop_x(floor, x + direction.dx))
        if neighbor is None or not neighbor.has_exit(direction.opposite):
            result.append(direction)
    return tuple(result)


def paint(ctx: MapperContext) -> None:
    """Make the compass exits around the cursor match which neighbours exist."""
    session = ctx.session
    _paint_at(ctx.dmap, session.z, session.y, session.x)
    save(ctx)


def move_paint(ctx: MapperContext, direction: Direction) -> MoveOutcome:
    """Dig one step, paint the new position, and save once."""
    outcome = _step(ctx, direction, dig=True)
    session = ctx.session
    _paint_at(ctx.dmap, session.z, session.y, session.x)
    save(ctx)
    return outcome


def recolor(ctx: MapperContext) -> bool:
    """Tag the current room with the session colour (0 clears it)."""
    room = ctx.room
    if room is None:
        return False
    room.color = ctx.session.color
    save(ctx)
    return True


def set_note(ctx: MapperContext, note: str) -> bool:
    room = ctx.room
    if room is None:
        return False
    room.note = note or None
    save(ctx)
    return True


def delete_current_room(ctx: MapperContext) -> bool:
    session = ctx.session
    if not delete_room(ctx.dmap, session.z, session.y, session.x):
        return False
    if session.mode is Mode.PAINT:
        _paint_at(ctx.dmap, session.z, session.y, session.x)
    validate(ctx.dmap, active_z=session.z)
    save(ctx)
    return True


# =============================================================================
# Cursor Commands (never touch the map)
# =============================================================================


def rotate_cursor(ctx: MapperContext, by: int) -> Direction:
    session = ctx.session
    session.direction = rotate(session.direction, by, session.eight)
    return session.direction


def select_explore(ctx: MapperContext, dig: bool) -> None:
    """Enter explore mode with the given digging setting, or toggle digging if already exploring."""
    session = ctx.session
    if session.mode is Mode.EXPLORE:
        session.dig_while_exploring = not session.dig_while_exploring
    else:
        session.mode = Mode.EXPLORE
        session.dig_while_exploring = dig


def toggle_mode(ctx: MapperContext, mode: Mode) -> Mode:
    """Switch into `mode`, or back to exploring if already in it."""
    session = ctx.session
    session.mode = Mode.EXPLORE if session.mode is mode else mode
    return session.mode


def validate_location(ctx: MapperContext) -> None:
    """Wrap the cursor into the current floor's loop window, except while reading."""
    session = ctx.session
    if session.mode is not Mode.READ:
        session.y = loop_y(ctx.floor, session.y)
        session.x = loop_x(ctx.floor, session.x)


def toggle_bookmark(ctx: MapperContext, flag: int) -> int | None:
    return ctx.session.bookmarks.toggle(flag, ctx.session.location)


# =============================================================================
# Persistence & Undo
# =============================================================================


def save(ctx: MapperContext) -> bytes:
    """Serialize the map, write it to the map file, and record it in the undo log."""
    snapshot = encode_map(ctx.dmap)
    if ctx.path is not None:
        write_map(ctx.path, snapshot)
    ctx.undo_log.push(snapshot)
    return snapshot


def undo(ctx: MapperContext) -> bool:
    """
    Revert to the second most recent saved state.

    The restored state is saved again on top of itself, so a repeated undo
    restores the same state rather than going further back.

    Returns:
        False if there was nothing to undo
    """
    snapshot = ctx.undo_log.pop_previous()
    if snapshot is None:
        logger.info("Nothing to undo")
        return False

    ctx.dmap = decode_map(snapshot)
    session = ctx.session
    if session.z not in ctx.dmap:
        session.z = HOME_FLOOR
    if session.z not in ctx.dmap:
        logger.warning("Undo state has no home floor; starting a new one")
        ctx.dmap.floors[session.z] = new_floor(0, 0)
        session.y = session.x = 0

    save(ctx)
    logger.info("Undo restored %d floor(s)", len(ctx.dmap.floors))
    return True
