"""
ASCII rendering for dungcart floors.

Draws a window of the current floor around the cursor, one box-drawing glyph
per room showing its compass exits. The normal view adds a marker column
after every room for stairs, traps, bookmarks, notes and one-way exits
(drawn as ^ v < >); the small view packs rooms edge to edge. Looping
floors are drawn repeated: wrapped copies of rooms are dimmed, and rooms
stranded outside the loop window are shown red.
"""

from __future__ import annotations

import logging
from typing import Callable

import simple_chalk as chalk  # type: ignore[import-untyped]

from dungcart import MapperContext, Mode, loop_x, loop_y, one_way_exits
from map_types import Direction, Floor, Location, Room

logger = logging.getLogger(__name__)

# Exit glyphs indexed by (n, e, s, w)
_BOX: dict[tuple[bool, bool, bool, bool], str] = {
    (True, True, True, True): "╬",
    (True, True, True, False): "╠",
    (True, True, False, True): "╩",
    (True, True, False, False): "╚",
    (True, False, True, True): "╣",
    (True, False, True, False): "║",
    (True, False, False, True): "╝",
    (True, False, False, False): "╹",
    (False, True, True, True): "╦",
    (False, True, True, False): "╔",
    (False, True, False, True): "═",
    (False, True, False, False): "╺",
    (False, False, True, True): "╗",
    (False, False, True, False): "╻",
    (False, False, False, True): "╸",
    (False, False, False, False): "□",
}

_FACING = {
    Direction.N: "▴",
    Direction.E: "▸",
    Direction.S: "▾",
    Direction.W: "◂",
}

_ONE_WAY = {
    Direction.N: "^",
    Direction.E: ">",
    Direction.S: "v",
    Direction.W: "<",
}

# Palette for room colour tags; tag n uses entry n - 1
PALETTE: list[Callable[[str], str]] = [
    chalk.red,
    chalk.green,
    chalk.yellow,
    chalk.blue,
    chalk.magenta,
    chalk.cyan,
    chalk.redBright,
    chalk.greenBright,
    chalk.yellowBright,
    chalk.blueBright,
]


def room_glyph(room: Room | None) -> str:
    """Box-drawing glyph for a room's compass exits, or a blank for no room."""
    if room is None:
        return " "
    return _BOX[(room.n, room.e, room.s, room.w)]


def one_way_glyph(directions: tuple[Direction, ...]) -> str | None:
    """Arrow for the first one-way exit, if there is any."""
    return _ONE_WAY[directions[0]] if directions else None


def marker_glyph(
    room: Room | None, flag: int | None = None, one_way: tuple[Direction, ...] = ()
) -> str:
    """
    Single character for a room's extra state, or a blank if it has none.

    Priority is trap, stairs, bookmark flag, one-way exit, then note.
    """
    if room is not None:
        if room.trap:
            return "⤓"
        if room.u and room.d:
            return "↕"
        if room.u:
            return "↑"
        if room.d:
            return "↓"
    if flag is not None:
        return str(flag)
    arrow = one_way_glyph(one_way)
    if arrow is not None:
        return arrow
    if room is not None and room.note:
        return "▤"
    return " "


def cursor_glyph(ctx: MapperContext) -> str:
    session = ctx.session
    if session.mode is not Mode.EXPLORE:
        return "●"
    return _FACING.get(session.direction, "●")


def _lookup(floor: Floor | None, y: int, x: int) -> tuple[Room | None, bool]:
    """Find the room shown at (y, x), and whether it is a wrapped copy."""
    if floor is None:
        return None, False
    room = floor.room_at(y, x)
    if room is not None:
        return room, False
    wrapped = floor.room_at(loop_y(floor, y), loop_x(floor, x))
    return wrapped, wrapped is not None


def render_floor(ctx: MapperContext, width: int = 80, height: int = 20) -> str:
    """
    Render the window of the current floor centred on the cursor.

    Args:
        ctx: The editing context to draw
        width: Available width in characters
        height: Available height in lines

    Returns:
        Rendered text with ANSI colour codes
    """
    session = ctx.session
    floor = ctx.floor
    cell_width = 1 if session.small_view else 2
    cols = max(1, width // cell_width)
    rows = max(1, height)
    min_y = session.y - rows // 2
    min_x = session.x - cols // 2
    logger.debug("render_floor: z=%d window y=%d x=%d %dx%d", session.z, min_y, min_x, cols, rows)

    lines = []
    for y in range(min_y, min_y + rows):
        line = []
        for x in range(min_x, min_x + cols):
            room, wrapped = _lookup(floor, y, x)
            in_window = loop_y(floor, y) == y and loop_x(floor, x) == x

            if wrapped:
                colorize = chalk.blackBright
            elif room is not None and not in_window:
                colorize = chalk.red
            elif room is not None and room.color:
                colorize = PALETTE[(room.color - 1) % len(PALETTE)]
            else:
                colorize = chalk.white

            if (y, x) == (session.y, session.x):
                glyph = cursor_glyph(ctx)
                colorize = chalk.bgWhite.black
            else:
                glyph = room_glyph(room)
            cell = glyph
            if not session.small_view:
                ry, rx = (loop_y(floor, y), loop_x(floor, x)) if wrapped else (y, x)
                flag = session.bookmarks.flag_at(Location(session.z, loop_y(floor, y), loop_x(floor, x)))
                cell += marker_glyph(room, flag, one_way_exits(floor, ry, rx))
            line.append(colorize(cell))
        lines.append("".join(line))
    return "\n".join(lines)


def describe_room(room: Room | None) -> str:
    """One-line summary of a room for the status area."""
    if room is None:
        return "No room here"
    parts = []
    exits = [d.key for d in room.exits if not (d is Direction.D and room.trap)]
    if room.trap:
        exits.append("d (trap)")
    parts.append("Exits: " + (", ".join(exits) if exits else "none"))
    if room.color:
        parts.append(f"Color: {room.color}")
    if room.note:
        parts.append(f"Note: {room.note}")
    return ". ".join(parts)


def render_header(ctx: MapperContext) -> str:
    session = ctx.session
    loop = ctx.floor.loop if ctx.floor is not None else None
    header = f"Floor {session.z} ({session.x}, {-session.y})"
    if loop is not None and (loop.loops_x or loop.loops_y):
        header += " [looping]"
    return header
