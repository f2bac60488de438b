"""
Interactive terminal mapper.
Display the current floor and edit the map with single-key commands.

Usage:
    python interactive_mapper.py <map file>         edit the map
    python interactive_mapper.py <map file> print   print a plain-text export
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import readchar
from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler
from rich.panel import Panel
from rich.text import Text

from ascii_render import PALETTE, describe_room, render_floor, render_header
from dungcart import (
    MapperContext,
    Mode,
    MoveOutcome,
    clear_loop,
    delete_current_room,
    load_context,
    move,
    move_floor_x,
    move_floor_y,
    move_paint,
    recolor,
    rotate_cursor,
    select_explore,
    set_loop,
    set_note,
    toggle_bookmark,
    toggle_exit,
    toggle_mode,
    undo,
    validate,
    validate_location,
)
from map_types import Direction, rotate
from printable import export_printable

logger = logging.getLogger(__name__)

ABSOLUTE_MOVES = {"w": Direction.N, "a": Direction.W, "s": Direction.S, "d": Direction.E}
VERTICAL_MOVES = {"r": Direction.U, "f": Direction.D}
# Exit toggles relative to facing: key -> rotation steps
RELATIVE_EXITS = {"W": 0, "A": -1, "S": 2, "D": 1}
RELATIVE_TURNS = {"a": -1, "s": 2, "d": 1}

HELP_TEXT = """\
space: Enter/exit explore mode
x: Enter/exit digging mode
t: Enter/exit read mode
g: Enter/exit paint mode
e: Edit note
c: Cycle paint colour, C: Recolour this room
v: Switch between view sizes
8: Toggle eight-direction turning
z: Delete room
o: Shift menu: move floors
l: Loop menu: set floor looping
1-4: Place/unplace flags 1-4
u: Undo
q: Quit

Movement: wasd, r = up, f = down
Explore: Move directionally
Digging: Move directionally, create new rooms
Read: Move in absolute directions
Paint: Move in absolute directions, painting rooms

Shift+wasdrf: Toggle exits"""

SHIFT_MENU_TEXT = """\
wasd: Move this floor in the given direction.
WASD: Move all floors in the given direction.
q: Cancel."""

LOOP_MENU_TEXT = """\
wasd: Set loop point at the cursor.
z: Clear looping data for this floor.
q: Cancel."""


class InteractiveMapper:
    """Key-driven editor over a MapperContext."""

    def __init__(self, ctx: MapperContext, console: Console | None = None) -> None:
        self.ctx = ctx
        self.console = console or Console()
        self.status_message = "Ready"
        self.menu: str | None = None
        self.note_buffer = ""

    # -------------------------------------------------------------------------
    # Display
    # -------------------------------------------------------------------------

    def loop_status(self) -> str:
        floor = self.ctx.floor
        if floor is None or floor.loop is None:
            return "non-looping"
        loop = floor.loop
        parts = [f"{side.upper()}: {-getattr(loop, side)}" for side in ("s", "n") if getattr(loop, side) is not None]
        parts += [f"{side.upper()}: {getattr(loop, side)}" for side in ("w", "e") if getattr(loop, side) is not None]
        return ", ".join(parts) or "non-looping"

    def generate_display(self) -> Panel:
        """Generate the current display with map, room info and status."""
        ctx = self.ctx
        width = min(self.console.size.width - 4, 120)
        height = max(self.console.size.height - 10, 5)

        body = Text()
        if self.menu == "help":
            body.append(HELP_TEXT)
        elif self.menu == "shift":
            body.append(SHIFT_MENU_TEXT)
        elif self.menu == "loop":
            body.append(LOOP_MENU_TEXT)
            body.append(f"\n\nCurrent loop status: {self.loop_status()}")
        else:
            body.append(render_header(ctx) + "\n", style="bold")
            body.append(Text.from_ansi(render_floor(ctx, width, height)))
            body.append("\n")
            body.append(describe_room(ctx.room) + "\n")
            if self.menu == "note":
                body.append("Note: ", style="bold")
                body.append(self.note_buffer + "_\n")

        body.append("\n")
        body.append("─" * 40 + "\n", style="dim")
        body.append(f"{ctx.session.mode_label}", style="bold cyan")
        if ctx.session.color:
            body.append(f"  colour {ctx.session.color}")
        body.append("  Status: ", style="bold")
        body.append(self.status_message)

        return Panel(body, title="dungcart", border_style="green")

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def report_move(self, outcome: MoveOutcome) -> None:
        location = self.ctx.session.location
        if outcome is MoveOutcome.BLOCKED:
            self.status_message = "✗ Nothing there"
        elif outcome is MoveOutcome.DUG:
            self.status_message = f"✓ Dug to {location}"
        else:
            self.status_message = f"Moved to {location}"

    def handle_move_key(self, key: str) -> None:
        ctx = self.ctx
        session = ctx.session
        match session.mode:
            case Mode.EXPLORE:
                if key == "w":
                    self.report_move(move(ctx, session.direction, session.digging))
                elif key in RELATIVE_TURNS:
                    rotate_cursor(ctx, RELATIVE_TURNS[key])
                else:
                    self.report_move(move(ctx, VERTICAL_MOVES[key], session.digging))
            case Mode.PAINT:
                direction = ABSOLUTE_MOVES.get(key) or VERTICAL_MOVES[key]
                self.report_move(move_paint(ctx, direction))
            case Mode.READ:
                direction = ABSOLUTE_MOVES.get(key) or VERTICAL_MOVES[key]
                self.report_move(move(ctx, direction, dig=False))

    def handle_note_key(self, key: str) -> None:
        if key in (readchar.key.ENTER, readchar.key.CR, readchar.key.LF):
            if set_note(self.ctx, self.note_buffer):
                self.status_message = "✓ Note saved" if self.note_buffer else "✓ Note cleared"
            else:
                self.status_message = "✗ No room to annotate"
            self.menu = None
        elif key == readchar.key.ESC:
            self.menu = None
            self.status_message = "Note unchanged"
        elif key == readchar.key.BACKSPACE:
            self.note_buffer = self.note_buffer[:-1]
        elif len(key) == 1 and key.isprintable():
            self.note_buffer += key

    def handle_shift_key(self, key: str) -> None:
        shifts = {
            "w": (move_floor_y, -1),
            "s": (move_floor_y, 1),
            "a": (move_floor_x, -1),
            "d": (move_floor_x, 1),
        }
        if key.lower() in shifts:
            shift, by = shifts[key.lower()]
            conflicts = shift(self.ctx, by, key.isupper())
            self.status_message = "✓ Shifted " + ("all floors" if key.isupper() else "this floor")
            if conflicts:
                self.status_message += f" ({len(conflicts)} room(s) could not merge)"
        self.menu = None

    def handle_loop_key(self, key: str) -> None:
        if key in ABSOLUTE_MOVES:
            conflicts = set_loop(self.ctx, ABSOLUTE_MOVES[key])
            self.status_message = f"✓ Loop set: {self.loop_status()}"
            if conflicts:
                self.status_message += f" ({len(conflicts)} room(s) could not merge)"
        elif key == "z":
            clear_loop(self.ctx)
            self.status_message = "✓ Looping cleared"
        self.menu = None

    def handle_key(self, key: str) -> bool:
        """Apply one key press. Returns False when the user asked to quit."""
        ctx = self.ctx
        session = ctx.session

        if self.menu == "note":
            self.handle_note_key(key)
            return True
        if self.menu == "shift":
            self.handle_shift_key(key)
            return True
        if self.menu == "loop":
            self.handle_loop_key(key)
            return True
        if self.menu == "help":
            self.menu = None
            return True

        match key:
            case "q":
                return False
            case "w" | "a" | "s" | "d" | "r" | "f":
                self.handle_move_key(key)
            case "W" | "A" | "S" | "D":
                toggle_exit(ctx, rotate(session.direction, RELATIVE_EXITS[key], session.eight))
            case "R":
                toggle_exit(ctx, Direction.U)
            case "F":
                toggle_exit(ctx, Direction.D)
            case "z":
                if delete_current_room(ctx):
                    self.status_message = "✓ Room deleted"
            case "e":
                room = ctx.room
                self.note_buffer = (room.note or "") if room is not None else ""
                self.menu = "note"
            case "c":
                session.color = (session.color + 1) % (len(PALETTE) + 1)
            case "C":
                recolor(ctx)
            case "v":
                session.small_view = not session.small_view
            case "8":
                session.eight = not session.eight
                self.status_message = "Eight-direction turning " + ("on" if session.eight else "off")
            case "t":
                toggle_mode(ctx, Mode.READ)
            case "g":
                toggle_mode(ctx, Mode.PAINT)
            case " ":
                select_explore(ctx, dig=False)
            case "x":
                select_explore(ctx, dig=True)
            case "1" | "2" | "3" | "4":
                flag = toggle_bookmark(ctx, int(key))
                self.status_message = f"Flag {flag} placed" if flag else "Flag removed"
            case "u":
                self.status_message = "✓ Undone" if undo(ctx) else "✗ Nothing to undo"
            case "o":
                self.menu = "shift"
            case "l":
                self.menu = "loop"
            case "h" | "H" | "/" | "?":
                self.menu = "help"
            case _:
                self.status_message = f"Unknown key: {key!r}"
        return True

    def run(self) -> None:
        """Run the interactive editor until the user quits."""
        with Live(self.generate_display(), console=self.console, refresh_per_second=4) as live:
            try:
                while True:
                    validate_location(self.ctx)
                    live.update(self.generate_display())
                    key = readchar.readkey()
                    if not self.handle_key(key):
                        self.status_message = "Quitting..."
                        live.update(self.generate_display())
                        break
            except KeyboardInterrupt:
                self.status_message = "Interrupted by user"
                live.update(self.generate_display())


def cli() -> None:
    if len(sys.argv) < 2:
        print("Use: interactive_mapper.py <map file> [print]", file=sys.stderr)
        sys.exit(1)

    path = Path(sys.argv[1])
    if len(sys.argv) > 2 and sys.argv[2] == "print":
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
        ctx = load_context(path)
        validate(ctx.dmap)
        sys.stdout.write(export_printable(ctx.dmap))
        return

    console = Console()
    logging.basicConfig(
        level=logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    InteractiveMapper(load_context(path), console).run()


if __name__ == "__main__":
    cli()
