"""
Demonstration scripts for the dungcart mapper.
"""

from ascii_render import render_floor, render_header
from dungcart import (
    Mode,
    load_context,
    move,
    move_paint,
    set_loop,
    set_note,
    toggle_exit,
    validate,
)
from map_types import Direction
from printable import export_printable


def digging_demo() -> None:
    """Dig a small two-floor dungeon and print it."""
    ctx = load_context(None)

    # A corridor east, a side room south, then stairs down from the far end
    for direction in (Direction.E, Direction.E, Direction.S):
        move(ctx, direction, dig=True)
    set_note(ctx, "fountain")
    move(ctx, Direction.N)
    toggle_exit(ctx, Direction.D)
    move(ctx, Direction.D, dig=True)
    move(ctx, Direction.W, dig=True)
    set_note(ctx, "locked chest")

    print("=" * 40)
    print("Current floor:")
    print("=" * 40)
    print(render_header(ctx))
    print(render_floor(ctx, 20, 5))
    print()

    print("=" * 40)
    print("Printable export:")
    print("=" * 40)
    validate(ctx.dmap)
    print(export_printable(ctx.dmap))


def looping_demo() -> None:
    """Paint a ring of rooms on a floor that wraps east to west."""
    ctx = load_context(None)
    ctx.session.mode = Mode.PAINT

    for _ in range(3):
        move_paint(ctx, Direction.E)
    set_loop(ctx, Direction.E)
    while ctx.session.x > 0:
        move(ctx, Direction.W)
    set_loop(ctx, Direction.W)

    # Painting east past the last room wraps to the first and closes the ring
    while ctx.session.x < 3:
        move(ctx, Direction.E)
    move_paint(ctx, Direction.E)

    print("=" * 40)
    print("Looping floor (wrapped copies dimmed):")
    print("=" * 40)
    print(render_header(ctx))
    print(render_floor(ctx, 40, 3))
    print()
    print(f"Cursor back at {ctx.session.location}")


if __name__ == "__main__":
    digging_demo()
    print()
    looping_demo()
