"""
Tests for the terminal floor renderer.
"""

import re

from ascii_render import describe_room, marker_glyph, render_floor, render_header, room_glyph
from dungcart import Mode, load_context, move, toggle_exit
from map_types import Direction, Loop, Room

ANSI = re.compile(r"\x1b\[[0-9;]*m")


def plain(text: str) -> str:
    return ANSI.sub("", text)


def three_room_context():
    """A row of three rooms at x = 0..2 with the cursor on the middle one."""
    ctx = load_context(None)
    move(ctx, Direction.E, dig=True)
    move(ctx, Direction.E, dig=True)
    move(ctx, Direction.W)
    return ctx


# =============================================================================
# Test Glyphs
# =============================================================================


class TestGlyphs:
    """Tests for single-room glyphs."""

    def test_room_glyph(self) -> None:
        """Test box-drawing glyphs for compass exits."""
        assert room_glyph(None) == " "
        assert room_glyph(Room()) == "□"
        assert room_glyph(Room(n=True, e=True, s=True, w=True)) == "╬"
        assert room_glyph(Room(e=True, w=True)) == "═"
        assert room_glyph(Room(s=True, w=True, u=True)) == "╗"

    def test_marker_glyph(self) -> None:
        """Test marker priority: trap, stairs, flag, one-way exit, note."""
        assert marker_glyph(Room(d=True, trap=True, u=True)) == "⤓"
        assert marker_glyph(Room(u=True, d=True)) == "↕"
        assert marker_glyph(Room(u=True), flag=2) == "↑"
        assert marker_glyph(Room(d=True)) == "↓"
        assert marker_glyph(Room(note="x"), flag=3) == "3"
        assert marker_glyph(Room(note="x"), one_way=(Direction.S,)) == "v"
        assert marker_glyph(Room(u=True), one_way=(Direction.W,)) == "↑"
        assert marker_glyph(Room(), flag=1, one_way=(Direction.N,)) == "1"
        assert marker_glyph(Room(), one_way=(Direction.E, Direction.W)) == ">"
        assert marker_glyph(Room(note="x")) == "▤"
        assert marker_glyph(None, flag=4) == "4"
        assert marker_glyph(None) == " "
        assert marker_glyph(Room()) == " "

    def test_describe_room(self) -> None:
        """Test the one-line room summary."""
        assert describe_room(None) == "No room here"
        assert describe_room(Room()) == "Exits: none"
        room = Room(n=True, d=True, trap=True, color=2, note="pit")
        assert describe_room(room) == "Exits: n, d (trap). Color: 2. Note: pit"


# =============================================================================
# Test Floor Rendering
# =============================================================================


class TestRenderFloor:
    """Tests for rendering a window of the current floor."""

    def test_small_view(self) -> None:
        """Test one character per room around the cursor."""
        ctx = three_room_context()
        ctx.session.small_view = True
        assert plain(render_floor(ctx, 5, 3)).split("\n") == ["     ", " ╺▴╸ ", "     "]

    def test_normal_view_has_markers(self) -> None:
        """Test that the normal view adds a marker column."""
        ctx = three_room_context()
        assert plain(render_floor(ctx, 6, 1)) == "╺↑▴ ╸ "

    def test_one_way_exit_marker(self) -> None:
        """Test that an exit with no way back is marked with an arrow."""
        ctx = load_context(None)
        move(ctx, Direction.E, dig=True)
        toggle_exit(ctx, Direction.N)
        assert plain(render_floor(ctx, 4, 1)) == "╺↑▴^"

    def test_cursor_glyph_by_mode(self) -> None:
        """Test the cursor shows facing only while exploring."""
        ctx = three_room_context()
        ctx.session.small_view = True
        ctx.session.direction = Direction.E
        assert plain(render_floor(ctx, 1, 1)) == "▸"
        ctx.session.mode = Mode.PAINT
        assert plain(render_floor(ctx, 1, 1)) == "●"

    def test_looping_floor_repeats(self) -> None:
        """Test that rooms are drawn again past the loop window."""
        ctx = three_room_context()
        ctx.floor.loop = Loop(w=0, e=2)
        ctx.session.small_view = True
        assert plain(render_floor(ctx, 5, 1)) == "╸╺▴╸╺"

    def test_window_size(self) -> None:
        """Test the number of lines drawn."""
        ctx = three_room_context()
        assert len(render_floor(ctx, 80, 20).split("\n")) == 20


class TestHeader:
    """Tests for the floor header line."""

    def test_header(self) -> None:
        """Test floor number and cursor position, with Y shown north-positive."""
        ctx = three_room_context()
        move(ctx, Direction.S, dig=True)
        assert render_header(ctx) == "Floor 1 (1, -1)"

    def test_header_looping(self) -> None:
        """Test the looping suffix appears only for a complete axis."""
        ctx = three_room_context()
        ctx.floor.loop = Loop(n=0)
        assert render_header(ctx) == "Floor 1 (1, 0)"
        ctx.floor.loop = Loop(n=0, s=0)
        assert render_header(ctx) == "Floor 1 (1, 0) [looping]"
