"""
Tests for key handling in the interactive mapper (without a live terminal).
"""

import io

import readchar
from rich.console import Console
from rich.panel import Panel

from dungcart import Mode, load_context
from interactive_mapper import InteractiveMapper
from map_types import Direction, Location, Room


def make_mapper() -> InteractiveMapper:
    return InteractiveMapper(load_context(None), Console(file=io.StringIO(), width=80))


def press(mapper: InteractiveMapper, keys) -> None:
    for key in keys:
        mapper.handle_key(key)


class TestKeys:
    """Tests for the key bindings."""

    def test_quit(self) -> None:
        """Test that q stops the loop and other keys do not."""
        mapper = make_mapper()
        assert mapper.handle_key("?")
        assert mapper.handle_key("x")
        assert not mapper.handle_key("q")

    def test_turn_and_dig(self) -> None:
        """Test relative turning and digging forward in dig mode."""
        mapper = make_mapper()
        ctx = mapper.ctx
        press(mapper, "dw")
        assert ctx.session.direction is Direction.E
        assert ctx.session.location == Location(1, 0, 1)
        assert ctx.dmap.room_at(1, 0, 0).e

    def test_explore_does_not_dig(self) -> None:
        """Test that plain exploring reports a blocked move."""
        mapper = make_mapper()
        press(mapper, " w")
        assert not mapper.ctx.session.dig_while_exploring
        assert mapper.ctx.session.location == Location(1, 0, 0)
        assert mapper.status_message.startswith("✗")

    def test_relative_exit_toggle(self) -> None:
        """Test that shifted keys toggle exits relative to facing."""
        mapper = make_mapper()
        press(mapper, "dA")
        assert mapper.ctx.room.n
        press(mapper, "F")
        assert mapper.ctx.room.d

    def test_read_mode_moves_absolutely(self) -> None:
        """Test absolute movement while reading."""
        mapper = make_mapper()
        press(mapper, "wt")
        assert mapper.ctx.session.mode is Mode.READ
        press(mapper, "s")
        assert mapper.ctx.session.location == Location(1, 0, 0)

    def test_edit_note(self) -> None:
        """Test typing, correcting and saving a note."""
        mapper = make_mapper()
        press(mapper, ["e", "h", "o", "x", readchar.key.BACKSPACE, "p", readchar.key.ENTER])
        assert mapper.menu is None
        assert mapper.ctx.room == Room(u=True, note="hop")

    def test_shift_menu(self) -> None:
        """Test moving the floor through the shift menu."""
        mapper = make_mapper()
        press(mapper, "od")
        assert mapper.ctx.dmap.room_at(1, 0, 1) == Room(u=True)
        assert mapper.menu is None

    def test_loop_menu(self) -> None:
        """Test setting and clearing a loop through the loop menu."""
        mapper = make_mapper()
        press(mapper, "lw")
        assert mapper.ctx.floor.loop is not None
        assert mapper.ctx.floor.loop.n == 0
        assert mapper.loop_status() == "N: 0"
        press(mapper, "ls")
        assert mapper.loop_status() == "S: 0, N: 0"
        press(mapper, "lz")
        assert mapper.ctx.floor.loop is None

    def test_colour_cycle_and_undo(self) -> None:
        """Test colour cycling, recolouring and undoing it."""
        mapper = make_mapper()
        press(mapper, "ccC")
        assert mapper.ctx.room.color == 2
        press(mapper, "u")
        assert mapper.ctx.room.color == 0
        assert mapper.status_message == "✓ Undone"

    def test_flags(self) -> None:
        """Test placing and removing a flag."""
        mapper = make_mapper()
        press(mapper, "2")
        assert mapper.ctx.session.bookmarks.flag_at(Location(1, 0, 0)) == 2
        press(mapper, "2")
        assert mapper.ctx.session.bookmarks.flag_at(Location(1, 0, 0)) is None


class TestDisplay:
    """Tests for building the display panel."""

    def test_generate_display(self) -> None:
        """Test the panel renders for each menu."""
        mapper = make_mapper()
        for menu in (None, "help", "shift", "loop", "note"):
            mapper.menu = menu
            panel = mapper.generate_display()
            assert isinstance(panel, Panel)
            mapper.console.print(panel)
