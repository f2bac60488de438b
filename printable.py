"""
Plain-text export of a whole map, with footnotes.

Each room is printed as its exit glyph followed by a footnote symbol when the
room has something worth explaining (a trap, a note, stairs), or else an
arrow for an exit that has no way back. Stairs refer to the footnote symbol
of the room they lead to, so the reader can follow them between floors.
Identical footnotes are shared.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field

from ascii_render import one_way_glyph, room_glyph
from dungcart import one_way_exits
from map_types import DungeonMap, Location

_EXTRA_SYMBOLS = "*"


def footnote_symbol(number: int) -> str:
    """Symbol for footnote `number`: 1-9, then a-z, then A-Z, then '*', then '?'."""
    if number < 36:
        return "0123456789abcdefghijklmnopqrstuvwxyz"[number]
    number -= 36
    if number < 26:
        return chr(ord("A") + number)
    number -= 26
    if number < len(_EXTRA_SYMBOLS):
        return _EXTRA_SYMBOLS[number]
    return "?"


@dataclass
class Footnotes:
    """Footnote numbers assigned to locations, and the text of each footnote."""

    numbers: dict[Location, int] = field(default_factory=dict)
    texts: dict[int, str] = field(default_factory=dict)

    def symbol_at(self, location: Location) -> str | None:
        number = self.numbers.get(location)
        return footnote_symbol(number) if number is not None else None


def collect_footnotes(dmap: DungeonMap) -> Footnotes:
    footnotes = Footnotes()
    by_text: dict[str, int] = {}
    counter = itertools.count(1)

    def number_for(location: Location) -> int:
        if location not in footnotes.numbers:
            footnotes.numbers[location] = next(counter)
        return footnotes.numbers[location]

    for location in dmap.locations():
        room = dmap.room_at_location(location)
        if room is None or not (room.note or room.u or room.d):
            continue

        parts = []
        if room.trap:
            parts.append("Trap")
        if room.note:
            parts.append(f"Note: {room.note}")
        for has_exit, dz, label in ((room.u, -1, "Up"), (room.d, 1, "Down")):
            other = Location(location.z + dz, location.y, location.x)
            if has_exit and dmap.room_at_location(other) is not None:
                parts.append(f"{label} to {footnote_symbol(number_for(other))}")
        if not parts:
            continue

        text = ". ".join(parts)
        if location not in footnotes.numbers and text in by_text:
            footnotes.numbers[location] = by_text[text]
        else:
            number = number_for(location)
            footnotes.texts[number] = text
            by_text[text] = number

    return footnotes


def export_printable(dmap: DungeonMap) -> str:
    """
    Render every floor of a map as plain text followed by the footnote list.

    The map should be validated first so that floor bounds are tight.
    """
    footnotes = collect_footnotes(dmap)
    floors = sorted(dmap.floors)
    lines: list[str] = []

    for z in floors:
        floor = dmap.floors[z]
        if len(floors) > 1:
            lines.append(f"Floor {z}:")

        xs = [x for row in floor.rows.values() for x in row.rooms]
        if not xs:
            lines.append("")
            continue
        min_x, max_x = min(xs), max(xs)

        for y in range(floor.min, floor.max + 1):
            cells = []
            for x in range(min_x, max_x + 1):
                room = floor.room_at(y, x)
                symbol = footnotes.symbol_at(Location(z, y, x)) if room is not None else None
                marker = symbol or one_way_glyph(one_way_exits(floor, y, x))
                cells.append(room_glyph(room) + (marker or " "))
            lines.append("".join(cells).rstrip())
        lines.append("")

    if footnotes.texts:
        lines.append("Footnotes:")
        for number in sorted(footnotes.texts):
            lines.append(f"{footnote_symbol(number)}: {footnotes.texts[number]}")

    return "\n".join(lines) + "\n"
