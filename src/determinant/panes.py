"""Side-by-side conversation panes and the tiling layout.

A pane is either bound to a room or shows the room picker. The manager keeps
the panes in display order plus the index of the selected one; every
mutation clamps indexes at the point of change so the selected index is
always valid and at least one pane always exists.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Pane
# ---------------------------------------------------------------------------


@dataclass
class Pane:
    """One column of the UI.

    Attributes:
        room_id: Bound room, or "" while the pane shows the room picker.
        room_cursor: Highlighted row of the room picker.
        buffer: Message being composed.
        caret: 1-based insert position; caret N inserts before the Nth
            character, so 1 is the start of the buffer.
    """

    room_id: str = ""
    room_cursor: int = 0
    buffer: str = ""
    caret: int = 1

    @property
    def is_bound(self) -> bool:
        return bool(self.room_id)

    @property
    def cursor(self) -> int:
        """0-based insertion index into ``buffer``."""
        return self.caret - 1

    def insert(self, char: str) -> None:
        pos = self.cursor
        self.buffer = self.buffer[:pos] + char + self.buffer[pos:]
        self.caret += len(char)

    def backspace(self) -> None:
        if self.buffer and self.caret > 1:
            pos = self.cursor
            self.buffer = self.buffer[: pos - 1] + self.buffer[pos:]
            self.caret -= 1

    def caret_left(self) -> None:
        if self.caret > 1:
            self.caret -= 1

    def caret_right(self) -> None:
        if self.cursor < len(self.buffer):
            self.caret += 1

    def take_buffer(self) -> str:
        """Return the composed text and reset the buffer."""
        text = self.buffer
        self.buffer = ""
        self.caret = 1
        return text

    def unbind(self) -> None:
        self.take_buffer()
        self.room_id = ""


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------


class Borders(enum.Flag):
    NONE = 0
    TOP = enum.auto()
    LEFT = enum.auto()
    RIGHT = enum.auto()
    BOTTOM = enum.auto()


@dataclass(frozen=True)
class PaneGeometry:
    x: int
    width: int
    borders: Borders


def tile(terminal_width: int, pane_count: int, selected: int = 0) -> list[PaneGeometry]:
    """Split *terminal_width* columns between *pane_count* panes.

    Every pane gets ``terminal_width // pane_count`` columns and the
    remainder goes to the first pane only. A selected pane other than the
    first grows one column to the left, over its neighbour, so its left
    border sits where the neighbour's right border would be. The widths
    always add up to *terminal_width*.
    """
    base = terminal_width // pane_count
    remainder = terminal_width - base * pane_count

    geometries = []
    for i in range(pane_count):
        x = base * i
        width = base
        if i == 0:
            width += remainder
        else:
            x += remainder

        if selected > 0:
            if i == selected - 1:
                width -= 1
            elif i == selected:
                x -= 1
                width += 1

        borders = Borders.TOP
        if i != 0 and i == selected:
            borders |= Borders.LEFT
        if i != pane_count - 1 and i + 1 != selected:
            borders |= Borders.RIGHT

        geometries.append(PaneGeometry(x=x, width=width, borders=borders))
    return geometries


# ---------------------------------------------------------------------------
# PaneManager
# ---------------------------------------------------------------------------


class CloseOutcome(enum.Enum):
    REMOVED = "removed"
    UNBOUND = "unbound"
    QUIT = "quit"


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


@dataclass
class PaneManager:
    panes: list[Pane] = field(default_factory=lambda: [Pane()])
    selected: int = 0

    @property
    def current(self) -> Pane:
        return self.panes[self.selected]

    def __len__(self) -> int:
        return len(self.panes)

    def pane(self, index: int) -> Pane:
        return self.panes[clamp(index, 0, len(self.panes) - 1)]

    def split(self) -> Pane:
        """Append an unbound pane. The selection does not move."""
        pane = Pane()
        self.panes.append(pane)
        return pane

    def select_room(self, pane_index: int, room_ids: list[str]) -> None:
        """Bind an unbound pane to the room under its picker cursor."""
        pane = self.pane(pane_index)
        if pane.is_bound or not room_ids:
            return
        pane.room_cursor = clamp(pane.room_cursor, 0, len(room_ids) - 1)
        pane.room_id = room_ids[pane.room_cursor]

    def close(self, pane_index: int) -> CloseOutcome:
        """Close, unbind or quit, depending on the pane and how many are left.

        A bound pane goes back to the picker. An unbound pane is removed
        unless it is the last one, in which case the caller should quit.
        """
        index = clamp(pane_index, 0, len(self.panes) - 1)
        pane = self.panes[index]
        if pane.is_bound:
            pane.unbind()
            return CloseOutcome.UNBOUND
        if len(self.panes) == 1:
            return CloseOutcome.QUIT

        del self.panes[index]
        # Closing the selected pane moves the selection to its left neighbour.
        if index < self.selected or (index == self.selected and self.selected != 0):
            self.selected -= 1
        self.selected = clamp(self.selected, 0, len(self.panes) - 1)
        return CloseOutcome.REMOVED

    def move_picker(self, delta: int, room_count: int) -> None:
        pane = self.current
        pane.room_cursor = clamp(pane.room_cursor + delta, 0, max(room_count - 1, 0))

    def move_pane(self, delta: int) -> None:
        self.selected = clamp(self.selected + delta, 0, len(self.panes) - 1)

    def clamp_pickers(self, room_count: int) -> None:
        """Keep every picker cursor inside ``[0, room_count)`` after the room list changes."""
        for pane in self.panes:
            pane.room_cursor = clamp(pane.room_cursor, 0, max(room_count - 1, 0))

    def layout(self, terminal_width: int) -> list[PaneGeometry]:
        return tile(terminal_width, len(self.panes), self.selected)
