"""Vim-like modal key handling.

Normal mode moves around and issues commands; Insert mode edits the
selected pane's compose buffer. Handling a key only touches the pane
manager. Anything that needs the network or ends the program is returned
as an effect for the caller to carry out.

Normal:  Enter send/open · Up/Down picker · Left/Right pane · i insert ·
         v split · s sync · q close/quit
Insert:  Esc normal · Backspace · Left/Right caret · Enter newline · text
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from determinant.panes import CloseOutcome, PaneManager


class Mode(enum.Enum):
    NORMAL = "normal"
    INSERT = "insert"


@dataclass(frozen=True)
class Key:
    """A key press, independent of the terminal library.

    ``code`` names special keys ("enter", "escape", "backspace", "up",
    "down", "left", "right"); printable keys use code "char" and carry the
    character in ``char``.
    """

    code: str
    char: str = ""

    @classmethod
    def printable(cls, char: str) -> Key:
        return cls("char", char)

    def is_char(self, char: str) -> bool:
        return self.code == "char" and self.char == char


ENTER = Key("enter")
ESCAPE = Key("escape")
BACKSPACE = Key("backspace")
UP = Key("up")
DOWN = Key("down")
LEFT = Key("left")
RIGHT = Key("right")

# ---------------------------------------------------------------------------
# Effects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SyncRequested:
    """The user asked for a sync (``s``)."""


@dataclass(frozen=True)
class SendRequested:
    """A composed message is ready to post."""

    room_id: str
    text: str


@dataclass(frozen=True)
class QuitRequested:
    """The last pane was closed."""


Effect = SyncRequested | SendRequested | QuitRequested


# ---------------------------------------------------------------------------
# InputMachine
# ---------------------------------------------------------------------------


@dataclass
class InputMachine:
    panes: PaneManager
    mode: Mode = Mode.NORMAL

    def handle(self, key: Key, room_ids: list[str]) -> Effect | None:
        """Dispatch one key press. Unknown keys do nothing."""
        if self.mode is Mode.INSERT:
            self.handle_insert(key)
            return None
        return self.handle_normal(key, room_ids)

    def handle_normal(self, key: Key, room_ids: list[str]) -> Effect | None:
        panes = self.panes
        pane = panes.current

        if key == ENTER:
            if pane.buffer and pane.is_bound:
                room_id = pane.room_id
                return SendRequested(room_id=room_id, text=pane.take_buffer())
            panes.select_room(panes.selected, room_ids)
        elif key == UP:
            panes.move_picker(-1, len(room_ids))
        elif key == DOWN:
            panes.move_picker(1, len(room_ids))
        elif key == LEFT:
            panes.move_pane(-1)
        elif key == RIGHT:
            panes.move_pane(1)
        elif key.is_char("i"):
            self.mode = Mode.INSERT
        elif key.is_char("v"):
            panes.split()
        elif key.is_char("s"):
            return SyncRequested()
        elif key.is_char("q"):
            if panes.close(panes.selected) is CloseOutcome.QUIT:
                return QuitRequested()
        return None

    def handle_insert(self, key: Key) -> None:
        pane = self.panes.current

        if key == ESCAPE:
            self.mode = Mode.NORMAL
        elif key == BACKSPACE:
            pane.backspace()
        elif key == LEFT:
            pane.caret_left()
        elif key == RIGHT:
            pane.caret_right()
        elif key == ENTER:
            pane.insert("\n")
        elif key.code == "char" and key.char.isprintable():
            pane.insert(key.char)
