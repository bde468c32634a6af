"""Compute what to paint for one frame.

``render_plan`` reads the store, the panes and the terminal size and returns
a PaintPlan: rectangles with text or list contents, in paint order (later
entries cover earlier ones). It never mutates anything and knows nothing
about how cells reach the terminal; see ``determinant.tui.canvas`` for that.

Vertical budget, top to bottom, for a terminal of height H:

    row 0                pane title / top border
    rows 1..             message list (senders | bodies) or room picker
    compose bar          2 + newlines rows, only when composing
    status bar           1 row, 2 in Insert mode ("-- INSERT --" at the bottom)
"""

from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass, field

from rich.cells import cell_len

from determinant.errors import InputOverflow
from determinant.modes import Mode
from determinant.panes import Borders, Pane, PaneManager
from determinant.state import SessionState, StateStore

logger = logging.getLogger(__name__)

APP_VERSION = "0.1.0"
APP_TITLE = f"Determinant {APP_VERSION}"
COMPOSE_PROMPT = " $> "
TAB_SIZE = 4

BORDER_STYLE = "black on white"
SELECTED_BORDER_STYLE = "black on red"
STATUS_STYLE = "black on white"
INSERT_STYLE = "black on green"
PANE_STYLE = "white on black"
LIST_STYLE = "white"
HIGHLIGHT_STYLE = "black on white"

# ---------------------------------------------------------------------------
# Paint instructions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    def inner(self, borders: Borders) -> Rect:
        """The area left inside *borders*."""
        left = 1 if Borders.LEFT in borders else 0
        right = 1 if Borders.RIGHT in borders else 0
        top = 1 if Borders.TOP in borders else 0
        bottom = 1 if Borders.BOTTOM in borders else 0
        return Rect(
            x=self.x + left,
            y=self.y + top,
            width=max(self.width - left - right, 0),
            height=max(self.height - top - bottom, 0),
        )


@dataclass(frozen=True)
class Block:
    """Borders and title drawn around a paint's rectangle."""

    title: str = ""
    borders: Borders = Borders.NONE
    border_style: str = ""


@dataclass(frozen=True)
class Paragraph:
    rect: Rect
    text: str
    style: str = ""
    align: str = "left"
    block: Block | None = None


@dataclass(frozen=True)
class ListView:
    """One item per row. ``selected`` is highlighted and kept in view."""

    rect: Rect
    items: tuple[str, ...]
    style: str = LIST_STYLE
    block: Block | None = None
    selected: int | None = None
    highlight_style: str = HIGHLIGHT_STYLE


Paint = Paragraph | ListView


@dataclass
class PaintPlan:
    width: int
    height: int
    paints: list[Paint] = field(default_factory=list)
    caret: tuple[int, int] | None = None
    notice: str = ""


# ---------------------------------------------------------------------------
# Layout math
# ---------------------------------------------------------------------------


def clean_line(line: str) -> str:
    """Expand tabs and drop the other control characters from one line of text."""
    return "".join(char for char in line.expandtabs(TAB_SIZE) if not unicodedata.category(char).startswith("C"))


def display_lines(text: str) -> list[str]:
    """Split server-supplied text into printable lines; always at least one."""
    return [clean_line(line) for line in text.splitlines()] or [""]


def picker_label(store: StateStore, session: SessionState, room_id: str) -> str:
    """Name shown for a room in the picker.

    Two-member rooms are direct chats and show the other member's display
    name; every other room shows its alias or id.
    """
    room = store.rooms[room_id]
    if len(room.members) == 2:
        first, second = room.members
        other = second if first == session.user_id else first
        return clean_line(store.display_name(other))
    return clean_line(room.label)


def status_rows(mode: Mode) -> int:
    return 2 if mode is Mode.INSERT else 1


def shows_compose(pane: Pane, is_selected: bool, mode: Mode) -> bool:
    return bool(pane.buffer) or (mode is Mode.INSERT and is_selected)


def compose_height(buffer: str, available: int) -> int:
    """Rows for the compose bar: its top border plus one per buffer line.

    Raises:
        InputOverflow: If that is more than *available*.
    """
    needed = 2 + buffer.count("\n")
    if needed > available:
        raise InputOverflow(needed, available)
    return needed


def sender_width(inner_width: int) -> int:
    return inner_width // 5


def message_rows(store: StateStore, room_id: str, height: int) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Sender and body columns for the newest rows of a room that fit in *height*.

    A multi-line message takes one row per line and repeats its sender on
    each, so both columns stay aligned.
    """
    room = store.get_room(room_id)
    if room is None or height <= 0:
        return (), ()
    rows: list[tuple[str, str]] = []
    for message in room.messages:
        name = clean_line(store.display_name(message.sender))
        for line in display_lines(message.body):
            rows.append((name, line))
    tail = rows[-height:]
    return tuple(name for name, _ in tail), tuple(line for _, line in tail)


def caret_cell(text: str, cursor: int, area: Rect, first_line: int) -> tuple[int, int] | None:
    """Screen cell of the caret inside a compose bar whose text starts at *area*."""
    before = text[: len(COMPOSE_PROMPT) + cursor]
    line = before.count("\n") - first_line
    column = cell_len(before.rsplit("\n", 1)[-1])
    if line < 0 or line >= area.height or column >= area.width:
        return None
    return area.x + column, area.y + line


# ---------------------------------------------------------------------------
# Frame
# ---------------------------------------------------------------------------


def render_plan(
    store: StateStore,
    session: SessionState,
    panes: PaneManager,
    mode: Mode,
    width: int,
    height: int,
    notice: str = "",
) -> PaintPlan:
    """Build the paint instructions for one frame."""
    plan = PaintPlan(width=width, height=height)
    notices = [notice] if notice else []
    if width < len(panes) or height <= 0:
        plan.notice = notice
        return plan

    bar_rows = status_rows(mode)
    pane_height = max(height - bar_rows, 0)
    room_ids = store.room_ids()

    for index, (pane, geometry) in enumerate(zip(panes.panes, panes.layout(width), strict=True)):
        is_selected = index == panes.selected
        border_style = SELECTED_BORDER_STYLE if is_selected else BORDER_STYLE

        compose_rows = 0
        if shows_compose(pane, is_selected, mode):
            available = max(pane_height - 1, 0)
            try:
                compose_rows = compose_height(pane.buffer, available)
            except InputOverflow as exc:
                logger.debug("Compose buffer overflow in pane %d: %s", index, exc)
                notices.append(str(exc))
                compose_rows = available

        body = Rect(geometry.x, 0, geometry.width, max(pane_height - compose_rows, 0))

        if not pane.is_bound:
            labels = tuple(picker_label(store, session, room_id) for room_id in room_ids)
            plan.paints.append(
                ListView(
                    rect=body,
                    items=labels,
                    block=Block(title="Room list", borders=geometry.borders, border_style=border_style),
                    selected=pane.room_cursor if labels else None,
                )
            )
        else:
            label = pane.room_id
            if pane.room_id in store.rooms:
                label = picker_label(store, session, pane.room_id)
            title = f"Messages for room {label}"
            plan.paints.append(
                Paragraph(
                    rect=body,
                    text="",
                    style=PANE_STYLE,
                    block=Block(title=title, borders=geometry.borders, border_style=border_style),
                )
            )
            inner = body.inner(geometry.borders)
            column = sender_width(inner.width)
            senders, bodies = message_rows(store, pane.room_id, inner.height)
            plan.paints.append(
                ListView(
                    rect=Rect(inner.x, inner.y, column, inner.height),
                    items=senders,
                    block=Block(borders=Borders.RIGHT, border_style=BORDER_STYLE),
                )
            )
            bodies_rect = Rect(inner.x + column, inner.y, inner.width - column, inner.height)
            plan.paints.append(ListView(rect=bodies_rect, items=bodies))

        if compose_rows:
            bar = Rect(geometry.x, pane_height - compose_rows, geometry.width, compose_rows).inner(
                geometry.borders & (Borders.LEFT | Borders.RIGHT)
            )
            text = COMPOSE_PROMPT + pane.buffer
            lines = text.split("\n")
            visible = max(compose_rows - 1, 0)
            first_line = max(len(lines) - visible, 0)
            plan.paints.append(
                Paragraph(
                    rect=bar,
                    text="\n".join(lines[first_line:]),
                    style=PANE_STYLE,
                    block=Block(borders=Borders.TOP, border_style=STATUS_STYLE),
                )
            )
            if is_selected and mode is Mode.INSERT:
                plan.caret = caret_cell(text, pane.cursor, bar.inner(Borders.TOP), first_line)

    plan.notice = " · ".join(notices)

    status_y = height - bar_rows
    left = f"Logged in as {session.user_id}"
    if plan.notice:
        left = f"{left} · {plan.notice}"
    half = width // 2
    plan.paints.append(Paragraph(rect=Rect(0, status_y, half, 1), text=left, style=STATUS_STYLE))
    plan.paints.append(
        Paragraph(rect=Rect(half, status_y, width - half, 1), text=APP_TITLE, style=STATUS_STYLE, align="right")
    )
    if mode is Mode.INSERT:
        plan.paints.append(Paragraph(rect=Rect(0, height - 1, width, 1), text="-- INSERT --", style=INSERT_STYLE))

    return plan
