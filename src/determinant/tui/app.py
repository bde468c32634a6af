"""DeterminantApp: the Textual application that drives the client.

Textual supplies the event loop: key presses, a periodic tick and resizes
arrive here and are handed to the ClientContext. The whole screen is one
PaneCanvas that repaints from a fresh PaintPlan on every refresh.

Network calls run on a worker thread so the screen keeps painting while a
sync is in flight. Each request and the fold of its reply happen under one
lock, and the fold runs back on the event loop, so replies are applied one
at a time in the order they were requested.
"""

from __future__ import annotations

import asyncio
import logging
from typing import ClassVar

from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.binding import BindingType
from textual.widget import Widget

from determinant.context import ClientContext, describe
from determinant.errors import ProtocolError, TransportError
from determinant.modes import BACKSPACE, DOWN, ENTER, ESCAPE, LEFT, RIGHT, UP, Effect, Key, SendRequested, SyncRequested

from .canvas import rasterize

logger = logging.getLogger(__name__)

SPECIAL_KEYS: dict[str, Key] = {
    "enter": ENTER,
    "escape": ESCAPE,
    "backspace": BACKSPACE,
    "up": UP,
    "down": DOWN,
    "left": LEFT,
    "right": RIGHT,
}


def translate_key(event: events.Key) -> Key | None:
    """Map a Textual key event onto our Key, or None for keys we ignore."""
    if event.key in SPECIAL_KEYS:
        return SPECIAL_KEYS[event.key]
    if event.is_printable and event.character:
        return Key.printable(event.character)
    return None


class PaneCanvas(Widget):
    """Full-screen widget that paints the current frame."""

    DEFAULT_CSS = """
    PaneCanvas {
        width: 1fr;
        height: 1fr;
    }
    """

    def __init__(self, context: ClientContext, **kwargs) -> None:
        super().__init__(**kwargs)
        self.context = context

    def render(self) -> Text:
        plan = self.context.plan(self.size.width, self.size.height)
        return rasterize(plan)


class DeterminantApp(App):
    """Vim-like multi-pane Matrix client."""

    TITLE = "determinant"

    CSS = """
    Screen {
        layout: vertical;
    }
    """

    BINDINGS: ClassVar[list[BindingType]] = []

    def __init__(self, context: ClientContext, tick_interval: float = 0.25) -> None:
        super().__init__()
        self.context = context
        self.tick_interval = tick_interval
        self.network_lock = asyncio.Lock()

    def compose(self) -> ComposeResult:
        yield PaneCanvas(self.context, id="canvas")

    def on_mount(self) -> None:
        self.set_interval(self.tick_interval, self.tick)

    def repaint(self) -> None:
        self.query_one("#canvas", PaneCanvas).refresh()

    def tick(self) -> None:
        """Called every tick_interval seconds."""
        self.context.tick()
        self.repaint()

    def on_resize(self, _: events.Resize) -> None:
        self.repaint()

    def on_key(self, event: events.Key) -> None:
        key = translate_key(event)
        if key is None:
            return
        event.stop()
        event.prevent_default()

        effect = self.context.handle_key(key)
        if not self.context.running:
            self.exit()
            return
        if isinstance(effect, SyncRequested | SendRequested):
            self.run_worker(self.run_effect(effect), exclusive=False)
        self.repaint()

    async def run_effect(self, effect: Effect) -> None:
        """Request on a worker thread, then fold the reply on the event loop."""
        async with self.network_lock:
            try:
                reply = await asyncio.to_thread(self.context.request, effect)
                self.context.complete(effect, reply)
            except (TransportError, ProtocolError) as exc:
                self.context.report(describe(effect), exc)
        self.repaint()
