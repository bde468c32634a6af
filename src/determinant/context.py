"""The client's owning context.

ClientContext holds every piece of mutable state (session, store, panes,
input mode, status notice) and is handed explicitly to whoever drives the
event loop. It turns key presses into pane changes and carries out the
effects they request.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

from determinant.errors import ProtocolError, TransportError
from determinant.modes import Effect, InputMachine, Key, Mode, QuitRequested, SendRequested, SyncRequested
from determinant.panes import PaneManager
from determinant.render import PaintPlan, render_plan
from determinant.session import Session
from determinant.state import SessionState, StateStore
from determinant.sync import apply_sync

logger = logging.getLogger(__name__)

NOTICE_SECONDS = 5.0


def describe(effect: Effect | None) -> str:
    if isinstance(effect, SendRequested):
        return "Send"
    return "Sync"


@dataclass
class ClientContext:
    session: Session
    store: StateStore = field(default_factory=StateStore)
    panes: PaneManager = field(default_factory=PaneManager)
    running: bool = True
    notice: str = ""
    notice_expires: float = 0.0

    def __post_init__(self) -> None:
        self.machine = InputMachine(self.panes)

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def mode(self) -> Mode:
        return self.machine.mode

    # -- Events -----------------------------------------------------------

    def handle_key(self, key: Key) -> Effect | None:
        """Dispatch a key press. A quit request stops the loop immediately."""
        effect = self.machine.handle(key, self.store.room_ids())
        if isinstance(effect, QuitRequested):
            self.running = False
        return effect

    def tick(self, now: float | None = None) -> None:
        """Advance timers: expire the status notice."""
        now = time.monotonic() if now is None else now
        if self.notice and now >= self.notice_expires:
            self.notice = ""

    def show_notice(self, text: str) -> None:
        self.notice = text
        self.notice_expires = time.monotonic() + NOTICE_SECONDS

    def report(self, action: str, exc: Exception) -> None:
        """Log a failed sync/send and surface it in the status bar."""
        logger.warning("%s failed: %s", action, exc)
        self.show_notice(f"{action} failed: {exc}")

    # -- State ------------------------------------------------------------

    def fold(self, payload: Any) -> None:
        """Apply one sync reply and keep picker cursors inside the room list.

        Raises:
            ProtocolError: If the reply is malformed; nothing is applied.
        """
        apply_sync(self.store, self.state, payload)
        self.panes.clamp_pickers(self.store.room_count)

    # -- Effects ----------------------------------------------------------

    def request(self, effect: Effect | None) -> Any:
        """Network half of an effect. Reads state but never mutates the store.

        Safe to run on a worker thread as long as only one request is in
        flight at a time.
        """
        if isinstance(effect, SyncRequested):
            return self.session.sync()
        if isinstance(effect, SendRequested):
            return self.session.send_message(effect.room_id, effect.text)
        return None

    def complete(self, effect: Effect | None, reply: Any) -> None:
        """State half of an effect. Must run on the thread that owns the state."""
        if isinstance(effect, SyncRequested):
            self.fold(reply)

    def perform(self, effect: Effect | None) -> bool:
        """Carry out an effect synchronously. Failures are reported, not raised."""
        try:
            self.complete(effect, self.request(effect))
        except (TransportError, ProtocolError) as exc:
            self.report(describe(effect), exc)
            return False
        return True

    def sync_now(self) -> bool:
        """Fetch and fold one sync page, blocking until the server answers."""
        return self.perform(SyncRequested())

    # -- Rendering --------------------------------------------------------

    def plan(self, width: int, height: int) -> PaintPlan:
        return render_plan(self.store, self.state, self.panes, self.mode, width, height, self.notice)
