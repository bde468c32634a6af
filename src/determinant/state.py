"""In-memory model of rooms, users and messages.

Example:
    from determinant.state import SessionState, StateStore

    store = StateStore()
    session = SessionState(address="https://matrix.example.org", user_id="@me:example.org")
    store.ensure_user("@other:example.org", "Other")
    store.room_ids()

Nothing here performs I/O. The store is rebuilt from the server on every run.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Message:
    """A single timeline message. Never changes once created."""

    sender: str
    room_id: str
    body: str
    msgtype: str = "m.text"


@dataclass
class User:
    """A user seen in a membership event."""

    user_id: str
    name: str
    is_online: bool = False
    rooms: list[str] = field(default_factory=list)

    def join(self, room_id: str) -> None:
        if room_id not in self.rooms:
            self.rooms.append(room_id)


@dataclass
class Room:
    """A joined room.

    ``members`` keeps join order as observed. ``messages`` is append-only for
    the lifetime of the session.
    """

    room_id: str
    alias: str = ""
    members: list[str] = field(default_factory=list)
    messages: list[Message] = field(default_factory=list)
    unread: int = 0

    def add_member(self, user_id: str) -> None:
        if user_id not in self.members:
            self.members.append(user_id)

    def append(self, message: Message) -> None:
        self.messages.append(message)

    @property
    def label(self) -> str:
        return self.alias or self.room_id


@dataclass
class SessionState:
    """Connection facts for the logged-in user.

    ``address`` and ``user_id`` are set once at startup. ``token`` belongs to
    the Session, ``next_batch`` (the sync cursor) to the sync engine.
    """

    address: str
    user_id: str
    token: str = ""
    next_batch: str = ""

    @property
    def has_cursor(self) -> bool:
        return bool(self.next_batch)


@dataclass
class StateStore:
    """Rooms, users and pending invites, keyed by id.

    Rooms are kept in the order they were first reported, which is also the
    order of the room picker.
    """

    rooms: dict[str, Room] = field(default_factory=dict)
    users: dict[str, User] = field(default_factory=dict)
    invites: list[str] = field(default_factory=list)

    def room_ids(self) -> list[str]:
        return list(self.rooms)

    @property
    def room_count(self) -> int:
        return len(self.rooms)

    def get_room(self, room_id: str) -> Room | None:
        return self.rooms.get(room_id)

    def ensure_user(self, user_id: str, name: str | None = None) -> User:
        """Return the user for *user_id*, creating it on first encounter.

        The display name is only taken from the first encounter.
        """
        user = self.users.get(user_id)
        if user is None:
            user = User(user_id=user_id, name=name or user_id)
            self.users[user_id] = user
        return user

    def display_name(self, user_id: str) -> str:
        """Display name for *user_id*, or the id itself if not resolved yet."""
        user = self.users.get(user_id)
        return user.name if user else user_id
