"""Fold /sync replies into the state store.

Each reply is a partial snapshot. Folding never re-fetches or replaces what
is already known: rooms are created once and updated in place, and message
sequences only ever grow.
"""

from __future__ import annotations

import logging
from typing import Any

from determinant.payloads import (
    CANONICAL_ALIAS_EVENT,
    NAME_EVENT,
    PRESENCE_EVENT,
    JoinedRoom,
    SyncResponse,
    parse_sync,
)
from determinant.state import Message, Room, SessionState, StateStore

logger = logging.getLogger(__name__)


def apply_sync(store: StateStore, session: SessionState, payload: Any) -> StateStore:
    """Fold one sync reply into *store* and advance the sync cursor.

    *payload* may be the decoded JSON or an already parsed SyncResponse.
    Parsing happens before any mutation, so a malformed reply raises
    ProtocolError and leaves both *store* and *session* as they were.
    """
    response = payload if isinstance(payload, SyncResponse) else parse_sync(payload)

    for joined in response.joined:
        fold_joined_room(store, joined)

    # Invites are appended as reported, without de-duplication.
    store.invites.extend(response.invited)

    for event in response.presence:
        if event.type != PRESENCE_EVENT:
            continue
        user = store.users.get(event.sender)
        if user is not None:
            user.is_online = event.presence == "online"

    session.next_batch = response.next_batch
    logger.debug(
        "Applied sync: %d joined, %d invited, cursor=%r",
        len(response.joined),
        len(response.invited),
        response.next_batch,
    )
    return store


def fold_joined_room(store: StateStore, joined: JoinedRoom) -> None:
    """Merge one joined room into the store.

    The unread counter is only taken when the room is first seen; later
    syncs do not refresh it.
    """
    room = store.rooms.get(joined.room_id)
    is_new = room is None
    if room is None:
        room = Room(room_id=joined.room_id, unread=joined.notification_count or 0)

    for event in joined.timeline:
        if event.is_text_message:
            room.append(Message(sender=event.sender, room_id=room.room_id, body=event.body or "", msgtype="m.text"))

    for event in joined.state:
        if event.is_join:
            user = store.ensure_user(event.sender, event.displayname)
            user.join(room.room_id)
            room.add_member(event.sender)
        elif event.type == NAME_EVENT and event.name:
            room.alias = event.name
        elif event.type == CANONICAL_ALIAS_EVENT and event.alias and not room.alias:
            room.alias = event.alias

    if is_new:
        store.rooms[room.room_id] = room
        logger.info("Joined room %s (%d members)", room.room_id, len(room.members))
