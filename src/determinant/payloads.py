"""Record shapes for the parts of server replies we consume.

Decoded JSON is converted here, at the transport boundary, so the sync
engine works on typed records instead of walking untyped trees. Anything
structurally wrong raises ProtocolError before any state is touched.

Event content is written by other users, not by the server. An event whose
content fields have the wrong type is logged and dropped from its list
instead of failing the whole reply.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from determinant.errors import ProtocolError

logger = logging.getLogger(__name__)

TEXT_MESSAGE = "m.text"
MESSAGE_EVENT = "m.room.message"
MEMBER_EVENT = "m.room.member"
NAME_EVENT = "m.room.name"
CANONICAL_ALIAS_EVENT = "m.room.canonical_alias"
PRESENCE_EVENT = "m.presence"

# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class InvalidContent(ProtocolError):
    """An event's content does not have the fields its type needs."""


@dataclass(frozen=True)
class RoomEvent:
    """One timeline, state or presence event.

    Only ``type`` is always present. The content fields are filled for the
    event types that carry them and left as None otherwise.
    """

    type: str
    sender: str = ""
    msgtype: str | None = None
    body: str | None = None
    membership: str | None = None
    displayname: str | None = None
    name: str | None = None
    alias: str | None = None
    presence: str | None = None

    @property
    def is_text_message(self) -> bool:
        return self.type == MESSAGE_EVENT and self.msgtype == TEXT_MESSAGE

    @property
    def is_join(self) -> bool:
        return self.type == MEMBER_EVENT and self.membership == "join"


@dataclass(frozen=True)
class JoinedRoom:
    room_id: str
    notification_count: int | None = None
    timeline: list[RoomEvent] = field(default_factory=list)
    state: list[RoomEvent] = field(default_factory=list)


@dataclass(frozen=True)
class SyncResponse:
    next_batch: str
    joined: list[JoinedRoom] = field(default_factory=list)
    invited: list[str] = field(default_factory=list)
    presence: list[RoomEvent] = field(default_factory=list)


@dataclass(frozen=True)
class LoginResponse:
    access_token: str
    user_id: str | None = None


@dataclass(frozen=True)
class SendResponse:
    event_id: str | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def expect_object(value: Any, context: str) -> dict[str, Any]:
    """Raise ProtocolError unless *value* is a JSON object."""
    if not isinstance(value, dict):
        raise ProtocolError(f"{context} must be an object, got {type(value).__name__}")
    return value


def optional_object(data: dict[str, Any], key: str, context: str) -> dict[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    return expect_object(value, f"{context}.{key}")


def optional_list(data: dict[str, Any], key: str, context: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ProtocolError(f"{context}.{key} must be a list, got {type(value).__name__}")
    return value


def optional_str(data: dict[str, Any], key: str, context: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ProtocolError(f"{context}.{key} must be a string, got {type(value).__name__}")
    return value


def require_str(data: dict[str, Any], key: str, context: str) -> str:
    value = optional_str(data, key, context)
    if value is None:
        raise ProtocolError(f"{context} is missing required field '{key}'")
    return value


def content_str(content: dict[str, Any], key: str, context: str, required: bool = False) -> str | None:
    """Read a string field from event content, raising InvalidContent on a bad value."""
    try:
        if required:
            return require_str(content, key, context)
        return optional_str(content, key, context)
    except ProtocolError as exc:
        raise InvalidContent(str(exc)) from exc


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_event(data: Any, context: str) -> RoomEvent:
    """Parse one event, validating the fields its type needs.

    Raises:
        ProtocolError: If the event is not an object or lacks ``type`` or
            ``sender``.
        InvalidContent: If a content field its type needs is missing or has
            the wrong type.
    """
    event = expect_object(data, context)
    event_type = require_str(event, "type", context)
    content = optional_object(event, "content", context)
    content_ctx = f"{context}.content"

    if event_type == MESSAGE_EVENT:
        sender = require_str(event, "sender", context)
        msgtype = content_str(content, "msgtype", content_ctx)
        body = content_str(content, "body", content_ctx, required=True) if msgtype == TEXT_MESSAGE else None
        return RoomEvent(type=event_type, sender=sender, msgtype=msgtype, body=body)

    if event_type == MEMBER_EVENT:
        return RoomEvent(
            type=event_type,
            sender=require_str(event, "sender", context),
            membership=content_str(content, "membership", content_ctx, required=True),
            displayname=content_str(content, "displayname", content_ctx),
        )

    if event_type == NAME_EVENT:
        return RoomEvent(type=event_type, name=content_str(content, "name", content_ctx))

    if event_type == CANONICAL_ALIAS_EVENT:
        return RoomEvent(type=event_type, alias=content_str(content, "alias", content_ctx))

    if event_type == PRESENCE_EVENT:
        return RoomEvent(
            type=event_type,
            sender=require_str(event, "sender", context),
            presence=content_str(content, "presence", content_ctx),
        )

    return RoomEvent(type=event_type, sender=optional_str(event, "sender", context) or "")


def parse_events(container: dict[str, Any], context: str) -> list[RoomEvent]:
    """Parse an ``events`` list, skipping events with unusable content."""
    parsed = []
    for i, data in enumerate(optional_list(container, "events", context)):
        try:
            parsed.append(parse_event(data, f"{context}.events[{i}]"))
        except InvalidContent as exc:
            logger.warning("Skipping event: %s", exc)
    return parsed


def parse_joined_room(room_id: str, data: Any) -> JoinedRoom:
    context = f"rooms.join.{room_id}"
    room = expect_object(data, context)

    unread = optional_object(room, "unread_notifications", context)
    count = unread.get("notification_count")
    if count is not None and (isinstance(count, bool) or not isinstance(count, int)):
        raise ProtocolError(
            f"{context}.unread_notifications.notification_count must be an integer, got {type(count).__name__}"
        )

    timeline = parse_events(optional_object(room, "timeline", context), f"{context}.timeline")
    state = parse_events(optional_object(room, "state", context), f"{context}.state")
    return JoinedRoom(room_id=room_id, notification_count=count, timeline=timeline, state=state)


def parse_sync(data: Any) -> SyncResponse:
    """Convert a decoded /sync reply into a SyncResponse.

    Raises:
        ProtocolError: If ``next_batch`` is missing or any consumed field has
            the wrong shape.
    """
    payload = expect_object(data, "sync response")
    next_batch = require_str(payload, "next_batch", "sync response")

    rooms = optional_object(payload, "rooms", "sync response")
    joined = [parse_joined_room(room_id, room) for room_id, room in optional_object(rooms, "join", "rooms").items()]
    invited = list(optional_object(rooms, "invite", "rooms"))

    presence = parse_events(optional_object(payload, "presence", "sync response"), "presence")

    return SyncResponse(next_batch=next_batch, joined=joined, invited=invited, presence=presence)


def parse_login(data: Any) -> LoginResponse:
    payload = expect_object(data, "login response")
    return LoginResponse(
        access_token=require_str(payload, "access_token", "login response"),
        user_id=optional_str(payload, "user_id", "login response"),
    )


def parse_send(data: Any) -> SendResponse:
    payload = expect_object(data, "send response")
    return SendResponse(event_id=optional_str(payload, "event_id", "send response"))
