"""Builders for decoded Matrix payloads used across the tests."""

from __future__ import annotations

from typing import Any

ME = "@me:example.org"
OTHER = "@other:example.org"
THIRD = "@third:example.org"
ROOM = "!abc:example.org"
ROOM_B = "!def:example.org"


def text_event(sender: str, body: str) -> dict[str, Any]:
    return {"type": "m.room.message", "sender": sender, "content": {"msgtype": "m.text", "body": body}}


def member_event(user_id: str, displayname: str | None = None, membership: str = "join") -> dict[str, Any]:
    content: dict[str, Any] = {"membership": membership}
    if displayname is not None:
        content["displayname"] = displayname
    return {"type": "m.room.member", "sender": user_id, "state_key": user_id, "content": content}


def joined_room(
    timeline: list[dict] | None = None,
    state: list[dict] | None = None,
    notifications: int | None = None,
) -> dict[str, Any]:
    room: dict[str, Any] = {
        "timeline": {"events": timeline or []},
        "state": {"events": state or []},
    }
    if notifications is not None:
        room["unread_notifications"] = {"notification_count": notifications}
    return room


def sync_payload(
    join: dict[str, dict] | None = None,
    invite: list[str] | None = None,
    next_batch: str = "s1",
    presence: list[dict] | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "next_batch": next_batch,
        "rooms": {
            "join": join or {},
            "invite": {room_id: {"invite_state": {"events": []}} for room_id in invite or []},
        },
    }
    if presence is not None:
        payload["presence"] = {"events": presence}
    return payload


def direct_chat_payload(next_batch: str = "s1") -> dict[str, Any]:
    """One joined room with me, other, and a single "hi" from other."""
    return sync_payload(
        join={
            ROOM: joined_room(
                timeline=[text_event(OTHER, "hi")],
                state=[member_event(ME, "Me"), member_event(OTHER, "Other Person")],
                notifications=1,
            )
        },
        next_batch=next_batch,
    )
