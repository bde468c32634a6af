"""Tests for decoding server replies into records."""

from __future__ import annotations

import pytest
from factories import ME, OTHER, ROOM, ROOM_B, direct_chat_payload, joined_room, sync_payload, text_event

from determinant.errors import ProtocolError
from determinant.payloads import InvalidContent, parse_event, parse_login, parse_send, parse_sync


class TestParseSync:
    def test_direct_chat(self) -> None:
        response = parse_sync(direct_chat_payload())
        assert response.next_batch == "s1"
        assert [r.room_id for r in response.joined] == [ROOM]
        room = response.joined[0]
        assert room.notification_count == 1
        assert room.timeline[0].is_text_message
        assert [e.sender for e in room.state if e.is_join] == [ME, OTHER]

    def test_minimal_payload(self) -> None:
        response = parse_sync({"next_batch": "abc"})
        assert response.joined == []
        assert response.invited == []
        assert response.presence == []

    def test_invites(self) -> None:
        response = parse_sync(sync_payload(invite=["!x:example.org", "!y:example.org"]))
        assert response.invited == ["!x:example.org", "!y:example.org"]

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"next_batch": 5},
            {"next_batch": "s", "rooms": []},
            {"next_batch": "s", "rooms": {"join": {ROOM: "nope"}}},
            {"next_batch": "s", "rooms": {"join": {ROOM: {"timeline": {"events": {}}}}}},
            {"next_batch": "s", "rooms": {"join": {ROOM: {"unread_notifications": {"notification_count": "3"}}}}},
            {"next_batch": "s", "rooms": {"join": {ROOM: {"unread_notifications": {"notification_count": True}}}}},
        ],
    )
    def test_malformed(self, payload: dict) -> None:
        with pytest.raises(ProtocolError):
            parse_sync(payload)

    def test_null_containers_are_empty(self) -> None:
        payload = {"next_batch": "s", "rooms": {"join": {ROOM: {"timeline": None, "state": {"events": None}}}}}
        response = parse_sync(payload)
        assert response.joined[0].timeline == []
        assert response.joined[0].state == []

    def test_null_notification_count(self) -> None:
        room = joined_room()
        room["unread_notifications"] = {"notification_count": None}
        response = parse_sync(sync_payload(join={ROOM: room}))
        assert response.joined[0].notification_count is None


class TestParseEvent:
    def test_event_without_type(self) -> None:
        with pytest.raises(ProtocolError, match="type"):
            parse_event({"content": {}}, "ev")

    def test_text_message_requires_body(self) -> None:
        with pytest.raises(InvalidContent, match="body"):
            parse_event({"type": "m.room.message", "sender": OTHER, "content": {"msgtype": "m.text"}}, "ev")

    def test_non_string_body(self) -> None:
        with pytest.raises(InvalidContent, match="body must be a string, got int"):
            parse_event({"type": "m.room.message", "sender": OTHER, "content": {"msgtype": "m.text", "body": 42}}, "ev")

    def test_message_without_sender_is_structural(self) -> None:
        with pytest.raises(ProtocolError, match="sender") as exc_info:
            parse_event({"type": "m.room.message", "content": {"msgtype": "m.text", "body": "x"}}, "ev")
        assert not isinstance(exc_info.value, InvalidContent)

    def test_non_text_message_needs_no_body(self) -> None:
        event = parse_event({"type": "m.room.message", "sender": OTHER, "content": {"msgtype": "m.image"}}, "ev")
        assert not event.is_text_message
        assert event.body is None

    def test_member_requires_membership(self) -> None:
        with pytest.raises(InvalidContent, match="membership"):
            parse_event({"type": "m.room.member", "sender": OTHER, "content": {}}, "ev")

    def test_null_displayname(self) -> None:
        event = parse_event(
            {"type": "m.room.member", "sender": OTHER, "content": {"membership": "join", "displayname": None}}, "ev"
        )
        assert event.is_join
        assert event.displayname is None

    def test_unknown_event_type_kept(self) -> None:
        event = parse_event({"type": "m.room.topic", "content": {"topic": 3}}, "ev")
        assert event.type == "m.room.topic"

    def test_bad_content_event_is_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        bad_body = {"type": "m.room.message", "sender": OTHER, "content": {"msgtype": "m.text", "body": 42}}
        bad_name = {"type": "m.room.member", "sender": OTHER, "content": {"membership": "join", "displayname": ["x"]}}
        bad_presence = {"type": "m.presence", "sender": OTHER, "content": {"presence": 1}}
        payload = sync_payload(
            join={
                ROOM: joined_room(timeline=[text_event(ME, "fine")]),
                ROOM_B: joined_room(timeline=[bad_body, text_event(OTHER, "after")], state=[bad_name]),
            },
            next_batch="s9",
            presence=[bad_presence],
        )
        with caplog.at_level("WARNING", logger="determinant.payloads"):
            response = parse_sync(payload)

        assert response.next_batch == "s9"
        assert [[e.body for e in r.timeline] for r in response.joined] == [["fine"], ["after"]]
        assert response.joined[1].state == []
        assert response.presence == []
        assert "body must be a string" in caplog.text
        assert f"rooms.join.{ROOM_B}.timeline.events[0]" in caplog.text

    def test_context_in_error_message(self) -> None:
        with pytest.raises(ProtocolError, match=r"rooms\.join"):
            parse_sync({"next_batch": "s", "rooms": {"join": {ROOM: {"timeline": {"events": [{"content": {}}]}}}}})


class TestParseLogin:
    def test_token_and_user(self) -> None:
        reply = parse_login({"access_token": "abc", "user_id": ME, "device_id": "DEV"})
        assert reply.access_token == "abc"
        assert reply.user_id == ME

    def test_missing_token(self) -> None:
        with pytest.raises(ProtocolError, match="access_token"):
            parse_login({"user_id": ME})


class TestParseSend:
    def test_event_id(self) -> None:
        assert parse_send({"event_id": "$e"}).event_id == "$e"

    def test_not_an_object(self) -> None:
        with pytest.raises(ProtocolError):
            parse_send("ok")
