"""Tests for ClientContext: key dispatch, effects and status notices."""

from __future__ import annotations

import json

import httpx
from factories import ME, OTHER, ROOM, direct_chat_payload, joined_room, sync_payload, text_event

from determinant.context import ClientContext, describe
from determinant.modes import ENTER, ESCAPE, Key, Mode, QuitRequested, SendRequested, SyncRequested
from determinant.session import Session
from determinant.state import SessionState


class FakeServer:
    """Queue of replies served to the session in order."""

    def __init__(self, *replies: httpx.Response) -> None:
        self.replies = list(replies)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.replies.pop(0)


def make_context(server: FakeServer) -> ClientContext:
    state = SessionState(address="https://example.org", user_id=ME, token="tok")
    return ClientContext(session=Session(state, transport=httpx.MockTransport(server)))


def type_text(context: ClientContext, text: str) -> None:
    for c in text:
        context.handle_key(Key.printable(c))


class TestDescribe:
    def test_labels(self) -> None:
        assert describe(SendRequested("!a:x", "x")) == "Send"
        assert describe(SyncRequested()) == "Sync"


class TestSync:
    def test_sync_now_folds_reply(self) -> None:
        context = make_context(FakeServer(httpx.Response(200, json=direct_chat_payload())))
        assert context.sync_now() is True
        assert context.store.room_ids() == [ROOM]
        assert context.state.next_batch == "s1"
        assert context.notice == ""

    def test_second_sync_sends_cursor(self) -> None:
        server = FakeServer(
            httpx.Response(200, json=direct_chat_payload()),
            httpx.Response(200, json=sync_payload(join={ROOM: joined_room(timeline=[text_event(ME, "yo")])})),
        )
        context = make_context(server)
        context.sync_now()
        effect = context.handle_key(Key.printable("s"))
        assert effect == SyncRequested()
        assert context.perform(effect) is True
        assert server.requests[1].url.params["since"] == "s1"
        assert [m.body for m in context.store.rooms[ROOM].messages] == ["hi", "yo"]

    def test_failed_sync_is_reported(self) -> None:
        context = make_context(FakeServer(httpx.Response(500, json={"error": "boom"})))
        assert context.sync_now() is False
        assert context.notice.startswith("Sync failed:")
        assert context.running
        assert context.state.next_batch == ""

    def test_malformed_sync_is_reported(self) -> None:
        context = make_context(FakeServer(httpx.Response(200, json={"rooms": {}})))
        assert context.sync_now() is False
        assert "next_batch" in context.notice
        assert context.store.rooms == {}

    def test_bad_event_content_still_advances_cursor(self) -> None:
        bad = {"type": "m.room.message", "sender": OTHER, "content": {"msgtype": "m.text", "body": 42}}
        page = sync_payload(join={ROOM: joined_room(timeline=[bad, text_event(OTHER, "ok")])}, next_batch="s1")
        later = sync_payload(join={ROOM: joined_room(timeline=[text_event(OTHER, "next")])}, next_batch="s2")
        server = FakeServer(httpx.Response(200, json=page), httpx.Response(200, json=later))
        context = make_context(server)

        assert [context.sync_now(), context.sync_now()] == [True, True]
        assert [r.url.params.get("since") for r in server.requests] == [None, "s1"]
        assert [m.body for m in context.store.rooms[ROOM].messages] == ["ok", "next"]
        assert context.notice == ""

    def test_picker_cursor_clamped_after_fold(self) -> None:
        context = make_context(FakeServer(httpx.Response(200, json=direct_chat_payload())))
        context.panes.current.room_cursor = 4
        context.sync_now()
        assert context.panes.current.room_cursor == 0


class TestSend:
    def test_compose_and_send(self) -> None:
        server = FakeServer(
            httpx.Response(200, json=direct_chat_payload()),
            httpx.Response(200, json={"event_id": "$1"}),
        )
        context = make_context(server)
        context.sync_now()

        context.handle_key(ENTER)
        context.handle_key(Key.printable("i"))
        type_text(context, "hello")
        context.handle_key(ESCAPE)
        effect = context.handle_key(ENTER)

        assert effect == SendRequested(room_id=ROOM, text="hello")
        assert context.perform(effect) is True
        sent = server.requests[1]
        assert sent.url.raw_path.startswith(b"/_matrix/client/r0/rooms/!abc%3Aexample.org/send/m.room.message")
        assert json.loads(sent.content) == {"msgtype": "m.text", "body": "hello"}
        # The message shows up on the next sync, not locally.
        assert [m.sender for m in context.store.rooms[ROOM].messages] == [OTHER]

    def test_failed_send_is_reported(self) -> None:
        context = make_context(FakeServer(httpx.Response(403, json={"error": "not allowed"})))
        assert context.perform(SendRequested(ROOM, "x")) is False
        assert context.notice.startswith("Send failed: POST rooms/")
        assert context.notice.endswith("returned HTTP 403: not allowed")


class TestQuit:
    def test_quit_from_fresh_state_leaves_store_untouched(self) -> None:
        server = FakeServer()
        context = make_context(server)
        effect = context.handle_key(Key.printable("q"))
        assert effect == QuitRequested()
        assert context.running is False
        assert server.requests == []
        assert context.store.rooms == {}

    def test_q_on_bound_pane_does_not_quit(self) -> None:
        context = make_context(FakeServer(httpx.Response(200, json=direct_chat_payload())))
        context.sync_now()
        context.handle_key(ENTER)
        assert context.handle_key(Key.printable("q")) is None
        assert context.running


class TestNotice:
    def test_notice_expires(self) -> None:
        context = make_context(FakeServer())
        context.show_notice("hello")
        expires = context.notice_expires
        context.tick(now=expires - 0.1)
        assert context.notice == "hello"
        context.tick(now=expires)
        assert context.notice == ""

    def test_plan_carries_notice(self) -> None:
        context = make_context(FakeServer())
        context.show_notice("Sync failed: boom")
        assert context.plan(80, 24).notice == "Sync failed: boom"

    def test_mode_follows_machine(self) -> None:
        context = make_context(FakeServer())
        context.handle_key(Key.printable("i"))
        assert context.mode is Mode.INSERT
