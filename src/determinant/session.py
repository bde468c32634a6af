"""Synchronous Matrix client-server session over httpx.

Every call blocks until the server answers or the timeout expires. The
event loop decides whether to run these on a worker thread.

URLs are built as ``<address>/_matrix/client/r0/<path>``. POST paths have
their colons escaped as ``%3A`` (room ids look like ``!abc:example.org``)
before the ``access_token`` query parameter is appended.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from determinant.errors import AuthError, ProtocolError, TransportError
from determinant.payloads import TEXT_MESSAGE, parse_login, parse_send
from determinant.state import SessionState

logger = logging.getLogger(__name__)

API_PREFIX = "/_matrix/client/r0/"
DEFAULT_TIMEOUT = 30.0


def escape_path(path: str) -> str:
    """Percent-encode the colons in a request path."""
    return path.replace(":", "%3A")


def extract_detail(response: httpx.Response) -> str:
    """Pull the human-readable error out of a Matrix error body."""
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict):
        return str(data.get("error") or data.get("errcode") or response.text)
    return response.text


class Session:
    """Owns the server address and access token and talks HTTP.

    Pass *transport* to swap the network out (``httpx.MockTransport`` in
    tests).
    """

    def __init__(
        self,
        state: SessionState,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.state = state
        self.client = httpx.Client(timeout=timeout, transport=transport)

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self.client.close()

    # -- URLs -------------------------------------------------------------

    def build_url(self, path: str, escape: bool = False) -> str:
        if escape:
            path = escape_path(path)
        return self.state.address.rstrip("/") + API_PREFIX + path

    # -- Requests ---------------------------------------------------------

    def perform(self, method: str, url: str, params: list[tuple[str, str]], body: dict | None = None) -> Any:
        """Send one request and decode the JSON reply.

        Raises:
            TransportError: On connection failures, timeouts and non-2xx replies.
            ProtocolError: If the reply body is not JSON.
        """
        # The URL and params carry the token; log the path only.
        path = url.split(API_PREFIX, 1)[-1]
        logger.debug("%s %s", method, path)
        try:
            response = self.client.request(method, url, params=params, json=body)
        except httpx.TimeoutException as exc:
            raise TransportError(f"{method} {path} timed out") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc

        if response.is_error:
            raise TransportError(
                f"{method} {path} returned HTTP {response.status_code}: {extract_detail(response)}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise ProtocolError(f"{method} {path} returned a body that is not JSON") from exc

    def get(self, path: str, params: list[tuple[str, str]] | None = None) -> Any:
        query = [("access_token", self.state.token), *(params or [])]
        return self.perform("GET", self.build_url(path), query)

    def post(self, path: str, body: dict, with_token: bool = True) -> Any:
        query = [("access_token", self.state.token)] if with_token else []
        return self.perform("POST", self.build_url(path, escape=True), query, body)

    # -- API --------------------------------------------------------------

    def login(self, user: str, password: str) -> str:
        """Log in with a password and return the access token.

        The token is stored on the session state. If the server reports the
        full user id it replaces the configured one, so a bare localpart
        works as *user*.

        Raises:
            AuthError: If the server rejects the login or the reply has no token.
        """
        body = {
            "type": "m.login.password",
            "identifier": {"type": "m.id.user", "user": user},
            "password": password,
        }
        try:
            reply = parse_login(self.post("login", body, with_token=False))
        except (TransportError, ProtocolError) as exc:
            raise AuthError(f"Login failed for {user}: {exc}") from exc

        self.state.token = reply.access_token
        if reply.user_id:
            self.state.user_id = reply.user_id
        logger.info("Logged in as %s", self.state.user_id)
        return reply.access_token

    def sync(self) -> Any:
        """Fetch the next sync page. Returns the decoded JSON for the sync engine."""
        params = [("full_state", "true"), ("set_presence", "online")]
        if self.state.has_cursor:
            params.append(("since", self.state.next_batch))
        return self.get("sync", params)

    def send_message(self, room_id: str, text: str) -> Any:
        """Post a plain text message to *room_id*."""
        body = {"msgtype": TEXT_MESSAGE, "body": text}
        reply = self.post(f"rooms/{room_id}/send/m.room.message", body)
        parse_send(reply)
        logger.info("Sent message to %s", room_id)
        return reply
