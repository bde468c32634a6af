"""Error taxonomy for the client.

TransportError: connection, DNS, TLS, timeout or non-2xx HTTP failure.
ProtocolError: a response that is not JSON or lacks required fields.
AuthError: login rejected; fatal at startup.
InputOverflow: a compose buffer taller than the rows the renderer can address.
"""

from __future__ import annotations


class DeterminantError(Exception):
    """Base class for all client errors."""


class TransportError(DeterminantError):
    """The request never produced a usable HTTP response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProtocolError(DeterminantError):
    """The server answered, but not with the shape we consume."""


class AuthError(DeterminantError):
    """Login was rejected or the login response was unusable."""


class InputOverflow(DeterminantError):
    """The compose buffer has more lines than the pane can show."""

    def __init__(self, needed: int, available: int) -> None:
        super().__init__(f"Message has {needed} rows but only {available} fit; showing the last {available}")
        self.needed = needed
        self.available = available
