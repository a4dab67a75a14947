"""Error taxonomy.

Every error that can be surfaced to an HTTP caller derives from
WeatherServerError and carries the status code and client-facing message
used to build the JSON error body.
"""

from __future__ import annotations


class WeatherServerError(Exception):
    """Base class for errors surfaced to clients."""

    status_code: int = 500
    error: str = "Internal server error"

    def __init__(self, details: str | None = None) -> None:
        self.details = details
        super().__init__(details or self.error)

    def to_dict(self) -> dict[str, str]:
        """Serialize for a JSON error response."""
        body = {"error": self.error}
        if self.details:
            body["details"] = self.details
        return body


class InvalidArgument(WeatherServerError):
    """A required argument is missing or malformed."""

    status_code = 400
    error = "Invalid argument"


class MissingSessionId(InvalidArgument):
    """A command was posted without a connection identifier."""

    error = "Invalid or missing connection ID"


class SessionNotFound(WeatherServerError):
    """No live session is registered under the given identifier."""

    status_code = 400
    error = "Invalid or missing connection ID"

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"No open stream for connection {session_id}")


class SessionNotReady(WeatherServerError):
    """The session exists but its stream handshake has not completed."""

    status_code = 400
    error = "SSE connection not established yet"

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Connection {session_id} is not ready")


class SessionConflict(WeatherServerError):
    """A client-supplied identifier collides with a live session."""

    status_code = 409
    error = "Connection ID already in use"

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Connection {session_id} is already open")


class UpstreamError(WeatherServerError):
    """The weather upstream did not answer successfully."""

    status_code = 500
    error = "Failed to fetch weather data"

    def __init__(self, details: str, upstream_status: int | None = None) -> None:
        self.upstream_status = upstream_status
        super().__init__(details)


class ChannelClosed(Exception):
    """Write attempted on a stream that has already been torn down.

    Never surfaced to clients; callers log and discard it.
    """

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Stream for connection {session_id} is closed")
