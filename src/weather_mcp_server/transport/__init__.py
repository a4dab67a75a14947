"""Transport layer.

Server-Sent Events carry everything the server pushes to a session.
"""

from .sse import SSEMessage, StreamChannel, StreamEvent, drain_channel, parse_sse

__all__ = [
    "SSEMessage",
    "StreamChannel",
    "StreamEvent",
    "drain_channel",
    "parse_sse",
]
