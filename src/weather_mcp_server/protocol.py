"""Wire models for the streaming transport.

Commands arrive on POST /messages; everything the server pushes back
travels as named SSE events on the subscriber's stream.

Note: Field names use camelCase to match what browser and MCP clients
send and expect - do not change to snake_case.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class StreamEventType(str, Enum):
    """Named SSE events emitted on a session stream."""

    CONNECTION = "connection"  # Session id assigned
    ENDPOINT = "endpoint"  # Handshake: where to post commands
    READY = "ready"  # Session accepts commands
    MESSAGE = "message"  # Command result
    ERROR = "error"  # Stream-level failure


class CommandMethod(str, Enum):
    """All supported command methods."""

    CALL_TOOL = "callTool"
    LIST_TOOLS = "listTools"
    LIST_PROMPTS = "listPrompts"
    GET_PROMPT = "getPrompt"
    PING = "ping"


class WireModel(BaseModel):
    """Base model for wire types."""

    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# Stream Lifecycle Events
# =============================================================================


class ConnectionProps(WireModel):
    """Stream opened and registered under connectionId."""

    connectionId: str


class ReadyProps(WireModel):
    """Handshake completed, commands are accepted."""

    status: Literal["ready"] = "ready"


class ErrorProps(WireModel):
    """Stream-level error."""

    error: str
    details: str | None = None


# =============================================================================
# Commands
# =============================================================================


class CommandParams(WireModel):
    """Parameters of a command: target capability name and its arguments."""

    name: str | None = None
    arguments: dict[str, Any] = Field(default_factory=dict)


class CommandMessage(WireModel):
    """A command posted by a client for a session.

    Example:
        {
            "id": "req_1",
            "type": "request",
            "method": "callTool",
            "params": {"name": "get-weather", "arguments": {"city": "Tokyo"}}
        }

    The result is streamed back as a `message` event whose `id` is the
    command's `id`.
    """

    id: str | int = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")
    type: Literal["request"] = "request"
    method: CommandMethod
    params: CommandParams = Field(default_factory=CommandParams)

    @classmethod
    def call_tool(
        cls,
        name: str,
        arguments: dict[str, Any] | None = None,
        request_id: str | int | None = None,
    ) -> CommandMessage:
        """Create a callTool command."""
        params = CommandParams(name=name, arguments=arguments or {})
        if request_id is None:
            return cls(method=CommandMethod.CALL_TOOL, params=params)
        return cls(id=request_id, method=CommandMethod.CALL_TOOL, params=params)


class Acknowledgement(WireModel):
    """Synchronous reply to a posted command."""

    received: bool = True


# =============================================================================
# Results
# =============================================================================


class ToolEnvelope(WireModel):
    """Normalized outcome of a tool call."""

    contentType: Literal["text"] = "text"
    text: str
    isError: bool = False

    @classmethod
    def success(cls, text: str) -> ToolEnvelope:
        return cls(text=text)

    @classmethod
    def failure(cls, text: str) -> ToolEnvelope:
        return cls(text=text, isError=True)


class ResponseMessage(WireModel):
    """Result of a command, correlated by the command's id."""

    id: str | int | None = None
    type: Literal["response"] = "response"
    method: CommandMethod
    result: Any = None
