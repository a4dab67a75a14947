"""Command dispatch.

Routes commands posted out-of-band to the stream they address:
- connect(): handshake that binds a session's channel to this dispatcher
- dispatch(): validates a command and acknowledges it synchronously
- deliver(): runs after the acknowledgement, executes the command and
  writes the result onto the session's stream

Failures in deliver() are one-way: they go to the stream if it is still
open, otherwise they are logged and dropped. They never reach the caller
that posted the command.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from .capabilities import CapabilityRouter
from .errors import ChannelClosed, MissingSessionId, SessionNotFound, SessionNotReady
from .protocol import (
    Acknowledgement,
    CommandMessage,
    CommandMethod,
    ResponseMessage,
    StreamEventType,
)
from .registry import Session, SessionRegistry

logger = logging.getLogger(__name__)


class CommandDispatcher:
    """Correlates posted commands with open streams."""

    def __init__(
        self,
        registry: SessionRegistry,
        router: CapabilityRouter,
        messages_path: str = "/messages",
    ) -> None:
        self.registry = registry
        self.router = router
        self.messages_path = messages_path

    def endpoint_for(self, session_id: str) -> str:
        """URI clients post commands to for this session."""
        return f"{self.messages_path}?connectionId={quote(session_id, safe='')}"

    async def connect(self, session: Session) -> None:
        """Handshake: announce the command endpoint on the session's stream.

        Raises:
            ChannelClosed: the stream went away before the handshake finished
        """
        await session.channel.send(StreamEventType.ENDPOINT.value, self.endpoint_for(session.id))
        logger.debug(f"Bound session {session.id} to dispatcher")

    def resolve(self, session_id: str | None) -> Session:
        """Find the ready session a command is addressed to.

        Raises:
            MissingSessionId: no connection id given
            SessionNotFound: no such live session
            SessionNotReady: the session's handshake has not completed
        """
        if not session_id:
            raise MissingSessionId()

        session = self.registry.get(session_id)
        if not session.ready:
            raise SessionNotReady(session_id)
        return session

    def dispatch(self, session_id: str | None, command: CommandMessage) -> Acknowledgement:
        """Validate a command addressed to a session.

        Args:
            session_id: Target connection id
            command: Parsed command

        Returns:
            Acknowledgement to send back immediately

        Raises:
            MissingSessionId, SessionNotFound, SessionNotReady: see resolve()
        """
        self.resolve(session_id)

        logger.info(f"Accepted {command.method.value} ({command.id}) for session {session_id}")
        return Acknowledgement(received=True)

    async def execute(self, command: CommandMessage) -> Any:
        """Run a command against the capability router."""
        params = command.params

        if command.method == CommandMethod.CALL_TOOL:
            envelope = await self.router.call_tool(params.name, params.arguments)
            return envelope.model_dump()
        if command.method == CommandMethod.LIST_TOOLS:
            return {"tools": self.router.list_tools()}
        if command.method == CommandMethod.LIST_PROMPTS:
            return {"prompts": self.router.list_prompts()}
        if command.method == CommandMethod.GET_PROMPT:
            return self.router.get_prompt(params.name, params.arguments)
        if command.method == CommandMethod.PING:
            return {}

        raise ValueError(f"Unhandled command method: {command.method}")

    async def deliver(self, session_id: str, command: CommandMessage) -> None:
        """Execute a command and write its result onto the session's stream.

        Never raises.
        """
        try:
            result = await self.execute(command)
            message = ResponseMessage(id=command.id, method=command.method, result=result)
            event = StreamEventType.MESSAGE.value
        except Exception as e:
            logger.exception(f"Error handling {command.method.value} for session {session_id}")
            message = ResponseMessage(
                id=command.id,
                method=command.method,
                result={"error": "Failed to process message", "details": str(e)},
            )
            event = StreamEventType.ERROR.value

        # The session may have disconnected while the command was running
        try:
            session = self.registry.get(session_id)
            await session.channel.send(event, message)
        except (SessionNotFound, ChannelClosed) as e:
            logger.warning(f"Dropping result of {command.id}: {e}")
