"""
Proxy session pairing one client WebSocket with one agent-service WebSocket.

A session runs one receive task per direction and translates socket events into
state-machine transitions:

    connecting -> ready -> closed
         \\          \\
          +-> closing -+-> closed

Client messages are forwarded upstream only once the agent has sent its
conversation initiation metadata; until then they are dropped, never buffered.
Agent messages are forwarded downstream verbatim, except for pings, which are
answered with a transport-level pong. Whichever side closes first, the upstream
close is what ends the session, and the client is told exactly once.
"""

import asyncio
import logging
import uuid
from enum import Enum
from typing import Optional, Tuple, Union

from fastapi import WebSocket
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed, ConnectionClosedError

from convai_proxy.config.constants import (
    CLOSE_ABNORMAL,
    CLOSE_GOING_AWAY,
    CLOSE_INTERNAL_ERROR,
    CLOSE_NORMAL,
    LOGGER_NAME,
    MESSAGE_TYPE_CONVERSATION_INITIATION_METADATA,
    MESSAGE_TYPE_END_CONVERSATION,
    MESSAGE_TYPE_PING,
    REASON_CLIENT_DISCONNECTED,
    REASON_CLIENT_ERROR,
    REASON_PROXY_ERROR,
    REASON_READY_TIMEOUT,
    REASON_SERVER_SHUTDOWN,
    REASON_USER_ENDED,
)
from convai_proxy.errors import ProtocolError, ProxyError
from convai_proxy.models.envelopes import (
    BackendConnectedEnvelope,
    ConversationEndedEnvelope,
    ElevenlabsReadyEnvelope,
    ErrorEnvelope,
    parse_envelope,
)
from convai_proxy.services.agent_client import AgentServiceConnector

logger = logging.getLogger(LOGGER_NAME)

Frame = Union[str, bytes]


class SessionState(str, Enum):
    """Lifecycle states of a proxy session."""

    CONNECTING = "connecting"
    READY = "ready"
    CLOSING = "closing"
    CLOSED = "closed"


class ProxySession:
    """
    Relays one client connection to one agent-service connection.

    The session owns both sockets. All handlers run on the event loop, so the
    ``ready`` and ``closed`` flags need no locking; every state change happens
    before the first ``await`` of the handler that makes it.
    """

    def __init__(
        self,
        downstream: WebSocket,
        connector: AgentServiceConnector,
        ready_timeout: Optional[float] = None,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex[:8]
        self.downstream = downstream
        self.connector = connector
        self.ready_timeout = ready_timeout
        self.upstream: Optional[ClientConnection] = None

        self.state = SessionState.CONNECTING
        self.ready = False
        self.closed = False

        self._downstream_open = True
        self._upstream_closing = False
        self._pending_close: Optional[Tuple[int, str]] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._ready_event = asyncio.Event()

    @property
    def downstream_open(self) -> bool:
        return self._downstream_open

    @property
    def upstream_open(self) -> bool:
        return self.upstream is not None and not self._upstream_closing and not self.closed

    async def run(self) -> None:
        """Run the session until the upstream connection has closed."""
        logger.info(f"[{self.session_id}] New client connected, opening agent connection")
        downstream_task = asyncio.create_task(self._receive_downstream())
        watchdog_task = None
        try:
            if await self._open_upstream():
                if self.ready_timeout:
                    watchdog_task = asyncio.create_task(self._watch_readiness())
                await self._receive_upstream()
        finally:
            tasks = [task for task in (downstream_task, watchdog_task) if task is not None]
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            if not self.closed:
                # Only reachable when run() itself was cancelled
                await self._close_upstream(CLOSE_GOING_AWAY, REASON_SERVER_SHUTDOWN)
                self.closed = True
                self.state = SessionState.CLOSED
            logger.info(f"[{self.session_id}] Session finished")

    # --- Upstream (agent service) events ---

    async def handle_upstream_message(self, message: Frame) -> None:
        """Handle one frame received from the agent service."""
        if self.closed:
            return

        if isinstance(message, (bytes, bytearray, memoryview)):
            logger.debug(f"[{self.session_id}] Forwarding binary frame to client ({len(message)} bytes)")
            await self._send_downstream(bytes(message))
            return

        try:
            envelope = parse_envelope(message)
        except ProtocolError as e:
            logger.error(f"[{self.session_id}] Error parsing message from agent: {e.details}")
            await self._send_downstream(
                ErrorEnvelope(
                    message="Error processing message from agent.", details=e.details
                ).to_json()
            )
            return

        logger.debug(f"[{self.session_id}] Received message from agent: {envelope.type}")

        if envelope.type == MESSAGE_TYPE_PING:
            await self._pong_upstream()
            return

        if envelope.type == MESSAGE_TYPE_CONVERSATION_INITIATION_METADATA:
            logger.info(f"[{self.session_id}] Received conversation initiation metadata")
            self._mark_ready()
            await self._send_downstream(ElevenlabsReadyEnvelope().to_json())

        await self._send_downstream(message)

    async def handle_upstream_error(self, error: Exception) -> None:
        """Report an agent connection failure to the client."""
        if isinstance(error, ProxyError):
            message, details = error.message, error.details
        else:
            message, details = "Connection failed to agent service.", str(error)
        logger.error(f"[{self.session_id}] Agent WebSocket error: {details}")
        await self._send_downstream(ErrorEnvelope(message=message, details=details).to_json())

    async def handle_upstream_close(self, code: Optional[int], reason: Optional[str]) -> None:
        """Terminate the session; the client is notified at most once."""
        if self.closed:
            return
        self.closed = True
        self.state = SessionState.CLOSED
        self._upstream_closing = True
        logger.info(
            f"[{self.session_id}] Agent WebSocket closed: {code} - {reason or 'No reason provided'}"
        )

        if self._downstream_open:
            await self._send_downstream(ConversationEndedEnvelope().to_json())
            logger.info(f"[{self.session_id}] Sent conversationEnded to client")
            await self._close_downstream(CLOSE_NORMAL)

    # --- Downstream (client) events ---

    async def handle_downstream_message(self, message: Frame) -> None:
        """Handle one frame received from the client."""
        if self.closed:
            logger.debug(f"[{self.session_id}] Dropping message from client, session is closed")
            return

        if isinstance(message, (bytes, bytearray, memoryview)):
            if self._gate_open():
                await self._send_upstream(bytes(message))
            return

        try:
            envelope = parse_envelope(message)
        except ProtocolError as e:
            logger.warning(f"[{self.session_id}] Received invalid message from client: {e.details}")
            await self._send_downstream(
                ErrorEnvelope(message="Invalid message format.", details=e.details).to_json()
            )
            return

        if envelope.type == MESSAGE_TYPE_END_CONVERSATION:
            await self.end_conversation()
            return

        if self._gate_open():
            logger.debug(f"[{self.session_id}] Forwarding message '{envelope.type}' to agent")
            await self._send_upstream(message)

    async def handle_downstream_close(self) -> None:
        """The client went away; close the agent connection if it is still up."""
        logger.info(f"[{self.session_id}] Client WebSocket disconnected")
        self._downstream_open = False
        await self._close_upstream(CLOSE_NORMAL, REASON_CLIENT_DISCONNECTED)

    async def handle_downstream_error(self, error: Exception) -> None:
        """The client socket failed; close the agent connection abnormally."""
        logger.error(f"[{self.session_id}] Client WebSocket error: {error}")
        self._downstream_open = False
        await self._close_upstream(CLOSE_INTERNAL_ERROR, REASON_CLIENT_ERROR)

    async def end_conversation(self) -> None:
        """Close the agent connection on the client's request."""
        logger.info(f"[{self.session_id}] Received end_conversation from client")
        if self.closed:
            return
        self.state = SessionState.CLOSING
        await self._close_upstream(CLOSE_NORMAL, REASON_USER_ENDED)

    # --- Internals ---

    def _mark_ready(self) -> None:
        self.ready = True
        if self.state is SessionState.CONNECTING:
            self.state = SessionState.READY
        self._ready_event.set()

    def _gate_open(self) -> bool:
        if not self.ready:
            logger.warning(f"[{self.session_id}] Dropping message from client, agent not ready yet")
            return False
        if not self.upstream_open:
            logger.warning(f"[{self.session_id}] Dropping message from client, agent connection is not open")
            return False
        return True

    async def _open_upstream(self) -> bool:
        self._connect_task = asyncio.create_task(self.connector.connect())
        await asyncio.wait({self._connect_task})

        if self._connect_task.cancelled():
            code, reason = self._pending_close or (CLOSE_NORMAL, REASON_CLIENT_DISCONNECTED)
            logger.info(f"[{self.session_id}] Agent connection cancelled before it opened")
            await self.handle_upstream_close(code, reason)
            return False

        error = self._connect_task.exception()
        if error is not None:
            await self.handle_upstream_error(error)
            await self.handle_upstream_close(CLOSE_ABNORMAL, str(error))
            return False

        self.upstream = self._connect_task.result()
        logger.info(f"[{self.session_id}] Connected to agent WebSocket")
        if self._pending_close is not None:
            await self._close_upstream(*self._pending_close)
        else:
            # Readiness is signalled later by conversation_initiation_metadata
            await self._send_downstream(BackendConnectedEnvelope().to_json())
        return True

    async def _receive_upstream(self) -> None:
        error: Optional[Exception] = None
        try:
            async for message in self.upstream:
                await self.handle_upstream_message(message)
        except ConnectionClosedError as e:
            # A close frame means an orderly close with an error code, not a failure
            if e.rcvd is None:
                error = e
        except Exception as e:
            logger.error(f"[{self.session_id}] Error in agent receive loop: {e}", exc_info=True)
            error = e

        if error is not None:
            await self.handle_upstream_error(error)
            await self._close_upstream(CLOSE_INTERNAL_ERROR, REASON_PROXY_ERROR)

        await self.handle_upstream_close(
            getattr(self.upstream, "close_code", None),
            getattr(self.upstream, "close_reason", None),
        )

    async def _receive_downstream(self) -> None:
        try:
            while True:
                event = await self.downstream.receive()
                if event["type"] == "websocket.disconnect":
                    break
                if event.get("bytes") is not None:
                    await self.handle_downstream_message(event["bytes"])
                elif event.get("text") is not None:
                    await self.handle_downstream_message(event["text"])
        except Exception as e:
            await self.handle_downstream_error(e)
            return
        await self.handle_downstream_close()

    async def _watch_readiness(self) -> None:
        try:
            await asyncio.wait_for(self._ready_event.wait(), timeout=self.ready_timeout)
        except asyncio.TimeoutError:
            if self.closed:
                return
            logger.error(
                f"[{self.session_id}] Agent did not send initiation metadata within {self.ready_timeout}s"
            )
            await self._send_downstream(
                ErrorEnvelope(
                    message="Agent did not become ready in time.",
                    details=f"No readiness signal after {self.ready_timeout}s",
                ).to_json()
            )
            await self._close_upstream(CLOSE_INTERNAL_ERROR, REASON_READY_TIMEOUT)

    async def _send_downstream(self, data: Frame) -> bool:
        if not self._downstream_open:
            logger.warning(f"[{self.session_id}] Dropping message for client, connection is not open")
            return False
        try:
            if isinstance(data, bytes):
                await self.downstream.send_bytes(data)
            else:
                await self.downstream.send_text(data)
        except Exception as e:
            logger.warning(f"[{self.session_id}] Failed to send to client, marking connection closed: {e}")
            self._downstream_open = False
            return False
        return True

    async def _send_upstream(self, data: Frame) -> None:
        try:
            await self.upstream.send(data)
        except ConnectionClosed as e:
            # The upstream receive task observes the same close and ends the session
            logger.warning(f"[{self.session_id}] Dropping message for agent, connection closed: {e}")

    async def _pong_upstream(self) -> None:
        if not self.upstream_open:
            return
        logger.debug(f"[{self.session_id}] Received ping from agent, sending pong")
        try:
            await self.upstream.pong()
        except ConnectionClosed as e:
            logger.warning(f"[{self.session_id}] Could not send pong, agent connection closed: {e}")

    async def _close_upstream(self, code: int, reason: str) -> None:
        if self.closed or self._upstream_closing:
            return
        if self.upstream is None:
            if self._pending_close is None:
                self._pending_close = (code, reason)
            if self._connect_task is not None and not self._connect_task.done():
                self._connect_task.cancel()
            return

        self._upstream_closing = True
        self.state = SessionState.CLOSING
        logger.info(f"[{self.session_id}] Closing agent connection: {code} - {reason}")
        try:
            await self.upstream.close(code, reason)
        except Exception as e:
            logger.warning(f"[{self.session_id}] Error closing agent connection: {e}")

    async def _close_downstream(self, code: int) -> None:
        if not self._downstream_open:
            return
        self._downstream_open = False
        try:
            await self.downstream.close(code)
        except Exception as e:
            logger.warning(f"[{self.session_id}] Error closing client connection: {e}")
