"""
WebSocket connection manager for the conversational-agent proxy.

This module accepts client WebSocket connections and pairs each one with its own
``ProxySession``. Sessions share nothing; the manager only keeps a registry of the
active ones so the health endpoint can report how many are running.
"""

import logging
from typing import Dict, Optional

from fastapi import WebSocket

from convai_proxy.config.constants import LOGGER_NAME
from convai_proxy.proxy.session import ProxySession
from convai_proxy.services.agent_client import AgentServiceConnector

logger = logging.getLogger(LOGGER_NAME)


class WebSocketManager:
    """Accepts client connections and runs one proxy session per connection."""

    def __init__(self, connector: AgentServiceConnector, ready_timeout: Optional[float] = None):
        self.connector = connector
        self.ready_timeout = ready_timeout
        self.sessions: Dict[str, ProxySession] = {}

    @property
    def active_sessions(self) -> int:
        return len(self.sessions)

    async def handle_websocket(self, websocket: WebSocket) -> None:
        """Handle a client WebSocket connection throughout its lifecycle.

        Args:
            websocket (WebSocket): The FastAPI WebSocket connection object

        The connection is accepted, paired with a new agent connection, and
        relayed until the session ends. The session is always deregistered,
        whichever side ended it.
        """
        await websocket.accept()

        session = ProxySession(websocket, self.connector, ready_timeout=self.ready_timeout)
        self.sessions[session.session_id] = session
        logger.info(
            f"Client connection accepted, session {session.session_id} "
            f"({self.active_sessions} active)"
        )
        try:
            await session.run()
        except Exception as e:
            logger.error(f"Error in session {session.session_id}: {e}", exc_info=True)
        finally:
            self.sessions.pop(session.session_id, None)
            logger.info(f"Session removed during cleanup: {session.session_id}")
