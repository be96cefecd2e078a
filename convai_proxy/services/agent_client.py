"""
Upstream connector for the conversational-agent service.

Builds the agent WebSocket URL from the configured agent identifier and opens the
connection with the static API-key header. Connection establishment is bounded by
a timeout; every failure is reported as an ``UpstreamConnectionError`` so the proxy
session can surface it to the client.
"""

import asyncio
import logging
import time
from typing import Optional
from urllib.parse import urlencode

import websockets
from websockets.asyncio.client import ClientConnection

from convai_proxy.config.constants import (
    API_KEY_HEADER,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_ELEVENLABS_WS_URL,
    LOGGER_NAME,
    WS_MAX_SIZE,
)
from convai_proxy.config.settings import ProxySettings
from convai_proxy.errors import UpstreamConnectionError

logger = logging.getLogger(LOGGER_NAME)


class AgentServiceConnector:
    """
    Opens one upstream WebSocket per proxy session.

    The connector holds only configuration; it keeps no reference to the
    connections it creates, so sessions share no mutable state through it.
    """

    def __init__(
        self,
        api_key: Optional[str],
        agent_id: Optional[str],
        base_url: str = DEFAULT_ELEVENLABS_WS_URL,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ):
        self.api_key = api_key
        self.agent_id = agent_id
        self.base_url = base_url
        self.connect_timeout = connect_timeout

    @classmethod
    def from_settings(cls, settings: ProxySettings) -> "AgentServiceConnector":
        return cls(
            settings.api_key,
            settings.agent_id,
            base_url=settings.upstream_url,
            connect_timeout=settings.connect_timeout,
        )

    @property
    def url(self) -> str:
        """The agent WebSocket URL, parameterized by the agent identifier."""
        return f"{self.base_url}?{urlencode({'agent_id': self.agent_id or ''})}"

    async def connect(self) -> ClientConnection:
        """
        Connect to the agent service.

        Returns:
            The open upstream WebSocket connection

        Raises:
            UpstreamConnectionError: If credentials are missing, the service is
                unreachable or rejects the handshake, or the timeout expires
        """
        if not self.api_key or not self.agent_id:
            raise UpstreamConnectionError(
                "Connection failed to agent service.",
                "ELEVENLABS_API_KEY or AGENT_ID is not configured",
            )

        logger.info(f"Connecting to agent service: {self.url}")
        headers = {API_KEY_HEADER: self.api_key}
        connection_start = time.time()
        try:
            ws = await asyncio.wait_for(
                websockets.connect(
                    self.url,
                    additional_headers=headers,
                    max_size=WS_MAX_SIZE,
                    compression=None,  # Disable compression for lower latency
                ),
                timeout=self.connect_timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(
                f"Timeout while connecting to agent service (after {self.connect_timeout}s)"
            )
            raise UpstreamConnectionError(
                "Connection failed to agent service.",
                f"Timed out after {self.connect_timeout}s",
            ) from e
        except Exception as e:
            logger.error(f"Failed to connect to agent service: {e}")
            raise UpstreamConnectionError(
                "Connection failed to agent service.", str(e)
            ) from e

        connection_time = time.time() - connection_start
        logger.debug(f"Agent WebSocket connection established in {connection_time:.2f} seconds")
        return ws
