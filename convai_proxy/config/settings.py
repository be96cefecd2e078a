"""
Environment-based settings for the proxy server.

Values are read from the process environment. ``main`` loads a ``.env`` file
first when one exists, so local development can keep credentials out of the shell.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from convai_proxy.config.constants import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_ELEVENLABS_WS_URL,
    DEFAULT_READY_TIMEOUT,
    DEFAULT_WS_PATH,
    LOGGER_NAME,
)

logger = logging.getLogger(LOGGER_NAME)


@dataclass
class ProxySettings:
    """Settings consumed by the proxy server."""

    api_key: Optional[str] = None
    agent_id: Optional[str] = None
    upstream_url: str = DEFAULT_ELEVENLABS_WS_URL
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    ready_timeout: Optional[float] = DEFAULT_READY_TIMEOUT
    ws_path: str = DEFAULT_WS_PATH
    static_dir: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 3000

    @property
    def credentials_configured(self) -> bool:
        return bool(self.api_key and self.agent_id)

    @classmethod
    def from_env(cls) -> "ProxySettings":
        """Build settings from environment variables."""
        ready_timeout = float(os.getenv("READY_TIMEOUT", str(DEFAULT_READY_TIMEOUT)))
        settings = cls(
            api_key=os.getenv("ELEVENLABS_API_KEY") or None,
            agent_id=os.getenv("AGENT_ID") or None,
            upstream_url=os.getenv("ELEVENLABS_WS_URL", DEFAULT_ELEVENLABS_WS_URL),
            connect_timeout=float(
                os.getenv("UPSTREAM_CONNECT_TIMEOUT", str(DEFAULT_CONNECT_TIMEOUT))
            ),
            ready_timeout=ready_timeout if ready_timeout > 0 else None,
            ws_path=os.getenv("WS_PATH", DEFAULT_WS_PATH),
            static_dir=os.getenv("STATIC_DIR") or None,
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
        )
        if not settings.credentials_configured:
            logger.critical(
                "Missing ELEVENLABS_API_KEY or AGENT_ID in environment variables"
            )
        return settings
