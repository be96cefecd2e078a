"""
Exception types raised by the proxy and the voice client.

Each type maps to one failure class: an unreachable upstream ends the session,
a malformed message is dropped, and audio failures only cost a single frame
or buffer.
"""

from typing import Optional


class ProxyError(Exception):
    """Base class for all application errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class UpstreamConnectionError(ProxyError):
    """The agent service could not be reached, rejected us, or timed out."""


class ProtocolError(ProxyError):
    """A received frame is not a JSON object with a string ``type`` field."""


class PlaybackRenderError(ProxyError):
    """One audio buffer could not be decoded or rendered."""


class ResampleError(ProxyError):
    """A capture frame could not be resampled."""
