"""
Proxy module relaying client connections to the conversational-agent service.

Key components:
- session: ``ProxySession``, the per-connection state machine that gates client
  messages on the agent's readiness signal, forwards frames in both directions
  and propagates close and error events between the two sockets.
"""

from convai_proxy.proxy.session import ProxySession, SessionState

__all__ = ["ProxySession", "SessionState"]
