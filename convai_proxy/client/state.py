"""Shared flags of one voice-client conversation."""

import threading
from dataclasses import dataclass, field


@dataclass
class ClientState:
    """
    Connection flags shared by the capture callback and the event loop.

    Each flag has a single writer (the conversation client on the event loop)
    and is read from the audio device thread, hence ``threading.Event``.
    """

    connected: threading.Event = field(default_factory=threading.Event)
    ready: threading.Event = field(default_factory=threading.Event)
    recording: threading.Event = field(default_factory=threading.Event)

    def reset(self) -> None:
        self.connected.clear()
        self.ready.clear()
        self.recording.clear()
