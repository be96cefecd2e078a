"""
Voice client for the conversational-agent proxy.

Connects to the proxy's WebSocket endpoint, starts streaming the microphone once
the agent is ready, plays agent audio through the playback queue and keeps an
in-memory transcript of the conversation.
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Tuple

import websockets
from websockets.exceptions import ConnectionClosed

from convai_proxy.client.capture import AudioCapturePipeline
from convai_proxy.client.playback import AudioOutput, AudioPlaybackQueue
from convai_proxy.client.state import ClientState
from convai_proxy.config.constants import (
    LOGGER_NAME,
    MESSAGE_TYPE_AGENT_RESPONSE,
    MESSAGE_TYPE_AUDIO,
    MESSAGE_TYPE_BACKEND_CONNECTED,
    MESSAGE_TYPE_CONVERSATION_ENDED,
    MESSAGE_TYPE_ELEVENLABS_READY,
    MESSAGE_TYPE_ERROR,
    MESSAGE_TYPE_USER_TRANSCRIPT,
    MESSAGE_TYPE_VAD_SCORE,
    WS_MAX_SIZE,
)
from convai_proxy.errors import ProtocolError
from convai_proxy.models.envelopes import (
    AgentResponseEnvelope,
    AudioEnvelope,
    EndConversationEnvelope,
    Envelope,
    UserTranscriptEnvelope,
    VadScoreEnvelope,
    parse_envelope,
)

logger = logging.getLogger(LOGGER_NAME)

DEFAULT_PROXY_URL = "ws://localhost:3000/audio-stream"


class VoiceConversationClient:
    """
    One voice conversation through the proxy.

    Args:
        url: Proxy WebSocket URL
        microphone: Input device with ``sample_rate``, ``start(callback)`` and ``stop()``
        speaker: Output device used by the playback queue
    """

    def __init__(self, url: str, microphone, speaker: AudioOutput):
        self.url = url
        self.microphone = microphone
        self.state = ClientState()
        self.playback = AudioPlaybackQueue(speaker)
        self.capture: Optional[AudioCapturePipeline] = None
        self.transcript: List[Tuple[str, str]] = []
        self.websocket = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._outgoing: "asyncio.Queue[str]" = asyncio.Queue()
        self._sender_task: Optional[asyncio.Task] = None

        # Dispatch on the wire tag
        self.handlers: Dict[str, Callable[[Envelope], None]] = {
            MESSAGE_TYPE_ELEVENLABS_READY: self._on_ready,
            MESSAGE_TYPE_BACKEND_CONNECTED: self._on_backend_connected,
            MESSAGE_TYPE_CONVERSATION_ENDED: self._on_conversation_ended,
            MESSAGE_TYPE_ERROR: self._on_error,
            MESSAGE_TYPE_USER_TRANSCRIPT: self._on_user_transcript,
            MESSAGE_TYPE_AGENT_RESPONSE: self._on_agent_response,
            MESSAGE_TYPE_VAD_SCORE: self._on_vad_score,
            MESSAGE_TYPE_AUDIO: self._on_audio,
        }

    async def run(self) -> None:
        """Connect to the proxy and process messages until the connection closes."""
        self._loop = asyncio.get_running_loop()
        logger.info(f"Connecting to proxy at {self.url}")
        async with websockets.connect(self.url, max_size=WS_MAX_SIZE) as websocket:
            self.websocket = websocket
            self.state.connected.set()
            self._sender_task = asyncio.create_task(self._sender_loop())
            logger.info("Connected to proxy. Waiting for agent...")
            try:
                async for message in websocket:
                    await self.handle_message(message)
            except ConnectionClosed as e:
                logger.warning(f"Connection to proxy lost: {e}")
            finally:
                await self._shutdown()
        logger.info(
            f"Disconnected from proxy. Code: {websocket.close_code}, Reason: {websocket.close_reason}"
        )

    async def handle_message(self, message) -> None:
        """Dispatch one frame received from the proxy."""
        if isinstance(message, bytes):
            self.playback.enqueue(message)
            return

        try:
            envelope = parse_envelope(message)
        except ProtocolError as e:
            logger.warning(f"Error parsing message from proxy: {e.details}")
            return

        handler = self.handlers.get(envelope.type)
        if handler is None:
            logger.info(f"Received unhandled message type: {envelope.type}")
            return
        handler(envelope)

    def _on_ready(self, envelope: Envelope) -> None:
        logger.info("Agent ready. Speak now...")
        self.state.ready.set()
        self.start_capture()

    def _on_backend_connected(self, envelope: Envelope) -> None:
        logger.info("Server connected. Initializing agent...")

    def _on_conversation_ended(self, envelope: Envelope) -> None:
        logger.info("Conversation ended by server")
        self.stop_capture()
        self.transcript.clear()

    def _on_error(self, envelope: Envelope) -> None:
        message = getattr(envelope, "message", None)
        details = getattr(envelope, "details", None)
        logger.error(f"Server error: {message} ({details})")
        self.stop_capture()

    def _on_user_transcript(self, envelope: UserTranscriptEnvelope) -> None:
        self._append_transcript("user", envelope.text)

    def _on_agent_response(self, envelope: AgentResponseEnvelope) -> None:
        self._append_transcript("agent", envelope.text)

    def _on_vad_score(self, envelope: VadScoreEnvelope) -> None:
        logger.debug(f"VAD score: {envelope.value}")

    def _on_audio(self, envelope: AudioEnvelope) -> None:
        try:
            self.playback.enqueue(envelope.audio_bytes())
        except ProtocolError as e:
            logger.error(f"Error processing agent audio: {e.details}")

    def start_capture(self) -> None:
        if self.capture is None:
            self.capture = AudioCapturePipeline(
                self.state, self._send_threadsafe, self.microphone.sample_rate
            )
        self.capture.start(self.microphone)

    def stop_capture(self) -> None:
        self.state.ready.clear()
        if self.capture is not None:
            self.capture.stop()

    async def end_conversation(self) -> None:
        """Stop the microphone and ask the proxy to end the conversation."""
        logger.info("Stopping conversation...")
        self.stop_capture()
        if self.state.connected.is_set():
            self._outgoing.put_nowait(EndConversationEnvelope().to_json())
            logger.info("Queued end_conversation for proxy")

    def _append_transcript(self, speaker: str, text: Optional[str]) -> None:
        text = text or "..."
        self.transcript.append((speaker, text))
        logger.info(f"[Transcript] {speaker}: {text}")

    def _send_threadsafe(self, message: str) -> None:
        # Called from the audio device thread
        self._loop.call_soon_threadsafe(self._outgoing.put_nowait, message)

    async def _sender_loop(self) -> None:
        while True:
            message = await self._outgoing.get()
            try:
                await self.websocket.send(message)
            except ConnectionClosed:
                logger.warning("Dropping outgoing message, connection is closed")
                return

    async def _shutdown(self) -> None:
        self.stop_capture()
        self.state.reset()
        if self._sender_task is not None:
            self._sender_task.cancel()
            try:
                await self._sender_task
            except asyncio.CancelledError:
                pass
        await self.playback.stop()

