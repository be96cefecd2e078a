"""
Pydantic models for the message envelopes exchanged by the proxy.

Every frame on either socket is a JSON object tagged by its ``type`` field. This
module defines one model per known variant, using the nested shapes the agent
service emits, and a ``parse_envelope`` function that decodes a text frame at the
boundary. Unknown variants decode to the generic ``Envelope`` so they can be
forwarded opaquely.
"""

import base64
import binascii
import json
import logging
from typing import Annotated, Any, Dict, Literal, Optional, Type

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from convai_proxy.config.constants import (
    LOGGER_NAME,
    MESSAGE_TYPE_AGENT_RESPONSE,
    MESSAGE_TYPE_AUDIO,
    MESSAGE_TYPE_BACKEND_CONNECTED,
    MESSAGE_TYPE_CONVERSATION_ENDED,
    MESSAGE_TYPE_CONVERSATION_INITIATION_METADATA,
    MESSAGE_TYPE_ELEVENLABS_READY,
    MESSAGE_TYPE_END_CONVERSATION,
    MESSAGE_TYPE_ERROR,
    MESSAGE_TYPE_PING,
    MESSAGE_TYPE_USER_AUDIO_CHUNK,
    MESSAGE_TYPE_USER_TRANSCRIPT,
    MESSAGE_TYPE_VAD_SCORE,
)
from convai_proxy.errors import ProtocolError

logger = logging.getLogger(LOGGER_NAME)


def _decode_base64(payload: Optional[str]) -> bytes:
    if not payload:
        return b""
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ProtocolError("Invalid base64 audio payload", str(e)) from e


def _text_or_none(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _object_or_none(value: Any) -> Any:
    if isinstance(value, (dict, BaseModel)):
        return value
    return None


# Event bodies that are not JSON objects decode as None, so a known tag always
# yields its own variant
EventBody = BeforeValidator(_object_or_none)


# Base Model
class Envelope(BaseModel):
    """Base model for all envelopes. Unknown fields are kept for pass-through."""

    model_config = ConfigDict(extra="allow")

    type: str = Field(..., description="Message type identifier")

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)


# Proxy to client
class ElevenlabsReadyEnvelope(Envelope):
    """Sent by the proxy once the agent has initialized the conversation."""

    type: Literal["elevenlabsReady"] = MESSAGE_TYPE_ELEVENLABS_READY


class BackendConnectedEnvelope(Envelope):
    """Sent by the proxy once the upstream socket is open."""

    type: Literal["backendConnected"] = MESSAGE_TYPE_BACKEND_CONNECTED


class ConversationEndedEnvelope(Envelope):
    """Sent by the proxy when the upstream connection has closed."""

    type: Literal["conversationEnded"] = MESSAGE_TYPE_CONVERSATION_ENDED


class ErrorEnvelope(Envelope):
    type: Literal["error"] = MESSAGE_TYPE_ERROR
    message: str = Field(..., description="Human readable error summary")
    details: Optional[str] = Field(None, description="Underlying error text")


# Agent service to client
class ConversationInitiationMetadataEnvelope(Envelope):
    """Readiness signal from the agent service."""

    type: Literal["conversation_initiation_metadata"] = (
        MESSAGE_TYPE_CONVERSATION_INITIATION_METADATA
    )
    conversation_initiation_metadata_event: Annotated[Optional[Dict[str, Any]], EventBody] = None


class UserTranscriptionEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    user_transcript: Any = None


class UserTranscriptEnvelope(Envelope):
    type: Literal["user_transcript"] = MESSAGE_TYPE_USER_TRANSCRIPT
    user_transcription_event: Annotated[Optional[UserTranscriptionEvent], EventBody] = None

    @property
    def text(self) -> Optional[str]:
        if self.user_transcription_event is None:
            return None
        return _text_or_none(self.user_transcription_event.user_transcript)


class AgentResponseEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    agent_response: Any = None


class AgentResponseEnvelope(Envelope):
    type: Literal["agent_response"] = MESSAGE_TYPE_AGENT_RESPONSE
    agent_response_event: Annotated[Optional[AgentResponseEvent], EventBody] = None

    @property
    def text(self) -> Optional[str]:
        if self.agent_response_event is None:
            return None
        return _text_or_none(self.agent_response_event.agent_response)


class VadScoreEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    vad_score: Any = None


class VadScoreEnvelope(Envelope):
    type: Literal["vad_score"] = MESSAGE_TYPE_VAD_SCORE
    vad_score_event: Annotated[Optional[VadScoreEvent], EventBody] = None

    @property
    def value(self) -> Optional[float]:
        if self.vad_score_event is None:
            return None
        try:
            return float(self.vad_score_event.vad_score)
        except (TypeError, ValueError):
            return None


class AudioEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    audio_base_64: Any = None
    event_id: Any = None


class AudioEnvelope(Envelope):
    """Agent speech as base64 PCM16 at 16 kHz."""

    type: Literal["audio"] = MESSAGE_TYPE_AUDIO
    audio_event: Annotated[Optional[AudioEvent], EventBody] = None

    @property
    def payload(self) -> Optional[str]:
        if self.audio_event is None:
            return None
        payload = self.audio_event.audio_base_64
        return payload if isinstance(payload, str) else None

    def audio_bytes(self) -> bytes:
        """Decode the payload, returning b"" when it is missing or empty."""
        return _decode_base64(self.payload)


class PingEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    event_id: Any = None
    ping_ms: Any = None


class PingEnvelope(Envelope):
    type: Literal["ping"] = MESSAGE_TYPE_PING
    ping_event: Annotated[Optional[PingEvent], EventBody] = None


# Client to agent service
class UserAudioChunkEnvelope(Envelope):
    """Microphone audio as base64 PCM16 at 16 kHz."""

    type: Literal["user_audio_chunk"] = MESSAGE_TYPE_USER_AUDIO_CHUNK
    user_audio_chunk: str = Field(..., description="Base64-encoded PCM16 audio")

    @property
    def payload(self) -> str:
        return self.user_audio_chunk

    @classmethod
    def from_pcm(cls, pcm: bytes) -> "UserAudioChunkEnvelope":
        return cls(user_audio_chunk=base64.b64encode(pcm).decode("ascii"))


class EndConversationEnvelope(Envelope):
    """Client request to end the conversation. Consumed by the proxy."""

    type: Literal["end_conversation"] = MESSAGE_TYPE_END_CONVERSATION


ENVELOPE_TYPES: Dict[str, Type[Envelope]] = {
    MESSAGE_TYPE_ELEVENLABS_READY: ElevenlabsReadyEnvelope,
    MESSAGE_TYPE_BACKEND_CONNECTED: BackendConnectedEnvelope,
    MESSAGE_TYPE_CONVERSATION_ENDED: ConversationEndedEnvelope,
    MESSAGE_TYPE_ERROR: ErrorEnvelope,
    MESSAGE_TYPE_CONVERSATION_INITIATION_METADATA: ConversationInitiationMetadataEnvelope,
    MESSAGE_TYPE_USER_TRANSCRIPT: UserTranscriptEnvelope,
    MESSAGE_TYPE_AGENT_RESPONSE: AgentResponseEnvelope,
    MESSAGE_TYPE_VAD_SCORE: VadScoreEnvelope,
    MESSAGE_TYPE_AUDIO: AudioEnvelope,
    MESSAGE_TYPE_PING: PingEnvelope,
    MESSAGE_TYPE_USER_AUDIO_CHUNK: UserAudioChunkEnvelope,
    MESSAGE_TYPE_END_CONVERSATION: EndConversationEnvelope,
}


def parse_envelope(data: str) -> Envelope:
    """
    Decode a text frame into its envelope model.

    Args:
        data: The raw text frame

    Returns:
        The typed envelope for known variants, or a generic ``Envelope`` for
        unknown variants and for known variants whose body does not validate

    Raises:
        ProtocolError: If the frame is not a JSON object with a string ``type``
    """
    try:
        message_dict = json.loads(data)
    except (json.JSONDecodeError, TypeError) as e:
        raise ProtocolError("Malformed JSON message", str(e)) from e

    if not isinstance(message_dict, dict):
        raise ProtocolError("Message is not a JSON object")
    message_type = message_dict.get("type")
    if not isinstance(message_type, str):
        raise ProtocolError("Message has no type field")

    model = ENVELOPE_TYPES.get(message_type)
    if model is None:
        return Envelope(**message_dict)
    try:
        return model(**message_dict)
    except ValidationError as e:
        logger.warning(f"Envelope validation error for {message_type}: {e}")
        return Envelope(**message_dict)
