"""
Models module for the message envelopes relayed by the proxy.

Key components:
- envelopes: Pydantic models for every envelope variant exchanged between the
  client, the proxy and the agent service, and ``parse_envelope`` which decodes
  a text frame at the boundary. Unknown variants decode to the generic
  ``Envelope`` and are forwarded opaquely.

Usage examples:
```python
from convai_proxy.models import AudioEnvelope, parse_envelope

envelope = parse_envelope(text_frame)
if isinstance(envelope, AudioEnvelope):
    pcm = envelope.audio_bytes()
```
"""

from convai_proxy.models.envelopes import (
    AgentResponseEnvelope,
    AudioEnvelope,
    BackendConnectedEnvelope,
    ConversationEndedEnvelope,
    ConversationInitiationMetadataEnvelope,
    ElevenlabsReadyEnvelope,
    EndConversationEnvelope,
    Envelope,
    ErrorEnvelope,
    PingEnvelope,
    UserAudioChunkEnvelope,
    UserTranscriptEnvelope,
    VadScoreEnvelope,
    parse_envelope,
)
