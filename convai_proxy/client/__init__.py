"""
Voice client for the conversational-agent proxy.

Key components:
- audio: linear-interpolation resampling and PCM16 conversion helpers.
- capture: ``AudioCapturePipeline``, which turns microphone frames into
  ``user_audio_chunk`` envelopes once the agent is ready.
- playback: ``AudioPlaybackQueue``, which plays agent audio strictly in order
  through a single worker.
- devices: PyAudio microphone and speaker (install the ``audio`` extra).
- voice_client: ``VoiceConversationClient``, which ties them to the proxy socket.

Usage examples:
```python
import asyncio
from convai_proxy.client import VoiceConversationClient
from convai_proxy.client.devices import PyAudioMicrophone, PyAudioSpeaker

client = VoiceConversationClient(
    "ws://localhost:3000/audio-stream", PyAudioMicrophone(), PyAudioSpeaker()
)
asyncio.run(client.run())
```
"""

from convai_proxy.client.capture import AudioCapturePipeline
from convai_proxy.client.playback import AudioPlaybackQueue
from convai_proxy.client.state import ClientState
from convai_proxy.client.voice_client import VoiceConversationClient

__all__ = [
    "AudioCapturePipeline",
    "AudioPlaybackQueue",
    "ClientState",
    "VoiceConversationClient",
]
