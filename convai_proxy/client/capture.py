"""
Microphone capture pipeline for the voice client.

Every input frame is gated on the conversation state, resampled to 16 kHz,
converted to PCM16 and sent immediately as one ``user_audio_chunk`` envelope.
Frames that arrive while the agent is not ready are discarded, never buffered.
"""

import logging
from typing import Callable, Optional

import numpy as np

from convai_proxy.client.audio import encode_pcm16, resample_linear
from convai_proxy.client.state import ClientState
from convai_proxy.config.constants import LOGGER_NAME, TARGET_SAMPLE_RATE
from convai_proxy.errors import ResampleError
from convai_proxy.models.envelopes import UserAudioChunkEnvelope

logger = logging.getLogger(LOGGER_NAME)


class AudioCapturePipeline:
    """
    Turns microphone frames into outgoing ``user_audio_chunk`` text frames.

    ``process_frame`` may run on the audio device thread; ``send`` must be safe
    to call from there.
    """

    def __init__(
        self,
        state: ClientState,
        send: Callable[[str], None],
        input_rate: int,
        target_rate: int = TARGET_SAMPLE_RATE,
    ):
        self.state = state
        self.send = send
        self.input_rate = input_rate
        self.target_rate = target_rate
        self._microphone = None

    def process_frame(self, frame: np.ndarray) -> Optional[str]:
        """
        Gate, resample, encode and transmit one input frame.

        Args:
            frame: Float samples in [-1, 1] at ``input_rate``

        Returns:
            The transmitted text frame, or None if the frame was dropped
        """
        if not self.state.ready.is_set() or not self.state.connected.is_set():
            return None

        try:
            samples = resample_linear(frame, self.input_rate, self.target_rate)
        except ResampleError as e:
            logger.error(f"Resampling error, dropping frame: {e}")
            return None

        message = UserAudioChunkEnvelope.from_pcm(encode_pcm16(samples)).to_json()
        self.send(message)
        return message

    def start(self, microphone) -> None:
        """Attach a microphone and begin delivering frames."""
        if self.state.recording.is_set():
            logger.warning("Already recording")
            return
        self._microphone = microphone
        microphone.start(self.process_frame)
        self.state.recording.set()
        logger.info(f"Recording started at {self.input_rate} Hz")

    def stop(self) -> None:
        """Detach the microphone. Already sent chunks are not recalled."""
        if not self.state.recording.is_set():
            return
        self.state.recording.clear()
        microphone, self._microphone = self._microphone, None
        if microphone is not None:
            microphone.stop()
        logger.info("Recording stopped")
