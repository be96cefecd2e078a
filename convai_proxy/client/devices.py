"""
PyAudio microphone and speaker adapters for the voice client.

PyAudio is an optional dependency (the ``audio`` extra) and is imported when a
device is opened, so the rest of the client can be used and tested without
PortAudio installed.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

import numpy as np

from convai_proxy.config.constants import CAPTURE_FRAME_SIZE, LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

# Audio parameters
CHANNELS = 1


class PyAudioMicrophone:
    """Captures float32 mono frames from the default input device."""

    def __init__(self, frames_per_buffer: int = CAPTURE_FRAME_SIZE, sample_rate: Optional[int] = None):
        import pyaudio

        self._pyaudio = pyaudio
        self.p = pyaudio.PyAudio()
        self.frames_per_buffer = frames_per_buffer
        if sample_rate is None:
            # Capture at the device's native rate; the pipeline resamples
            sample_rate = int(self.p.get_default_input_device_info()["defaultSampleRate"])
        self.sample_rate = sample_rate
        self.stream = None
        self._callback: Optional[Callable[[np.ndarray], object]] = None

    def _audio_callback(self, in_data, frame_count, time_info, status):
        """Callback for audio input stream, runs on the PortAudio thread."""
        callback = self._callback
        if callback is not None:
            try:
                callback(np.frombuffer(in_data, dtype=np.float32))
            except Exception as e:
                logger.error(f"Error in capture callback: {e}")
        return (None, self._pyaudio.paContinue)

    def start(self, callback: Callable[[np.ndarray], object]) -> None:
        self._callback = callback
        self.stream = self.p.open(
            format=self._pyaudio.paFloat32,
            channels=CHANNELS,
            rate=self.sample_rate,
            input=True,
            frames_per_buffer=self.frames_per_buffer,
            stream_callback=self._audio_callback,
        )
        self.stream.start_stream()
        logger.info(f"Microphone initialized: {self.sample_rate}Hz, {CHANNELS} channel(s)")

    def stop(self) -> None:
        """Stop the microphone stream and clear the frame callback."""
        self._callback = None
        if self.stream:
            self.stream.stop_stream()
            self.stream.close()
            self.stream = None
            logger.info("Microphone stopped")

    def close(self) -> None:
        self.stop()
        if self.p:
            self.p.terminate()
            self.p = None


class PyAudioSpeaker:
    """
    Plays float32 mono buffers on the default output device.

    The blocking write runs on a dedicated writer thread; the returned future
    completes once the device has consumed the buffer. A cancelled ``play``
    does not interrupt a write already in progress, so ``close`` waits for it
    before releasing the stream.
    """

    def __init__(self):
        import pyaudio

        self._pyaudio = pyaudio
        self.p = pyaudio.PyAudio()
        self.stream = None
        self._rate: Optional[int] = None
        self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="speaker-writer")

    def _ensure_stream(self, sample_rate: int) -> None:
        if self.stream is not None and self._rate == sample_rate:
            return
        if self.stream is not None:
            self.stream.stop_stream()
            self.stream.close()
        self.stream = self.p.open(
            format=self._pyaudio.paFloat32,
            channels=CHANNELS,
            rate=sample_rate,
            output=True,
        )
        self._rate = sample_rate
        logger.info(f"Speaker initialized: {sample_rate}Hz, {CHANNELS} channel(s)")

    async def play(self, samples: np.ndarray, sample_rate: int) -> None:
        self._ensure_stream(sample_rate)
        data = np.asarray(samples, dtype=np.float32).tobytes()
        await asyncio.get_running_loop().run_in_executor(self._writer, self.stream.write, data)

    def close(self) -> None:
        self._writer.shutdown(wait=True, cancel_futures=True)
        if self.stream:
            self.stream.stop_stream()
            self.stream.close()
            self.stream = None
        if self.p:
            self.p.terminate()
            self.p = None
        logger.info("Speaker closed")
