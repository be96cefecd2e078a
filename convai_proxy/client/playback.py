"""
Sequential playback of agent audio.

Incoming PCM16 buffers are appended to a FIFO. A single worker task, started
lazily, renders them one at a time through the output device and waits for
each render to complete before taking the next, so buffers never overlap and
always play in arrival order.
"""

import asyncio
import logging
from collections import deque
from typing import Awaitable, Deque, Optional, Protocol

import numpy as np

from convai_proxy.client.audio import pcm16_to_float
from convai_proxy.config.constants import LOGGER_NAME, TARGET_SAMPLE_RATE

logger = logging.getLogger(LOGGER_NAME)


class AudioOutput(Protocol):
    """An output device. ``play`` completes when the samples have been rendered."""

    def play(self, samples: np.ndarray, sample_rate: int) -> Awaitable[None]:
        ...


class AudioPlaybackQueue:
    """
    FIFO of PCM16 buffers drained by one worker.

    Must be used from a single event loop: ``enqueue`` only appends, and the
    worker re-checks the queue before going idle without yielding, so an enqueue
    can never be stranded and a second worker is never started.
    """

    def __init__(self, output: AudioOutput, sample_rate: int = TARGET_SAMPLE_RATE):
        self.output = output
        self.sample_rate = sample_rate
        self._queue: Deque[bytes] = deque()
        self._worker: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def is_playing(self) -> bool:
        return self._worker is not None

    def enqueue(self, chunk: Optional[bytes]) -> bool:
        """
        Append a buffer and start the worker if it is idle.

        Returns:
            False if the buffer was empty and discarded
        """
        if not chunk:
            logger.warning("Audio message received without audio data, skipping")
            return False

        self._queue.append(bytes(chunk))
        logger.debug(f"Added audio chunk to queue. Queue size: {len(self._queue)}")
        if self._worker is None:
            self._worker = asyncio.get_running_loop().create_task(self._drain())
        return True

    async def join(self) -> None:
        """Wait until the worker has gone idle."""
        worker = self._worker
        if worker is not None:
            await asyncio.shield(worker)

    async def stop(self) -> None:
        """Drop pending buffers and cancel the buffer being rendered."""
        self._queue.clear()
        worker, self._worker = self._worker, None
        if worker is not None:
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass
            logger.info("Playback stopped")

    async def _drain(self) -> None:
        logger.debug("Starting playback worker")
        try:
            while self._queue:
                chunk = self._queue.popleft()
                logger.debug(f"Processing chunk. Remaining in queue: {len(self._queue)}")
                try:
                    await self._render(chunk)
                except Exception as e:
                    # One bad buffer must not stall the queue
                    logger.error(f"Error playing chunk: {e}")
        finally:
            if self._worker is asyncio.current_task():
                self._worker = None
        logger.debug("Playback worker finished. Queue is empty.")

    async def _render(self, chunk: bytes) -> None:
        samples = pcm16_to_float(chunk)
        if samples.size == 0:
            return
        await self.output.play(samples, self.sample_rate)
