"""
Sample-level audio helpers for the voice client.

Microphone frames arrive as float32 samples in [-1, 1] at the device's native
rate; the agent service expects 16 kHz PCM16 little-endian mono. These functions
convert between the two representations.
"""

import math

import numpy as np

from convai_proxy.config.constants import PCM16_NEGATIVE_SCALE, PCM16_POSITIVE_SCALE
from convai_proxy.errors import PlaybackRenderError, ResampleError


def resample_linear(samples: np.ndarray, src_rate: int, dst_rate: int) -> np.ndarray:
    """
    Resample a mono float signal by linear interpolation.

    For output index ``i`` the source position is ``i * src_rate / dst_rate``;
    the value is interpolated between the two neighbouring input samples, the
    right neighbour clamped to the last sample.

    Args:
        samples: Input samples
        src_rate: Sample rate of ``samples`` in Hz
        dst_rate: Desired sample rate in Hz

    Returns:
        The resampled signal, or ``samples`` itself when the rates are equal

    Raises:
        ResampleError: If either rate is not positive
    """
    if src_rate <= 0 or dst_rate <= 0:
        raise ResampleError(f"Invalid sample rates: {src_rate} -> {dst_rate}")
    if src_rate == dst_rate:
        return samples

    samples = np.asarray(samples, dtype=np.float32)
    input_length = len(samples)
    if input_length == 0:
        return np.zeros(0, dtype=np.float32)

    # Halves round up
    output_length = int(math.floor(input_length * dst_rate / src_rate + 0.5))
    step = src_rate / dst_rate
    index = np.arange(output_length, dtype=np.float64) * step
    index1 = np.minimum(np.floor(index).astype(np.int64), input_length - 1)
    index2 = np.minimum(index1 + 1, input_length - 1)
    fraction = index - index1
    out = samples[index1] + fraction * (samples[index2] - samples[index1])
    return out.astype(np.float32)


def float_to_pcm16(samples: np.ndarray) -> np.ndarray:
    """
    Convert float samples to signed 16-bit integers.

    Samples are clamped to [-1, 1]; negative values scale by 32768 and
    non-negative values by 32767, truncating toward zero.
    """
    clamped = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(
        clamped < 0, clamped * PCM16_NEGATIVE_SCALE, clamped * PCM16_POSITIVE_SCALE
    )
    return np.trunc(scaled).astype(np.int16)


def encode_pcm16(samples: np.ndarray) -> bytes:
    """Float samples to PCM16 little-endian bytes."""
    return float_to_pcm16(samples).astype("<i2").tobytes()


def pcm16_to_float(data: bytes) -> np.ndarray:
    """
    Decode PCM16 little-endian bytes to float32 samples (``sample / 32768``).

    Raises:
        PlaybackRenderError: If the buffer does not hold whole 16-bit samples
    """
    if len(data) % 2:
        raise PlaybackRenderError(f"PCM16 buffer has odd length: {len(data)} bytes")
    return np.frombuffer(data, dtype="<i2").astype(np.float32) / PCM16_NEGATIVE_SCALE
