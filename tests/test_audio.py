import numpy as np
import pytest

from convai_proxy.client.audio import encode_pcm16, float_to_pcm16, pcm16_to_float, resample_linear
from convai_proxy.errors import PlaybackRenderError, ResampleError


def test_resample_identity_when_rates_match():
    """Test equal rates return the input unchanged"""
    samples = np.array([0.1, -0.2, 0.3], dtype=np.float32)
    result = resample_linear(samples, 16000, 16000)

    assert result is samples
    np.testing.assert_allclose(result, [0.1, -0.2, 0.3], rtol=1e-6)


def test_resample_upsample_interpolates():
    """Test upsampling interpolates between neighbours and clamps at the end"""
    result = resample_linear(np.array([0.0, 1.0], dtype=np.float32), 8000, 16000)

    np.testing.assert_allclose(result, [0.0, 0.5, 1.0, 1.0])


def test_resample_downsample_picks_source_positions():
    result = resample_linear(np.arange(6, dtype=np.float32), 48000, 16000)

    np.testing.assert_allclose(result, [0.0, 3.0])


@pytest.mark.parametrize(
    "length,src,dst,expected",
    [
        (4096, 48000, 16000, 1365),
        (4096, 44100, 16000, 1486),
        (4096, 8000, 16000, 8192),
        (3, 32000, 16000, 2),
    ],
)
def test_resample_output_length(length, src, dst, expected):
    """Test the output holds round(length * dst / src) samples"""
    result = resample_linear(np.zeros(length, dtype=np.float32), src, dst)

    assert len(result) == expected
    assert result.dtype == np.float32


def test_resample_empty_input():
    assert len(resample_linear(np.zeros(0, dtype=np.float32), 48000, 16000)) == 0


@pytest.mark.parametrize("src,dst", [(0, 16000), (48000, 0), (-1, 16000)])
def test_resample_invalid_rates(src, dst):
    with pytest.raises(ResampleError):
        resample_linear(np.zeros(4, dtype=np.float32), src, dst)


def test_float_to_pcm16_boundaries():
    """Test the asymmetric scaling at the edges of the range"""
    result = float_to_pcm16(np.array([1.0, -1.0, 0.0]))

    assert result.tolist() == [32767, -32768, 0]
    assert result.dtype == np.int16


def test_float_to_pcm16_clamps():
    assert float_to_pcm16(np.array([1.5, -2.0])).tolist() == [32767, -32768]


def test_float_to_pcm16_truncates_toward_zero():
    """Test fractional results are truncated, not rounded"""
    result = float_to_pcm16(np.array([0.5, -0.5, 0.99999, -0.00001]))

    assert result.tolist() == [16383, -16384, 32766, 0]


def test_encode_pcm16_is_little_endian():
    assert encode_pcm16(np.array([1.0, -1.0])) == b"\xff\x7f\x00\x80"


def test_pcm16_to_float():
    """Test decoding divides by 32768"""
    result = pcm16_to_float(b"\x00\x80\x00\x40\x00\x00")

    np.testing.assert_allclose(result, [-1.0, 0.5, 0.0])
    assert result.dtype == np.float32


def test_pcm16_to_float_rejects_odd_length():
    with pytest.raises(PlaybackRenderError):
        pcm16_to_float(b"\x00\x01\x02")


def test_pcm16_to_float_empty():
    assert pcm16_to_float(b"").size == 0
