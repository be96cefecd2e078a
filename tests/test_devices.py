import asyncio
import sys
import threading
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from convai_proxy.client.devices import PyAudioMicrophone, PyAudioSpeaker


@pytest.fixture
def pyaudio_module():
    module = MagicMock()
    module.paContinue = 0
    module.PyAudio.return_value.get_default_input_device_info.return_value = {
        "defaultSampleRate": 44100.0
    }
    with patch.dict(sys.modules, {"pyaudio": module}):
        yield module


def test_microphone_uses_device_rate(pyaudio_module):
    """Test capture runs at the input device's native rate"""
    microphone = PyAudioMicrophone()
    assert microphone.sample_rate == 44100


def test_microphone_delivers_frames(pyaudio_module):
    """Test device callbacks are forwarded as float32 frames"""
    microphone = PyAudioMicrophone(sample_rate=16000)
    received = []
    microphone.start(received.append)

    data = np.array([0.25, -0.5], dtype=np.float32).tobytes()
    result = microphone._audio_callback(data, 2, None, 0)

    assert result == (None, pyaudio_module.paContinue)
    assert received[0].tolist() == [0.25, -0.5]
    open_kwargs = microphone.p.open.call_args.kwargs
    assert open_kwargs["rate"] == 16000
    assert open_kwargs["input"] is True


def test_microphone_stop_detaches_callback(pyaudio_module):
    microphone = PyAudioMicrophone(sample_rate=16000)
    received = []
    microphone.start(received.append)
    microphone.stop()

    microphone._audio_callback(np.zeros(2, dtype=np.float32).tobytes(), 2, None, 0)

    assert received == []
    assert microphone.stream is None


def test_microphone_callback_errors_are_contained(pyaudio_module):
    microphone = PyAudioMicrophone(sample_rate=16000)
    microphone.start(MagicMock(side_effect=ValueError("bad frame")))

    result = microphone._audio_callback(np.zeros(2, dtype=np.float32).tobytes(), 2, None, 0)

    assert result == (None, pyaudio_module.paContinue)


@pytest.mark.asyncio
async def test_speaker_writes_float32(pyaudio_module):
    """Test playback writes float32 samples to an output stream at the given rate"""
    speaker = PyAudioSpeaker()
    stream = speaker.p.open.return_value

    await speaker.play(np.array([0.5, -0.5], dtype=np.float32), 16000)

    stream.write.assert_called_once_with(np.array([0.5, -0.5], dtype=np.float32).tobytes())
    assert speaker.p.open.call_args.kwargs["rate"] == 16000
    speaker.close()
    assert speaker.stream is None


@pytest.mark.asyncio
async def test_speaker_close_waits_for_cancelled_write(pyaudio_module):
    """Test closing the speaker never releases the stream under a running write"""
    speaker = PyAudioSpeaker()
    stream = speaker.p.open.return_value
    events = []
    write_started = threading.Event()
    release_write = threading.Event()

    def blocking_write(data):
        events.append("write started")
        write_started.set()
        release_write.wait(5)
        events.append("write finished")

    stream.write.side_effect = blocking_write
    stream.stop_stream.side_effect = lambda: events.append("stream stopped")
    stream.close.side_effect = lambda: events.append("stream closed")

    task = asyncio.create_task(speaker.play(np.zeros(4, dtype=np.float32), 16000))
    await asyncio.get_running_loop().run_in_executor(None, write_started.wait, 5)
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)

    threading.Timer(0.05, release_write.set).start()
    speaker.close()

    assert events == ["write started", "write finished", "stream stopped", "stream closed"]
