"""
Shared test fixtures
"""

import asyncio
import io
import wave

import numpy as np
import pytest

from callcoach.audio.backends import RealtimeEncoder
from callcoach.audio.errors import CaptureError
from callcoach.config import Settings


def make_wav(
    duration: float = 0.5,
    sample_rate: int = 16000,
    channels: int = 1,
    frequency: float = 440.0,
    amplitude: float = 0.5
) -> bytes:
    """Synthesize a 16-bit PCM sine WAV"""
    frames = int(duration * sample_rate)
    t = np.arange(frames) / float(sample_rate)
    tone = amplitude * np.sin(2 * np.pi * frequency * t)
    samples = np.repeat(tone[:, np.newaxis], channels, axis=1)
    pcm = (samples * 32767).astype("<i2")

    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(channels)
        wav_file.setsampwidth(2)
        wav_file.setframerate(sample_rate)
        wav_file.writeframes(pcm.tobytes())
    return buffer.getvalue()


def read_wav(data: bytes):
    """(channels, sample_rate, frames) of a WAV buffer"""
    with wave.open(io.BytesIO(data), "rb") as wav_file:
        return wav_file.getnchannels(), wav_file.getframerate(), wav_file.getnframes()


class EchoEncoder(RealtimeEncoder):
    """Returns the waveform unchanged, recording requested bitrates"""

    def __init__(self):
        self.bitrates = []

    async def encode(self, waveform: bytes, bitrate_bps: int) -> bytes:
        self.bitrates.append(bitrate_bps)
        await asyncio.sleep(0)
        return waveform


class FailingEncoder(RealtimeEncoder):
    async def encode(self, waveform: bytes, bitrate_bps: int) -> bytes:
        raise CaptureError("encoder rejected stream")


class StallingEncoder(RealtimeEncoder):
    """Never completes; tracks acquire/release of its capture resource"""

    def __init__(self):
        self.opened = 0
        self.closed = 0

    async def encode(self, waveform: bytes, bitrate_bps: int) -> bytes:
        self.opened += 1
        try:
            await asyncio.Event().wait()
        finally:
            self.closed += 1
        return b""


@pytest.fixture
def settings():
    """Test settings, cache off"""
    return Settings(
        openai_api_key="test-api-key",
        environment="testing",
        cache_enabled=False,
        max_retries=2,
    )


@pytest.fixture
def wav_factory():
    return make_wav


@pytest.fixture
def echo_encoder():
    return EchoEncoder()


@pytest.fixture
def stalling_encoder():
    return StallingEncoder()
