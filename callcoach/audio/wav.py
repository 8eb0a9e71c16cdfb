"""
16-bit PCM WAV encoding of decoded audio
"""

import io
import wave

import numpy as np

from .models import DecodedAudio

SAMPLE_WIDTH = 2


def to_pcm16(samples: np.ndarray) -> np.ndarray:
    """Convert float samples to int16, negatives scaled by 0x8000 and positives by 0x7FFF"""
    clamped = np.clip(samples, -1.0, 1.0).astype(np.float64)
    scaled = np.where(clamped < 0, clamped * 0x8000, clamped * 0x7FFF)
    # Truncate toward zero like a typed-array store
    return np.trunc(scaled).astype(np.int16)


def encode_wav(audio: DecodedAudio) -> bytes:
    """Encode audio as an interleaved 16-bit PCM RIFF/WAVE file"""
    pcm = to_pcm16(audio.samples)
    # (channels, frames) -> frame-major interleaving
    interleaved = np.ascontiguousarray(pcm.T).astype("<i2", copy=False)

    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(audio.channels)
        wav_file.setsampwidth(SAMPLE_WIDTH)
        wav_file.setframerate(audio.sample_rate)
        wav_file.writeframes(interleaved.tobytes())

    return buffer.getvalue()

