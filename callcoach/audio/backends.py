"""
Capability backends used by the compressor
Decode, offline render and re-encode are injected so each can be swapped or mocked
"""

import asyncio
import io
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np
import pydub
import structlog
from pydub.utils import get_encoder_name

from .dynamics import DynamicsCompressor
from .errors import CaptureError, DecodeError, RenderError
from .models import AudioSegment, DecodedAudio

logger = structlog.get_logger("callcoach.audio.backends")

# libopus accepted bitrate range (bps)
MIN_OPUS_BITRATE = 6000
MAX_OPUS_BITRATE = 510000


class Decoder(ABC):
    """Turns an encoded segment into PCM samples"""

    @abstractmethod
    async def decode(self, segment: AudioSegment) -> DecodedAudio:
        """Raise DecodeError when the buffer is not parseable audio"""


class OfflineRenderer(ABC):
    """Runs decoded audio through the processing graph faster than realtime"""

    @abstractmethod
    async def render(self, audio: DecodedAudio) -> DecodedAudio:
        """Raise RenderError on failure; output keeps the input shape"""


class RealtimeEncoder(ABC):
    """Re-encodes a PCM WAV buffer to Opus-in-WebM.

    Implementations own any process, device or native context they open and
    must release it when the coroutine is cancelled, not only on return.
    """

    @abstractmethod
    async def encode(self, waveform: bytes, bitrate_bps: int) -> bytes:
        """Raise CaptureError on failure"""


class PydubDecoder(Decoder):
    """Decode with pydub (native WAV reader, ffmpeg for everything else)"""

    async def decode(self, segment: AudioSegment) -> DecodedAudio:
        if not segment.data:
            raise DecodeError("Empty audio buffer")
        return await asyncio.to_thread(self._decode_sync, segment)

    def _decode_sync(self, segment: AudioSegment) -> DecodedAudio:
        try:
            audio = pydub.AudioSegment.from_file(
                io.BytesIO(segment.data),
                format=segment.container or None
            )
        except Exception as e:
            raise DecodeError(f"Could not decode {segment.media_type}: {e}") from e

        if audio.frame_count() < 1:
            raise DecodeError("Audio contains no frames")

        full_scale = float(1 << (8 * audio.sample_width - 1))
        samples = np.array(audio.get_array_of_samples(), dtype=np.float32) / full_scale
        samples = samples.reshape(-1, audio.channels).T

        logger.debug(
            "Audio decoded",
            media_type=segment.media_type,
            sample_rate=audio.frame_rate,
            channels=audio.channels,
            duration=round(len(audio) / 1000.0, 3)
        )

        return DecodedAudio(sample_rate=audio.frame_rate, samples=np.ascontiguousarray(samples))


class DynamicsCompressorRenderer(OfflineRenderer):
    """Offline render graph: source -> dynamics compressor -> destination"""

    def __init__(self, compressor: Optional[DynamicsCompressor] = None):
        self.compressor = compressor or DynamicsCompressor()

    async def render(self, audio: DecodedAudio) -> DecodedAudio:
        try:
            return await asyncio.to_thread(self.compressor.process, audio)
        except Exception as e:
            raise RenderError(f"Dynamics render failed: {e}") from e


class FfmpegOpusEncoder(RealtimeEncoder):
    """Direct buffer-to-buffer Opus/WebM encode through an ffmpeg subprocess"""

    def __init__(self, ffmpeg_binary: Optional[str] = None):
        self.ffmpeg_binary = ffmpeg_binary or get_encoder_name()

    def build_command(self, bitrate_bps: int) -> list:
        bitrate = min(max(bitrate_bps, MIN_OPUS_BITRATE), MAX_OPUS_BITRATE)
        return [
            self.ffmpeg_binary,
            "-hide_banner", "-loglevel", "error", "-nostdin",
            "-f", "wav", "-i", "pipe:0",
            "-vn", "-c:a", "libopus", "-b:a", str(bitrate),
            "-f", "webm", "pipe:1",
        ]

    async def encode(self, waveform: bytes, bitrate_bps: int) -> bytes:
        command = self.build_command(bitrate_bps)

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except OSError as e:
            raise CaptureError(f"Could not start encoder {self.ffmpeg_binary}: {e}") from e

        try:
            stdout, stderr = await process.communicate(waveform)
        finally:
            # Reached on cancellation and timeout as well
            if process.returncode is None:
                process.kill()
                await process.wait()
                logger.info("Encoder process killed", pid=process.pid)

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise CaptureError(f"Encoder exited with {process.returncode}: {message[:300]}")

        if not stdout:
            raise CaptureError("Encoder produced no output")

        return stdout
