"""
Audio compression before upload
Dynamics compression, 16-bit WAV intermediate and Opus/WebM re-encode,
falling back to the best artifact produced so far on any failure.
"""

import asyncio
import math
from typing import Optional

import structlog

from ..config import get_settings
from ..utils.helpers import format_file_size
from .backends import (
    Decoder,
    DynamicsCompressorRenderer,
    FfmpegOpusEncoder,
    OfflineRenderer,
    PydubDecoder,
    RealtimeEncoder,
)
from .errors import CaptureError, CaptureTimeout, CompressionError, EncodeError, RenderError
from .models import AudioSegment, CompressionOptions, DecodedAudio
from .wav import encode_wav

logger = structlog.get_logger("callcoach.audio.compressor")

WAV_MEDIA_TYPE = "audio/wav"
WEBM_MEDIA_TYPE = "audio/webm"


def estimate_compression_ratio(original_size: int, compressed_size: int) -> float:
    """Size reduction in percent; negative when the output grew, NaN for an empty original"""
    if original_size == 0:
        return math.nan
    return (original_size - compressed_size) / original_size * 100


class AudioCompressor:
    """Reduce recorded audio size before it is handed to the network layer.

    ``compress`` never raises: decode, render and WAV encode failures return
    the original segment, re-encode failures and timeouts return the
    intermediate WAV. Cancelling the awaiting task is the only thing that
    propagates, and it tears down the encoder on the way out.
    """

    def __init__(
        self,
        decoder: Optional[Decoder] = None,
        renderer: Optional[OfflineRenderer] = None,
        encoder: Optional[RealtimeEncoder] = None,
        timeout_factor: Optional[float] = None
    ):
        settings = get_settings()
        self.decoder = decoder or PydubDecoder()
        self.renderer = renderer or DynamicsCompressorRenderer()
        self.encoder = encoder or FfmpegOpusEncoder(settings.ffmpeg_binary)
        if timeout_factor is None:
            timeout_factor = settings.capture_timeout_factor
        if timeout_factor <= 1.0:
            raise ValueError(f"timeout_factor must be greater than 1.0, got {timeout_factor}")
        self.timeout_factor = timeout_factor

    async def compress(
        self,
        segment: AudioSegment,
        options: Optional[CompressionOptions] = None
    ) -> AudioSegment:
        """Compress a segment; the result is best-effort smaller and always playable"""
        options = options or CompressionOptions()

        try:
            decoded = await self.decoder.decode(segment)
            waveform = await self._render_waveform(decoded)
        except CompressionError as e:
            logger.warning(
                "Compression failed, using original audio",
                stage=type(e).__name__,
                error=str(e),
                media_type=segment.media_type,
                size=format_file_size(segment.size)
            )
            return segment
        except Exception as e:
            logger.error(
                "Unexpected compression failure, using original audio",
                error=str(e),
                media_type=segment.media_type,
                exc_info=True
            )
            return segment

        if options.format == "webm":
            result = await self._reencode(waveform, decoded.duration, options)
        else:
            # No encoder path exists for these containers; the WAV keeps its true type
            logger.warning(
                "No re-encode path for requested format, returning WAV",
                requested_format=options.format
            )
            result = waveform

        logger.info(
            "Audio compressed",
            original_size=format_file_size(segment.size),
            compressed_size=format_file_size(result.size),
            ratio=f"{estimate_compression_ratio(segment.size, result.size):.1f}%",
            media_type=result.media_type
        )
        return result

    async def _render_waveform(self, decoded: DecodedAudio) -> AudioSegment:
        rendered = await self.renderer.render(decoded)

        if (
            rendered.channels != decoded.channels
            or rendered.frames != decoded.frames
            or rendered.sample_rate != decoded.sample_rate
        ):
            raise RenderError(
                f"Rendered shape {rendered.channels}x{rendered.frames}@{rendered.sample_rate} "
                f"does not match source {decoded.channels}x{decoded.frames}@{decoded.sample_rate}"
            )

        try:
            data = await asyncio.to_thread(encode_wav, rendered)
        except Exception as e:
            raise EncodeError(f"WAV encode failed: {e}") from e

        return AudioSegment(data=data, media_type=WAV_MEDIA_TYPE)

    async def _reencode(
        self,
        waveform: AudioSegment,
        duration: float,
        options: CompressionOptions
    ) -> AudioSegment:
        timeout = duration * self.timeout_factor

        try:
            try:
                data = await asyncio.wait_for(
                    self.encoder.encode(waveform.data, options.target_bitrate_bps),
                    timeout=timeout
                )
            except asyncio.TimeoutError:
                raise CaptureTimeout(timeout)

            if not data:
                raise CaptureError("Encoder returned an empty buffer")

        except CaptureError as e:
            logger.warning(
                "Re-encode failed, using WAV intermediate",
                stage=type(e).__name__,
                error=str(e),
                timeout=round(timeout, 3)
            )
            return waveform
        except Exception as e:
            logger.error("Unexpected re-encode failure, using WAV intermediate", error=str(e), exc_info=True)
            return waveform

        return AudioSegment(data=data, media_type=WEBM_MEDIA_TYPE)
