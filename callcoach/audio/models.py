"""
Audio data model: segments, compression options and decoded buffers
"""

from dataclasses import dataclass
from typing import Literal

import numpy as np
from pydantic import BaseModel, Field


# Media types understood by the decoder, mapped to ffmpeg/pydub format names
MEDIA_TYPE_FORMATS = {
    "audio/webm": "webm",
    "video/webm": "webm",
    "audio/ogg": "ogg",
    "audio/opus": "ogg",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/mp4": "mp4",
    "audio/m4a": "mp4",
    "audio/x-m4a": "mp4",
    "audio/wav": "wav",
    "audio/wave": "wav",
    "audio/x-wav": "wav",
    "audio/flac": "flac",
}

FILE_EXTENSIONS = {
    "webm": "webm",
    "ogg": "ogg",
    "mp3": "mp3",
    "mp4": "m4a",
    "wav": "wav",
    "flac": "flac",
}


@dataclass(frozen=True)
class AudioSegment:
    """Immutable encoded audio buffer with its declared media type"""
    data: bytes
    media_type: str = "audio/webm"

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def container(self) -> str:
        """Container name for the media type, ignoring codec parameters"""
        base_type = self.media_type.split(";", 1)[0].strip().lower()
        return MEDIA_TYPE_FORMATS.get(base_type, "")

    @property
    def filename(self) -> str:
        """Upload filename with an extension matching the media type"""
        return f"audio.{FILE_EXTENSIONS.get(self.container, 'webm')}"


class CompressionOptions(BaseModel):
    """Compression settings; unset fields take the defaults"""
    quality: float = Field(default=0.7, ge=0.0, le=1.0, description="Target bitrate scaling")
    bitrate: int = Field(default=64, gt=0, description="Bitrate hint in kbps")
    format: Literal["webm", "mp3", "ogg"] = Field(default="webm", description="Output container")

    model_config = {"frozen": True}

    @property
    def target_bitrate_bps(self) -> int:
        return int(round(self.bitrate * self.quality * 1000))


@dataclass
class DecodedAudio:
    """Scratch PCM representation, samples shaped (channels, frames) in [-1, 1]"""
    sample_rate: int
    samples: np.ndarray

    def __post_init__(self):
        if self.samples.ndim != 2:
            raise ValueError("samples must be shaped (channels, frames)")
        if self.sample_rate <= 0:
            raise ValueError("sample_rate must be positive")

    @property
    def channels(self) -> int:
        return self.samples.shape[0]

    @property
    def frames(self) -> int:
        return self.samples.shape[1]

    @property
    def duration(self) -> float:
        """Duration in seconds"""
        return self.frames / float(self.sample_rate)
