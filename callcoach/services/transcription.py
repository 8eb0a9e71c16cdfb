"""
OpenAI Whisper API integration for audio transcription
Handles API calls, retries, and error handling
"""

from typing import Any, Dict, Optional

import httpx
import structlog
from pydantic import ValidationError

from ..audio.models import AudioSegment
from ..config import Settings, get_settings
from ..utils.helpers import format_file_size, retry_async
from .errors import ConfigurationError, TranscriptionError
from .schemas import TranscriptionResult

logger = structlog.get_logger("callcoach.services.transcription")

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class WhisperTranscriber:
    """OpenAI Whisper API client for transcription"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.api_url = f"{self.settings.openai_base_url.rstrip('/')}/audio/transcriptions"

    async def transcribe(self, segment: AudioSegment, language: Optional[str] = None) -> TranscriptionResult:
        """Transcribe audio with segment timestamps (verbose_json)"""
        if not self.settings.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is not configured")

        if not segment.data:
            raise TranscriptionError("Audio file is empty")

        language = language or self.settings.transcription_language
        logger.info(
            "Starting transcription",
            audio_size=format_file_size(segment.size),
            media_type=segment.media_type,
            language=language
        )

        try:
            payload = await retry_async(
                lambda: self._make_transcription_request(segment, language),
                max_retries=self.settings.max_retries,
                delay=1.0,
                backoff_factor=2.0,
                exceptions=(httpx.TransportError, httpx.HTTPStatusError)
            )
        except httpx.HTTPStatusError as e:
            raise TranscriptionError(
                "Error transcribing audio",
                details=f"HTTP {e.response.status_code}: {e.response.text[:300]}"
            ) from e
        except httpx.HTTPError as e:
            raise TranscriptionError("Error transcribing audio", details=str(e)) from e

        try:
            result = TranscriptionResult.model_validate(payload)
        except ValidationError as e:
            raise TranscriptionError("Unexpected transcription payload", details=str(e)) from e

        logger.info(
            "Transcription completed",
            length=len(result.text),
            segments=len(result.segments),
            duration=result.duration
        )
        return result

    async def _make_transcription_request(self, segment: AudioSegment, language: str) -> Dict[str, Any]:
        """Make actual API request to Whisper"""

        headers = {
            "Authorization": f"Bearer {self.settings.openai_api_key}"
        }

        files = {
            "file": (segment.filename, segment.data, segment.media_type),
        }
        data = {
            "model": self.settings.transcription_model,
            "language": language,
            "response_format": "verbose_json",
        }

        async with httpx.AsyncClient(timeout=self.settings.request_timeout_seconds) as client:
            response = await client.post(
                self.api_url,
                headers=headers,
                files=files,
                data=data
            )

        logger.info(
            "Whisper API request completed",
            status_code=response.status_code,
            response_size=len(response.content)
        )

        if response.status_code >= 400 and response.status_code not in RETRYABLE_STATUS_CODES:
            # Client errors are not worth retrying
            raise TranscriptionError(
                "Error transcribing audio",
                details=f"HTTP {response.status_code}: {response.text[:300]}"
            )

        response.raise_for_status()

        try:
            return response.json()
        except ValueError as e:
            raise TranscriptionError("Transcription response is not JSON", details=str(e)) from e
