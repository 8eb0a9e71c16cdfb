"""
Call processing pipeline: compress, transcribe and analyze with caching
"""

import json
from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog

from ..audio import AudioCompressor, AudioSegment, CompressionOptions, estimate_compression_ratio
from ..config import Settings, get_settings
from .analysis import CallAnalyzer
from .cache import (
    ADVANCED_NAMESPACE,
    NEXT_STEPS_NAMESPACE,
    OBJECTIONS_NAMESPACE,
    SENTIMENT_BY_PERSON_NAMESPACE,
    ResultCache,
)
from .schemas import TranscriptionResult
from .transcription import WhisperTranscriber

logger = structlog.get_logger("callcoach.services.pipeline")


def cache_material(*parts: Any) -> str:
    """Stable text for hashing an analysis request with several inputs"""
    return json.dumps(parts, sort_keys=True, ensure_ascii=False, default=str)


class CallProcessor:
    """Glue between the compressor, the providers and the cache"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        compressor: Optional[AudioCompressor] = None,
        transcriber: Optional[WhisperTranscriber] = None,
        analyzer: Optional[CallAnalyzer] = None,
        cache: Optional[ResultCache] = None
    ):
        self.settings = settings or get_settings()
        self.compressor = compressor or AudioCompressor()
        self.transcriber = transcriber or WhisperTranscriber(self.settings)
        self.analyzer = analyzer or CallAnalyzer(self.settings)
        self.cache = cache or ResultCache(self.settings)

    def default_options(self) -> CompressionOptions:
        return CompressionOptions(
            quality=self.settings.compression_quality,
            bitrate=self.settings.compression_bitrate_kbps,
            format=self.settings.compression_format
        )

    async def compress(self, segment: AudioSegment, options: Optional[CompressionOptions] = None) -> AudioSegment:
        compressed = await self.compressor.compress(segment, options or self.default_options())
        logger.info(
            "Upload prepared",
            original=segment.size,
            compressed=compressed.size,
            ratio=f"{estimate_compression_ratio(segment.size, compressed.size):.1f}%"
        )
        return compressed

    async def transcribe(self, segment: AudioSegment) -> Dict[str, Any]:
        """Transcribe with a cache keyed by the uploaded bytes"""
        cached = await self.cache.get_transcription(segment.data)
        if cached:
            return cached

        result = await self.transcriber.transcribe(segment)
        payload = result.model_dump()
        await self.cache.save_transcription(segment.data, payload)
        return payload

    async def analyze(self, transcription: str, duration: Optional[float] = None) -> Dict[str, Any]:
        """Analyze with a cache keyed by the transcript text"""
        cached = await self.cache.get_analysis(transcription)
        if cached:
            return cached

        result = await self.analyzer.analyze(transcription, duration)
        payload = result.to_response()
        await self.cache.save_analysis(transcription, payload)
        return payload

    async def _cached_analysis(
        self,
        namespace: str,
        cache_content: str,
        produce: Callable[[], Awaitable[Any]]
    ) -> Dict[str, Any]:
        cached = await self.cache.get_result(namespace, cache_content)
        if cached:
            return cached

        result = await produce()
        payload = result.to_response()
        await self.cache.save_result(namespace, cache_content, payload)
        return payload

    async def analyze_objections(self, transcription: str) -> Dict[str, Any]:
        return await self._cached_analysis(
            OBJECTIONS_NAMESPACE,
            transcription,
            lambda: self.analyzer.analyze_objections(transcription)
        )

    async def analyze_sentiment_by_person(self, transcription: str) -> Dict[str, Any]:
        return await self._cached_analysis(
            SENTIMENT_BY_PERSON_NAMESPACE,
            transcription,
            lambda: self.analyzer.analyze_sentiment_by_person(transcription)
        )

    async def generate_next_steps(
        self,
        transcription: str,
        analysis: Optional[Dict[str, Any]] = None,
        customer_info: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Cached per transcript, analysis summary and customer info"""
        return await self._cached_analysis(
            NEXT_STEPS_NAMESPACE,
            cache_material(transcription, analysis, customer_info),
            lambda: self.analyzer.generate_next_steps(transcription, analysis, customer_info)
        )

    async def analyze_advanced(
        self,
        transcription: str,
        duration: Optional[float] = None,
        segments: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        return await self._cached_analysis(
            ADVANCED_NAMESPACE,
            cache_material(transcription, duration, segments),
            lambda: self.analyzer.analyze_advanced(transcription, duration, segments)
        )

    async def analyze_realtime(self, transcription: str, current_time: float = 0.0) -> Dict[str, Any]:
        """Not cached, snippets of a live call go stale immediately"""
        result = await self.analyzer.analyze_realtime(transcription, current_time)
        return result.to_response()

    async def process(
        self,
        segment: AudioSegment,
        duration: Optional[float] = None,
        compress: bool = True,
        options: Optional[CompressionOptions] = None
    ) -> Dict[str, Any]:
        """Full processing of one recording"""
        upload = await self.compress(segment, options) if compress else segment

        transcription = await self.transcribe(upload)
        text = TranscriptionResult.model_validate(transcription).text
        analysis = await self.analyze(text, duration or transcription.get("duration"))

        return {
            "transcription": transcription,
            "analysis": analysis,
        }
