"""
AI-powered call analysis service using OpenAI GPT
"""

import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Type, TypeVar

import openai
import structlog
from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from ..config import Settings, get_settings
from ..utils.helpers import clamp, extract_json_object, format_timestamp
from .errors import AnalysisError, ConfigurationError
from .prompts import (
    ADVANCED_SYSTEM_PROMPT,
    ANALYSIS_SYSTEM_PROMPT,
    NEXT_STEPS_SYSTEM_PROMPT,
    OBJECTIONS_SYSTEM_PROMPT,
    REALTIME_SYSTEM_PROMPT,
    SENTIMENT_BY_PERSON_SYSTEM_PROMPT,
    build_advanced_prompt,
    build_analysis_prompt,
    build_next_steps_prompt,
    build_objections_prompt,
    build_realtime_prompt,
    build_sentiment_by_person_prompt,
)
from .schemas import (
    AdvancedAnalysisResult,
    AnalysisResult,
    NextSteps,
    ObjectionAnalysis,
    PersonSentiment,
    RealtimeInsight,
    TimelinePoint,
)

logger = structlog.get_logger("callcoach.services.analysis")

ModelT = TypeVar("ModelT", bound=BaseModel)

TIMELINE_STEP_SECONDS = 10
MAX_TIMELINE_POINTS = 20
DEFAULT_TIMELINE_DURATION = 60

NEXT_STEPS_TEMPERATURE = 0.4
MIN_REALTIME_CHARS = 20
REALTIME_MAX_TOKENS = 200
DEFAULT_REALTIME_SUGGESTION = "Continue a conversa"


def require_transcription(transcription: Optional[str]):
    if not transcription or not transcription.strip():
        raise AnalysisError("Transcription is required")


def build_timeline(
    sentiment: Optional[float],
    engagement: Optional[float],
    duration: Optional[float]
) -> List[TimelinePoint]:
    """Spread the overall scores over the call as a gently varying curve"""
    points = min(int((duration or DEFAULT_TIMELINE_DURATION) // TIMELINE_STEP_SECONDS), MAX_TIMELINE_POINTS)
    base_sentiment = sentiment or 0.5
    base_engagement = engagement or 0.5

    timeline = []
    for i in range(points):
        variation = math.sin(i / points * math.pi * 2) * 0.1
        timeline.append(TimelinePoint(
            time=format_timestamp(i * TIMELINE_STEP_SECONDS),
            sentiment=clamp(base_sentiment + variation, 0.1, 0.9),
            engagement=clamp(base_engagement + variation, 0.1, 0.9)
        ))
    return timeline


class CallAnalyzer:
    """Analyze call transcripts with a chat model"""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[AsyncOpenAI] = None):
        self.settings = settings or get_settings()
        self.model = self.settings.openai_model
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.settings.openai_api_key:
                raise ConfigurationError("OPENAI_API_KEY is not configured")
            self._client = AsyncOpenAI(
                api_key=self.settings.openai_api_key,
                base_url=self.settings.openai_base_url,
                timeout=self.settings.request_timeout_seconds,
                max_retries=self.settings.max_retries
            )
        return self._client

    async def _complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """Run one JSON-mode chat completion and parse the answer into a dict"""
        request = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt}
            ],
            "temperature": self.settings.analysis_temperature if temperature is None else temperature,
            "response_format": {"type": "json_object"},
        }
        if max_tokens:
            request["max_tokens"] = max_tokens

        try:
            response = await self.client.chat.completions.create(**request)
        except openai.OpenAIError as e:
            logger.error("AI analysis request failed", error=str(e))
            raise AnalysisError("Error analyzing transcription", details=str(e)) from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise AnalysisError("Empty response from analysis provider")

        payload = extract_json_object(content)
        if payload is None:
            logger.error("Could not parse analysis response", preview=content[:200])
            raise AnalysisError("Could not parse analysis response")

        return payload

    @staticmethod
    def _validate(model: Type[ModelT], payload: Dict[str, Any]) -> ModelT:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise AnalysisError("Analysis response has an invalid shape", details=str(e)) from e

    async def analyze(self, transcription: str, duration: Optional[float] = None) -> AnalysisResult:
        """
        Analyze a call transcript

        Args:
            transcription: Call transcription text
            duration: Call duration in seconds, drives the timeline length

        Returns:
            AnalysisResult with scores, qualitative fields and timeline
        """
        require_transcription(transcription)

        logger.info(
            "Requesting AI analysis",
            model=self.model,
            transcript_length=len(transcription),
            duration=duration
        )

        payload = await self._complete_json(ANALYSIS_SYSTEM_PROMPT, build_analysis_prompt(transcription, duration))
        result = self._validate(AnalysisResult, payload)

        result.real_time_data = build_timeline(payload.get("sentiment"), payload.get("engagement"), duration)
        result.analyzed_at = datetime.now(timezone.utc).isoformat()

        logger.info(
            "AI analysis completed",
            sentiment=result.sentiment,
            engagement=result.engagement,
            keywords=len(result.keywords)
        )
        return result

    async def analyze_objections(self, transcription: str) -> ObjectionAnalysis:
        """Objections with suggested responses and competitor mentions"""
        require_transcription(transcription)
        logger.info("Requesting objection analysis", transcript_length=len(transcription))

        payload = await self._complete_json(OBJECTIONS_SYSTEM_PROMPT, build_objections_prompt(transcription))
        result = self._validate(ObjectionAnalysis, payload)

        logger.info(
            "Objection analysis completed",
            objections=len(result.objections),
            level=result.overall_objection_level
        )
        return result

    async def analyze_sentiment_by_person(self, transcription: str) -> PersonSentiment:
        """Separate salesperson and customer sentiment, tension moments and approach changes"""
        require_transcription(transcription)
        logger.info("Requesting sentiment by person", transcript_length=len(transcription))

        payload = await self._complete_json(
            SENTIMENT_BY_PERSON_SYSTEM_PROMPT,
            build_sentiment_by_person_prompt(transcription)
        )
        result = self._validate(PersonSentiment, payload)

        logger.info("Sentiment by person completed", tension_moments=len(result.tension_moments))
        return result

    async def generate_next_steps(
        self,
        transcription: str,
        analysis: Optional[Dict[str, Any]] = None,
        customer_info: Optional[Dict[str, Any]] = None
    ) -> NextSteps:
        """
        Action plan, follow-up email and proposal outline for a call

        Args:
            transcription: Call transcription text
            analysis: Earlier analysis response (camelCase), summarized into the prompt
            customer_info: Optional name, company and pain points
        """
        require_transcription(transcription)
        logger.info("Requesting next steps", transcript_length=len(transcription), has_analysis=bool(analysis))

        payload = await self._complete_json(
            NEXT_STEPS_SYSTEM_PROMPT,
            build_next_steps_prompt(transcription, analysis, customer_info),
            temperature=NEXT_STEPS_TEMPERATURE
        )
        result = self._validate(NextSteps, payload)

        logger.info("Next steps generated", immediate=len(result.immediate))
        return result

    async def analyze_advanced(
        self,
        transcription: str,
        duration: Optional[float] = None,
        segments: Optional[List[Dict[str, Any]]] = None
    ) -> AdvancedAnalysisResult:
        """Emotions, silences, interruptions, tone, questions, closing, rapport and persuasion"""
        require_transcription(transcription)
        logger.info(
            "Requesting advanced analysis",
            transcript_length=len(transcription),
            duration=duration,
            segments=len(segments or [])
        )

        payload = await self._complete_json(
            ADVANCED_SYSTEM_PROMPT,
            build_advanced_prompt(transcription, duration, segments)
        )
        result = self._validate(AdvancedAnalysisResult, payload)

        logger.info("Advanced analysis completed")
        return result

    async def analyze_realtime(self, transcription: str, current_time: float = 0.0) -> RealtimeInsight:
        """Quick scores and a short suggestion for a call still in progress"""
        if not transcription or len(transcription.strip()) < MIN_REALTIME_CHARS:
            raise AnalysisError(
                f"Transcription must have at least {MIN_REALTIME_CHARS} characters",
                details=f"received {len((transcription or '').strip())}"
            )

        payload = await self._complete_json(
            REALTIME_SYSTEM_PROMPT,
            build_realtime_prompt(transcription),
            max_tokens=REALTIME_MAX_TOKENS
        )

        for key in ("sentiment", "engagement"):
            value = payload.get(key)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise AnalysisError(f"Realtime response has no numeric {key}")

        result = self._validate(RealtimeInsight, {
            "sentiment": payload["sentiment"],
            "engagement": payload["engagement"],
            "keywords": payload.get("keywords") or [],
            "suggestion": payload.get("suggestion") or DEFAULT_REALTIME_SUGGESTION,
            "time": current_time or 0.0,
        })

        logger.debug("Realtime analysis completed", time=result.time, sentiment=result.sentiment)
        return result
