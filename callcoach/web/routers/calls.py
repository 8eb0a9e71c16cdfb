"""
Calls Router - transcription, analysis and background processing of recordings
"""

from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ...audio import AudioSegment
from ...config import Settings, get_settings
from ...services.analysis import MIN_REALTIME_CHARS
from ...services.errors import CallCoachError
from ...services.pipeline import CallProcessor
from ...services.schemas import CustomerInfo, TranscriptSpan
from ...tasks.queue import AnalysisQueue
from ..dependencies import get_processor, get_queue

logger = structlog.get_logger("callcoach.web.calls")

router = APIRouter(prefix="/api", tags=["calls"])


class TranscriptRequest(BaseModel):
    """Body of every transcript analysis route; camelCase or snake_case keys"""
    transcription: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalyzeRequest(TranscriptRequest):
    duration: Optional[float] = Field(default=None, ge=0)


class NextStepsRequest(TranscriptRequest):
    analysis: Optional[Dict[str, Any]] = None
    customer_info: Optional[CustomerInfo] = None


class AdvancedAnalysisRequest(TranscriptRequest):
    duration: Optional[float] = Field(default=None, ge=0)
    segments: Optional[List[TranscriptSpan]] = None


class RealtimeRequest(TranscriptRequest):
    current_time: float = Field(default=0.0, ge=0)


def require_transcription(request: TranscriptRequest) -> str:
    if not request.transcription or not request.transcription.strip():
        raise HTTPException(status_code=400, detail="Transcription is required")
    return request.transcription


def service_error(e: CallCoachError) -> HTTPException:
    """Map a service error to an HTTP error; provider and configuration failures are 500s"""
    detail = f"{e.message}: {e.details}" if e.details else e.message
    return HTTPException(status_code=500, detail=detail)


async def read_upload(audio: Optional[UploadFile], settings: Settings) -> AudioSegment:
    """Read the multipart "audio" field into a segment, enforcing the size limit"""
    if audio is None:
        raise HTTPException(status_code=400, detail="Audio file not found")

    data = await audio.read(settings.max_upload_size_bytes + 1)
    if len(data) > settings.max_upload_size_bytes:
        raise HTTPException(status_code=413, detail="Audio file exceeds the 25MB limit")
    if not data:
        raise HTTPException(status_code=400, detail="Audio file is empty")

    return AudioSegment(data=data, media_type=audio.content_type or "audio/webm")


@router.post("/transcribe")
async def transcribe(
    audio: Optional[UploadFile] = File(None),
    compress: bool = Form(False),
    processor: CallProcessor = Depends(get_processor),
    settings: Settings = Depends(get_settings)
) -> Dict[str, Any]:
    """Transcribe an uploaded recording"""
    segment = await read_upload(audio, settings)

    if compress:
        segment = await processor.compress(segment)

    try:
        return await processor.transcribe(segment)
    except CallCoachError as e:
        logger.error("Transcription request failed", error=e.message, details=e.details)
        raise service_error(e)


@router.post("/analyze")
async def analyze(
    request: AnalyzeRequest,
    processor: CallProcessor = Depends(get_processor)
) -> Dict[str, Any]:
    """Analyze a call transcript"""
    transcription = require_transcription(request)

    try:
        return await processor.analyze(transcription, request.duration)
    except CallCoachError as e:
        logger.error("Analysis request failed", error=e.message, details=e.details)
        raise service_error(e)


@router.post("/analyze-objections")
async def analyze_objections(
    request: TranscriptRequest,
    processor: CallProcessor = Depends(get_processor)
) -> Dict[str, Any]:
    """Objections, suggested responses and competitor mentions"""
    transcription = require_transcription(request)

    try:
        return await processor.analyze_objections(transcription)
    except CallCoachError as e:
        logger.error("Objection analysis failed", error=e.message, details=e.details)
        raise service_error(e)


@router.post("/analyze-sentiment-by-person")
async def analyze_sentiment_by_person(
    request: TranscriptRequest,
    processor: CallProcessor = Depends(get_processor)
) -> Dict[str, Any]:
    """Salesperson and customer sentiment, tension moments"""
    transcription = require_transcription(request)

    try:
        return await processor.analyze_sentiment_by_person(transcription)
    except CallCoachError as e:
        logger.error("Sentiment by person analysis failed", error=e.message, details=e.details)
        raise service_error(e)


@router.post("/generate-next-steps")
async def generate_next_steps(
    request: NextStepsRequest,
    processor: CallProcessor = Depends(get_processor)
) -> Dict[str, Any]:
    """Action plan, follow-up email and proposal outline"""
    transcription = require_transcription(request)
    customer_info = request.customer_info.model_dump(by_alias=True, exclude_none=True) if request.customer_info else None

    try:
        return await processor.generate_next_steps(transcription, request.analysis, customer_info)
    except CallCoachError as e:
        logger.error("Next steps generation failed", error=e.message, details=e.details)
        raise service_error(e)


@router.post("/analyze-advanced")
async def analyze_advanced(
    request: AdvancedAnalysisRequest,
    processor: CallProcessor = Depends(get_processor)
) -> Dict[str, Any]:
    """Emotion, silence, interruption, tone, question, closing, rapport and persuasion analysis"""
    transcription = require_transcription(request)
    segments = [segment.model_dump() for segment in request.segments] if request.segments else None

    try:
        return await processor.analyze_advanced(transcription, request.duration, segments)
    except CallCoachError as e:
        logger.error("Advanced analysis failed", error=e.message, details=e.details)
        raise service_error(e)


@router.post("/analyze-realtime")
async def analyze_realtime(
    request: RealtimeRequest,
    processor: CallProcessor = Depends(get_processor)
) -> Dict[str, Any]:
    """Quick scores for a call in progress"""
    transcription = request.transcription or ""
    if len(transcription.strip()) < MIN_REALTIME_CHARS:
        raise HTTPException(
            status_code=400,
            detail=f"Transcription must have at least {MIN_REALTIME_CHARS} characters"
        )

    try:
        return await processor.analyze_realtime(transcription, request.current_time)
    except CallCoachError as e:
        logger.error("Realtime analysis failed", error=e.message, details=e.details)
        raise service_error(e)


@router.post("/jobs", status_code=202)
async def create_job(
    audio: Optional[UploadFile] = File(None),
    duration: Optional[float] = Form(None),
    compress: bool = Form(True),
    processor: CallProcessor = Depends(get_processor),
    queue: AnalysisQueue = Depends(get_queue),
    settings: Settings = Depends(get_settings)
) -> Dict[str, Any]:
    """Queue full processing (compress, transcribe, analyze) of a recording"""
    segment = await read_upload(audio, settings)

    try:
        job_id = await queue.add_job(
            processor.process,
            segment,
            duration=duration,
            compress=compress,
            name="analyze-recording"
        )
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return {"job_id": job_id, "status": "pending"}


@router.get("/jobs/{job_id}")
async def get_job(job_id: str, queue: AnalysisQueue = Depends(get_queue)) -> Dict[str, Any]:
    """Poll a queued job"""
    job = queue.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job.to_dict()
