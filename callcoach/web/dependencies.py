"""
Shared service instances for the API layer
"""

from functools import lru_cache

from ..config import get_settings
from ..services.pipeline import CallProcessor
from ..tasks.queue import AnalysisQueue


@lru_cache()
def get_processor() -> CallProcessor:
    return CallProcessor(get_settings())


@lru_cache()
def get_queue() -> AnalysisQueue:
    settings = get_settings()
    return AnalysisQueue(
        max_workers=settings.queue_max_workers,
        max_queue_size=settings.queue_max_size,
        max_attempts=settings.queue_max_attempts,
        backoff_seconds=settings.queue_backoff_seconds
    )
