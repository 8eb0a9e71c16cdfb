"""
Transcription and analysis result caching
Redis key-value store keyed by content hash, with fixed TTLs
"""

import json
from typing import Any, Dict, Optional, Union

import structlog
from redis import asyncio as aioredis

from ..config import Settings, get_settings
from ..utils.helpers import content_hash

logger = structlog.get_logger("callcoach.services.cache")

TRANSCRIPTION_NAMESPACE = "transcription"
ANALYSIS_NAMESPACE = "analysis"
OBJECTIONS_NAMESPACE = "objections"
SENTIMENT_BY_PERSON_NAMESPACE = "sentiment-by-person"
NEXT_STEPS_NAMESPACE = "next-steps"
ADVANCED_NAMESPACE = "advanced-analysis"


class ResultCache:
    """Redis cache for provider results; an unavailable Redis means every lookup misses"""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[aioredis.Redis] = None):
        self.settings = settings or get_settings()
        self._redis_client = client

    @property
    def enabled(self) -> bool:
        return self.settings.cache_enabled

    async def get_redis_client(self) -> Optional[aioredis.Redis]:
        """Get Redis client with lazy initialization"""
        if not self.enabled:
            return None

        if not self._redis_client:
            client = None
            try:
                client = aioredis.from_url(
                    self.settings.redis_url,
                    decode_responses=True,
                    socket_connect_timeout=2.0
                )
                await client.ping()
                self._redis_client = client
                logger.info("Redis connection established for result cache")
            except Exception as e:
                logger.warning(f"Redis connection failed, caching disabled for this call: {e}")
                if client is not None:
                    await client.aclose()

        return self._redis_client

    @staticmethod
    def make_key(namespace: str, content: Union[bytes, str]) -> str:
        return f"{namespace}:{content_hash(content)}"

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Get cached JSON value, None on miss or error"""
        redis_client = await self.get_redis_client()
        if not redis_client:
            return None

        try:
            cached_data = await redis_client.get(key)
        except Exception as e:
            logger.warning(f"Redis cache get failed: {e}", key=key[:24])
            return None

        if not cached_data:
            logger.debug("Cache miss", key=key[:24])
            return None

        try:
            value = json.loads(cached_data)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable cache entry", key=key[:24])
            return None

        logger.info("Cache hit", key=key[:24])
        return value

    async def set(self, key: str, value: Dict[str, Any], ttl_seconds: int) -> bool:
        """Store JSON value with TTL; returns whether it was written"""
        redis_client = await self.get_redis_client()
        if not redis_client:
            return False

        try:
            await redis_client.setex(key, ttl_seconds, json.dumps(value, ensure_ascii=False, default=str))
            logger.info("Result cached", key=key[:24], ttl_seconds=ttl_seconds)
            return True
        except Exception as e:
            logger.warning(f"Redis cache save failed: {e}", key=key[:24])
            return False

    async def get_transcription(self, audio_data: bytes) -> Optional[Dict[str, Any]]:
        return await self.get(self.make_key(TRANSCRIPTION_NAMESPACE, audio_data))

    async def save_transcription(self, audio_data: bytes, result: Dict[str, Any]) -> bool:
        return await self.set(
            self.make_key(TRANSCRIPTION_NAMESPACE, audio_data),
            result,
            self.settings.transcription_cache_ttl_seconds
        )

    async def get_analysis(self, transcription: str) -> Optional[Dict[str, Any]]:
        return await self.get(self.make_key(ANALYSIS_NAMESPACE, transcription))

    async def save_analysis(self, transcription: str, result: Dict[str, Any]) -> bool:
        return await self.set(
            self.make_key(ANALYSIS_NAMESPACE, transcription),
            result,
            self.settings.analysis_cache_ttl_seconds
        )

    async def get_result(self, namespace: str, content: Union[bytes, str]) -> Optional[Dict[str, Any]]:
        """Cached result of any transcript-derived analysis"""
        return await self.get(self.make_key(namespace, content))

    async def save_result(self, namespace: str, content: Union[bytes, str], result: Dict[str, Any]) -> bool:
        return await self.set(self.make_key(namespace, content), result, self.settings.analysis_cache_ttl_seconds)

    async def health_check(self) -> Dict[str, Any]:
        """Check cache health"""
        health = {"enabled": self.enabled, "redis_healthy": False}

        redis_client = await self.get_redis_client()
        if redis_client:
            try:
                await redis_client.ping()
                health["redis_healthy"] = True
            except Exception as e:
                logger.error(f"Redis health check failed: {e}")

        return health

    async def close(self):
        if self._redis_client:
            await self._redis_client.aclose()
            self._redis_client = None
