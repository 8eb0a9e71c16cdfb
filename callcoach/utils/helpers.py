"""
Helper utilities and common functions
"""

import asyncio
import hashlib
import json
import re
from typing import Any, Optional, Union

import structlog

logger = structlog.get_logger("callcoach.helpers")

JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


def safe_json_loads(json_str: str, default: Any = None) -> Any:
    """Safely parse JSON string"""
    try:
        return json.loads(json_str)
    except (json.JSONDecodeError, TypeError):
        return default


def extract_json_object(text: str) -> Optional[dict]:
    """Parse a JSON object from model output, tolerating markdown around it"""
    if not text:
        return None

    parsed = safe_json_loads(text.strip())
    if isinstance(parsed, dict):
        return parsed

    match = JSON_OBJECT_PATTERN.search(text)
    if match:
        parsed = safe_json_loads(match.group(0))
        if isinstance(parsed, dict):
            return parsed

    return None


def content_hash(content: Union[bytes, str]) -> str:
    """SHA-256 hex digest used as cache key"""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def format_file_size(bytes_size: float) -> str:
    """Format file size in human readable format"""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if bytes_size < 1024.0:
            return f"{bytes_size:.1f} {unit}"
        bytes_size /= 1024.0
    return f"{bytes_size:.1f} TB"


def format_timestamp(seconds: int) -> str:
    """Format seconds as m:ss"""
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


async def retry_async(
    coro_func,
    max_retries: int = 3,
    delay: float = 1.0,
    backoff_factor: float = 2.0,
    exceptions: tuple = (Exception,)
) -> Any:
    """Retry async function with exponential backoff"""
    last_exception = None

    for attempt in range(max_retries + 1):
        try:
            return await coro_func()
        except exceptions as e:
            last_exception = e

            if attempt == max_retries:
                break

            wait_time = delay * (backoff_factor ** attempt)
            logger.warning(
                f"Attempt {attempt + 1} failed, retrying in {wait_time}s",
                error=str(e)
            )
            await asyncio.sleep(wait_time)

    raise last_exception
