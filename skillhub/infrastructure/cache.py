"""Redis JSON cache for single-course reads.

Redis is optional: a Redis error or an undecodable entry is logged and
treated as a miss, so requests fall through to the database.
"""
import json
import redis
import structlog
from typing import Optional, Any
from ..config import settings

logger = structlog.get_logger()

_redis_client: Optional[redis.Redis] = None

def get_redis() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True
        )
    return _redis_client

def course_key(course_id: int) -> str:
    return f"course:{course_id}"

def get_cache(key: str) -> Optional[Any]:
    try:
        value = get_redis().get(key)
    except redis.RedisError as exc:
        logger.warning("cache_read_failed", key=key, error=str(exc))
        return None
    if not value:
        return None
    try:
        return json.loads(value)
    except ValueError:
        logger.warning("cache_entry_corrupt", key=key)
        return None

def set_cache(key: str, value: Any, ttl: int | None = None) -> bool:
    try:
        get_redis().setex(key, ttl or settings.CACHE_TTL, json.dumps(value, ensure_ascii=False))
    except redis.RedisError as exc:
        logger.warning("cache_write_failed", key=key, error=str(exc))
        return False
    return True

def delete_cache(key: str) -> bool:
    # a failed invalidation leaves a stale entry for at most CACHE_TTL seconds
    try:
        get_redis().delete(key)
    except redis.RedisError as exc:
        logger.warning("cache_invalidate_failed", key=key, error=str(exc))
        return False
    return True
