# =============================================================================
# FILE: src/expressflow/services/redis_client.py
# Redis client for the key/value quote and collaborator collections
# =============================================================================

import logging
from typing import Optional
import redis

from expressflow.config import settings

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None


def get_redis_client(url: Optional[str] = None) -> redis.Redis:
    """Get or create Redis client."""
    global _redis_client
    if _redis_client is None:
        url = url or settings.REDIS_URL
        _redis_client = redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
        )
        logger.info(f"Connected to Redis at {url}")
    return _redis_client


def close_redis_client() -> None:
    """Close Redis connection."""
    global _redis_client
    if _redis_client:
        _redis_client.close()
        _redis_client = None
        logger.info("Redis connection closed")
