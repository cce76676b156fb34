# flickpick/infra/cache.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import redis.asyncio as redis

from flickpick.core.settings import settings

logger = logging.getLogger(__name__)

_redis: Optional[redis.Redis] = None


def init(url: str) -> None:
    """Synchronous init. Stores a global Redis client."""
    global _redis
    _redis = redis.from_url(url, decode_responses=True)


def client() -> redis.Redis:
    """
    Return a Redis client. If not initialized, try lazy init from REDIS_URL
    to avoid hard crashes during app startup races.
    """
    global _redis
    if _redis is None:
        if settings.redis_url:
            init(settings.redis_url)
        else:
            raise RuntimeError(
                "Redis cache not initialized and REDIS_URL not set. "
                "Set REDIS_URL or call cache.init(REDIS_URL) on startup."
            )
    return _redis  # type: ignore[return-value]


async def close() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


async def get_hash_json(key: str) -> Dict[str, Any]:
    """Read a whole hash whose values are JSON documents. Undecodable fields are skipped."""
    raw = await client().hgetall(key)
    out: Dict[str, Any] = {}
    for field, val in raw.items():
        try:
            out[field] = json.loads(val)
        except ValueError:
            logger.warning("Skipping undecodable cache field %s[%s]", key, field)
    return out


async def set_hash_json(key: str, mapping: Dict[str, Any]) -> None:
    if not mapping:
        return
    data = {field: json.dumps(value, ensure_ascii=False) for field, value in mapping.items()}
    await client().hset(key, mapping=data)
