"""
Redis read cache for question-bank aggregates.
Caches the statistics payload and the unit/topic tree; every mutation of the
question store must call invalidate_question_cache() after commit.

Disabled when REDIS_URL is empty. Redis errors never fail a request: reads
fall through to the database and the failure is logged.
"""

import os
import json
import logging
from typing import Optional, Any

import redis

log = logging.getLogger(__name__)

# ─── Config ────────────────────────────────────────────────────────────────────

REDIS_URL = os.getenv("REDIS_URL", "")
CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", "600"))

_redis_client: Optional[redis.Redis] = None


def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. None when caching is disabled."""
    global _redis_client
    if not REDIS_URL:
        return None
    if _redis_client is None:
        _redis_client = redis.from_url(REDIS_URL, decode_responses=True)
    return _redis_client


# ─── Key helpers ───────────────────────────────────────────────────────────────

KEY_PREFIX = "mcq_bank"
STATS_KEY = "stats"
UNITS_KEY = "units"
CACHED_KEYS = (STATS_KEY, UNITS_KEY)


def _cache_key(name: str) -> str:
    return f"{KEY_PREFIX}:{name}"


# ─── Cache operations ──────────────────────────────────────────────────────────

def get_cached(name: str) -> Optional[Any]:
    """Return the decoded JSON value for name, or None on miss/disabled/error."""
    r = get_redis()
    if r is None:
        return None
    try:
        raw = r.get(_cache_key(name))
    except redis.RedisError as e:
        log.warning("cache read failed for %s: %s", name, e)
        return None
    return json.loads(raw) if raw else None


def set_cached(name: str, value: Any, ttl_seconds: Optional[int] = None):
    """Store value as JSON. TTL bounds staleness if an invalidation is ever missed."""
    r = get_redis()
    if r is None:
        return
    try:
        r.set(_cache_key(name), json.dumps(value, default=str), ex=ttl_seconds or CACHE_TTL_SECONDS)
    except redis.RedisError as e:
        log.warning("cache write failed for %s: %s", name, e)


def invalidate_question_cache():
    """Drop every cached aggregate. Called after question create/update/delete/import."""
    r = get_redis()
    if r is None:
        return
    try:
        r.delete(*[_cache_key(name) for name in CACHED_KEYS])
    except redis.RedisError as e:
        log.warning("cache invalidation failed: %s", e)
