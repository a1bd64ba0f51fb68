"""Redis cache for score responses."""

import hashlib
import json
import logging
from typing import Dict, Optional

import redis

from safeplace.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

KEY_PREFIX = "safety_score"


class ScoreCache:
    """
    Score payloads keyed by rounded coordinates and area names.

    Any Redis failure turns the cache into a no-op for that call; a failed
    connection at startup disables it for the process.
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None, enabled: Optional[bool] = None):
        """
        Args:
            redis_client: Client to use; one is built from Settings.redis_url when omitted
            enabled: Overrides Settings.score_cache_enabled
        """
        self.enabled = settings.score_cache_enabled if enabled is None else enabled
        self.client = redis_client
        if self.enabled and self.client is None:
            self.client = self._connect()
            self.enabled = self.client is not None

    @staticmethod
    def _connect() -> Optional[redis.Redis]:
        client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            client.ping()
        except redis.RedisError as e:
            logger.warning(f"Score cache disabled, Redis unreachable at {settings.redis_url}: {str(e)}")
            return None
        logger.info("Score cache connected to Redis")
        return client

    def is_enabled(self) -> bool:
        return self.enabled and self.client is not None

    def _key(self, lat: float, lng: float, neighborhood: str, municipality: str) -> str:
        # 5 decimals ~ 1 m: repeated lookups of the same address share an entry
        raw = f"{lat:.5f}:{lng:.5f}:{neighborhood.lower()}:{municipality.lower()}"
        return f"{KEY_PREFIX}:{hashlib.md5(raw.encode()).hexdigest()}"

    def get_cached_score(self, lat: float, lng: float, neighborhood: str, municipality: str) -> Optional[Dict]:
        if not self.is_enabled():
            return None

        key = self._key(lat, lng, neighborhood, municipality)
        try:
            payload = self.client.get(key)
        except redis.RedisError as e:
            logger.error(f"Score cache read failed: {str(e)}")
            return None

        logger.debug(f"Score cache {'hit' if payload else 'miss'}: {key}")
        return json.loads(payload) if payload else None

    def set_cached_score(
        self,
        score_data: Dict,
        lat: float,
        lng: float,
        neighborhood: str,
        municipality: str,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        if not self.is_enabled():
            return

        key = self._key(lat, lng, neighborhood, municipality)
        ttl = ttl_seconds or settings.score_cache_ttl_seconds
        try:
            self.client.setex(key, ttl, json.dumps(score_data, default=str))
        except redis.RedisError as e:
            logger.error(f"Score cache write failed: {str(e)}")


_score_cache: Optional[ScoreCache] = None


def get_score_cache() -> ScoreCache:
    """Process-wide ScoreCache, created on first use."""
    global _score_cache
    if _score_cache is None:
        _score_cache = ScoreCache()
    return _score_cache
