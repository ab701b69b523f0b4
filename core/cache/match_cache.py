"""Match Cache Service - Redis caching for coordinator match results."""
import hashlib
import json
import logging
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from urllib.parse import urlparse

from redis import Redis

from core.config_loader import CacheConfig
from core.matcher.models import MatchingPreference

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60 * 60
DEFAULT_KEY_PREFIX = "coordinator-matches"
MAX_CACHEABLE_RESULTS = 50


def _sanitize_url(url: str) -> str:
    """Remove credentials from URL for safe logging."""
    try:
        parsed = urlparse(url)
        if parsed.password:
            sanitized = parsed._replace(
                netloc=f"{parsed.username or ''}:*@{parsed.hostname}:{parsed.port or 6379}"
            )
            return sanitized.geturl()
        return url
    except ValueError:
        return url


def preference_digest(preference: MatchingPreference) -> str:
    """Short hash of the preference fields that are not spelled out in the key."""
    filters = {
        'country_code': preference.country_code,
        'needs_weekend_availability': preference.needs_weekend_availability,
        'needs_emergency_availability': preference.needs_emergency_availability,
        'needs_professional_consultation': preference.needs_professional_consultation,
        'min_customer_satisfaction': preference.min_customer_satisfaction,
    }
    encoded = json.dumps(filters, sort_keys=True).encode('utf-8')
    return hashlib.sha256(encoded).hexdigest()[:12]


class MatchCacheService:
    """
    Cache of full pipeline outputs, keyed by request shape.

    Only requests with an assessment id and at most max_cacheable_results
    results are cached. Any Redis failure degrades to a miss or a no-op, so
    a hit and a miss always produce the same output.

    A generation counter, bumped by clear_all(), tags every entry. Writes
    from runs that started before an eviction are skipped, and entries
    tagged with an older generation are read as misses.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        password: Optional[str] = None,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        max_cacheable_results: int = MAX_CACHEABLE_RESULTS
    ):
        self.redis_url = redis_url
        self.password = password
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix
        self.max_cacheable_results = max_cacheable_results
        self._redis: Optional[Redis] = None
        self._available = False

        try:
            self._redis = Redis.from_url(
                redis_url,
                password=password,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5
            )
            self._redis.ping()
            self._available = True
            logger.info(f"Match cache connected to Redis at {_sanitize_url(redis_url)}")
        except Exception as e:
            logger.warning(f"Match cache Redis unavailable, caching disabled: {e}")
            self._redis = None
            self._available = False

    @classmethod
    def from_config(cls, config: CacheConfig) -> 'MatchCacheService':
        return cls(
            redis_url=config.redis_url,
            password=config.password,
            ttl_seconds=config.ttl_seconds,
            key_prefix=config.key_prefix,
            max_cacheable_results=config.max_cacheable_results
        )

    @property
    def is_available(self) -> bool:
        if not self._available or not self._redis:
            return False
        try:
            return self._redis.ping()
        except Exception:
            return False

    def is_cacheable(self, assessment_id: Any, preference: MatchingPreference) -> bool:
        return assessment_id is not None and preference.max_results <= self.max_cacheable_results

    @property
    def generation_key(self) -> str:
        # Outside the "{prefix}:*" namespace so clear_all() never deletes it
        return f"{self.key_prefix}-generation"

    def make_key(self, assessment_id: Any, preference: MatchingPreference) -> str:
        # Language and region are free text; JSON keeps their boundaries unambiguous
        fields = json.dumps([preference.preferred_language, preference.preferred_region], ensure_ascii=False)
        return (
            f"{self.key_prefix}:{assessment_id}_{fields}_{preference.max_results}"
            f"#{preference_digest(preference)}"
        )

    def current_generation(self) -> Optional[int]:
        """Eviction generation, or None when Redis cannot be read."""
        if not self.is_available:
            return None
        try:
            return int(self._redis.get(self.generation_key) or 0)
        except Exception as e:
            logger.warning(f"Error reading match cache generation: {e}")
            return None

    def get_matches(self, assessment_id: Any, preference: MatchingPreference) -> Optional[List[Dict[str, Any]]]:
        """Cached match dicts, or None on a miss."""
        if not self.is_cacheable(assessment_id, preference) or not self.is_available:
            return None

        key = self.make_key(assessment_id, preference)
        try:
            data = self._redis.get(key)
            if data:
                cache_entry = json.loads(data)
                if cache_entry.get("generation", 0) != self.current_generation():
                    logger.debug(f"Stale cache entry for {key}")
                    return None
                logger.debug(f"Cache hit for {key}")
                return cache_entry.get("data")
            logger.debug(f"Cache miss for {key}")
            return None
        except Exception as e:
            logger.warning(f"Error reading from match cache: {e}")
            return None

    def set_matches(
        self,
        assessment_id: Any,
        preference: MatchingPreference,
        matches: List[Dict[str, Any]],
        ttl_seconds: Optional[int] = None,
        generation: Optional[int] = None
    ) -> bool:
        """
        Store a full pipeline output. Overwriting an entry is always safe.

        generation is the value of current_generation() read before the
        run loaded its candidates; the write is skipped if an eviction
        happened since.
        """
        if not self.is_cacheable(assessment_id, preference) or not self.is_available:
            return False

        current = self.current_generation()
        if current is None:
            return False
        if generation is not None and generation != current:
            logger.info(
                f"Skipping cache write for assessment {assessment_id}: "
                f"cache evicted during the run (generation {generation} -> {current})"
            )
            return False

        key = self.make_key(assessment_id, preference)
        ttl = ttl_seconds or self.ttl_seconds
        cache_entry = {
            "data": matches,
            "cached_at": datetime.now(timezone.utc).isoformat(),
            "ttl_seconds": ttl,
            "generation": current
        }
        try:
            self._redis.setex(key, ttl, json.dumps(cache_entry, ensure_ascii=False))
            logger.debug(f"Cached {len(matches)} matches under {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.warning(f"Error writing to match cache: {e}")
            return False

    def _delete_pattern(self, pattern: str) -> int:
        cursor = 0
        deleted = 0
        while True:
            cursor, keys = self._redis.scan(cursor=cursor, match=pattern, count=100)
            if keys:
                self._redis.delete(*keys)
                deleted += len(keys)
            if cursor == 0:
                break
        return deleted

    def invalidate_assessment(self, assessment_id: Any) -> int:
        """Drop every cached result for one assessment. Returns the number of keys removed."""
        if not self.is_available:
            return 0
        try:
            deleted = self._delete_pattern(f"{self.key_prefix}:{assessment_id}_*")
            logger.info(f"Invalidated {deleted} cached results for assessment {assessment_id}")
            return deleted
        except Exception as e:
            logger.warning(f"Error invalidating match cache for {assessment_id}: {e}")
            return 0

    def clear_all(self) -> bool:
        """Wholesale eviction, used after any coordinator settings write."""
        if not self.is_available:
            return False
        try:
            # Bump first so runs already in flight can no longer write
            generation = self._redis.incr(self.generation_key)
            deleted = self._delete_pattern(f"{self.key_prefix}:*")
            logger.info(f"Cleared {deleted} match results from cache (generation {generation})")
            return True
        except Exception as e:
            logger.warning(f"Error clearing match cache: {e}")
            return False

    def get_cache_stats(self) -> Dict[str, Any]:
        if not self.is_available:
            return {"available": False}

        try:
            info = self._redis.info()
            key_count = 0
            cursor = 0
            while True:
                cursor, keys = self._redis.scan(cursor=cursor, match=f"{self.key_prefix}:*", count=1000)
                key_count += len(keys)
                if cursor == 0:
                    break
            return {
                "available": True,
                "used_memory_human": info.get("used_memory_human", "unknown"),
                "match_cache_keys": key_count,
                "ttl_seconds": self.ttl_seconds,
                "max_cacheable_results": self.max_cacheable_results
            }
        except Exception as e:
            logger.warning(f"Error getting cache stats: {e}")
            return {"available": False, "error": str(e)}


# Global instance for application use
_match_cache: Optional[MatchCacheService] = None


def get_match_cache() -> Optional[MatchCacheService]:
    """Get global match cache instance."""
    return _match_cache


def init_match_cache(config: CacheConfig) -> Optional[MatchCacheService]:
    """Initialize global match cache; returns None when caching is disabled in config."""
    global _match_cache
    _match_cache = MatchCacheService.from_config(config) if config.enabled else None
    return _match_cache
