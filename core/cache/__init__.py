"""Cache Module - Caching services."""
from core.cache.match_cache import (
    MatchCacheService,
    get_match_cache,
    init_match_cache,
    preference_digest,
    DEFAULT_TTL_SECONDS,
    MAX_CACHEABLE_RESULTS
)

__all__ = [
    'MatchCacheService',
    'get_match_cache',
    'init_match_cache',
    'preference_digest',
    'DEFAULT_TTL_SECONDS',
    'MAX_CACHEABLE_RESULTS'
]
