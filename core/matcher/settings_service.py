#!/usr/bin/env python3
"""
Coordinator Settings Service - Writes that change matching inputs.

Every successful write evicts the match cache wholesale; cached results
would otherwise describe coordinators that no longer exist in that shape.
"""
from typing import Any, Iterable, Optional
import logging

from core.cache.match_cache import MatchCacheService
from core.matcher.models import CoordinatorProfile, LanguageSkill

logger = logging.getLogger(__name__)


class CoordinatorSettingsService:
    """
    Args:
        repo: CoordinatorRepository (or any object with the same write methods)
        cache: Optional MatchCacheService to evict after writes
    """

    def __init__(self, repo: Any, cache: Optional[MatchCacheService] = None):
        self.repo = repo
        self.cache = cache

    def _evict(self, reason: str) -> None:
        if self.cache is None:
            return
        if self.cache.clear_all():
            logger.info(f"Match cache evicted after {reason}")

    def register_coordinator(
        self,
        profile: CoordinatorProfile,
        skills: Iterable[LanguageSkill] = ()
    ) -> CoordinatorProfile:
        self.repo.save_coordinator(profile)
        for skill in skills:
            self.repo.add_language_skill(profile.coordinator_id, skill)
        self.repo.commit()
        self._evict(f"registering coordinator {profile.coordinator_id}")
        return profile

    def update_settings(self, coordinator_id: str, **changes: Any) -> CoordinatorProfile:
        """Apply field changes to a coordinator's care settings."""
        profile = self.repo.update_care_settings(coordinator_id, **changes)
        self.repo.commit()
        self._evict(f"updating settings of {coordinator_id} ({', '.join(sorted(changes))})")
        return profile

    def add_language_skill(self, coordinator_id: str, skill: LanguageSkill) -> LanguageSkill:
        self.repo.add_language_skill(coordinator_id, skill)
        self.repo.commit()
        self._evict(f"adding {skill.language_code} skill to {coordinator_id}")
        return skill
