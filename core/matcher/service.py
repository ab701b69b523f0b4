#!/usr/bin/env python3
"""
Matching Pipeline - Rank coordinators for a health assessment.

Stages, always in this order:
1. Eligibility: store returns active coordinators whose care-level band
   contains the assessment's care grade level
2. Settings filter: capacity, satisfaction floor, availability and
   language constraints
3. Scoring: CandidateScorer on every survivor
4. Sort: descending score, coordinator_id ascending on ties
5. Workload rebalancing over the full scored set
6. Truncate to max_results

The full output is cached per request shape. Cancellation and deadline
checks happen between stages and during scoring, and always before the
cache write, so an abandoned run never leaves a cache entry.
"""
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
import logging
import os
import threading
import time

from core.cache.match_cache import MatchCacheService
from core.config_loader import MatchingConfig
from core.exceptions import (
    AssessmentNotFoundException, InvalidPreferenceException, MatchingCancelledException,
    MatchingDisabledException, MatchingTimeoutException
)
from core.grading.models import HealthAssessment
from core.matcher.interfaces import CoordinatorStore
from core.matcher.language import supports_professional_consultation
from core.matcher.models import (
    CoordinatorMatch, CoordinatorProfile, LanguageSkill, MatchingPreference
)
from core.scorer.candidate import CandidateScore, CandidateScorer
from core.scorer.workload import WorkloadBalancer, ranking_key

logger = logging.getLogger(__name__)


@dataclass
class MatchingStatistics:
    """Reporting snapshot; not used for scoring."""
    active_coordinators: int
    average_customer_satisfaction: float
    region_distribution: Dict[str, int] = field(default_factory=dict)
    specialty_distribution: Dict[str, int] = field(default_factory=dict)
    cache: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'activeCoordinators': self.active_coordinators,
            'averageCustomerSatisfaction': self.average_customer_satisfaction,
            'regionDistribution': self.region_distribution,
            'specialtyDistribution': self.specialty_distribution,
            'cache': self.cache,
        }


class _RunGuard:
    """Cancellation and deadline checks for one pipeline run."""

    def __init__(self, stop_event: Optional[threading.Event], timeout_seconds: Optional[float]):
        self.stop_event = stop_event or threading.Event()
        self.deadline = time.monotonic() + timeout_seconds if timeout_seconds is not None else None

    def check(self, stage: str) -> None:
        if self.stop_event.is_set():
            raise MatchingCancelledException(f"Matching cancelled during {stage}")
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise MatchingTimeoutException(f"Matching deadline exceeded during {stage}")


class MatchingPipeline:
    """
    Orchestrates filter, score, sort, rebalance and truncate for one request.

    The scorer and balancer are pure; the cache is the only shared mutable
    state and writes to it are idempotent.
    """

    def __init__(
        self,
        store: CoordinatorStore,
        config: Optional[MatchingConfig] = None,
        cache: Optional[MatchCacheService] = None,
        scorer: Optional[CandidateScorer] = None,
        balancer: Optional[WorkloadBalancer] = None
    ):
        """
        Args:
            store: CoordinatorStore to read candidates and assessments from
            config: MatchingConfig (defaults if None)
            cache: Optional MatchCacheService; None disables caching
            scorer: CandidateScorer override (built from config weights if None)
            balancer: WorkloadBalancer override (built from config if None)
        """
        self.store = store
        self.config = config or MatchingConfig()
        self.cache = cache
        self.scorer = scorer or CandidateScorer(self.config.weights)
        self.balancer = balancer or WorkloadBalancer(self.config.workload)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def match(
        self,
        assessment_id: Any,
        preference: Optional[MatchingPreference] = None,
        stop_event: Optional[threading.Event] = None
    ) -> List[CoordinatorMatch]:
        """Rank coordinators for a stored assessment."""
        self._ensure_enabled()
        preference = self._validated(preference)

        cached = self._cached(assessment_id, preference)
        if cached is not None:
            return cached

        assessment = self.store.get_assessment(assessment_id)
        if assessment is None:
            raise AssessmentNotFoundException(f"Health assessment {assessment_id} not found")

        return self._run_and_cache(assessment_id, assessment, preference, stop_event)

    def find_optimal_matches(
        self,
        assessment: HealthAssessment,
        preference: Optional[MatchingPreference] = None,
        stop_event: Optional[threading.Event] = None
    ) -> List[CoordinatorMatch]:
        """Rank coordinators for an assessment object; cached when it carries an id."""
        self._ensure_enabled()
        preference = self._validated(preference)

        cached = self._cached(assessment.assessment_id, preference)
        if cached is not None:
            return cached

        return self._run_and_cache(assessment.assessment_id, assessment, preference, stop_event)

    def find_top_performers(
        self,
        assessment: HealthAssessment,
        min_customer_satisfaction: float = 4.5,
        max_results: int = 10
    ) -> List[CoordinatorMatch]:
        """
        Highest-rated coordinators with spare capacity, scored for an assessment.

        Order is the store's performance order (satisfaction first), not the
        match score; no eligibility band or rebalancing is applied. Not cached.
        """
        self._ensure_enabled()
        preference = self._validated(MatchingPreference(
            min_customer_satisfaction=min_customer_satisfaction,
            max_results=max_results
        ))
        candidates = self.store.find_top_performers(min_customer_satisfaction, max_results)
        return self._score_direct(candidates, assessment, preference)

    def find_by_language_and_region(
        self,
        language_code: str,
        region: str,
        assessment: HealthAssessment
    ) -> List[CoordinatorMatch]:
        """Coordinators speaking language_code in region, best match first. Not cached."""
        self._ensure_enabled()
        preference = MatchingPreference(
            preferred_language=language_code.strip().upper(),
            preferred_region=region
        )
        candidates = self.store.find_by_language_and_region(preference.preferred_language, region)
        results = self._score_direct(candidates, assessment, preference)
        results.sort(key=ranking_key)
        logger.debug(f"Language/region lookup {preference.preferred_language}/{region}: {len(results)} coordinators")
        return results

    def evict_matching_cache(self) -> bool:
        if self.cache is None:
            return False
        logger.info("Evicting all cached coordinator matches")
        return self.cache.clear_all()

    def invalidate_assessment(self, assessment_id: Any) -> int:
        if self.cache is None:
            return 0
        return self.cache.invalidate_assessment(assessment_id)

    def get_matching_statistics(self) -> MatchingStatistics:
        return MatchingStatistics(
            active_coordinators=self.store.count_active_coordinators(),
            average_customer_satisfaction=self.store.average_customer_satisfaction(),
            region_distribution=self.store.coordinator_distribution_by_region(),
            specialty_distribution=self.store.coordinator_distribution_by_specialty(),
            cache=self.cache.get_cache_stats() if self.cache is not None else {"available": False}
        )

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def run(
        self,
        assessment: HealthAssessment,
        preference: MatchingPreference,
        stop_event: Optional[threading.Event] = None
    ) -> List[CoordinatorMatch]:
        """Execute stages 1-6 without touching the cache."""
        guard = _RunGuard(stop_event, self.config.matcher.timeout_seconds)
        start = time.monotonic()
        care_grade_level = assessment.care_grade_level
        logger.info(
            f"Matching assessment {assessment.assessment_id} "
            f"(care grade {care_grade_level}, max_results={preference.max_results})"
        )

        # Stage 1: eligibility
        guard.check("eligibility")
        candidates = self.store.find_eligible_coordinators(care_grade_level)
        logger.debug(f"Stage 1: {len(candidates)} eligible coordinators")

        # Stage 2: capacity and settings
        guard.check("settings filter")
        candidates = [c for c in candidates if self._passes_settings(c, care_grade_level, preference)]
        skills_by_id = self.store.find_language_skills_for([c.coordinator_id for c in candidates])
        candidates = [
            c for c in candidates
            if self._passes_language(skills_by_id.get(c.coordinator_id, []), preference)
        ]
        logger.debug(f"Stage 2: {len(candidates)} coordinators after settings filter")

        if not candidates:
            logger.info(f"No eligible coordinators for assessment {assessment.assessment_id}")
            return []

        # Stage 3: scoring
        guard.check("scoring")
        scored = self._score_all(candidates, skills_by_id, assessment, preference, guard)

        # Stage 4: sort
        guard.check("sort")
        scored.sort(key=ranking_key)

        # Stage 5: workload rebalancing over the complete scored set
        guard.check("rebalancing")
        rebalanced = self.balancer.rebalance(scored)

        # Stage 6: truncate
        results = rebalanced[:preference.max_results]

        logger.info(
            f"Matched {len(results)}/{len(scored)} coordinators for assessment "
            f"{assessment.assessment_id} in {time.monotonic() - start:.3f}s"
        )
        return results

    def _run_and_cache(
        self,
        cache_id: Any,
        assessment: HealthAssessment,
        preference: MatchingPreference,
        stop_event: Optional[threading.Event]
    ) -> List[CoordinatorMatch]:
        # Read before stage 1 so an eviction during the run blocks the write
        generation = self.cache.current_generation() if self.cache is not None else None

        results = self.run(assessment, preference, stop_event)

        # A run abandoned after the last stage still must not be cached
        if stop_event is not None and stop_event.is_set():
            raise MatchingCancelledException("Matching cancelled before cache write")

        if self.cache is not None and generation is not None:
            self.cache.set_matches(
                cache_id, preference, [m.to_dict() for m in results], generation=generation
            )
        return results

    def _cached(self, assessment_id: Any, preference: MatchingPreference) -> Optional[List[CoordinatorMatch]]:
        if self.cache is None:
            return None
        data = self.cache.get_matches(assessment_id, preference)
        if data is None:
            return None
        return [CoordinatorMatch.from_dict(d) for d in data]

    def _ensure_enabled(self) -> None:
        if not self.config.enabled:
            raise MatchingDisabledException("Coordinator matching is disabled in configuration")

    def _score_direct(
        self,
        candidates: List[CoordinatorProfile],
        assessment: HealthAssessment,
        preference: MatchingPreference
    ) -> List[CoordinatorMatch]:
        """Score a store-selected list as is: no settings filter, no rebalancing."""
        skills_by_id = self.store.find_language_skills_for([c.coordinator_id for c in candidates])
        matches = []
        for profile in candidates:
            skills = skills_by_id.get(profile.coordinator_id, [])
            result = self.scorer.evaluate(profile, assessment, preference, skills)
            matches.append(self._to_match(profile, skills, result))
        return matches

    def _validated(self, preference: Optional[MatchingPreference]) -> MatchingPreference:
        if preference is None:
            return MatchingPreference(max_results=self.config.default_max_results)
        if preference.max_results < 1:
            raise InvalidPreferenceException(f"max_results must be at least 1, got {preference.max_results}")
        if not 0.0 <= preference.min_customer_satisfaction <= 5.0:
            raise InvalidPreferenceException(
                f"min_customer_satisfaction must be within 0.0-5.0, got {preference.min_customer_satisfaction}"
            )
        return preference

    # ------------------------------------------------------------------
    # Stage helpers
    # ------------------------------------------------------------------

    def _passes_settings(
        self,
        profile: CoordinatorProfile,
        care_grade_level: int,
        preference: MatchingPreference
    ) -> bool:
        if not profile.is_active or not profile.covers_care_level(care_grade_level):
            return False
        # workload_ratio >= 1.0 means no new assignments regardless of score
        if profile.workload_ratio >= 1.0:
            return False
        if profile.customer_satisfaction < preference.min_customer_satisfaction:
            return False
        if preference.needs_weekend_availability and not profile.available_weekends:
            return False
        if preference.needs_emergency_availability and not profile.available_emergency:
            return False
        return True

    def _passes_language(self, skills: Sequence[LanguageSkill], preference: MatchingPreference) -> bool:
        language = preference.preferred_language
        if language and self.config.matcher.require_preferred_language:
            if not any(s.is_active and s.speaks(language) for s in skills):
                return False
        if preference.needs_professional_consultation:
            return supports_professional_consultation(skills, language)
        return True

    def _score_all(
        self,
        candidates: List[CoordinatorProfile],
        skills_by_id: Dict[str, List[LanguageSkill]],
        assessment: HealthAssessment,
        preference: MatchingPreference,
        guard: _RunGuard
    ) -> List[CoordinatorMatch]:
        def score_one(profile: CoordinatorProfile) -> CoordinatorMatch:
            guard.check("scoring")
            skills = skills_by_id.get(profile.coordinator_id, [])
            result = self.scorer.evaluate(profile, assessment, preference, skills)
            return self._to_match(profile, skills, result)

        if self.config.matcher.parallel_scoring and len(candidates) > 1:
            workers = self.config.matcher.max_workers or os.cpu_count() or 1
            with ThreadPoolExecutor(max_workers=workers) as executor:
                # map preserves input order
                return list(executor.map(score_one, candidates))

        return [score_one(c) for c in candidates]

    @staticmethod
    def _to_match(
        profile: CoordinatorProfile,
        skills: Sequence[LanguageSkill],
        result: CandidateScore
    ) -> CoordinatorMatch:
        language = result.language_match
        return CoordinatorMatch(
            coordinator_id=profile.coordinator_id,
            match_score=result.score,
            match_reason=result.reason,
            experience_years=profile.experience_years,
            successful_cases=profile.successful_cases,
            customer_satisfaction=profile.customer_satisfaction,
            specialty_areas=tuple(sorted(profile.specialty_areas)),
            language_skills=tuple(skills),
            available_weekends=profile.available_weekends,
            available_emergency=profile.available_emergency,
            working_regions=tuple(sorted(profile.working_regions)),
            current_active_cases=profile.current_active_cases,
            max_simultaneous_cases=profile.max_simultaneous_cases,
            workload_ratio=profile.workload_ratio,
            total_cases=profile.total_cases,
            candidate_score=result.score,
            language_score=language.score if language else None,
            language_reason=language.reason if language else None
        )
