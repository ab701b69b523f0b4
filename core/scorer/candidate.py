#!/usr/bin/env python3
"""
Candidate Scoring - Composite match score for one coordinator.

composite = clamp(
    specialty * w.specialty
    + experience * w.experience
    + customer_satisfaction * w.customer_satisfaction
    + location * w.location
    + availability * w.availability
    + language * w.language,
    0.0, 5.0
)

Every sub-score is on a 0-5 scale before weighting. The language term is
0.0 when no preferred language is given or the coordinator has no skill in it.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple
import logging

from core.config_loader import ScoringWeights
from core.grading.models import HealthAssessment
from core.matcher.language import LanguageCompatibilityScorer, LanguageMatch
from core.matcher.models import CoordinatorProfile, LanguageSkill, MatchingPreference
from core.scorer.explanation import build_match_reason
from core.scorer.workload import workload_tier_bonus

logger = logging.getLogger(__name__)

MAX_SUB_SCORE = 5.0

DEMENTIA_SPECIALTY_BONUS = 2.0
MEDICAL_SPECIALTY_BONUS = 2.0
REHABILITATION_SPECIALTY_BONUS = 1.5

# experience_years // 2 -> base experience score; larger tiers get the maximum
EXPERIENCE_TIER_SCORES = {0: 2.0, 1: 3.0, 2: 4.0, 3: 4.0}
EXPERIENCE_MAX_TIER_SCORE = 5.0

LOCATION_MATCH = 5.0
LOCATION_MISMATCH = 2.0
LOCATION_NEUTRAL = 3.0


@dataclass(frozen=True)
class CandidateScore:
    """Composite score with its components and explanation."""
    score: float
    reason: str
    components: Dict[str, float] = field(default_factory=dict)
    matched_specialties: Tuple[str, ...] = ()
    language_match: Optional[LanguageMatch] = None


def specialty_score(profile: CoordinatorProfile, assessment: HealthAssessment) -> Tuple[float, List[str]]:
    """Additive specialty bonuses, capped at 5.0. Returns (score, matched specialties)."""
    score = 0.0
    matched = []

    if assessment.needs_dementia_care and profile.has_specialty('dementia'):
        score += DEMENTIA_SPECIALTY_BONUS
        matched.append('dementia')

    needs_medical = assessment.care_grade_level <= 2 or assessment.care_target_status <= 2
    if needs_medical and profile.has_specialty('medical'):
        score += MEDICAL_SPECIALTY_BONUS
        matched.append('medical')

    if assessment.mobility_level >= 2 and profile.has_specialty('rehabilitation'):
        score += REHABILITATION_SPECIALTY_BONUS
        matched.append('rehabilitation')

    return min(score, MAX_SUB_SCORE), matched


def experience_score(profile: CoordinatorProfile) -> float:
    tier = EXPERIENCE_TIER_SCORES.get(profile.experience_years // 2, EXPERIENCE_MAX_TIER_SCORE)
    if profile.experience_years < 0:
        tier = EXPERIENCE_TIER_SCORES[0]
    return min(tier + profile.success_rate, MAX_SUB_SCORE)


def location_score(profile: CoordinatorProfile, preferred_region: Optional[str]) -> float:
    if preferred_region is None:
        return LOCATION_NEUTRAL
    if preferred_region in profile.working_regions:
        return LOCATION_MATCH
    return LOCATION_MISMATCH


class CandidateScorer:
    """
    Pure scorer for one (coordinator, assessment, preference) triple.

    Weights are injected so they can be tuned without touching the
    scoring code.
    """

    def __init__(
        self,
        weights: Optional[ScoringWeights] = None,
        language_scorer: Optional[LanguageCompatibilityScorer] = None
    ):
        self.weights = weights or ScoringWeights()
        self.language_scorer = language_scorer or LanguageCompatibilityScorer()

    def evaluate(
        self,
        profile: CoordinatorProfile,
        assessment: HealthAssessment,
        preference: MatchingPreference,
        language_skills: Sequence[LanguageSkill] = ()
    ) -> CandidateScore:
        specialty, matched = specialty_score(profile, assessment)
        experience = experience_score(profile)
        satisfaction = profile.customer_satisfaction
        location = location_score(profile, preference.preferred_region)
        availability = workload_tier_bonus(profile.workload_ratio)

        language_match = self.language_scorer.best_match(
            language_skills, preference.preferred_language, preference.country_code
        )
        language = language_match.score if language_match else 0.0

        w = self.weights
        composite = (
            specialty * w.specialty +
            experience * w.experience +
            satisfaction * w.customer_satisfaction +
            location * w.location +
            availability * w.availability +
            language * w.language
        )
        composite = max(0.0, min(composite, MAX_SUB_SCORE))

        logger.debug(
            f"Coordinator {profile.coordinator_id}: specialty={specialty:.2f}, "
            f"experience={experience:.2f}, satisfaction={satisfaction:.2f}, "
            f"location={location:.2f}, availability={availability:.2f}, "
            f"language={language:.2f} -> {composite:.3f}"
        )

        return CandidateScore(
            score=composite,
            reason=build_match_reason(profile, matched, composite),
            components={
                'specialty': specialty,
                'experience': experience,
                'customer_satisfaction': satisfaction,
                'location': location,
                'availability': availability,
                'language': language,
            },
            matched_specialties=tuple(matched),
            language_match=language_match
        )

    def score(
        self,
        profile: CoordinatorProfile,
        assessment: HealthAssessment,
        preference: MatchingPreference,
        language_skills: Sequence[LanguageSkill] = ()
    ) -> Tuple[float, str]:
        """Return (composite score in [0, 5], reason text)."""
        result = self.evaluate(profile, assessment, preference, language_skills)
        return result.score, result.reason
