#!/usr/bin/env python3
"""
Language Compatibility Scorer - Match coordinator language skills to a
care-seeker's language and country of residence.

Scores are on a 0-5 scale:
- base score from proficiency (NATIVE 5.0 ... BASIC 2.0)
- +0.3 certification, +0.5 country experience, +0.2 specialization
- +0.5 if the language is spoken in the requested country
- +1.0 if the country experience text names the requested country
"""

from collections import Counter, defaultdict
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Sequence
import logging

from core.matcher.models import LanguageProficiency, LanguageSkill

logger = logging.getLogger(__name__)

MAX_LANGUAGE_SCORE = 5.0
CERTIFICATION_BONUS = 0.3
COUNTRY_EXPERIENCE_BONUS = 0.5
SPECIALIZATION_BONUS = 0.2
COUNTRY_GROUP_BONUS = 0.5
NAMED_COUNTRY_BONUS = 1.0
ADDITIONAL_LANGUAGE_WEIGHT = 0.7
OVERSEAS_RESULT_LIMIT = 10

LANGUAGE_COUNTRY_GROUPS: Dict[str, frozenset] = {
    'EN': frozenset({'US', 'CA', 'AU', 'NZ', 'GB'}),
    'ZH': frozenset({'CN', 'TW', 'SG', 'MY'}),
    'JP': frozenset({'JP'}),
    'ES': frozenset({'ES', 'MX', 'AR', 'CL', 'PE'}),
    'VI': frozenset({'VN'}),
    'TH': frozenset({'TH'}),
    'RU': frozenset({'RU', 'KZ', 'UZ'}),
}

COUNTRY_NAMES = {
    'US': '미국',
    'CN': '중국',
    'JP': '일본',
    'CA': '캐나다',
    'AU': '호주',
    'GB': '영국',
    'DE': '독일',
    'VN': '베트남',
    'TH': '태국',
    'RU': '러시아',
}

LANGUAGE_NAMES = {
    'EN': '영어',
    'ZH': '중국어',
    'JP': '일본어',
    'ES': '스페인어',
    'VI': '베트남어',
    'TH': '태국어',
    'RU': '러시아어',
    'KO': '한국어',
}

# Estimated demand from the main countries of residence of overseas Koreans
DEFAULT_LANGUAGE_DEMAND = {
    'EN': 50,
    'ZH': 40,
    'JP': 30,
    'ES': 15,
    'RU': 10,
    'VI': 8,
    'TH': 5,
}


def country_name(country_code: str) -> str:
    return COUNTRY_NAMES.get(country_code.upper(), country_code)


def language_name(language_code: str) -> str:
    return LANGUAGE_NAMES.get(language_code.upper(), language_code)


def language_matches_country(language_code: str, country_code: Optional[str]) -> bool:
    if not country_code:
        return False
    return country_code.upper() in LANGUAGE_COUNTRY_GROUPS.get(language_code.upper(), frozenset())


@dataclass(frozen=True)
class LanguageMatch:
    """A scored language skill."""
    skill: LanguageSkill
    score: float
    reason: str


@dataclass
class MultilingualProfile:
    coordinator_id: str
    language_skills: List[LanguageSkill]
    total_languages: int
    average_score: float
    has_native_language: bool
    supported_countries: List[str] = field(default_factory=list)


@dataclass
class LanguageGap:
    language_code: str
    language_name: str
    estimated_demand: int
    current_supply: int
    gap: int
    supply_ratio: float
    priority: str


@dataclass
class ServiceFeeCalculation:
    base_fee: float
    language_fee: float
    fee_rate: float
    additional_fee: float
    has_language_premium: bool
    language_name: Optional[str] = None
    proficiency_level: Optional[str] = None


class LanguageCompatibilityScorer:
    """Pure scoring of language skills; holds no state between calls."""

    def base_score(self, skill: LanguageSkill) -> float:
        """Proficiency score plus credential bonuses, before any country bonus."""
        score = skill.proficiency_level.base_score
        if skill.has_certification:
            score += CERTIFICATION_BONUS
        if skill.has_country_experience:
            score += COUNTRY_EXPERIENCE_BONUS
        if skill.has_specialization:
            score += SPECIALIZATION_BONUS
        return min(score, MAX_LANGUAGE_SCORE)

    def _raw_score(self, skill: LanguageSkill, country_code: Optional[str]) -> float:
        score = self.base_score(skill)
        if not country_code:
            return score

        if language_matches_country(skill.language_code, country_code):
            score += COUNTRY_GROUP_BONUS
        if skill.has_country_experience:
            name = country_name(country_code).lower()
            if name in skill.country_experience.lower():
                score += NAMED_COUNTRY_BONUS
        return score

    def score_language(self, skill: LanguageSkill, country_code: Optional[str] = None) -> float:
        """Score one skill against a country of residence, clamped to [0, 5]."""
        return max(0.0, min(self._raw_score(skill, country_code), MAX_LANGUAGE_SCORE))

    def match_reason(self, skill: LanguageSkill, country_code: Optional[str], score: float) -> str:
        name = skill.language_name or language_name(skill.language_code)
        parts = [f"{name} ({skill.proficiency_level.display_name})"]
        if skill.has_certification:
            parts.append(f"자격: {skill.certification}")
        if language_matches_country(skill.language_code, country_code):
            parts.append(f"{country_name(country_code)} 전문")
        if skill.has_country_experience:
            parts.append(f"현지경험: {skill.country_experience}")
        parts.append(f"(매칭도: {score:.1f}/5.0)")
        return " ".join(parts)

    def evaluate(self, skill: LanguageSkill, country_code: Optional[str] = None) -> LanguageMatch:
        score = self.score_language(skill, country_code)
        return LanguageMatch(skill=skill, score=score, reason=self.match_reason(skill, country_code, score))

    def best_match(
        self,
        skills: Iterable[LanguageSkill],
        language_code: Optional[str],
        country_code: Optional[str] = None
    ) -> Optional[LanguageMatch]:
        """Highest-scoring active skill in the given language, or None."""
        if not language_code:
            return None
        candidates = [s for s in skills if s.is_active and s.speaks(language_code)]
        if not candidates:
            return None
        # Ties go to the lower priority_order
        candidates.sort(key=lambda s: s.priority_order)
        return max((self.evaluate(s, country_code) for s in candidates), key=lambda m: m.score)

    def find_language_compatible(
        self,
        skills: Iterable[LanguageSkill],
        language_code: str,
        country_code: Optional[str] = None,
        needs_professional_consultation: bool = False
    ) -> List[LanguageMatch]:
        """All active skills in a language, best first."""
        candidates = [s for s in skills if s.is_active and s.speaks(language_code)]
        if needs_professional_consultation:
            candidates = [s for s in candidates if s.can_provide_professional_consultation]

        matches = [self.evaluate(s, country_code) for s in candidates]
        matches.sort(key=lambda m: (-m.score, m.skill.coordinator_id or ''))
        logger.debug(
            f"Language match {language_code.upper()}/{country_code}: "
            f"{len(matches)} compatible skills"
        )
        return matches

    def find_for_overseas_korean(
        self,
        skills: Iterable[LanguageSkill],
        country_code: str,
        preferred_language: str,
        additional_languages: Sequence[str] = (),
        limit: int = OVERSEAS_RESULT_LIMIT
    ) -> List[LanguageMatch]:
        """
        Best language match per coordinator for a Korean living abroad.

        The preferred language must support professional consultation.
        Matches in an additional language count at ADDITIONAL_LANGUAGE_WEIGHT
        of their score. Only the best match per coordinator is kept.
        """
        skills = list(skills)
        matches = self.find_language_compatible(
            skills, preferred_language, country_code, needs_professional_consultation=True
        )
        for code in additional_languages:
            matches.extend(
                replace(m, score=m.score * ADDITIONAL_LANGUAGE_WEIGHT)
                for m in self.find_language_compatible(skills, code, country_code)
            )

        best: Dict[Optional[str], LanguageMatch] = {}
        for match in matches:
            current = best.get(match.skill.coordinator_id)
            if current is None or match.score > current.score:
                best[match.skill.coordinator_id] = match

        ranked = sorted(best.values(), key=lambda m: (-m.score, m.skill.coordinator_id or ''))
        return ranked[:limit]

    def multilingual_profiles(self, skills: Iterable[LanguageSkill]) -> List[MultilingualProfile]:
        """Per-coordinator language summaries, highest average score first."""
        by_coordinator: Dict[str, List[LanguageSkill]] = defaultdict(list)
        for skill in sorted((s for s in skills if s.is_active), key=lambda s: s.priority_order):
            by_coordinator[skill.coordinator_id].append(skill)

        profiles = []
        for coordinator_id, coordinator_skills in by_coordinator.items():
            scores = [self.base_score(s) for s in coordinator_skills]
            profiles.append(MultilingualProfile(
                coordinator_id=coordinator_id,
                language_skills=coordinator_skills,
                total_languages=len(coordinator_skills),
                average_score=sum(scores) / len(scores),
                has_native_language=any(
                    s.proficiency_level is LanguageProficiency.NATIVE for s in coordinator_skills
                ),
                supported_countries=[s.country_experience for s in coordinator_skills if s.country_experience]
            ))

        profiles.sort(key=lambda p: (-p.average_score, str(p.coordinator_id)))
        return profiles

    def language_distribution(self, skills: Iterable[LanguageSkill]) -> Dict[str, int]:
        return dict(Counter(s.language_code for s in skills if s.is_active))

    def analyze_language_gaps(
        self,
        skills: Iterable[LanguageSkill],
        demand: Optional[Dict[str, int]] = None
    ) -> List[LanguageGap]:
        """Demand vs. active supply per language, biggest shortage first."""
        demand = demand or DEFAULT_LANGUAGE_DEMAND
        supply = self.language_distribution(skills)

        gaps = []
        for code, estimated in demand.items():
            current = supply.get(code, 0)
            gaps.append(LanguageGap(
                language_code=code,
                language_name=language_name(code),
                estimated_demand=estimated,
                current_supply=current,
                gap=estimated - current,
                supply_ratio=current / estimated if estimated else 0.0,
                priority="HIGH" if estimated - current > 0 else "ADEQUATE"
            ))

        gaps.sort(key=lambda g: (-g.gap, g.language_code))
        return gaps

    def calculate_language_service_fee(
        self,
        skill: Optional[LanguageSkill],
        base_fee: float
    ) -> ServiceFeeCalculation:
        """Apply the skill's fee rate to a base fee; no skill or rate means no premium."""
        if skill is None or skill.service_fee_rate is None:
            return ServiceFeeCalculation(
                base_fee=base_fee,
                language_fee=base_fee,
                fee_rate=1.0,
                additional_fee=0.0,
                has_language_premium=False
            )

        language_fee = base_fee * skill.service_fee_rate
        return ServiceFeeCalculation(
            base_fee=base_fee,
            language_fee=language_fee,
            fee_rate=skill.service_fee_rate,
            additional_fee=language_fee - base_fee,
            has_language_premium=skill.service_fee_rate > 1.0,
            language_name=skill.language_name or language_name(skill.language_code),
            proficiency_level=skill.proficiency_level.name
        )


def supports_professional_consultation(
    skills: Sequence[LanguageSkill],
    language_code: Optional[str] = None
) -> bool:
    """True when an active NATIVE/FLUENT skill exists (in language_code, if given)."""
    for skill in skills:
        if not skill.is_active or not skill.can_provide_professional_consultation:
            continue
        if language_code is None or skill.speaks(language_code):
            return True
    return False
