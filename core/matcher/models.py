#!/usr/bin/env python3
"""
Matcher Models - Data structures for coordinator matching.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


class LanguageProficiency(Enum):
    """Ordered proficiency levels, highest first."""
    NATIVE = (5, 5.0, "모국어")
    FLUENT = (4, 4.5, "유창")
    BUSINESS = (3, 4.0, "비즈니스")
    CONVERSATIONAL = (2, 3.0, "일상회화")
    BASIC = (1, 2.0, "기초")

    def __init__(self, rank: int, base_score: float, display_name: str):
        self.rank = rank
        self.base_score = base_score
        self.display_name = display_name

    @classmethod
    def parse(cls, value: Any) -> 'LanguageProficiency':
        if isinstance(value, cls):
            return value
        return cls[str(value).strip().upper()]


PROFESSIONAL_PROFICIENCIES = frozenset({LanguageProficiency.NATIVE, LanguageProficiency.FLUENT})
BUSINESS_PROFICIENCIES = PROFESSIONAL_PROFICIENCIES | {LanguageProficiency.BUSINESS}


@dataclass(frozen=True)
class LanguageSkill:
    """A coordinator's skill in one language."""
    language_code: str
    proficiency_level: LanguageProficiency
    certification: Optional[str] = None
    country_experience: Optional[str] = None
    specialization: Optional[str] = None
    priority_order: int = 1
    coordinator_id: Optional[str] = None
    language_name: Optional[str] = None
    service_fee_rate: Optional[float] = None
    is_active: bool = True

    def __post_init__(self):
        object.__setattr__(self, 'language_code', self.language_code.strip().upper())
        object.__setattr__(self, 'proficiency_level', LanguageProficiency.parse(self.proficiency_level))

    @property
    def has_certification(self) -> bool:
        return bool(self.certification and self.certification.strip())

    @property
    def has_country_experience(self) -> bool:
        return bool(self.country_experience and self.country_experience.strip())

    @property
    def has_specialization(self) -> bool:
        return bool(self.specialization and self.specialization.strip())

    @property
    def can_provide_professional_consultation(self) -> bool:
        return self.proficiency_level in PROFESSIONAL_PROFICIENCIES

    @property
    def is_business_level_or_above(self) -> bool:
        return self.proficiency_level in BUSINESS_PROFICIENCIES

    def speaks(self, language_code: Optional[str]) -> bool:
        return bool(language_code) and self.language_code == language_code.strip().upper()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'languageCode': self.language_code,
            'proficiencyLevel': self.proficiency_level.name,
            'certification': self.certification,
            'countryExperience': self.country_experience,
            'specialization': self.specialization,
            'priorityOrder': self.priority_order,
            'coordinatorId': self.coordinator_id,
            'languageName': self.language_name,
            'serviceFeeRate': self.service_fee_rate,
            'isActive': self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LanguageSkill':
        return cls(
            language_code=data['languageCode'],
            proficiency_level=data['proficiencyLevel'],
            certification=data.get('certification'),
            country_experience=data.get('countryExperience'),
            specialization=data.get('specialization'),
            priority_order=data.get('priorityOrder', 1),
            coordinator_id=data.get('coordinatorId'),
            language_name=data.get('languageName'),
            service_fee_rate=data.get('serviceFeeRate'),
            is_active=data.get('isActive', True),
        )


@dataclass(frozen=True)
class CoordinatorProfile:
    """
    Snapshot of a coordinator's care settings.

    current_active_cases is read once when the pipeline loads candidates
    and is never mutated by the engine.
    """
    coordinator_id: str
    base_care_level: int
    max_care_level: int
    specialty_areas: FrozenSet[str] = field(default_factory=frozenset)
    working_regions: FrozenSet[str] = field(default_factory=frozenset)
    experience_years: int = 0
    successful_cases: int = 0
    total_cases: int = 0
    customer_satisfaction: float = 0.0
    available_weekends: bool = False
    available_emergency: bool = False
    max_simultaneous_cases: int = 1
    current_active_cases: int = 0
    is_active: bool = True

    def __post_init__(self):
        object.__setattr__(self, 'specialty_areas', frozenset(s.strip().lower() for s in self.specialty_areas))
        object.__setattr__(self, 'working_regions', frozenset(self.working_regions))

    @property
    def workload_ratio(self) -> float:
        if self.max_simultaneous_cases <= 0:
            return float('inf')
        return self.current_active_cases / self.max_simultaneous_cases

    @property
    def success_rate(self) -> float:
        if self.total_cases <= 0:
            return 0.0
        return self.successful_cases / self.total_cases

    @property
    def has_capacity(self) -> bool:
        return self.current_active_cases < self.max_simultaneous_cases

    def covers_care_level(self, care_grade_level: int) -> bool:
        return self.base_care_level <= care_grade_level <= self.max_care_level

    def has_specialty(self, specialty: str) -> bool:
        return specialty.lower() in self.specialty_areas


@dataclass(frozen=True)
class MatchingPreference:
    """Per-request matching preferences."""
    preferred_language: Optional[str] = None
    preferred_region: Optional[str] = None
    country_code: Optional[str] = None
    needs_weekend_availability: bool = False
    needs_emergency_availability: bool = False
    needs_professional_consultation: bool = False
    min_customer_satisfaction: float = 3.0
    max_results: int = 20


@dataclass(frozen=True)
class CoordinatorMatch:
    """One ranked coordinator in a pipeline result. Never mutated after construction."""
    coordinator_id: str
    match_score: float
    match_reason: str
    experience_years: int
    successful_cases: int
    customer_satisfaction: float
    specialty_areas: Tuple[str, ...]
    language_skills: Tuple[LanguageSkill, ...]
    available_weekends: bool
    available_emergency: bool
    working_regions: Tuple[str, ...]
    current_active_cases: int
    max_simultaneous_cases: int
    workload_ratio: float
    total_cases: int = 0
    candidate_score: float = 0.0
    language_score: Optional[float] = None
    language_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'coordinatorId': self.coordinator_id,
            'matchScore': self.match_score,
            'matchReason': self.match_reason,
            'experienceYears': self.experience_years,
            'successfulCases': self.successful_cases,
            'totalCases': self.total_cases,
            'customerSatisfaction': self.customer_satisfaction,
            'specialtyAreas': list(self.specialty_areas),
            'languageSkills': [s.to_dict() for s in self.language_skills],
            'availableWeekends': self.available_weekends,
            'availableEmergency': self.available_emergency,
            'workingRegions': list(self.working_regions),
            'currentActiveCases': self.current_active_cases,
            'maxSimultaneousCases': self.max_simultaneous_cases,
            'workloadRatio': self.workload_ratio,
            'candidateScore': self.candidate_score,
            'languageScore': self.language_score,
            'languageReason': self.language_reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CoordinatorMatch':
        return cls(
            coordinator_id=data['coordinatorId'],
            match_score=data['matchScore'],
            match_reason=data['matchReason'],
            experience_years=data['experienceYears'],
            successful_cases=data['successfulCases'],
            customer_satisfaction=data['customerSatisfaction'],
            specialty_areas=tuple(data.get('specialtyAreas', [])),
            language_skills=tuple(LanguageSkill.from_dict(s) for s in data.get('languageSkills', [])),
            available_weekends=data['availableWeekends'],
            available_emergency=data['availableEmergency'],
            working_regions=tuple(data.get('workingRegions', [])),
            current_active_cases=data['currentActiveCases'],
            max_simultaneous_cases=data['maxSimultaneousCases'],
            workload_ratio=data['workloadRatio'],
            total_cases=data.get('totalCases', 0),
            candidate_score=data.get('candidateScore', 0.0),
            language_score=data.get('languageScore'),
            language_reason=data.get('languageReason'),
        )


def match_list_to_dicts(matches: List[CoordinatorMatch]) -> List[Dict[str, Any]]:
    return [m.to_dict() for m in matches]
