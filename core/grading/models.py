#!/usr/bin/env python3
"""
Grading Models - Health assessment input and care grade output.

HealthAssessment is immutable: derived values (ADL score, care grade level)
are computed from the four ADL sub-scores on first access and can never go
stale, because changing a sub-score produces a new assessment.
"""

from dataclasses import dataclass, field, replace
from functools import cached_property
from typing import Any, Dict, FrozenSet, Optional, Tuple

# ADL weights per sub-score (each sub-score is 1-3, total range 100-300)
ADL_WEIGHT_MOBILITY = 25
ADL_WEIGHT_EATING = 20
ADL_WEIGHT_TOILETING = 30
ADL_WEIGHT_COMMUNICATION = 25

# (minimum ADL score, estimated grade), checked top to bottom
ADL_GRADE_BREAKPOINTS: Tuple[Tuple[int, int], ...] = (
    (250, 1),
    (220, 2),
    (180, 3),
    (140, 4),
)
ADL_FALLBACK_GRADE = 5

DEFAULT_CARE_TARGET_STATUS = 4
DEFAULT_MEAL_TYPE = 1

# Disease category codes
DEMENTIA = "DEMENTIA"
PARKINSON = "PARKINSON"
STROKE = "STROKE"
DIABETES = "DIABETES"
HYPERTENSION = "HYPERTENSION"
OTHER = "OTHER"
UNKNOWN = "UNKNOWN"

KNOWN_DISEASE_TAGS = frozenset({
    DEMENTIA, PARKINSON, STROKE, DIABETES, HYPERTENSION, OTHER, UNKNOWN
})

MONTHLY_COST_BY_GRADE = {
    1: "300-500만원",
    2: "200-400만원",
    3: "150-300만원",
    4: "50-150만원",
    5: "50-150만원",
    6: "200-350만원",
}


def calculate_adl_score(mobility: int, eating: int, toileting: int, communication: int) -> int:
    """ADL score = mobility*25 + eating*20 + toileting*30 + communication*25."""
    return (
        mobility * ADL_WEIGHT_MOBILITY +
        eating * ADL_WEIGHT_EATING +
        toileting * ADL_WEIGHT_TOILETING +
        communication * ADL_WEIGHT_COMMUNICATION
    )


def estimate_grade_from_adl(adl_score: int) -> int:
    """Estimate a care grade (1-5) from an ADL score."""
    for minimum, grade in ADL_GRADE_BREAKPOINTS:
        if adl_score >= minimum:
            return grade
    return ADL_FALLBACK_GRADE


@dataclass(frozen=True)
class HealthAssessment:
    """
    Multi-dimensional health assessment of a care-seeker.

    ADL sub-scores (1=independent, 2=partial help, 3=full help):
    - mobility_level
    - eating_level
    - toilet_level
    - communication_level

    Optional fields fall back to benign values: care_target_status=4
    (none of the above), meal_type=1 (normal meals).
    """
    mobility_level: int
    eating_level: int
    toilet_level: int
    communication_level: int
    ltci_grade: Optional[int] = None
    care_target_status: Optional[int] = DEFAULT_CARE_TARGET_STATUS
    meal_type: Optional[int] = DEFAULT_MEAL_TYPE
    disease_tags: FrozenSet[str] = field(default_factory=frozenset)
    assessment_id: Optional[Any] = None
    member_id: Optional[str] = None

    def __post_init__(self):
        if self.care_target_status is None:
            object.__setattr__(self, 'care_target_status', DEFAULT_CARE_TARGET_STATUS)
        if self.meal_type is None:
            object.__setattr__(self, 'meal_type', DEFAULT_MEAL_TYPE)
        tags = frozenset(t.strip().upper() for t in (self.disease_tags or ()) if t and t.strip())
        object.__setattr__(self, 'disease_tags', tags)

    @cached_property
    def adl_score(self) -> int:
        return calculate_adl_score(
            self.mobility_level,
            self.eating_level,
            self.toilet_level,
            self.communication_level
        )

    @cached_property
    def care_grade_level(self) -> int:
        """
        Care grade level (1-6) used for coordinator eligibility.

        LTCI grades 1-6 are used directly; otherwise the grade is
        estimated from the ADL score.
        """
        if self.ltci_grade is not None and 1 <= self.ltci_grade <= 6:
            return self.ltci_grade
        return estimate_grade_from_adl(self.adl_score)

    @property
    def overall_score(self) -> float:
        """ADL score rescaled to 5 points: 100 (best) -> 5.0, 300 (worst) -> 1.0."""
        normalized = 5.0 - ((self.adl_score - 100.0) / 200.0 * 4.0)
        return max(1.0, min(5.0, normalized))

    def has_disease_tag(self, tag: str) -> bool:
        return tag.upper() in self.disease_tags

    @property
    def has_severe_indicators(self) -> bool:
        """Tube feeding or full toileting assistance."""
        return self.meal_type == 3 or self.toilet_level == 3

    @property
    def needs_hospice_care(self) -> bool:
        return self.care_target_status <= 2

    @property
    def needs_dementia_care(self) -> bool:
        """Cognitive-support LTCI grade or severely limited communication."""
        return self.ltci_grade == 6 or self.communication_level == 3

    @property
    def has_dementia_related_condition(self) -> bool:
        return self.needs_dementia_care or self.has_disease_tag(DEMENTIA)

    @property
    def specialized_care_type(self) -> str:
        if self.needs_hospice_care:
            return "HOSPICE"
        if self.has_dementia_related_condition:
            return "DEMENTIA"
        if self.has_disease_tag(PARKINSON):
            return "PARKINSON"
        if self.has_disease_tag(STROKE):
            return "STROKE_REHAB"
        if self.has_severe_indicators:
            return "SEVERE_MEDICAL"
        return "GENERAL"

    @property
    def estimated_monthly_cost_range(self) -> str:
        return MONTHLY_COST_BY_GRADE.get(self.care_grade_level, "상담 후 결정")

    def with_adl_levels(
        self,
        mobility: int,
        eating: int,
        toileting: int,
        communication: int
    ) -> 'HealthAssessment':
        """Return a re-assessed copy; derived scores are recomputed on the copy."""
        return replace(
            self,
            mobility_level=mobility,
            eating_level=eating,
            toilet_level=toileting,
            communication_level=communication
        )

    def summary(self, overall_care_grade: Optional[str] = None) -> str:
        lines = [
            f"종합 케어 등급: {overall_care_grade or '미산출'}",
            f"ADL 점수: {self.adl_score}점",
        ]
        if self.ltci_grade is not None and self.ltci_grade <= 6:
            lines.append(f"장기요양등급: {self.ltci_grade}등급")
        if self.has_severe_indicators:
            lines.append("중증 지표 존재")
        if self.needs_hospice_care:
            lines.append("호스피스 케어 권장")
        lines.append(f"예상 비용: {self.estimated_monthly_cost_range}")
        return "\n".join(lines)


MATCHING_PRIORITY_MEDICAL = "의료 전문 코디네이터"
MATCHING_PRIORITY_DEMENTIA = "치매 전문 코디네이터"
MATCHING_PRIORITY_GENERAL = "일반 케어 코디네이터"

COORDINATOR_MATCHING_PRIORITY = {
    0: MATCHING_PRIORITY_MEDICAL,
    1: MATCHING_PRIORITY_MEDICAL,
    2: MATCHING_PRIORITY_MEDICAL,
    3: MATCHING_PRIORITY_GENERAL,
    4: MATCHING_PRIORITY_GENERAL,
    5: MATCHING_PRIORITY_GENERAL,
    6: MATCHING_PRIORITY_DEMENTIA,
}

ESTIMATED_MONTHLY_COST = {
    0: "300-500만원 (요양병원)",
    1: "300-500만원 (요양병원)",
    2: "200-400만원 (전문 요양시설)",
    3: "150-300만원 (일반 요양시설)",
    4: "50-150만원 (재가/주야간 서비스)",
    5: "50-150만원 (재가/주야간 서비스)",
    6: "200-350만원 (치매 전문시설)",
}


@dataclass(frozen=True)
class CareGradeResult:
    """Care grade produced by the classifier. grade_level 0 is the hospice tier."""
    grade_level: int
    grade_name: str
    description: str
    recommended_facility_types: str
    urgency_level: str
    medical_support: str
    rule: str = ""
    is_estimated: bool = False
    severity: Optional[str] = None

    @property
    def is_hospice(self) -> bool:
        return self.grade_level == 0

    @property
    def coordinator_matching_priority(self) -> str:
        return COORDINATOR_MATCHING_PRIORITY.get(self.grade_level, "기본 상담")

    @property
    def estimated_monthly_cost(self) -> str:
        return ESTIMATED_MONTHLY_COST.get(self.grade_level, "상담 후 결정")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'gradeLevel': self.grade_level,
            'gradeName': self.grade_name,
            'description': self.description,
            'recommendedFacilityTypes': self.recommended_facility_types,
            'urgencyLevel': self.urgency_level,
            'medicalSupport': self.medical_support,
            'rule': self.rule,
            'isEstimated': self.is_estimated,
            'severity': self.severity,
            'coordinatorMatchingPriority': self.coordinator_matching_priority,
            'estimatedMonthlyCost': self.estimated_monthly_cost,
        }
