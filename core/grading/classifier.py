#!/usr/bin/env python3
"""
Care Grade Classifier - Rule-based health assessment grading.

Converts a HealthAssessment into a CareGradeResult using an ordered list of
rules. Rules are evaluated top to bottom and the first matching rule wins:

1. careTargetStatus 1       -> hospice, severity "고도" (grade 0)
2. careTargetStatus 2       -> hospice, severity "중등도" (grade 0)
3. careTargetStatus 3       -> grade 1, "완전의존"
4. tube feeding / toilet 3  -> grade 1, "중증지표" (before any LTCI mapping)
5. LTCI grade 6             -> cognitive support (grade 6)
6. LTCI grade 1-5           -> direct mapping table
7. otherwise                -> ADL estimate, labelled "추정"

The classifier is pure and total: it never raises for a well-formed
assessment and keeps no state between calls.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence
import logging

from core.grading.models import (
    HealthAssessment, CareGradeResult,
    estimate_grade_from_adl, PARKINSON, STROKE
)

logger = logging.getLogger(__name__)

SEVERITY_HIGH = "고도"
SEVERITY_MODERATE = "중등도"

LTCI_GRADE_TABLE = {
    1: dict(
        grade_name="1등급 (최중증)",
        description="24시간 전문 케어가 필요한 최중증 상태",
        recommended_facility_types="요양병원, A등급 요양시설",
        urgency_level="매우 높음",
        medical_support="의사 및 간호사 24시간 상주",
    ),
    2: dict(
        grade_name="2등급 (중증)",
        description="집중적인 의료 지원이 필요한 중증 상태",
        recommended_facility_types="요양병원, A-B등급 요양시설",
        urgency_level="높음",
        medical_support="간호사 상주, 의사 정기 방문",
    ),
    3: dict(
        grade_name="3등급 (중등증)",
        description="일상 활동에 상당한 도움이 필요한 상태",
        recommended_facility_types="요양시설, 노인요양공동생활가정",
        urgency_level="보통",
        medical_support="요양보호사 및 간호조무사",
    ),
    4: dict(
        grade_name="4등급 (경증)",
        description="부분적인 도움이 필요한 경증 상태",
        recommended_facility_types="주야간보호시설, 재가복지시설",
        urgency_level="낮음",
        medical_support="요양보호사, 정기 건강 체크",
    ),
    5: dict(
        grade_name="5등급 (경증)",
        description="기본적인 지원이 필요한 경증 상태",
        recommended_facility_types="주야간보호시설, 방문요양서비스",
        urgency_level="낮음",
        medical_support="요양보호사, 월간 건강 관리",
    ),
}

ADL_ESTIMATE_TABLE = {
    1: dict(
        grade_name="추정 1등급 (최중증)",
        severity_label="최중증",
        recommended_facility_types="요양병원, 전문 요양시설",
        urgency_level="매우 높음",
        medical_support="전문 의료진 상담 필요",
    ),
    2: dict(
        grade_name="추정 2등급 (중증)",
        severity_label="중증",
        recommended_facility_types="요양시설, 의료 연계 시설",
        urgency_level="높음",
        medical_support="의료진 정기 상담 권장",
    ),
    3: dict(
        grade_name="추정 3등급 (중등증)",
        severity_label="중등증",
        recommended_facility_types="일반 요양시설, 공동생활가정",
        urgency_level="보통",
        medical_support="요양보호사 상주",
    ),
    4: dict(
        grade_name="추정 4등급 (경증)",
        severity_label="경증",
        recommended_facility_types="주야간보호시설, 재가서비스",
        urgency_level="낮음",
        medical_support="정기 건강 관리",
    ),
    5: dict(
        grade_name="추정 5등급 (경증)",
        severity_label="경증",
        recommended_facility_types="방문요양서비스, 생활 지원",
        urgency_level="낮음",
        medical_support="월간 건강 체크",
    ),
}

LTCI_APPLICATION_GUIDANCE = "장기요양등급 신청 권장"


@dataclass(frozen=True)
class GradingRule:
    """One entry of the ordered decision list."""
    name: str
    applies: Callable[[HealthAssessment], bool]
    build: Callable[[HealthAssessment], CareGradeResult]


def _hospice(severity: str) -> Callable[[HealthAssessment], CareGradeResult]:
    def build(assessment: HealthAssessment) -> CareGradeResult:
        high = severity == SEVERITY_HIGH
        return CareGradeResult(
            grade_level=0,
            grade_name=f"호스피스 케어 ({severity})",
            description=(
                "기대여명 6개월 이내로 생애말기 전문 케어가 필요한 상태" if high
                else "회복이 어려운 질환으로 생애말기 케어 준비가 필요한 상태"
            ),
            recommended_facility_types="호스피스 전문시설, 요양병원",
            urgency_level="매우 높음" if high else "높음",
            medical_support="의료진 24시간 상주 필수" if high else "의료진 상주, 통증 관리",
            rule=f"hospice_{'high' if high else 'moderate'}",
            severity=severity,
        )
    return build


def _fully_dependent(assessment: HealthAssessment) -> CareGradeResult:
    return CareGradeResult(
        grade_level=1,
        grade_name="1등급 상당 (완전의존)",
        description="타인에게 완전히 의존하나 사망 위험은 높지 않은 상태",
        recommended_facility_types="요양병원, A등급 요양시설",
        urgency_level="매우 높음",
        medical_support="의사 및 간호사 24시간 상주",
        rule="fully_dependent",
        severity="완전의존",
    )


def _severe_indicator(assessment: HealthAssessment) -> CareGradeResult:
    indicators = []
    if assessment.meal_type == 3:
        indicators.append("경관식")
    if assessment.toilet_level == 3:
        indicators.append("배변 완전도움")
    return CareGradeResult(
        grade_level=1,
        grade_name="1등급 상당 (중증지표)",
        description=f"중증 지표({', '.join(indicators)})로 집중 케어가 필요한 상태",
        recommended_facility_types="요양병원, 전문 요양시설",
        urgency_level="매우 높음",
        medical_support="간호사 상주, 영양 및 배설 관리",
        rule="severe_indicator",
        severity="중증지표",
    )


def _cognitive_support(assessment: HealthAssessment) -> CareGradeResult:
    description = "치매 전문 케어가 필요한 상태"
    if assessment.has_disease_tag(PARKINSON):
        description = "치매 전문 케어가 필요한 상태 (파킨슨 복합)"
    elif assessment.has_disease_tag(STROKE):
        description = "치매 전문 케어가 필요한 상태 (뇌혈관성 치매)"
    return CareGradeResult(
        grade_level=6,
        grade_name="인지지원등급 (치매 전문)",
        description=description,
        recommended_facility_types="치매 전문시설, 인지케어센터",
        urgency_level="높음",
        medical_support="치매 전문의 및 인지 프로그램",
        rule="cognitive_support",
    )


def _ltci_mapping(assessment: HealthAssessment) -> CareGradeResult:
    entry = LTCI_GRADE_TABLE[assessment.ltci_grade]
    return CareGradeResult(grade_level=assessment.ltci_grade, rule="ltci", **entry)


def _adl_estimate(assessment: HealthAssessment) -> CareGradeResult:
    grade = estimate_grade_from_adl(assessment.adl_score)
    entry = dict(ADL_ESTIMATE_TABLE[grade])
    severity_label = entry.pop('severity_label')
    return CareGradeResult(
        grade_level=grade,
        description=f"ADL 점수 기반 {severity_label}으로 추정됨 ({LTCI_APPLICATION_GUIDANCE})",
        rule="adl_estimate",
        is_estimated=True,
        **entry
    )


DEFAULT_RULES: List[GradingRule] = [
    GradingRule("hospice_high", lambda a: a.care_target_status == 1, _hospice(SEVERITY_HIGH)),
    GradingRule("hospice_moderate", lambda a: a.care_target_status == 2, _hospice(SEVERITY_MODERATE)),
    GradingRule("fully_dependent", lambda a: a.care_target_status == 3, _fully_dependent),
    GradingRule("severe_indicator", lambda a: a.has_severe_indicators, _severe_indicator),
    GradingRule("cognitive_support", lambda a: a.ltci_grade == 6, _cognitive_support),
    GradingRule("ltci", lambda a: a.ltci_grade is not None and 1 <= a.ltci_grade <= 5, _ltci_mapping),
    GradingRule("adl_estimate", lambda a: True, _adl_estimate),
]


class CareGradeClassifier:
    """Evaluates grading rules in priority order; first match wins."""

    def __init__(self, rules: Optional[Sequence[GradingRule]] = None):
        self.rules = list(rules) if rules is not None else list(DEFAULT_RULES)

    def matching_rule(self, assessment: HealthAssessment) -> GradingRule:
        for rule in self.rules:
            if rule.applies(assessment):
                return rule
        # The last default rule always applies; a custom list may not end with one
        return DEFAULT_RULES[-1]

    def classify(self, assessment: HealthAssessment) -> CareGradeResult:
        rule = self.matching_rule(assessment)
        result = rule.build(assessment)
        logger.debug(
            f"Assessment {assessment.assessment_id}: ADL={assessment.adl_score}, "
            f"rule={rule.name}, grade={result.grade_level} ({result.grade_name})"
        )
        return result


_default_classifier = CareGradeClassifier()


def classify(assessment: HealthAssessment) -> CareGradeResult:
    """Grade an assessment with the default rule list."""
    return _default_classifier.classify(assessment)
