#!/usr/bin/env python3
"""
Match Explanation - Deterministic reason text for a scored candidate.

Lines, in order:
1. specialty match (only when at least one specialty matched)
2. experience tier
3. customer satisfaction tier
4. case success rate (only when the coordinator has cases)
5. composite score
"""

from typing import List, Sequence

from core.matcher.models import CoordinatorProfile

SPECIALTY_LABELS = {
    'dementia': "치매 전문",
    'medical': "의료 전문",
    'rehabilitation': "재활 전문",
}

# (minimum years, template)
EXPERIENCE_TIERS = (
    (10, "풍부한 경력 ({years}년)"),
    (5, "충분한 경력 ({years}년)"),
    (2, "적정 경력 ({years}년)"),
)
EXPERIENCE_ENTRY = "신입 코디네이터 ({years}년)"

# (minimum satisfaction, adjective)
SATISFACTION_TIERS = (
    (4.5, "매우 높은"),
    (4.0, "높은"),
    (3.5, "양호한"),
)
SATISFACTION_DEFAULT = "보통"


def specialty_line(matched_specialties: Sequence[str]) -> str:
    labels = [SPECIALTY_LABELS.get(s, s) for s in matched_specialties]
    return f"전문 분야 매칭: {', '.join(labels)}"


def experience_line(years: int) -> str:
    for minimum, template in EXPERIENCE_TIERS:
        if years >= minimum:
            return template.format(years=years)
    return EXPERIENCE_ENTRY.format(years=years)


def satisfaction_line(satisfaction: float) -> str:
    adjective = SATISFACTION_DEFAULT
    for minimum, label in SATISFACTION_TIERS:
        if satisfaction >= minimum:
            adjective = label
            break
    return f"{adjective} 고객 만족도 ({satisfaction:.1f}/5.0)"


def success_rate_line(successful_cases: int, total_cases: int) -> str:
    rate = successful_cases / total_cases * 100
    return f"케이스 성공률 {rate:.0f}% ({successful_cases}/{total_cases})"


def build_match_reason(
    profile: CoordinatorProfile,
    matched_specialties: Sequence[str],
    score: float
) -> str:
    lines: List[str] = []
    if matched_specialties:
        lines.append(specialty_line(matched_specialties))
    lines.append(experience_line(profile.experience_years))
    lines.append(satisfaction_line(profile.customer_satisfaction))
    if profile.total_cases > 0:
        lines.append(success_rate_line(profile.successful_cases, profile.total_cases))
    lines.append(f"종합 매칭 점수: {score:.2f}/5.0")
    return "\n".join(lines)
