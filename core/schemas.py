#!/usr/bin/env python3
"""
Boundary models for raw assessment and preference input.

Raw dictionaries (CLI files, API payloads) are validated here before any
domain object is built; the classifier and pipeline never see invalid data.
Both snake_case and camelCase keys are accepted.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.exceptions import InvalidAssessmentException, InvalidPreferenceException
from core.grading.models import HealthAssessment
from core.matcher.models import MatchingPreference


class HealthAssessmentRequest(BaseModel):
    """Health assessment input. The four ADL levels are required."""
    model_config = ConfigDict(populate_by_name=True)

    assessment_id: Optional[Any] = Field(None, alias="assessmentId")
    member_id: Optional[str] = Field(None, alias="memberId")
    mobility_level: int = Field(..., ge=1, le=3, alias="mobilityLevel")
    eating_level: int = Field(..., ge=1, le=3, alias="eatingLevel")
    toilet_level: int = Field(..., ge=1, le=3, alias="toiletLevel")
    communication_level: int = Field(..., ge=1, le=3, alias="communicationLevel")
    ltci_grade: Optional[int] = Field(None, ge=1, le=8, alias="ltciGrade")
    care_target_status: Optional[int] = Field(None, ge=1, le=4, alias="careTargetStatus")
    meal_type: Optional[int] = Field(None, ge=1, le=3, alias="mealType")
    disease_tags: List[str] = Field(default_factory=list, alias="diseaseTags")

    @field_validator("disease_tags", mode="before")
    @classmethod
    def split_tags(cls, value):
        # Stored as a comma-separated string in some sources
        if value is None:
            return []
        if isinstance(value, str):
            return [t for t in value.split(",") if t.strip()]
        return value

    def to_assessment(self) -> HealthAssessment:
        return HealthAssessment(
            mobility_level=self.mobility_level,
            eating_level=self.eating_level,
            toilet_level=self.toilet_level,
            communication_level=self.communication_level,
            ltci_grade=self.ltci_grade,
            care_target_status=self.care_target_status,
            meal_type=self.meal_type,
            disease_tags=frozenset(self.disease_tags),
            assessment_id=self.assessment_id,
            member_id=self.member_id,
        )


class MatchingPreferenceRequest(BaseModel):
    """Matching preference input."""
    model_config = ConfigDict(populate_by_name=True)

    preferred_language: Optional[str] = Field(None, min_length=2, max_length=8, alias="preferredLanguage")
    preferred_region: Optional[str] = Field(None, min_length=1, alias="preferredRegion")
    country_code: Optional[str] = Field(None, min_length=2, max_length=3, alias="countryCode")
    needs_weekend_availability: bool = Field(False, alias="needsWeekendAvailability")
    needs_emergency_availability: bool = Field(False, alias="needsEmergencyAvailability")
    needs_professional_consultation: bool = Field(False, alias="needsProfessionalConsultation")
    min_customer_satisfaction: float = Field(3.0, ge=0.0, le=5.0, alias="minCustomerSatisfaction")
    max_results: int = Field(20, ge=1, le=500, alias="maxResults")

    @field_validator("preferred_language", "country_code")
    @classmethod
    def upper_code(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().upper() if value else value

    def to_preference(self) -> MatchingPreference:
        return MatchingPreference(**self.model_dump())


def _describe(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in error.errors()
    )


def parse_assessment(data: Dict[str, Any]) -> HealthAssessment:
    """Validate raw assessment data, raising InvalidAssessmentException on failure."""
    try:
        return HealthAssessmentRequest.model_validate(data).to_assessment()
    except ValidationError as e:
        raise InvalidAssessmentException(_describe(e)) from e


def parse_preference(data: Optional[Dict[str, Any]]) -> MatchingPreference:
    """Validate raw preference data, raising InvalidPreferenceException on failure."""
    try:
        return MatchingPreferenceRequest.model_validate(data or {}).to_preference()
    except ValidationError as e:
        raise InvalidPreferenceException(_describe(e)) from e
