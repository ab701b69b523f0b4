import logging
from collections import Counter
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from sqlalchemy import select, func
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from tenacity import (
    Retrying,
    stop_after_attempt,
    wait_fixed,
    retry_if_exception_type,
    before_sleep_log
)

from core.exceptions import CoordinatorNotFoundException, StoreUnavailableException
from core.grading.classifier import classify
from core.grading.models import HealthAssessment
from core.matcher.interfaces import CoordinatorStore
from core.matcher.models import CoordinatorProfile, LanguageSkill
from database.models import CoordinatorCareSettings, CoordinatorLanguageSkill, HealthAssessmentRecord
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Columns a settings update may touch
UPDATABLE_SETTINGS = frozenset({
    'base_care_level', 'max_care_level', 'specialty_areas', 'working_regions',
    'experience_years', 'successful_cases', 'total_cases', 'customer_satisfaction',
    'available_weekends', 'available_emergency', 'max_simultaneous_cases',
    'current_active_cases', 'is_active',
})


class CoordinatorRepository(BaseRepository, CoordinatorStore):
    """
    SQLAlchemy-backed coordinator store.

    Reads retry transient OperationalErrors; once retries are exhausted, or
    on any other database error, StoreUnavailableException is raised.
    """

    def __init__(self, db: Session, retry_attempts: int = 3, retry_wait_seconds: float = 0.5):
        super().__init__(db)
        self.retry_attempts = retry_attempts
        self.retry_wait_seconds = retry_wait_seconds

    def _read(self, operation: str, fn: Callable[[], T]) -> T:
        def attempt_once() -> T:
            try:
                return fn()
            except OperationalError:
                self.db.rollback()
                raise

        try:
            retrying = Retrying(
                stop=stop_after_attempt(self.retry_attempts),
                wait=wait_fixed(self.retry_wait_seconds),
                retry=retry_if_exception_type(OperationalError),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True
            )
            return retrying(attempt_once)
        except SQLAlchemyError as e:
            logger.error(f"Coordinator store unavailable during {operation}: {e}")
            raise StoreUnavailableException(f"Coordinator store unavailable during {operation}") from e

    # ------------------------------------------------------------------
    # CoordinatorStore
    # ------------------------------------------------------------------

    def find_eligible_coordinators(self, care_grade_level: int) -> List[CoordinatorProfile]:
        stmt = (
            select(CoordinatorCareSettings)
            .where(
                CoordinatorCareSettings.is_active.is_(True),
                CoordinatorCareSettings.base_care_level <= care_grade_level,
                CoordinatorCareSettings.max_care_level >= care_grade_level
            )
            .order_by(CoordinatorCareSettings.id)
        )
        rows = self._read("find_eligible_coordinators", lambda: self.db.execute(stmt).scalars().all())
        return [row.to_profile() for row in rows]

    def find_language_skills(self, coordinator_id: str) -> List[LanguageSkill]:
        return self.find_language_skills_for([coordinator_id]).get(coordinator_id, [])

    def find_language_skills_for(self, coordinator_ids: Iterable[str]) -> Dict[str, List[LanguageSkill]]:
        """Active skills for many coordinators in one IN query, ordered by priority."""
        ids = list(coordinator_ids)
        if not ids:
            return {}

        stmt = (
            select(CoordinatorLanguageSkill)
            .where(
                CoordinatorLanguageSkill.coordinator_id.in_(ids),
                CoordinatorLanguageSkill.is_active.is_(True)
            )
            .order_by(CoordinatorLanguageSkill.priority_order, CoordinatorLanguageSkill.id)
        )
        rows = self._read("find_language_skills", lambda: self.db.execute(stmt).scalars().all())

        skills: Dict[str, List[LanguageSkill]] = {cid: [] for cid in ids}
        for row in rows:
            skills[row.coordinator_id].append(row.to_skill())
        return skills

    def find_all_active_language_skills(self) -> List[LanguageSkill]:
        stmt = (
            select(CoordinatorLanguageSkill)
            .where(CoordinatorLanguageSkill.is_active.is_(True))
            .order_by(CoordinatorLanguageSkill.priority_order, CoordinatorLanguageSkill.id)
        )
        rows = self._read("find_all_active_language_skills", lambda: self.db.execute(stmt).scalars().all())
        return [row.to_skill() for row in rows]

    def count_active_coordinators(self) -> int:
        stmt = select(func.count()).select_from(CoordinatorCareSettings).where(
            CoordinatorCareSettings.is_active.is_(True)
        )
        return self._read("count_active_coordinators", lambda: self.db.execute(stmt).scalar_one())

    def average_customer_satisfaction(self) -> float:
        stmt = select(func.avg(CoordinatorCareSettings.customer_satisfaction)).where(
            CoordinatorCareSettings.is_active.is_(True)
        )
        value = self._read("average_customer_satisfaction", lambda: self.db.execute(stmt).scalar())
        return float(value) if value is not None else 0.0

    def find_top_performers(self, min_customer_satisfaction: float, limit: int) -> List[CoordinatorProfile]:
        stmt = (
            select(CoordinatorCareSettings)
            .where(
                CoordinatorCareSettings.is_active.is_(True),
                CoordinatorCareSettings.customer_satisfaction >= min_customer_satisfaction,
                CoordinatorCareSettings.current_active_cases < CoordinatorCareSettings.max_simultaneous_cases
            )
            .order_by(
                CoordinatorCareSettings.customer_satisfaction.desc(),
                CoordinatorCareSettings.successful_cases.desc(),
                CoordinatorCareSettings.coordinator_id
            )
            .limit(limit)
        )
        rows = self._read("find_top_performers", lambda: self.db.execute(stmt).scalars().all())
        return [row.to_profile() for row in rows]

    def find_by_language_and_region(self, language_code: str, region: str) -> List[CoordinatorProfile]:
        speakers = select(CoordinatorLanguageSkill.coordinator_id).where(
            CoordinatorLanguageSkill.language_code == language_code.upper(),
            CoordinatorLanguageSkill.is_active.is_(True)
        )
        stmt = (
            select(CoordinatorCareSettings)
            .where(
                CoordinatorCareSettings.is_active.is_(True),
                CoordinatorCareSettings.coordinator_id.in_(speakers)
            )
            .order_by(CoordinatorCareSettings.id)
        )
        rows = self._read("find_by_language_and_region", lambda: self.db.execute(stmt).scalars().all())
        # JSON array membership has no portable SQL form; regions are filtered here
        return [row.to_profile() for row in rows if region in (row.working_regions or [])]

    def _active_column_counts(self, operation: str, column) -> Dict[str, int]:
        stmt = select(column).where(CoordinatorCareSettings.is_active.is_(True))
        values = self._read(operation, lambda: self.db.execute(stmt).scalars().all())
        counts = Counter(item for items in values for item in (items or []))
        return dict(sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])))

    def coordinator_distribution_by_region(self) -> Dict[str, int]:
        return self._active_column_counts(
            "coordinator_distribution_by_region", CoordinatorCareSettings.working_regions
        )

    def coordinator_distribution_by_specialty(self) -> Dict[str, int]:
        return self._active_column_counts(
            "coordinator_distribution_by_specialty", CoordinatorCareSettings.specialty_areas
        )

    def get_assessment(self, assessment_id: Any) -> Optional[HealthAssessment]:
        stmt = select(HealthAssessmentRecord).where(HealthAssessmentRecord.id == assessment_id)
        row = self._read("get_assessment", lambda: self.db.execute(stmt).scalar_one_or_none())
        return row.to_assessment() if row is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _get_settings(self, coordinator_id: str) -> CoordinatorCareSettings:
        stmt = select(CoordinatorCareSettings).where(CoordinatorCareSettings.coordinator_id == coordinator_id)
        record = self.db.execute(stmt).scalar_one_or_none()
        if record is None:
            raise CoordinatorNotFoundException(f"Coordinator {coordinator_id} not found")
        return record

    def save_assessment(self, assessment: HealthAssessment) -> HealthAssessmentRecord:
        """Persist an assessment with its derived scores and grade name."""
        result = classify(assessment)
        record = HealthAssessmentRecord(
            member_id=assessment.member_id,
            mobility_level=assessment.mobility_level,
            eating_level=assessment.eating_level,
            toilet_level=assessment.toilet_level,
            communication_level=assessment.communication_level,
            ltci_grade=assessment.ltci_grade,
            care_target_status=assessment.care_target_status,
            meal_type=assessment.meal_type,
            disease_tags=sorted(assessment.disease_tags),
            adl_score=assessment.adl_score,
            care_grade_level=assessment.care_grade_level,
            overall_care_grade=result.grade_name,
        )
        self.db.add(record)
        self.flush()
        logger.debug(f"Saved assessment {record.id} (ADL {record.adl_score}, grade {record.care_grade_level})")
        return record

    def save_coordinator(self, profile: CoordinatorProfile) -> CoordinatorCareSettings:
        record = CoordinatorCareSettings(
            coordinator_id=profile.coordinator_id,
            base_care_level=profile.base_care_level,
            max_care_level=profile.max_care_level,
            specialty_areas=sorted(profile.specialty_areas),
            working_regions=sorted(profile.working_regions),
            experience_years=profile.experience_years,
            successful_cases=profile.successful_cases,
            total_cases=profile.total_cases,
            customer_satisfaction=profile.customer_satisfaction,
            available_weekends=profile.available_weekends,
            available_emergency=profile.available_emergency,
            max_simultaneous_cases=profile.max_simultaneous_cases,
            current_active_cases=profile.current_active_cases,
            is_active=profile.is_active,
        )
        self.db.add(record)
        self.flush()
        return record

    def update_care_settings(self, coordinator_id: str, **changes: Any) -> CoordinatorProfile:
        unknown = set(changes) - UPDATABLE_SETTINGS
        if unknown:
            raise ValueError(f"Unknown coordinator settings: {', '.join(sorted(unknown))}")

        record = self._get_settings(coordinator_id)
        for key, value in changes.items():
            if key in ('specialty_areas', 'working_regions'):
                value = sorted(value)
            setattr(record, key, value)
        self.flush()
        return record.to_profile()

    def add_language_skill(self, coordinator_id: str, skill: LanguageSkill) -> CoordinatorLanguageSkill:
        record = CoordinatorLanguageSkill(
            coordinator_id=coordinator_id,
            language_code=skill.language_code,
            language_name=skill.language_name,
            proficiency_level=skill.proficiency_level.name,
            certification=skill.certification,
            country_experience=skill.country_experience,
            specialization=skill.specialization,
            priority_order=skill.priority_order,
            service_fee_rate=skill.service_fee_rate,
            is_active=skill.is_active,
        )
        self.db.add(record)
        self.flush()
        return record
