#!/usr/bin/env python3
"""
Store interface consumed by the matching pipeline.

Implementations own retries; the pipeline propagates any exception a store
raises.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from core.grading.models import HealthAssessment
from core.matcher.models import CoordinatorProfile, LanguageSkill


class CoordinatorStore(ABC):
    """Read access to coordinators, their language skills and assessments."""

    @abstractmethod
    def find_eligible_coordinators(self, care_grade_level: int) -> List[CoordinatorProfile]:
        """Active coordinators whose care-level band contains care_grade_level."""
        pass

    @abstractmethod
    def find_language_skills(self, coordinator_id: str) -> List[LanguageSkill]:
        pass

    def find_language_skills_for(self, coordinator_ids: Iterable[str]) -> Dict[str, List[LanguageSkill]]:
        """Bulk lookup. Stores backed by a database should override this with one query."""
        return {cid: self.find_language_skills(cid) for cid in coordinator_ids}

    @abstractmethod
    def count_active_coordinators(self) -> int:
        pass

    @abstractmethod
    def average_customer_satisfaction(self) -> float:
        pass

    @abstractmethod
    def get_assessment(self, assessment_id: Any) -> Optional[HealthAssessment]:
        pass

    @abstractmethod
    def find_top_performers(self, min_customer_satisfaction: float, limit: int) -> List[CoordinatorProfile]:
        """Active coordinators with spare capacity, highest satisfaction first."""
        pass

    @abstractmethod
    def find_by_language_and_region(self, language_code: str, region: str) -> List[CoordinatorProfile]:
        """Active coordinators with an active skill in language_code who work in region."""
        pass

    @abstractmethod
    def coordinator_distribution_by_region(self) -> Dict[str, int]:
        """Active coordinator count per working region."""
        pass

    @abstractmethod
    def coordinator_distribution_by_specialty(self) -> Dict[str, int]:
        """Active coordinator count per specialty area."""
        pass
