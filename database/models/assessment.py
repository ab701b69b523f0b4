from sqlalchemy import Column, Integer, String, Text, TIMESTAMP, func

from core.grading.models import HealthAssessment
from .base import Base, JSONType


class HealthAssessmentRecord(Base):
    """Stored assessment. adl_score and care_grade_level are always written together."""
    __tablename__ = 'health_assessments'

    id = Column(Integer, primary_key=True, autoincrement=True)
    member_id = Column(String(64), index=True)

    # ADL levels, 1-3 each
    mobility_level = Column(Integer, nullable=False)
    eating_level = Column(Integer, nullable=False)
    toilet_level = Column(Integer, nullable=False)
    communication_level = Column(Integer, nullable=False)

    ltci_grade = Column(Integer)
    care_target_status = Column(Integer, nullable=False, default=4)
    meal_type = Column(Integer, nullable=False, default=1)
    disease_tags = Column(JSONType, nullable=False, default=list)

    # Derived
    adl_score = Column(Integer, nullable=False)
    care_grade_level = Column(Integer, nullable=False)
    overall_care_grade = Column(Text)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    def to_assessment(self) -> HealthAssessment:
        return HealthAssessment(
            mobility_level=self.mobility_level,
            eating_level=self.eating_level,
            toilet_level=self.toilet_level,
            communication_level=self.communication_level,
            ltci_grade=self.ltci_grade,
            care_target_status=self.care_target_status,
            meal_type=self.meal_type,
            disease_tags=frozenset(self.disease_tags or []),
            assessment_id=self.id,
            member_id=self.member_id,
        )
