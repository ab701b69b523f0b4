from sqlalchemy import Column, Integer, String, Text, Boolean, Float, TIMESTAMP, ForeignKey, Index, func
from sqlalchemy.orm import relationship

from core.matcher.models import CoordinatorProfile, LanguageSkill
from .base import Base, JSONType


class CoordinatorCareSettings(Base):
    __tablename__ = 'coordinator_care_settings'

    id = Column(Integer, primary_key=True, autoincrement=True)
    coordinator_id = Column(String(64), unique=True, nullable=False, index=True)

    # Eligibility band (inclusive)
    base_care_level = Column(Integer, nullable=False)
    max_care_level = Column(Integer, nullable=False)

    specialty_areas = Column(JSONType, nullable=False, default=list)
    working_regions = Column(JSONType, nullable=False, default=list)

    # Track record
    experience_years = Column(Integer, nullable=False, default=0)
    successful_cases = Column(Integer, nullable=False, default=0)
    total_cases = Column(Integer, nullable=False, default=0)
    customer_satisfaction = Column(Float, nullable=False, default=0.0)

    # Availability and workload
    available_weekends = Column(Boolean, nullable=False, default=False)
    available_emergency = Column(Boolean, nullable=False, default=False)
    max_simultaneous_cases = Column(Integer, nullable=False, default=1)
    current_active_cases = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    language_skills = relationship(
        "CoordinatorLanguageSkill",
        back_populates="coordinator",
        cascade="all, delete-orphan",
        order_by="CoordinatorLanguageSkill.priority_order"
    )

    __table_args__ = (
        Index('idx_coordinator_care_band', 'is_active', 'base_care_level', 'max_care_level'),
    )

    def to_profile(self) -> CoordinatorProfile:
        return CoordinatorProfile(
            coordinator_id=self.coordinator_id,
            base_care_level=self.base_care_level,
            max_care_level=self.max_care_level,
            specialty_areas=frozenset(self.specialty_areas or []),
            working_regions=frozenset(self.working_regions or []),
            experience_years=self.experience_years or 0,
            successful_cases=self.successful_cases or 0,
            total_cases=self.total_cases or 0,
            customer_satisfaction=self.customer_satisfaction or 0.0,
            available_weekends=bool(self.available_weekends),
            available_emergency=bool(self.available_emergency),
            max_simultaneous_cases=self.max_simultaneous_cases,
            current_active_cases=self.current_active_cases or 0,
            is_active=bool(self.is_active),
        )


class CoordinatorLanguageSkill(Base):
    __tablename__ = 'coordinator_language_skills'

    id = Column(Integer, primary_key=True, autoincrement=True)
    coordinator_id = Column(
        String(64),
        ForeignKey('coordinator_care_settings.coordinator_id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    language_code = Column(String(8), nullable=False)
    language_name = Column(Text)
    proficiency_level = Column(String(20), nullable=False)  # NATIVE|FLUENT|BUSINESS|CONVERSATIONAL|BASIC
    certification = Column(Text)
    country_experience = Column(Text)
    specialization = Column(Text)
    priority_order = Column(Integer, nullable=False, default=1)
    service_fee_rate = Column(Float)
    is_active = Column(Boolean, nullable=False, default=True)

    coordinator = relationship("CoordinatorCareSettings", back_populates="language_skills")

    __table_args__ = (
        Index('idx_language_skill_code_active', 'language_code', 'is_active'),
    )

    def to_skill(self) -> LanguageSkill:
        return LanguageSkill(
            language_code=self.language_code,
            proficiency_level=self.proficiency_level,
            certification=self.certification,
            country_experience=self.country_experience,
            specialization=self.specialization,
            priority_order=self.priority_order or 1,
            coordinator_id=self.coordinator_id,
            language_name=self.language_name,
            service_fee_rate=self.service_fee_rate,
            is_active=bool(self.is_active),
        )
