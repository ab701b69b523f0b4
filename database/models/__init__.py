from .base import Base, JSONType
from .coordinator import CoordinatorCareSettings, CoordinatorLanguageSkill
from .assessment import HealthAssessmentRecord

__all__ = [
    'Base',
    'JSONType',
    'CoordinatorCareSettings',
    'CoordinatorLanguageSkill',
    'HealthAssessmentRecord',
]
