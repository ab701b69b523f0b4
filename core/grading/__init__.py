"""Grading Module - Rule-based care grade classification."""
from core.grading.models import (
    HealthAssessment, CareGradeResult,
    calculate_adl_score, estimate_grade_from_adl
)
from core.grading.classifier import CareGradeClassifier, GradingRule, classify
from core.grading.batch import BatchGradingResult, regrade_batch, summarize_grades

__all__ = [
    'HealthAssessment', 'CareGradeResult',
    'calculate_adl_score', 'estimate_grade_from_adl',
    'CareGradeClassifier', 'GradingRule', 'classify',
    'BatchGradingResult', 'regrade_batch', 'summarize_grades'
]
