"""Batch re-grading of assessment sets with cancellation and timeout."""

import time
import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

from core.grading.classifier import CareGradeClassifier
from core.grading.models import HealthAssessment, CareGradeResult

logger = logging.getLogger(__name__)


@dataclass
class BatchGradingResult:
    """Result of grading a set of assessments."""
    results: Dict[Any, CareGradeResult] = field(default_factory=dict)
    completed: bool = False
    cancelled: bool = False
    timed_out: bool = False
    execution_time: float = 0.0


def regrade_batch(
    assessments: Iterable[HealthAssessment],
    classifier: Optional[CareGradeClassifier] = None,
    stop_event: Optional[threading.Event] = None,
    timeout_seconds: Optional[float] = None
) -> BatchGradingResult:
    """Grade every assessment, stopping early on cancellation or deadline.

    Results are keyed by assessment_id (or position when the id is missing).
    When the run stops early, completed is False and results only hold the
    assessments graded before the stop; nothing is written anywhere else.

    Args:
        assessments: Assessments to grade
        classifier: Classifier to use (default rule list if None)
        stop_event: Optional threading event to signal early termination
        timeout_seconds: Optional deadline for the whole batch

    Returns:
        BatchGradingResult
    """
    classifier = classifier or CareGradeClassifier()
    if stop_event is None:
        stop_event = threading.Event()

    start = time.monotonic()
    deadline = start + timeout_seconds if timeout_seconds is not None else None
    batch = BatchGradingResult()

    for index, assessment in enumerate(assessments):
        if stop_event.is_set():
            batch.cancelled = True
            logger.info(f"Batch grading cancelled after {len(batch.results)} assessments")
            break
        if deadline is not None and time.monotonic() >= deadline:
            batch.timed_out = True
            logger.warning(f"Batch grading timed out after {len(batch.results)} assessments")
            break

        key = assessment.assessment_id if assessment.assessment_id is not None else index
        batch.results[key] = classifier.classify(assessment)
    else:
        batch.completed = True

    batch.execution_time = time.monotonic() - start
    logger.info(f"Graded {len(batch.results)} assessments in {batch.execution_time:.3f}s")
    return batch


def summarize_grades(results: Dict[Any, CareGradeResult]) -> Dict[str, Any]:
    """Distribution of grade levels and firing rules over a set of results."""
    by_level = Counter(r.grade_level for r in results.values())
    by_rule = Counter(r.rule for r in results.values())
    return {
        'total': len(results),
        'by_grade_level': dict(sorted(by_level.items())),
        'by_rule': dict(sorted(by_rule.items())),
        'estimated': sum(1 for r in results.values() if r.is_estimated),
        'hospice': by_level.get(0, 0),
    }
