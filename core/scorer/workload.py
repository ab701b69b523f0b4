#!/usr/bin/env python3
"""
Workload Balancing - Second-pass re-scoring by coordinator workload.

The same four-tier table drives two separate terms:
- the availability sub-score inside the candidate composite
- the rebalance bonus added here after the candidate sort
The two are kept apart and applied in that order.
"""

from dataclasses import replace
from typing import List, Sequence, Tuple
import logging

from core.config_loader import WorkloadConfig
from core.matcher.models import CoordinatorMatch

logger = logging.getLogger(__name__)

MAX_SCORE = 5.0

# (minimum workload ratio, bonus, label), checked top to bottom
WORKLOAD_TIERS: Tuple[Tuple[float, float, str], ...] = (
    (1.0, 0.0, "포화"),
    (0.8, 1.0, "높음"),
    (0.6, 2.0, "보통"),
    (0.4, 3.0, "양호"),
)
LOW_WORKLOAD_BONUS = 4.0
LOW_WORKLOAD_LABEL = "여유"


def workload_tier(workload_ratio: float) -> Tuple[float, str]:
    """Return (bonus, label) for a workload ratio."""
    for minimum, bonus, label in WORKLOAD_TIERS:
        if workload_ratio >= minimum:
            return bonus, label
    return LOW_WORKLOAD_BONUS, LOW_WORKLOAD_LABEL


def workload_tier_bonus(workload_ratio: float) -> float:
    return workload_tier(workload_ratio)[0]


def ranking_key(match: CoordinatorMatch):
    """Descending score; equal scores fall back to coordinator_id ascending."""
    return (-match.match_score, match.coordinator_id)


class WorkloadBalancer:
    """Adds a weighted workload bonus to every match and re-sorts the full list."""

    def __init__(self, config: WorkloadConfig = None):
        self.config = config or WorkloadConfig()

    def adjust(self, match: CoordinatorMatch) -> CoordinatorMatch:
        bonus, label = workload_tier(match.workload_ratio)
        increment = bonus * self.config.rebalance_weight
        new_score = min(match.match_score + increment, MAX_SCORE)
        annotation = (
            f"업무량 조정: {label} "
            f"({match.current_active_cases}/{match.max_simultaneous_cases}건, "
            f"+{increment:.2f} → {new_score:.2f}/5.0)"
        )
        return replace(
            match,
            match_score=new_score,
            match_reason=f"{match.match_reason}\n{annotation}"
        )

    def rebalance(self, matches: Sequence[CoordinatorMatch]) -> List[CoordinatorMatch]:
        """Return new, re-scored matches sorted best first; the input is not modified."""
        adjusted = [self.adjust(m) for m in matches]
        adjusted.sort(key=ranking_key)
        logger.debug(f"Rebalanced {len(adjusted)} matches by workload")
        return adjusted
