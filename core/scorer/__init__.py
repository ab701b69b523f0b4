#!/usr/bin/env python3
"""
Scoring Module - Candidate scoring and workload rebalancing.

Public API:
- CandidateScorer: composite 0-5 score plus reason text for one coordinator
- WorkloadBalancer: second-pass workload bonus and re-sort

Modules:
- candidate.py: sub-scores and the weighted composite
- explanation.py: deterministic reason text
- workload.py: workload tiers, rebalancing, ranking key
"""

from core.scorer.candidate import CandidateScore, CandidateScorer
from core.scorer.workload import WorkloadBalancer, ranking_key, workload_tier, workload_tier_bonus

__all__ = [
    'CandidateScorer', 'CandidateScore',
    'WorkloadBalancer', 'ranking_key', 'workload_tier', 'workload_tier_bonus'
]
