"""Matcher Module - Coordinator models, language scoring and the store interface.

The pipeline itself lives in core.matcher.service (MatchingPipeline) and
imports the scorer package, so it is not re-exported here.
"""
from core.matcher.models import (
    LanguageProficiency, LanguageSkill, CoordinatorProfile,
    MatchingPreference, CoordinatorMatch
)
from core.matcher.interfaces import CoordinatorStore
from core.matcher.language import (
    LanguageCompatibilityScorer, LanguageMatch, supports_professional_consultation
)

__all__ = [
    'LanguageProficiency', 'LanguageSkill', 'CoordinatorProfile',
    'MatchingPreference', 'CoordinatorMatch', 'CoordinatorStore',
    'LanguageCompatibilityScorer', 'LanguageMatch', 'supports_professional_consultation'
]
