"""
Data access layer for the assessment scoring engine.

Re-exports the split repositories so callers can use a single import:
    from app.infrastructure.repositories import AssessmentRepo, ResponseRepo, ...
"""

from __future__ import annotations

from .repositories_assessment import AssessmentRepo, OrganizationRepo
from .repositories_response import ResponseRepo
from .repositories_rule import SuggestionRuleRepo
from .repositories_section import QuestionRepo, SectionRepo
from .repositories_suggestion import GeneratedSuggestionRepo

__all__ = [
    "AssessmentRepo",
    "OrganizationRepo",
    "ResponseRepo",
    "SuggestionRuleRepo",
    "QuestionRepo",
    "SectionRepo",
    "GeneratedSuggestionRepo",
]
