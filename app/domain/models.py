from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class QuestionType(StrEnum):
    BOOLEAN = "BOOLEAN"
    LIKERT_SCALE = "LIKERT_SCALE"
    SINGLE_CHOICE = "SINGLE_CHOICE"
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    TEXT = "TEXT"


class AssessmentStatus(StrEnum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class RuleScope(StrEnum):
    QUESTION = "QUESTION"
    SECTION = "SECTION"
    ASSESSMENT = "ASSESSMENT"


class ConditionOperator(StrEnum):
    LT = "lt"
    LTE = "lte"
    GT = "gt"
    GTE = "gte"
    EQ = "eq"
    CONTAINS = "contains"


class MaturityTier(StrEnum):
    EMERGING = "Emerging Organization"
    STRONG = "Strong Foundation"
    LEADING = "Leading Organization"


@dataclass(slots=True, frozen=True)
class ResponseRecord:
    """One answer joined with the question metadata scoring needs."""

    question_id: str
    value: Any
    question_type: str
    section_id: str


@dataclass(slots=True, frozen=True)
class SectionScore:
    dimension: str
    section_id: str
    raw_score: int
    max_points: int
    percentage: float


@dataclass(slots=True, frozen=True)
class Scores:
    sections: tuple[SectionScore, ...]
    total_score: int
    total_max_points: int
    total_percentage: float
    maturity_tier: MaturityTier

    def section(self, dimension: str) -> SectionScore:
        for score in self.sections:
            if score.dimension == dimension:
                return score
        raise KeyError(dimension)

    def for_section_id(self, section_id: str) -> SectionScore | None:
        for score in self.sections:
            if score.section_id == section_id:
                return score
        return None

    def to_dict(self) -> dict[str, Any]:
        """Flat payload consumed by report rendering, e.g. ``governanceScore``."""
        payload: dict[str, Any] = {}
        for score in self.sections:
            payload[f"{score.dimension}Score"] = score.raw_score
            payload[f"{score.dimension}Percentage"] = score.percentage
        payload["totalScore"] = self.total_score
        payload["totalPercentage"] = self.total_percentage
        payload["overallLevel"] = str(self.maturity_tier)
        return payload


@dataclass(slots=True, frozen=True)
class RuleCondition:
    metric: str
    operator: ConditionOperator
    threshold: float | str | bool


@dataclass(slots=True, frozen=True)
class ConditionResult:
    matched: bool
    observed: Any = None


@dataclass(slots=True)
class SuggestionRule:
    id: int
    scope: RuleScope
    scope_id: str | None
    condition: RuleCondition | None
    suggestion: str
    priority: int
    weight: float
    is_active: bool = True
    # Set when the stored condition failed validation; such rules never match
    malformed: bool = False


@dataclass(slots=True)
class GeneratedSuggestion:
    scope: RuleScope
    source_rule_id: int | None
    source_id: str | None
    suggestion: str
    priority: int
    weight: float
    details: dict[str, Any] = field(default_factory=dict)

    def sort_key(self) -> tuple[int, float]:
        return (-self.priority, -self.weight)

    def identity(self) -> tuple[Any, ...]:
        return (self.scope, self.source_rule_id, self.source_id, self.suggestion, self.priority, self.weight)


@dataclass(slots=True, frozen=True)
class CompletionCheck:
    assessment_id: int
    previous_status: AssessmentStatus
    new_status: AssessmentStatus
    status_changed: bool
    total_mandatory: int
    answered_mandatory: int
    is_completed: bool
    suggestions_generated: int = 0
