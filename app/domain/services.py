from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from sqlalchemy.orm import Session

from ..infrastructure.config import ScoringConfig, get_scoring_config
from ..infrastructure.exceptions import AssessmentEngineError, NoResponsesError
from ..infrastructure.logging import LogContext, get_logger
from ..infrastructure.repositories import (
    AssessmentRepo,
    GeneratedSuggestionRepo,
    ResponseRepo,
    SuggestionRuleRepo,
)
from .conditions import evaluate
from .models import GeneratedSuggestion, ResponseRecord, RuleScope, Scores, SuggestionRule
from .normalizer import normalize_response_value
from .scoring import ScoreCalculator, deduplicate_responses, is_answered

# Question rules first, then section, then assessment: the tie-break order for ranking
SCOPE_ORDER = (RuleScope.QUESTION, RuleScope.SECTION, RuleScope.ASSESSMENT)


def rank_suggestions(suggestions: Iterable[GeneratedSuggestion]) -> list[GeneratedSuggestion]:
    """Priority desc, weight desc; ``sorted`` is stable so ties keep insertion order."""
    return sorted(suggestions, key=GeneratedSuggestion.sort_key)


def question_context(record: ResponseRecord | None, points_per_question: int = 5) -> dict[str, Any]:
    if record is None or not is_answered(record.value):
        return {"answered": 0}
    normalized = normalize_response_value(record.value, record.question_type)
    return {
        "answered": 1,
        "value": record.value,
        "score": normalized,
        "points": normalized * points_per_question,
    }


def section_context(scores: Scores, section_id: str | None) -> dict[str, Any]:
    section = scores.for_section_id(section_id) if section_id else None
    if section is None:
        return {}
    return {
        "score": section.raw_score,
        "percentage": section.percentage,
        "max_points": section.max_points,
    }


def assessment_context(scores: Scores) -> dict[str, Any]:
    context: dict[str, Any] = {
        "score": scores.total_score,
        "percentage": scores.total_percentage,
        "max_points": scores.total_max_points,
    }
    for section in scores.sections:
        context[f"{section.dimension}_score"] = section.raw_score
        context[f"{section.dimension}_percentage"] = section.percentage
    return context


class SuggestionEngine:
    """
    Scores an assessment and turns matching rules into a ranked, persisted suggestion set.

    The engine works inside the caller's session; committing (or rolling back) is the
    unit of work's job, which is what makes ``generate_suggestions`` all-or-nothing.
    """

    def __init__(
        self,
        s: Session,
        config: ScoringConfig | None = None,
        logger: logging.Logger | None = None,
    ):
        self.s = s
        self.config = config or get_scoring_config()
        self.logger = logger or get_logger(__name__)
        self.calculator = ScoreCalculator(self.config, self.logger)
        self.assessments = AssessmentRepo(s)
        self.responses = ResponseRepo(s)
        self.rules = SuggestionRuleRepo(s)
        self.generated = GeneratedSuggestionRepo(s)

    def _load_records(self, assessment_id: int) -> list[ResponseRecord]:
        self.assessments.get_by_id_required(assessment_id)
        return self.responses.list_records(assessment_id)

    def get_scores(self, assessment_id: int) -> Scores | None:
        """
        Score the assessment's current responses.

        Returns None when the assessment exists but has no responses.

        Raises:
            AssessmentNotFoundError: If the assessment does not exist
        """
        records = self._load_records(assessment_id)
        if not records:
            self.logger.info("Assessment %s has no responses; no scores", assessment_id)
            return None
        return self.calculator.compute_scores(records)

    def evaluate_rules(
        self, records: list[ResponseRecord], scores: Scores
    ) -> list[GeneratedSuggestion]:
        """Evaluate every active rule against one snapshot and return matches in rank order."""
        by_question = {r.question_id: r for r in deduplicate_responses(records)}
        matched: list[GeneratedSuggestion] = []

        for scope in SCOPE_ORDER:
            for rule in self.rules.list_active(scope):
                suggestion = self._evaluate_rule(rule, by_question, scores)
                if suggestion is not None:
                    matched.append(suggestion)

        return rank_suggestions(matched)

    def _evaluate_rule(
        self,
        rule: SuggestionRule,
        by_question: dict[str, ResponseRecord],
        scores: Scores,
    ) -> GeneratedSuggestion | None:
        if rule.malformed:
            self.logger.debug("Skipping malformed rule %s", rule.id)
            return None

        match rule.scope:
            case RuleScope.QUESTION:
                context = question_context(
                    by_question.get(rule.scope_id or ""), self.config.points_per_question
                )
            case RuleScope.SECTION:
                context = section_context(scores, rule.scope_id)
            case RuleScope.ASSESSMENT:
                context = assessment_context(scores)
            case _:
                return None

        with LogContext(rule_id=rule.id):
            result = evaluate(rule.condition, context)
        if not result.matched:
            return None

        details: dict[str, Any] = {"maturity_tier": str(scores.maturity_tier)}
        if rule.condition is None:
            details["unconditional"] = True
        else:
            details.update(
                metric=rule.condition.metric,
                operator=str(rule.condition.operator),
                threshold=rule.condition.threshold,
                observed=result.observed,
            )

        return GeneratedSuggestion(
            scope=rule.scope,
            source_rule_id=rule.id,
            source_id=rule.scope_id,
            suggestion=rule.suggestion,
            priority=rule.priority,
            weight=rule.weight,
            details=details,
        )

    def generate_suggestions(self, assessment_id: int) -> list[GeneratedSuggestion]:
        """
        Recompute and replace the assessment's suggestion set.

        Raises:
            AssessmentNotFoundError: If the assessment does not exist
            NoResponsesError: If the assessment has no responses
            DatabaseError: If the replacement cannot be written
        """
        with LogContext(assessment_id=assessment_id, operation="generate_suggestions"):
            try:
                records = self._load_records(assessment_id)
                if not records:
                    raise NoResponsesError(assessment_id)

                scores = self.calculator.compute_scores(records)
                suggestions = self.evaluate_rules(records, scores)
                self.generated.replace_for_assessment(assessment_id, suggestions)

                self.logger.info(
                    "Generated %d suggestions for assessment %s (%s, %.2f%%)",
                    len(suggestions),
                    assessment_id,
                    scores.maturity_tier,
                    scores.total_percentage,
                )
                return suggestions

            except AssessmentEngineError:
                self.logger.exception("Failed to generate suggestions for assessment %s", assessment_id)
                raise

    def ensure_suggestions(self, assessment_id: int) -> list[GeneratedSuggestion]:
        """Return the persisted set, generating it only if the assessment has none yet."""
        existing = self.get_assessment_suggestions(assessment_id)
        if existing:
            return existing
        return self.generate_suggestions(assessment_id)

    def get_assessment_suggestions(self, assessment_id: int) -> list[GeneratedSuggestion]:
        """Persisted suggestions in rank order, without recomputation."""
        self.assessments.get_by_id_required(assessment_id)
        return self.generated.list_for_assessment(assessment_id)
