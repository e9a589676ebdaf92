"""
Application API layer with error handling, validation and orchestration.

This module provides the high-level operations callers use: recording answers,
checking completion (which triggers suggestion generation), scoring, and the
administrative helpers for sections, questions and rules.
"""

from __future__ import annotations

import threading
import weakref
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy.orm import Session

from ..domain.models import (
    AssessmentStatus,
    CompletionCheck,
    GeneratedSuggestion,
    RuleScope,
    Scores,
)
from ..domain.schemas import (
    ResponseValueInput,
    SectionAnswersInput,
    SectionReorderInput,
    SuggestionRuleInput,
    validate_input,
)
from ..domain.scoring import is_answered
from ..domain.services import SuggestionEngine
from ..infrastructure.config import ScoringConfig, get_settings
from ..infrastructure.exceptions import (
    AssessmentEngineError,
    ValidationError,
    create_user_friendly_error_message,
    log_error_details,
)
from ..infrastructure.logging import get_logger, log_operation, set_context
from ..infrastructure.models import (
    AssessmentORM,
    OrganizationORM,
    ResponseORM,
    SectionORM,
    SuggestionRuleORM,
)
from ..infrastructure.repositories import (
    AssessmentRepo,
    GeneratedSuggestionRepo,
    OrganizationRepo,
    QuestionRepo,
    ResponseRepo,
    SectionRepo,
    SuggestionRuleRepo,
)
from ..infrastructure.uow import UnitOfWork

logger = get_logger(__name__)

_locks_guard = threading.Lock()
# Entries disappear once no caller holds the lock
_assessment_locks: weakref.WeakValueDictionary[int, threading.Lock] = weakref.WeakValueDictionary()


@contextmanager
def assessment_lock(assessment_id: int) -> Iterator[None]:
    """Serialise suggestion generation and status transitions per assessment within this process."""
    with _locks_guard:
        lock = _assessment_locks.get(assessment_id)
        if lock is None:
            lock = threading.Lock()
            _assessment_locks[assessment_id] = lock
    with lock:
        yield


def _raise_validation_failure(result, field: str) -> None:
    error_msg = "; ".join([f"{e.field}: {e.message}" for e in result.errors])
    logger.warning(f"Validation failed for {field}: {error_msg}")
    raise ValidationError(field, error_msg)


def _wrap_unexpected(e: Exception, message: str, context: dict[str, Any]) -> AssessmentEngineError:
    error_details = log_error_details(e, context)
    logger.error(message, extra=error_details)
    return AssessmentEngineError(
        f"{message}: {str(e)}",
        details=error_details,
        user_message=create_user_friendly_error_message(e),
    )


@log_operation("create_organization")
def create_organization(session: Session, name: str, email: str | None = None) -> OrganizationORM:
    return OrganizationRepo(session).create(name=name.strip(), email=email)


@log_operation("create_assessment")
def create_assessment(session: Session, organization_id: int) -> AssessmentORM:
    """
    Start a new IN_PROGRESS assessment for an organisation.

    Raises:
        ValidationError: If the organisation does not exist
    """
    if OrganizationRepo(session).get(organization_id) is None:
        raise ValidationError("organization_id", "Organization not found", value=organization_id)
    assessment = AssessmentRepo(session).create_for_organization(organization_id)
    logger.info(f"Started assessment {assessment.id} for organization {organization_id}")
    return assessment


@log_operation("record_response")
def record_response(
    session: Session, assessment_id: int, question_id: str, value: Any
) -> ResponseORM:
    """
    Record or replace the answer to one question.

    Raises:
        AssessmentNotFoundError: If the assessment doesn't exist
        QuestionNotFoundError: If the question doesn't exist
    """
    result = validate_input(
        ResponseValueInput,
        {"assessment_id": assessment_id, "question_id": question_id, "value": value},
    )
    if not result.success:
        _raise_validation_failure(result, "value")

    set_context(assessment_id=assessment_id)
    AssessmentRepo(session).get_by_id_required(assessment_id)
    QuestionRepo(session).get_by_id_required(question_id)
    return ResponseRepo(session).upsert(assessment_id, question_id, value)


@log_operation("record_section_responses")
def record_section_responses(
    session: Session, assessment_id: int, section_id: str, answers: dict[str, Any]
) -> list[ResponseORM]:
    """
    Store a respondent's answers for every question of one section.

    Questions without an entry in ``answers`` are stored as unanswered (``None``), so
    re-submitting a section replaces its previous answers rather than adding to them.

    Args:
        session: Database session
        assessment_id: Target assessment
        section_id: Section whose questions are being answered
        answers: Mapping of question id to answer value

    Returns:
        The section's responses in question order

    Raises:
        ValidationError: If the payload is malformed or names questions outside the section
        AssessmentNotFoundError: If the assessment doesn't exist
        SectionNotFoundError: If the section doesn't exist

    Example:
        >>> record_section_responses(session, 7, "hr-section", {"hr-q1": 4, "hr-q2": True})
    """
    result = validate_input(
        SectionAnswersInput,
        {"assessment_id": assessment_id, "section_id": section_id, "answers": answers},
    )
    if not result.success:
        _raise_validation_failure(result, "answers")

    try:
        set_context(operation="record_section_responses", assessment_id=assessment_id)
        AssessmentRepo(session).get_by_id_required(assessment_id)
        SectionRepo(session).get_by_id_required(section_id)

        questions = QuestionRepo(session).list_for_section(section_id)
        known = {q.id for q in questions}
        unknown = sorted(set(answers) - known)
        if unknown:
            raise ValidationError(
                "answers", f"Questions not in section {section_id}: {', '.join(unknown)}"
            )

        repo = ResponseRepo(session)
        responses = [repo.upsert(assessment_id, q.id, answers.get(q.id)) for q in questions]
        logger.info(
            f"Recorded {len(responses)} responses for section {section_id} "
            f"in assessment {assessment_id}"
        )
        return responses

    except AssessmentEngineError:
        raise
    except Exception as e:
        raise _wrap_unexpected(
            e,
            "Failed to record section responses",
            {"assessment_id": assessment_id, "section_id": section_id},
        ) from e


@log_operation("check_assessment_completion")
def check_assessment_completion(
    session: Session,
    assessment_id: int,
    config: ScoringConfig | None = None,
    auto_generate: bool | None = None,
) -> CompletionCheck:
    """
    Reconcile an assessment's status with its mandatory-question completeness.

    An assessment is complete when at least one mandatory question exists and every
    mandatory question has a non-empty answer. Entering COMPLETED regenerates the
    suggestion set from scratch; falling back to IN_PROGRESS discards it so stale
    suggestions never sit beside different scores. A failure to generate suggestions
    is logged and does not undo the status change.

    Raises:
        AssessmentNotFoundError: If the assessment doesn't exist
    """
    if auto_generate is None:
        auto_generate = get_settings().app.auto_generate_suggestions

    set_context(operation="check_completion", assessment_id=assessment_id)
    assessment_repo = AssessmentRepo(session)

    # Held from the status read onwards, before this call writes anything, so a
    # concurrent generate_assessment_suggestions cannot interleave with the transition.
    with assessment_lock(assessment_id):
        assessment = assessment_repo.get_by_id_required(assessment_id)
        previous_status = AssessmentStatus(assessment.status)

        mandatory = QuestionRepo(session).list_mandatory()
        answers = {
            r.question_id: r.value for r in ResponseRepo(session).list_for_assessment(assessment_id)
        }
        answered = [
            q for q in mandatory if is_answered(answers.get(q.id), empty_list_answered=False)
        ]
        is_completed = bool(mandatory) and len(answered) == len(mandatory)

        new_status = previous_status
        generated = 0

        if is_completed and previous_status != AssessmentStatus.COMPLETED:
            assessment_repo.mark_completed(assessment)
            new_status = AssessmentStatus.COMPLETED
            if auto_generate:
                try:
                    with session.begin_nested():
                        engine = SuggestionEngine(session, config)
                        generated = len(engine.generate_suggestions(assessment_id))
                except AssessmentEngineError as e:
                    logger.error(
                        f"Suggestion generation failed for completed assessment {assessment_id}",
                        extra=log_error_details(e, {"assessment_id": assessment_id}),
                    )
        elif not is_completed and previous_status == AssessmentStatus.COMPLETED:
            assessment_repo.mark_in_progress(assessment)
            GeneratedSuggestionRepo(session).delete_for_assessment(assessment_id)
            new_status = AssessmentStatus.IN_PROGRESS

    check = CompletionCheck(
        assessment_id=assessment_id,
        previous_status=previous_status,
        new_status=new_status,
        status_changed=new_status != previous_status,
        total_mandatory=len(mandatory),
        answered_mandatory=len(answered),
        is_completed=is_completed,
        suggestions_generated=generated,
    )
    logger.info(
        f"Assessment {assessment_id}: {len(answered)}/{len(mandatory)} mandatory answered, "
        f"{previous_status} -> {new_status}"
    )
    return check


@log_operation("get_assessment_scores")
def get_assessment_scores(
    session: Session, assessment_id: int, config: ScoringConfig | None = None
) -> Scores | None:
    """
    Compute scores for an assessment's current responses.

    Returns:
        Scores, or None if the assessment has no responses yet

    Raises:
        AssessmentNotFoundError: If the assessment doesn't exist
    """
    set_context(assessment_id=assessment_id)
    return SuggestionEngine(session, config).get_scores(assessment_id)


@log_operation("generate_assessment_suggestions")
def generate_assessment_suggestions(
    uow: UnitOfWork, assessment_id: int, config: ScoringConfig | None = None
) -> list[GeneratedSuggestion]:
    """
    Regenerate and persist an assessment's suggestions in one serialised unit of work.

    The per-assessment lock is held until the transaction has committed, so concurrent
    callers for the same assessment run one after the other and the last commit wins.
    On any failure the previously persisted set is left untouched.

    Raises:
        AssessmentNotFoundError: If the assessment doesn't exist
        NoResponsesError: If the assessment has no responses
        DatabaseError: If the suggestion set cannot be written
    """
    with assessment_lock(assessment_id):
        with uow.begin() as session:
            return SuggestionEngine(session, config).generate_suggestions(assessment_id)


@log_operation("get_assessment_suggestions")
def get_assessment_suggestions(session: Session, assessment_id: int) -> list[GeneratedSuggestion]:
    return SuggestionEngine(session).get_assessment_suggestions(assessment_id)


@log_operation("create_suggestion_rule")
def create_suggestion_rule(
    session: Session,
    scope: RuleScope | str,
    suggestion: str,
    scope_id: str | None = None,
    condition: dict[str, Any] | None = None,
    priority: int = 1,
    weight: float = 1.0,
    is_active: bool = True,
) -> SuggestionRuleORM:
    """
    Author a suggestion rule; the condition is validated before it reaches the store.

    Example:
        >>> create_suggestion_rule(
        ...     session,
        ...     RuleScope.SECTION,
        ...     "Strengthen financial controls",
        ...     scope_id="financial-section",
        ...     condition={"metric": "percentage", "operator": "lt", "threshold": 60},
        ...     priority=8,
        ... )
    """
    result = validate_input(
        SuggestionRuleInput,
        {
            "scope": str(scope),
            "scope_id": scope_id,
            "suggestion": suggestion,
            "condition": condition,
            "priority": priority,
            "weight": weight,
            "is_active": is_active,
        },
    )
    if not result.success:
        _raise_validation_failure(result, "suggestion_rule")
    data = result.data or {}

    return SuggestionRuleRepo(session).create_rule(
        scope=RuleScope(data["scope"]),
        scope_id=data["scope_id"],
        suggestion=data["suggestion"],
        condition=data["condition"],
        priority=data["priority"],
        weight=data["weight"],
        is_active=data["is_active"],
    )


@log_operation("reorder_section")
def reorder_section(session: Session, section_id: str, new_order: int) -> list[SectionORM]:
    result = validate_input(SectionReorderInput, {"section_id": section_id, "order": new_order})
    if not result.success:
        _raise_validation_failure(result, "order")
    return SectionRepo(session).reorder(section_id, new_order)


@log_operation("delete_question")
def delete_question(session: Session, question_id: str) -> None:
    QuestionRepo(session).delete_with_dependents(question_id)
    logger.info(f"Deleted question {question_id} with its responses and rules")
