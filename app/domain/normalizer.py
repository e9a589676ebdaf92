"""
Answer normalisation: one raw response value plus its question type to a score in [0, 1].

Respondent input must never be able to crash scoring, so every branch degrades to a
defined number. Out-of-range Likert values are clamped and reported as data-quality
warnings.
"""

from __future__ import annotations

import math
from typing import Any

from ..infrastructure.logging import get_logger
from .models import QuestionType

logger = get_logger(__name__)

LIKERT_MIN = 1
LIKERT_MAX = 5

# Placeholders until per-option weights exist
SINGLE_CHOICE_SCORE = 0.5
MULTIPLE_CHOICE_SCORE = 0.7
TEXT_SCORE = 0.5


def _coerce_question_type(question_type: Any) -> QuestionType | None:
    if isinstance(question_type, QuestionType):
        return question_type
    try:
        return QuestionType(str(question_type))
    except ValueError:
        return None


def clamp_likert(value: Any) -> float:
    """Clamp a Likert answer to 1..5; non-numeric input falls to the lower bound."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning("Non-numeric Likert value %r treated as %d", value, LIKERT_MIN)
        return float(LIKERT_MIN)

    if math.isnan(number):
        logger.warning("NaN Likert value treated as %d", LIKERT_MIN)
        return float(LIKERT_MIN)
    if number < LIKERT_MIN or number > LIKERT_MAX:
        clamped = min(max(number, LIKERT_MIN), LIKERT_MAX)
        logger.warning("Likert value %r out of range; clamped to %s", value, clamped)
        return float(clamped)
    return number


def normalize_response_value(value: Any, question_type: QuestionType | str) -> float:
    """
    Convert one answer into a dimensionless score in [0, 1].

    Unknown question types score 0.0 rather than raising.

    Example:
        >>> normalize_response_value(4, "LIKERT_SCALE")
        0.75
        >>> normalize_response_value(["a"], QuestionType.MULTIPLE_CHOICE)
        0.7
    """
    qtype = _coerce_question_type(question_type)

    match qtype:
        case QuestionType.BOOLEAN:
            return 1.0 if value is True else 0.0
        case QuestionType.LIKERT_SCALE:
            if value is None:
                return 0.0
            return (clamp_likert(value) - LIKERT_MIN) / (LIKERT_MAX - LIKERT_MIN)
        case QuestionType.SINGLE_CHOICE:
            return SINGLE_CHOICE_SCORE
        case QuestionType.MULTIPLE_CHOICE:
            if isinstance(value, (list, tuple)) and len(value) > 0:
                return MULTIPLE_CHOICE_SCORE
            return 0.0
        case QuestionType.TEXT:
            return TEXT_SCORE
        case _:
            logger.debug("Unsupported question type %r scored as 0", question_type)
            return 0.0
