import math
from unittest.mock import patch

import pytest

from app.domain import normalizer
from app.domain.models import QuestionType
from app.domain.normalizer import clamp_likert, normalize_response_value


def test_boolean_true_is_full_credit():
    assert normalize_response_value(True, QuestionType.BOOLEAN) == 1.0


@pytest.mark.parametrize("value", [False, None, "true", 1, "yes"])
def test_boolean_only_literal_true_scores(value):
    assert normalize_response_value(value, QuestionType.BOOLEAN) == 0.0


@pytest.mark.parametrize(
    "value,expected",
    [(1, 0.0), (2, 0.25), (3, 0.5), (4, 0.75), (5, 1.0), ("4", 0.75), (2.5, 0.375)],
)
def test_likert_linear_mapping(value, expected):
    assert normalize_response_value(value, QuestionType.LIKERT_SCALE) == pytest.approx(expected)


def test_likert_none_scores_zero():
    assert normalize_response_value(None, QuestionType.LIKERT_SCALE) == 0.0


def test_likert_out_of_range_is_clamped_and_reported():
    with patch.object(normalizer, "logger") as mock_logger:
        assert normalize_response_value(7, QuestionType.LIKERT_SCALE) == 1.0
        assert normalize_response_value(0, QuestionType.LIKERT_SCALE) == 0.0
    assert mock_logger.warning.call_count == 2


def test_likert_non_numeric_never_raises():
    with patch.object(normalizer, "logger") as mock_logger:
        assert normalize_response_value("often", QuestionType.LIKERT_SCALE) == 0.0
        assert normalize_response_value(float("nan"), QuestionType.LIKERT_SCALE) == 0.0
    assert mock_logger.warning.called


def test_clamp_likert_passes_valid_values_through():
    assert clamp_likert(3) == 3.0
    assert clamp_likert(-10) == 1.0
    assert clamp_likert(99) == 5.0
    assert not math.isnan(clamp_likert(float("nan")))


def test_choice_placeholders_are_preserved():
    assert normalize_response_value("Option A", QuestionType.SINGLE_CHOICE) == 0.5
    assert normalize_response_value(["Policy"], QuestionType.MULTIPLE_CHOICE) == 0.7
    assert normalize_response_value(["Policy", "Audit", "Training"], "MULTIPLE_CHOICE") == 0.7


@pytest.mark.parametrize("value", [[], (), "Policy", None])
def test_multiple_choice_requires_non_empty_list(value):
    assert normalize_response_value(value, QuestionType.MULTIPLE_CHOICE) == 0.0


def test_text_scores_fixed_half():
    assert normalize_response_value("We publish annual accounts", QuestionType.TEXT) == 0.5


def test_accepts_string_type_tags():
    assert normalize_response_value(True, "BOOLEAN") == 1.0
    assert normalize_response_value(5, "LIKERT_SCALE") == 1.0


def test_unknown_type_scores_zero():
    assert normalize_response_value(True, "DATE") == 0.0
    assert normalize_response_value("x", None) == 0.0
