import io
import json
from datetime import datetime

import pandas as pd

from app.domain.models import GeneratedSuggestion, ResponseRecord, RuleScope
from app.domain.scoring import compute_scores
from app.infrastructure.config import ScoringConfig
from app.utils.exports import (
    SCORE_COLUMNS,
    SUGGESTION_COLUMNS,
    make_json_export_payload,
    make_xlsx_export_bytes,
    scores_to_frame,
    suggestions_to_frame,
)


def sample_scores():
    records = [
        ResponseRecord(f"fin-q{i}", True, "BOOLEAN", "financial-section") for i in range(1, 6)
    ]
    return compute_scores(records, ScoringConfig())


def sample_suggestions():
    return [
        GeneratedSuggestion(RuleScope.SECTION, 4, "financial-section", "Strengthen financial controls", 8, 1.0),
        GeneratedSuggestion(RuleScope.ASSESSMENT, 2, None, "Share your annual report", 1, 1.0),
    ]


def test_scores_frame_has_dimension_rows_and_total():
    df = scores_to_frame(sample_scores())

    assert list(df.columns) == SCORE_COLUMNS
    assert df["Dimension"].tolist() == ["governance", "financial", "programme", "hr", "total"]
    financial = df.set_index("Dimension").loc["financial"]
    assert financial["Score"] == 25
    assert financial["Percentage"] == 50.0
    total = df.set_index("Dimension").loc["total"]
    assert total["MaxPoints"] == 215


def test_scores_frame_for_missing_scores_is_empty():
    df = scores_to_frame(None)
    assert df.empty
    assert list(df.columns) == SCORE_COLUMNS


def test_suggestions_frame_ranks_from_one():
    df = suggestions_to_frame(sample_suggestions())

    assert list(df.columns) == SUGGESTION_COLUMNS
    assert df["Rank"].tolist() == [1, 2]
    assert df["Scope"].tolist() == ["SECTION", "ASSESSMENT"]


def test_json_payload_contains_flat_scores_and_suggestions():
    generated_at = datetime(2024, 5, 1, 9, 30)
    payload = json.loads(
        make_json_export_payload(7, sample_scores(), suggestions_to_frame(sample_suggestions()), generated_at)
    )

    assert payload["assessment_id"] == 7
    assert payload["generated_at"] == "2024-05-01T09:30:00"
    assert payload["scores"]["financialScore"] == 25
    assert payload["scores"]["overallLevel"] == "Emerging Organization"
    assert [s["Suggestion"] for s in payload["suggestions"]] == [
        "Strengthen financial controls",
        "Share your annual report",
    ]


def test_json_payload_without_scores():
    payload = json.loads(make_json_export_payload(3, None, suggestions_to_frame([])))
    assert payload["scores"] is None
    assert payload["suggestions"] == []


def test_xlsx_export_has_both_sheets():
    data = make_xlsx_export_bytes(scores_to_frame(sample_scores()), suggestions_to_frame(sample_suggestions()))

    sheets = pd.read_excel(io.BytesIO(data), sheet_name=None)
    assert set(sheets) == {"Scores", "Suggestions"}
    assert list(sheets["Scores"].columns) == SCORE_COLUMNS
    assert sheets["Suggestions"]["Suggestion"].iloc[0] == "Strengthen financial controls"


def test_xlsx_export_fills_missing_columns():
    partial = pd.DataFrame({"Suggestion": ["Only text"]})
    data = make_xlsx_export_bytes(None, partial)

    sheets = pd.read_excel(io.BytesIO(data), sheet_name=None)
    assert list(sheets["Suggestions"].columns) == SUGGESTION_COLUMNS
    assert sheets["Scores"].empty
