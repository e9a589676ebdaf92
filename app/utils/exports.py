from __future__ import annotations

import io
import json
from collections.abc import Iterable

import pandas as pd

from app.domain.models import GeneratedSuggestion, Scores

SCORE_COLUMNS = ["Dimension", "SectionID", "Score", "MaxPoints", "Percentage"]
SUGGESTION_COLUMNS = ["Rank", "Scope", "SourceID", "Suggestion", "Priority", "Weight", "RuleID"]


def _to_iso(val):
    if hasattr(val, "isoformat"):
        try:
            return val.isoformat()
        except Exception:
            return str(val)
    return val


def scores_to_frame(scores: Scores | None) -> pd.DataFrame:
    """One row per dimension followed by a ``total`` row."""
    if scores is None:
        return pd.DataFrame(columns=SCORE_COLUMNS)

    rows = [
        {
            "Dimension": s.dimension,
            "SectionID": s.section_id,
            "Score": s.raw_score,
            "MaxPoints": s.max_points,
            "Percentage": s.percentage,
        }
        for s in scores.sections
    ]
    rows.append(
        {
            "Dimension": "total",
            "SectionID": None,
            "Score": scores.total_score,
            "MaxPoints": scores.total_max_points,
            "Percentage": scores.total_percentage,
        }
    )
    return pd.DataFrame(rows, columns=SCORE_COLUMNS)


def suggestions_to_frame(suggestions: Iterable[GeneratedSuggestion]) -> pd.DataFrame:
    rows = [
        {
            "Rank": rank,
            "Scope": str(item.scope),
            "SourceID": item.source_id,
            "Suggestion": item.suggestion,
            "Priority": item.priority,
            "Weight": item.weight,
            "RuleID": item.source_rule_id,
        }
        for rank, item in enumerate(suggestions, start=1)
    ]
    return pd.DataFrame(rows, columns=SUGGESTION_COLUMNS)


def make_json_export_payload(
    assessment_id: int,
    scores: Scores | None,
    suggestions_df: pd.DataFrame,
    generated_at=None,
) -> str:
    """Serialise the report data handed to the report renderer."""
    payload = {
        "assessment_id": assessment_id,
        "generated_at": _to_iso(generated_at),
        "scores": scores.to_dict() if scores is not None else None,
        "suggestions": suggestions_df.map(_to_iso).to_dict(orient="records"),
    }
    return json.dumps(payload, indent=2, default=str)


def make_xlsx_export_bytes(scores_df: pd.DataFrame, suggestions_df: pd.DataFrame) -> bytes:
    """Create a two-sheet Excel workbook: per-dimension scores and ranked suggestions."""

    if scores_df is None:
        scores_df = pd.DataFrame(columns=SCORE_COLUMNS)
    if suggestions_df is None:
        suggestions_df = pd.DataFrame(columns=SUGGESTION_COLUMNS)

    scores_df = scores_df.copy()
    suggestions_df = suggestions_df.copy()

    # Guarantee column ordering and presence for consumers opening the sheets in Excel
    for frame, columns in ((scores_df, SCORE_COLUMNS), (suggestions_df, SUGGESTION_COLUMNS)):
        for column in columns:
            if column not in frame.columns:
                frame[column] = pd.NA

    bio = io.BytesIO()
    with pd.ExcelWriter(bio, engine="xlsxwriter") as writer:
        scores_df[SCORE_COLUMNS].to_excel(writer, index=False, sheet_name="Scores")
        suggestions_df[SUGGESTION_COLUMNS].to_excel(writer, index=False, sheet_name="Suggestions")
    return bio.getvalue()
