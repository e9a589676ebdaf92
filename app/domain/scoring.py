"""
Score calculation for CSO self-assessments.

Aggregates normalised answers into per-dimension raw scores (5 points per question),
percentages of the configured maxima, a total, and a maturity tier.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable

from ..infrastructure.config import ScoringConfig, ScoringDimension, get_scoring_config
from ..infrastructure.logging import get_logger
from .models import MaturityTier, ResponseRecord, Scores, SectionScore
from .normalizer import normalize_response_value


def round_half_up(value: float) -> int:
    # round() is banker's rounding; 2.5 points must become 3
    return int(math.floor(round(value, 9) + 0.5))


def is_answered(value: object, empty_list_answered: bool = True) -> bool:
    """
    Whether a stored value counts as an answer.

    Scoring treats an empty selection as answered (it normalises to 0); the
    completion check passes ``empty_list_answered=False`` so a mandatory
    multiple-choice question needs at least one option ticked.
    """
    if value is None or value == "":
        return False
    if not empty_list_answered and isinstance(value, (list, tuple)) and not value:
        return False
    return True


def deduplicate_responses(responses: Iterable[ResponseRecord]) -> list[ResponseRecord]:
    """Keep the last record per question id, preserving first-seen order."""
    latest: dict[str, ResponseRecord] = {}
    for record in responses:
        latest[record.question_id] = record
    return list(latest.values())


def classify_maturity(
    total_percentage: float, emerging_max: float = 40.0, strong_max: float = 79.0
) -> MaturityTier:
    """
    Map a total percentage onto a maturity tier.

    ``[0, 40]`` Emerging, ``(40, 79]`` Strong Foundation, above 79 Leading.
    """
    if total_percentage <= emerging_max:
        return MaturityTier.EMERGING
    if total_percentage <= strong_max:
        return MaturityTier.STRONG
    return MaturityTier.LEADING


class ScoreCalculator:
    def __init__(self, config: ScoringConfig | None = None, logger: logging.Logger | None = None):
        self.config = config or get_scoring_config()
        self.logger = logger or get_logger(__name__)

    def section_raw_score(self, dimension: ScoringDimension, responses: list[ResponseRecord]) -> int:
        points = self.config.points_per_question
        total = sum(normalize_response_value(r.value, r.question_type) * points for r in responses)
        raw = round_half_up(total)

        max_points = self.config.max_points(dimension)
        if raw > max_points:
            self.logger.warning(
                "Section %s scored %d of %d possible points; clamping (more answered questions than configured)",
                dimension.section_id,
                raw,
                max_points,
            )
            raw = max_points
        return max(raw, 0)

    def compute_scores(self, responses: Iterable[ResponseRecord]) -> Scores:
        """
        Compute section and total scores for a snapshot of responses.

        Responses for sections outside the configured dimensions are ignored and
        unanswered values contribute nothing. Pure: identical input yields identical output.
        """
        by_section: dict[str, list[ResponseRecord]] = {}
        for record in deduplicate_responses(responses):
            if not is_answered(record.value):
                continue
            by_section.setdefault(record.section_id, []).append(record)

        sections: list[SectionScore] = []
        for dimension in self.config.dimensions:
            raw = self.section_raw_score(dimension, by_section.get(dimension.section_id, []))
            max_points = self.config.max_points(dimension)
            sections.append(
                SectionScore(
                    dimension=dimension.key,
                    section_id=dimension.section_id,
                    raw_score=raw,
                    max_points=max_points,
                    percentage=(raw / max_points * 100) if max_points else 0.0,
                )
            )

        total_score = sum(s.raw_score for s in sections)
        total_max = self.config.total_max_points
        total_percentage = (total_score / total_max * 100) if total_max else 0.0

        return Scores(
            sections=tuple(sections),
            total_score=total_score,
            total_max_points=total_max,
            total_percentage=total_percentage,
            maturity_tier=classify_maturity(
                total_percentage,
                self.config.emerging_max_percentage,
                self.config.strong_max_percentage,
            ),
        )


def compute_scores(
    responses: Iterable[ResponseRecord], config: ScoringConfig | None = None
) -> Scores:
    return ScoreCalculator(config).compute_scores(responses)
