# app/infrastructure/repositories_suggestion.py
from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from ..domain.models import GeneratedSuggestion, RuleScope
from .logging import log_database_operation as log_op
from .models import GeneratedSuggestionORM
from .repositories_base import BaseRepository as GenericBaseRepository


class GeneratedSuggestionRepo(GenericBaseRepository[GeneratedSuggestionORM]):
    """
    Persisted suggestion sets, one per assessment.

    ``replace_for_assessment`` deletes and re-inserts inside the caller's transaction;
    the unit of work makes the swap all-or-nothing.
    """

    model = GeneratedSuggestionORM

    @staticmethod
    def to_domain(row: GeneratedSuggestionORM) -> GeneratedSuggestion:
        return GeneratedSuggestion(
            scope=RuleScope(row.scope),
            source_rule_id=row.source_rule_id,
            source_id=row.source_id,
            suggestion=row.suggestion,
            priority=row.priority,
            weight=row.weight,
            details=dict(row.details or {}),
        )

    @log_op("suggestion.replace_for_assessment")
    def replace_for_assessment(
        self, assessment_id: int, suggestions: list[GeneratedSuggestion]
    ) -> list[GeneratedSuggestionORM]:
        try:
            self.s.query(GeneratedSuggestionORM).filter(
                GeneratedSuggestionORM.assessment_id == assessment_id
            ).delete(synchronize_session="fetch")
            # Positions must be free before re-inserting under the unique constraint
            self.s.flush()

            rows = [
                GeneratedSuggestionORM(
                    assessment_id=assessment_id,
                    scope=item.scope.value,
                    source_rule_id=item.source_rule_id,
                    source_id=item.source_id,
                    suggestion=item.suggestion,
                    priority=item.priority,
                    weight=item.weight,
                    position=position,
                    details=item.details or None,
                )
                for position, item in enumerate(suggestions)
            ]
            self.s.add_all(rows)
            self.s.flush()
            return rows
        except SQLAlchemyError as e:
            self._raise_db_error(e, "suggestion.replace_for_assessment")

    @log_op("suggestion.delete_for_assessment")
    def delete_for_assessment(self, assessment_id: int) -> int:
        try:
            deleted = (
                self.s.query(GeneratedSuggestionORM)
                .filter(GeneratedSuggestionORM.assessment_id == assessment_id)
                .delete(synchronize_session="fetch")
            )
            self.s.flush()
            return int(deleted or 0)
        except SQLAlchemyError as e:
            self._raise_db_error(e, "suggestion.delete_for_assessment")

    @log_op("suggestion.list_for_assessment")
    def list_for_assessment(self, assessment_id: int) -> list[GeneratedSuggestion]:
        """Persisted suggestions: priority desc, weight desc, then insertion position."""
        try:
            rows = (
                self.s.query(GeneratedSuggestionORM)
                .filter(GeneratedSuggestionORM.assessment_id == assessment_id)
                .order_by(
                    GeneratedSuggestionORM.priority.desc(),
                    GeneratedSuggestionORM.weight.desc(),
                    GeneratedSuggestionORM.position,
                    GeneratedSuggestionORM.id,
                )
                .all()
            )
        except SQLAlchemyError as e:
            self._raise_db_error(e, "suggestion.list_for_assessment")
        return [self.to_domain(row) for row in rows]
