# app/infrastructure/repositories_section.py
from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from ..domain.models import RuleScope
from .exceptions import QuestionNotFoundError, SectionNotFoundError, ValidationError
from .logging import log_database_operation as log_op
from .models import QuestionORM, SectionORM, SuggestionRuleORM
from .repositories_base import BaseRepository as GenericBaseRepository


class SectionRepo(GenericBaseRepository[SectionORM]):
    """
    Repository for questionnaire sections.

    Section ``order`` values stay a gap-free, duplicate-free sequence across reorders.

    Example:
        >>> repo = SectionRepo(session)
        >>> repo.reorder("hr-section", 1)
        >>> [s.id for s in repo.list_ordered()]
        ['hr-section', 'governance-section', ...]
    """

    model = SectionORM
    not_found = SectionNotFoundError

    @log_op("section.list_ordered")
    def list_ordered(self) -> list[SectionORM]:
        return self.list(order_by=[SectionORM.order, SectionORM.id])

    @log_op("section.reorder")
    def reorder(self, section_id: str, new_order: int) -> list[SectionORM]:
        """
        Move one section to ``new_order``, shifting every section in between by one.

        Raises:
            SectionNotFoundError: If the section does not exist
            ValidationError: If ``new_order`` is outside the current order range
        """
        current = self.get_by_id_required(section_id)
        sections = self.list_ordered()
        orders = [s.order for s in sections]
        low, high = min(orders), max(orders)
        if not low <= new_order <= high:
            raise ValidationError(
                "order", f"Order must be between {low} and {high}", value=new_order
            )

        old_order = current.order
        for section in sections:
            if section.id == section_id:
                section.order = new_order
            elif old_order < new_order and old_order < section.order <= new_order:
                section.order -= 1
            elif old_order > new_order and new_order <= section.order < old_order:
                section.order += 1

        try:
            self.s.flush()
        except SQLAlchemyError as e:
            self._raise_db_error(e, "section.reorder")
        return sorted(sections, key=lambda s: s.order)


class QuestionRepo(GenericBaseRepository[QuestionORM]):
    model = QuestionORM
    not_found = QuestionNotFoundError

    @log_op("question.list_for_section")
    def list_for_section(self, section_id: str) -> list[QuestionORM]:
        return self.list(QuestionORM.section_id == section_id, order_by=[QuestionORM.order])

    @log_op("question.list_mandatory")
    def list_mandatory(self) -> list[QuestionORM]:
        return (
            self.s.query(QuestionORM)
            .join(SectionORM, SectionORM.id == QuestionORM.section_id)
            .filter(QuestionORM.mandatory.is_(True))
            .order_by(SectionORM.order, QuestionORM.order)
            .all()
        )

    @log_op("question.delete")
    def delete_with_dependents(self, question_id: str) -> None:
        """Delete a question together with its responses and question-scoped rules."""
        question = self.get_by_id_required(question_id)
        try:
            self.s.query(SuggestionRuleORM).filter(
                SuggestionRuleORM.scope == RuleScope.QUESTION.value,
                SuggestionRuleORM.scope_id == question_id,
            ).delete(synchronize_session="fetch")
        except SQLAlchemyError as e:
            self._raise_db_error(e, "question.delete_rules")
        # Responses go with the question through the ORM cascade
        self.delete(question)
