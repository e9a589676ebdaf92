# app/infrastructure/repositories_response.py
from __future__ import annotations

from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from ..domain.models import ResponseRecord
from .exceptions import ValidationError
from .logging import log_database_operation as log_op
from .models import QuestionORM, ResponseORM
from .repositories_base import BaseRepository as GenericBaseRepository


class ResponseRepo(GenericBaseRepository[ResponseORM]):
    """
    Repository for respondent answers.

    At most one row exists per (assessment, question); writes are upserts.
    """

    model = ResponseORM

    @log_op("response.upsert")
    def upsert(self, assessment_id: int, question_id: str, value: Any) -> ResponseORM:
        if assessment_id <= 0:
            raise ValidationError("assessment_id", "Assessment ID must be positive")

        try:
            obj = (
                self.s.query(ResponseORM)
                .filter_by(assessment_id=assessment_id, question_id=question_id)
                .one_or_none()
            )
            if obj is None:
                obj = ResponseORM(assessment_id=assessment_id, question_id=question_id)
                self.s.add(obj)
            obj.value = value
            self.s.flush()
            return obj
        except SQLAlchemyError as e:
            self._raise_db_error(e, "response.upsert")

    @log_op("response.list_for_assessment")
    def list_for_assessment(self, assessment_id: int) -> list[ResponseORM]:
        return (
            self.s.query(ResponseORM)
            .filter_by(assessment_id=assessment_id)
            .order_by(ResponseORM.updated_at, ResponseORM.id)
            .all()
        )

    @log_op("response.list_records")
    def list_records(self, assessment_id: int) -> list[ResponseRecord]:
        """
        Snapshot of an assessment's answers joined with question type and section.

        Ordered oldest update first, so a last-wins deduplication keeps the latest answer.
        """
        try:
            rows = (
                self.s.query(
                    ResponseORM.question_id,
                    ResponseORM.value,
                    QuestionORM.type,
                    QuestionORM.section_id,
                )
                .join(QuestionORM, QuestionORM.id == ResponseORM.question_id)
                .filter(ResponseORM.assessment_id == assessment_id)
                .order_by(ResponseORM.updated_at, ResponseORM.id)
                .all()
            )
        except SQLAlchemyError as e:
            self._raise_db_error(e, "response.list_records")

        return [
            ResponseRecord(
                question_id=question_id,
                value=value,
                question_type=question_type,
                section_id=section_id,
            )
            for question_id, value, question_type, section_id in rows
        ]
