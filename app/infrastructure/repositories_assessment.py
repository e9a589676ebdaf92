# app/infrastructure/repositories_assessment.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from ..domain.models import AssessmentStatus
from .exceptions import AssessmentNotFoundError
from .logging import log_database_operation as log_op
from .models import AssessmentORM, OrganizationORM, utcnow
from .repositories_base import BaseRepository as GenericBaseRepository


class OrganizationRepo(GenericBaseRepository[OrganizationORM]):
    model = OrganizationORM

    @log_op("organization.create")
    def create(self, **fields) -> OrganizationORM:
        return super().create(**fields)


class AssessmentRepo(GenericBaseRepository[AssessmentORM]):
    """
    Repository for assessments and their lifecycle state.

    Example:
        >>> repo = AssessmentRepo(session)
        >>> assessment = repo.get_by_id_required(12)
        >>> repo.mark_completed(assessment)
    """

    model = AssessmentORM
    not_found = AssessmentNotFoundError

    def __init__(self, session: Session):
        super().__init__(session)

    @log_op("assessment.get_required")
    def get_by_id_required(self, id_: int) -> AssessmentORM:
        return super().get_by_id_required(id_)

    @log_op("assessment.create")
    def create_for_organization(self, organization_id: int) -> AssessmentORM:
        return super().create(
            organization_id=organization_id,
            status=AssessmentStatus.IN_PROGRESS.value,
            started_at=utcnow(),
        )

    @log_op("assessment.mark_completed")
    def mark_completed(self, assessment: AssessmentORM, at: datetime | None = None) -> AssessmentORM:
        assessment.status = AssessmentStatus.COMPLETED.value
        assessment.completed_at = at or utcnow()
        self.s.flush()
        return assessment

    @log_op("assessment.mark_in_progress")
    def mark_in_progress(self, assessment: AssessmentORM) -> AssessmentORM:
        assessment.status = AssessmentStatus.IN_PROGRESS.value
        assessment.completed_at = None
        self.s.flush()
        return assessment
