# app/infrastructure/repositories_rule.py
from __future__ import annotations

from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from ..domain.conditions import parse_condition
from ..domain.models import RuleScope, SuggestionRule
from .exceptions import MalformedRuleError
from .logging import log_database_operation as log_op
from .models import SuggestionRuleORM
from .repositories_base import BaseRepository as GenericBaseRepository


class SuggestionRuleRepo(GenericBaseRepository[SuggestionRuleORM]):
    """
    Read side of the rule store.

    Stored JSON conditions are validated here; a rule whose condition does not
    validate is returned flagged ``malformed`` so the engine can skip and report it
    without aborting the batch.
    """

    model = SuggestionRuleORM

    def to_domain(self, row: SuggestionRuleORM) -> SuggestionRule:
        malformed = False
        try:
            condition = parse_condition(row.condition, rule_id=row.id)
        except MalformedRuleError as e:
            self.logger.warning(
                "Suggestion rule %s has a malformed condition and will be skipped: %s",
                row.id,
                e.message,
            )
            condition = None
            malformed = True

        return SuggestionRule(
            id=row.id,
            scope=RuleScope(row.scope),
            scope_id=row.scope_id,
            condition=condition,
            suggestion=row.suggestion,
            priority=row.priority,
            weight=row.weight,
            is_active=row.is_active,
            malformed=malformed,
        )

    @log_op("rule.list_active")
    def list_active(self, scope: RuleScope) -> list[SuggestionRule]:
        try:
            rows = (
                self.s.query(SuggestionRuleORM)
                .filter(
                    SuggestionRuleORM.scope == scope.value,
                    SuggestionRuleORM.is_active.is_(True),
                )
                .order_by(SuggestionRuleORM.id)
                .all()
            )
        except SQLAlchemyError as e:
            self._raise_db_error(e, "rule.list_active")
        return [self.to_domain(row) for row in rows]

    @log_op("rule.create")
    def create_rule(
        self,
        scope: RuleScope,
        scope_id: str | None,
        suggestion: str,
        condition: dict[str, Any] | None = None,
        priority: int = 1,
        weight: float = 1.0,
        is_active: bool = True,
    ) -> SuggestionRuleORM:
        return super().create(
            scope=scope.value,
            scope_id=scope_id,
            condition=condition,
            suggestion=suggestion,
            priority=priority,
            weight=weight,
            is_active=is_active,
        )
