"""
Condition evaluation for suggestion rules.

A condition is ``{metric, operator, threshold}``; the context maps metric names to the
values observed for one question, section or assessment. Evaluation is conservative:
anything that cannot be compared is a non-match, never an exception, so one bad rule
cannot abort a batch.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..infrastructure.exceptions import MalformedRuleError
from ..infrastructure.logging import get_logger
from .models import ConditionOperator, ConditionResult, RuleCondition
from .schemas import RuleConditionInput

logger = get_logger(__name__)


def parse_condition(raw: Any, rule_id: int | None = None) -> RuleCondition | None:
    """
    Validate a stored condition at the rule-store boundary.

    ``None`` and ``{}`` mean "always matches" and parse to ``None``.

    Raises:
        MalformedRuleError: If the structure, metric or operator is invalid
    """
    if raw is None or (isinstance(raw, Mapping) and not raw):
        return None
    if isinstance(raw, RuleCondition):
        return raw
    if not isinstance(raw, Mapping):
        raise MalformedRuleError(f"Condition must be an object, got {type(raw).__name__}", rule_id, raw)

    try:
        validated = RuleConditionInput(**raw)
    except PydanticValidationError as e:
        raise MalformedRuleError(f"Invalid condition: {e.errors()[0]['msg']}", rule_id, raw) from e
    except TypeError as e:
        raise MalformedRuleError(f"Invalid condition: {e}", rule_id, raw) from e

    return RuleCondition(
        metric=validated.metric,
        operator=ConditionOperator(validated.operator),
        threshold=validated.threshold,
    )


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return None if math.isnan(number) else number
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _equals(observed: Any, threshold: Any) -> bool:
    if isinstance(threshold, str) and not isinstance(observed, (int, float)):
        return str(observed) == threshold
    left, right = _as_number(observed), _as_number(threshold)
    if left is None or right is None:
        return observed == threshold
    return left == right


def _contains(observed: Any, threshold: Any) -> bool:
    if isinstance(observed, (list, tuple, set)):
        return threshold in observed or str(threshold) in {str(v) for v in observed}
    if observed is None:
        return False
    return str(threshold) in str(observed)


def evaluate(condition: RuleCondition | None, context: Mapping[str, Any]) -> ConditionResult:
    """
    Evaluate a condition against a metric context.

    Example:
        >>> cond = RuleCondition("percentage", ConditionOperator.LT, 60)
        >>> evaluate(cond, {"percentage": 59.99}).matched
        True
    """
    if condition is None:
        return ConditionResult(matched=True)

    if condition.metric not in context:
        logger.warning("Condition metric %r not available; treating as no match", condition.metric)
        return ConditionResult(matched=False)

    observed = context[condition.metric]
    threshold = condition.threshold

    match condition.operator:
        case ConditionOperator.EQ:
            return ConditionResult(_equals(observed, threshold), observed)
        case ConditionOperator.CONTAINS:
            return ConditionResult(_contains(observed, threshold), observed)
        case ConditionOperator.LT | ConditionOperator.LTE | ConditionOperator.GT | ConditionOperator.GTE:
            left, right = _as_number(observed), _as_number(threshold)
            if left is None or right is None:
                logger.warning(
                    "Cannot compare %r %s %r numerically; treating as no match",
                    observed,
                    condition.operator,
                    threshold,
                )
                return ConditionResult(matched=False, observed=observed)
            if condition.operator == ConditionOperator.LT:
                matched = left < right
            elif condition.operator == ConditionOperator.LTE:
                matched = left <= right
            elif condition.operator == ConditionOperator.GT:
                matched = left > right
            else:
                matched = left >= right
            return ConditionResult(matched, observed)
        case _:
            logger.warning("Unknown condition operator %r; treating as no match", condition.operator)
            return ConditionResult(matched=False, observed=observed)


def matches(condition: RuleCondition | None, context: Mapping[str, Any]) -> bool:
    return evaluate(condition, context).matched
