"""
Pydantic schemas for input validation at the boundaries of the scoring engine.

Rule conditions are validated here when rules are stored or loaded, so the
evaluator only ever sees a closed ``{metric, operator, threshold}`` structure.
"""

from __future__ import annotations

import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

OperatorName = Literal["lt", "lte", "gt", "gte", "eq", "contains"]
ScopeName = Literal["QUESTION", "SECTION", "ASSESSMENT"]


class BaseValidationSchema(BaseModel):
    """Base schema with common sanitising of free-text inputs."""

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    @field_validator("*", mode="before")
    def sanitize_strings(cls, v):
        """Strip script tags, inline HTML and control characters from strings."""
        if isinstance(v, str):
            cleaned = v.strip()
            cleaned = re.sub(
                r"<\s*script[^>]*>.*?<\s*/\s*script\s*>",
                "",
                cleaned,
                flags=re.IGNORECASE | re.DOTALL,
            )
            cleaned = re.sub(r"<[^>]+>", "", cleaned)
            cleaned = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]", "", cleaned)
            return cleaned
        return v


class RuleConditionInput(BaseModel):
    """A single numeric or equality comparison against a named metric."""

    model_config = ConfigDict(extra="forbid")

    metric: str = Field(..., pattern=r"^[a-z][a-z0-9_]*$", max_length=64)
    operator: OperatorName
    threshold: bool | float | str

    @model_validator(mode="after")
    def validate_threshold(self):
        if self.operator in ("lt", "lte", "gt", "gte") and isinstance(self.threshold, str):
            try:
                float(self.threshold)
            except ValueError:
                raise ValueError(
                    f"Operator '{self.operator}' needs a numeric threshold"
                ) from None
        return self


class SuggestionRuleInput(BaseValidationSchema):
    """Validation schema for administrator-authored suggestion rules."""

    scope: ScopeName
    scope_id: str | None = Field(None, max_length=64)
    suggestion: str = Field(..., min_length=1, max_length=5000)
    condition: RuleConditionInput | None = None
    priority: int = Field(1, ge=0, le=100)
    weight: float = Field(1.0, ge=0)
    is_active: bool = True

    @model_validator(mode="after")
    def validate_scope_target(self):
        if self.scope == "ASSESSMENT":
            if self.scope_id is not None:
                raise ValueError("Assessment-scoped rules cannot target a scope_id")
        elif not self.scope_id:
            raise ValueError(f"{self.scope.title()}-scoped rules require a scope_id")
        return self


def _check_answer_value(question_id: str, value: Any) -> None:
    if isinstance(value, dict):
        raise ValueError(f"Answer for {question_id} must be a scalar or a list")
    if isinstance(value, list) and not all(isinstance(item, str) for item in value):
        raise ValueError(f"Multiple-choice answer for {question_id} must list strings")


class ResponseValueInput(BaseModel):
    """A single answer: boolean, number, string, list of strings or None."""

    assessment_id: int = Field(..., gt=0)
    question_id: str = Field(..., min_length=1, max_length=64)
    value: Any = None

    @model_validator(mode="after")
    def validate_value(self):
        _check_answer_value(self.question_id, self.value)
        return self


class SectionAnswersInput(BaseModel):
    """A respondent's answers for one section, keyed by question id."""

    assessment_id: int = Field(..., gt=0)
    section_id: str = Field(..., min_length=1, max_length=64)
    answers: dict[str, Any] = Field(default_factory=dict)

    @field_validator("answers")
    def validate_answer_values(cls, v: dict[str, Any]) -> dict[str, Any]:
        for question_id, value in v.items():
            _check_answer_value(question_id, value)
        return v


class SectionReorderInput(BaseModel):
    section_id: str = Field(..., min_length=1, max_length=64)
    order: int = Field(..., ge=0)


class ValidationErrorDetail(BaseModel):
    field: str
    message: str
    value: Any = None


class ValidationResponse(BaseModel):
    success: bool
    errors: list[ValidationErrorDetail] = []
    data: dict[str, Any] | None = None


def validate_input(schema_class: type[BaseModel], data: dict[str, Any]) -> ValidationResponse:
    """
    Centralized validation function that returns structured validation results.

    Example:
        >>> result = validate_input(SectionReorderInput, {"section_id": "hr-section", "order": 2})
        >>> result.success
        True
    """
    try:
        validated = schema_class(**data)
        return ValidationResponse(success=True, data=validated.model_dump())
    except Exception as e:
        errors = []
        if hasattr(e, "errors"):
            for error in e.errors():
                errors.append(
                    ValidationErrorDetail(
                        field=".".join(str(x) for x in error["loc"]) or "general",
                        message=error["msg"],
                        value=error.get("input"),
                    )
                )
        else:
            errors.append(ValidationErrorDetail(field="general", message=str(e)))

        return ValidationResponse(success=False, errors=errors)
