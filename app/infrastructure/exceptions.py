"""
Custom exception classes for the assessment scoring engine.

Provides structured error handling with user-friendly messages and proper
error categorization for the failures the core cannot resolve locally.
"""

from __future__ import annotations

from typing import Any


class AssessmentEngineError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        user_message: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.user_message = user_message or self._get_default_user_message()

    def _get_default_user_message(self) -> str:
        """Provide a user-friendly version of the error message."""
        return "An unexpected error occurred. Please try again."

    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message}"


class ValidationError(AssessmentEngineError):
    """Raised when input validation fails."""

    def __init__(
        self, field: str, message: str, value: Any = None, details: dict[str, Any] | None = None
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=f"Validation failed for field '{field}': {message}",
            details=details or {"field": field, "value": value},
            user_message=f"Invalid {field.replace('_', ' ')}: {message}",
        )


class DatabaseError(AssessmentEngineError):
    """Raised when database operations fail."""

    def __init__(self, message: str, operation: str, details: dict[str, Any] | None = None):
        self.operation = operation
        super().__init__(
            message=f"Database error during {operation}: {message}",
            details=details or {"operation": operation},
            user_message="A database error occurred. Please try again in a moment.",
        )


class ConnectionError(DatabaseError):
    """Raised when database connection fails."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, operation="connection", details=details)


class IntegrityError(DatabaseError):
    """Raised when database integrity constraints are violated."""

    def __init__(
        self,
        message: str,
        constraint: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.constraint = constraint
        super().__init__(
            message=message,
            operation="integrity_check",
            details=details or {"constraint": constraint},
        )
        self.user_message = self._get_default_user_message()

    def _get_default_user_message(self) -> str:
        if self.constraint:
            if "unique" in self.constraint.lower():
                return "This item already exists or was saved concurrently. Please retry."
            elif "foreign" in self.constraint.lower():
                return "Referenced item no longer exists. Please refresh and try again."
        return "Data integrity constraint violated. Please check your input and try again."


class AssessmentNotFoundError(AssessmentEngineError):
    """Raised when an assessment identifier does not resolve."""

    def __init__(self, assessment_id: int):
        self.assessment_id = assessment_id
        super().__init__(
            message=f"Assessment with ID {assessment_id} not found",
            details={"assessment_id": assessment_id},
        )

    def _get_default_user_message(self) -> str:
        return "The selected assessment could not be found."


class NoResponsesError(AssessmentEngineError):
    """Raised when an operation needs at least one response but the assessment has none."""

    def __init__(self, assessment_id: int):
        self.assessment_id = assessment_id
        super().__init__(
            message=f"Assessment {assessment_id} has no responses",
            details={"assessment_id": assessment_id},
            user_message="Answer at least one question before generating recommendations.",
        )


class SectionNotFoundError(AssessmentEngineError):
    """Raised when a section is not found."""

    def __init__(self, section_id: str):
        self.section_id = section_id
        super().__init__(
            message=f"Section with ID {section_id} not found",
            details={"section_id": section_id},
            user_message="The selected section could not be found. Please refresh and try again.",
        )


class QuestionNotFoundError(AssessmentEngineError):
    """Raised when a question is not found."""

    def __init__(self, question_id: str):
        self.question_id = question_id
        super().__init__(
            message=f"Question with ID {question_id} not found",
            details={"question_id": question_id},
            user_message="The selected question could not be found. Please refresh and try again.",
        )


class MalformedRuleError(AssessmentEngineError):
    """Raised at the rule-store boundary when a stored condition cannot be parsed."""

    def __init__(self, message: str, rule_id: int | None = None, raw: Any = None):
        self.rule_id = rule_id
        self.raw = raw
        super().__init__(
            message=message,
            details={"rule_id": rule_id, "condition": raw},
            user_message="A suggestion rule has an invalid condition.",
        )



def handle_database_error(e: Exception, operation: str = "database operation") -> DatabaseError:
    """
    Convert generic database exceptions to appropriate custom exceptions.

    Args:
        e: The original exception
        operation: Description of the operation that failed

    Returns:
        Appropriate DatabaseError subclass

    Example:
        >>> try:
        ...     session.flush()
        >>> except SQLAlchemyError as e:
        ...     raise handle_database_error(e, "replace_suggestions") from e
    """
    error_msg = str(e).lower()

    if "connection" in error_msg or "timeout" in error_msg:
        return ConnectionError(str(e))
    elif "unique constraint" in error_msg or "duplicate" in error_msg:
        return IntegrityError(str(e), constraint="unique")
    elif "foreign key" in error_msg or "foreign_key" in error_msg:
        return IntegrityError(str(e), constraint="foreign_key")
    elif "check constraint" in error_msg:
        return IntegrityError(str(e), constraint="check")
    else:
        return DatabaseError(str(e), operation)


def create_user_friendly_error_message(error: Exception) -> str:
    """
    Create a user-friendly error message from any exception.

    Example:
        >>> error = AssessmentNotFoundError(42)
        >>> create_user_friendly_error_message(error)
        'The selected assessment could not be found.'
    """
    if isinstance(error, AssessmentEngineError):
        return error.user_message

    error_type = type(error).__name__
    messages = {
        "ValueError": "Invalid input provided. Please check your data and try again.",
        "KeyError": "Required information is missing. Please check your input.",
        "TypeError": "Incorrect data type provided. Please check your input format.",
    }
    return messages.get(
        error_type, "An unexpected error occurred. Please try again or contact support."
    )


def log_error_details(error: Exception, context: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Create structured error details for logging.

    Args:
        error: The exception to log
        context: Additional context information

    Returns:
        Dictionary with structured error details
    """
    details = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "context": context or {},
    }

    if isinstance(error, AssessmentEngineError):
        details.update({"user_message": error.user_message, "error_details": error.details})

    return details
