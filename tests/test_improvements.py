"""
Tests for the ambient infrastructure: validation, error handling, logging,
configuration and repository error conversion.
"""

import json
import logging
import os
import sys
import tempfile
import threading
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError as SQLIntegrityError
from sqlalchemy.exc import OperationalError

from app.domain.schemas import (
    ResponseValueInput,
    SectionAnswersInput,
    SuggestionRuleInput,
    validate_input,
)
from app.infrastructure.config import (
    DatabaseConfig,
    ScoringConfig,
    ScoringDimension,
    get_settings,
    load_settings_from_file,
    reset_settings,
)
from app.infrastructure.db import is_database_configured
from app.infrastructure.exceptions import (
    AssessmentNotFoundError,
    DatabaseError,
    IntegrityError,
    NoResponsesError,
    ValidationError,
    create_user_friendly_error_message,
    handle_database_error,
    log_error_details,
)
from app.infrastructure.logging import (
    LogContext,
    StructuredFormatter,
    clear_context,
    configure_test_logging,
    context_filter,
    get_logger,
    log_operation,
    set_context,
    setup_logging,
)
from app.infrastructure.models import OrganizationORM
from app.infrastructure.repositories import OrganizationRepo


class TestPydanticValidation:
    """Input validation at the engine boundary."""

    def test_rule_input_sanitises_suggestion_text(self):
        result = validate_input(
            SuggestionRuleInput,
            {
                "scope": "ASSESSMENT",
                "suggestion": "  <script>alert('x')</script>Publish <b>audited</b> accounts\x00  ",
            },
        )

        assert result.success is True
        assert result.data["suggestion"] == "Publish audited accounts"
        assert result.data["condition"] is None

    def test_rule_input_requires_scope_target(self):
        result = validate_input(SuggestionRuleInput, {"scope": "QUESTION", "suggestion": "Advice"})

        assert result.success is False
        assert result.errors

    def test_numeric_operator_needs_numeric_threshold(self):
        result = validate_input(
            SuggestionRuleInput,
            {
                "scope": "SECTION",
                "scope_id": "hr-section",
                "suggestion": "Advice",
                "condition": {"metric": "percentage", "operator": "gte", "threshold": "high"},
            },
        )
        assert result.success is False
        assert any("condition" in error.field for error in result.errors)

    def test_section_answers_reject_mixed_lists(self):
        result = validate_input(
            SectionAnswersInput,
            {"assessment_id": 1, "section_id": "programme-section", "answers": {"prog-q1": ["Policy", 3]}},
        )
        assert result.success is False

    def test_response_value_accepts_supported_shapes(self):
        for value in (True, 4, 2.5, "Monthly", ["Policy"], None):
            result = validate_input(
                ResponseValueInput, {"assessment_id": 1, "question_id": "gov-q1", "value": value}
            )
            assert result.success is True, value

    def test_response_value_rejects_bad_ids(self):
        result = validate_input(ResponseValueInput, {"assessment_id": 0, "question_id": "", "value": 1})
        fields = {error.field for error in result.errors}
        assert result.success is False
        assert {"assessment_id", "question_id"} <= fields


class TestErrorHandling:
    """Structured errors and user-friendly messages."""

    def test_validation_error_creation(self):
        error = ValidationError("scope_id", "is required", None)

        assert error.field == "scope_id"
        assert "is required" in str(error)
        assert error.user_message == "Invalid scope id: is required"
        assert "field" in error.details

    def test_not_found_is_distinct_from_no_responses(self):
        not_found = AssessmentNotFoundError(12)
        empty = NoResponsesError(12)

        assert not isinstance(empty, AssessmentNotFoundError)
        assert not_found.details == {"assessment_id": 12}
        assert "could not be found" in create_user_friendly_error_message(not_found)
        assert "Answer at least one question" in create_user_friendly_error_message(empty)

    def test_database_error_handling(self):
        original_error = SQLIntegrityError("statement", {}, Exception("UNIQUE constraint failed"))
        db_error = handle_database_error(original_error, "suggestion.replace_for_assessment")

        assert isinstance(db_error, IntegrityError)
        assert db_error.details["constraint"] == "unique"
        assert "already exists" in db_error.user_message

    def test_generic_database_error_keeps_operation(self):
        db_error = handle_database_error(
            OperationalError("DELETE", {}, Exception("disk I/O error")), "suggestion.delete"
        )
        assert type(db_error) is DatabaseError
        assert db_error.details["operation"] == "suggestion.delete"

    def test_error_hierarchy_is_what_the_engine_raises(self):
        from app.infrastructure import exceptions

        raised = {
            name
            for name, obj in vars(exceptions).items()
            if isinstance(obj, type) and issubclass(obj, exceptions.AssessmentEngineError)
        }
        assert raised == {
            "AssessmentEngineError",
            "ValidationError",
            "DatabaseError",
            "ConnectionError",
            "IntegrityError",
            "AssessmentNotFoundError",
            "NoResponsesError",
            "SectionNotFoundError",
            "QuestionNotFoundError",
            "MalformedRuleError",
        }

    def test_user_friendly_error_messages(self):
        assert "try again" in create_user_friendly_error_message(ValueError("boom")).lower()
        assert "missing" in create_user_friendly_error_message(KeyError("metric")).lower()

    def test_log_error_details(self):
        details = log_error_details(NoResponsesError(3), {"assessment_id": 3})

        assert details["error_type"] == "NoResponsesError"
        assert details["context"] == {"assessment_id": 3}
        assert details["error_details"] == {"assessment_id": 3}


class TestLogging:
    """Logging helpers and context propagation."""

    def test_logger_is_namespaced(self):
        assert get_logger("scoring").name == "app.scoring"
        assert get_logger("app.domain.scoring").name == "app.domain.scoring"

    def test_logging_configuration_writes_structured_file(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = os.path.join(temp_dir, "engine.log")
            try:
                setup_logging(level="DEBUG", log_file=log_file, structured=True, enable_console=False)
                with LogContext(assessment_id=42):
                    get_logger("test").info("Structured message")
                for handler in logging.getLogger("app").handlers:
                    handler.flush()

                with open(log_file, encoding="utf-8") as f:
                    entries = [json.loads(line) for line in f if line.strip()]
            finally:
                configure_test_logging()

        entry = next(e for e in entries if e["message"] == "Structured message")
        assert entry["assessment_id"] == 42
        assert entry["level"] == "INFO"

    def test_structured_formatter_includes_exceptions(self):
        try:
            raise NoResponsesError(5)
        except NoResponsesError:
            record = logging.LogRecord("app.test", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
        record.rule_id = 8

        payload = json.loads(StructuredFormatter().format(record))
        assert payload["rule_id"] == 8
        assert payload["exception"]["type"] == "NoResponsesError"

    def test_log_context_restores_previous_context(self):
        clear_context()
        set_context(operation="outer")
        with LogContext(assessment_id=7, operation="inner"):
            assert context_filter.context == {"operation": "inner", "assessment_id": 7}
        assert context_filter.context == {"operation": "outer"}
        clear_context()
        assert context_filter.context == {}

    def test_context_is_isolated_per_thread(self):
        seen = {}

        def worker():
            seen["context"] = context_filter.context

        clear_context()
        with LogContext(assessment_id=1):
            thread = threading.Thread(target=worker)
            thread.start()
            thread.join()
        assert seen["context"] == {}

    def test_log_operation_reraises_and_logs(self):
        mock_logger = logging.getLogger("app.test_log_operation")

        @log_operation("explode", logger=mock_logger)
        def explode():
            raise ValueError("bad input")

        with patch.object(mock_logger, "error") as mock_error:
            with pytest.raises(ValueError):
                explode()
        mock_error.assert_called_once()


class TestConfiguration:
    """Centralised configuration management."""

    def test_database_config_sqlite(self):
        config = DatabaseConfig(backend="sqlite", sqlite_path="./test")
        assert config.get_connection_url() == "sqlite:///test.db"
        assert DatabaseConfig(sqlite_path=":memory:").get_connection_url() == "sqlite:///:memory:"

    def test_database_config_mysql(self):
        config = DatabaseConfig(
            backend="mysql",
            mysql_host="localhost",
            mysql_user="test",
            mysql_password="pass",
            mysql_database="cso",
        )

        url = config.get_connection_url()
        assert url.startswith("mysql+pymysql://")
        assert "test:pass@localhost" in url
        assert config.get_engine_options()["pool_recycle"] == 3600

    def test_database_configuration_validation(self):
        with pytest.raises(ValueError):
            DatabaseConfig(backend="postgres")
        with pytest.raises(ValueError):
            DatabaseConfig(backend="mysql", mysql_user="")

    def test_scoring_defaults(self):
        config = ScoringConfig()

        assert [d.key for d in config.dimensions] == ["governance", "financial", "programme", "hr"]
        assert [config.max_points(d) for d in config.dimensions] == [115, 50, 30, 20]
        assert config.total_max_points == 215
        assert config.dimension_for_section("hr-section").key == "hr"
        assert config.dimension_for_section("unknown") is None

    def test_scoring_config_rejects_duplicate_bindings(self):
        dim = {"key": "governance", "section_id": "governance-section", "label": "Gov", "max_questions": 2}
        with pytest.raises(ValueError):
            ScoringConfig(dimensions=[ScoringDimension(**dim), ScoringDimension(**{**dim, "key": "other"})])
        with pytest.raises(ValueError):
            ScoringConfig(emerging_max_percentage=80, strong_max_percentage=79)

    def test_scoring_dimensions_from_environment(self, monkeypatch):
        monkeypatch.setenv(
            "SCORING_DIMENSIONS",
            json.dumps([{"key": "governance", "section_id": "gov", "label": "Gov", "max_questions": 10}]),
        )
        monkeypatch.setenv("SCORING_POINTS_PER_QUESTION", "10")
        config = ScoringConfig()
        assert config.total_max_points == 100

    def test_settings_override(self, monkeypatch):
        monkeypatch.setenv("APP_ENVIRONMENT", "testing")
        monkeypatch.setenv("APP_AUTO_GENERATE_SUGGESTIONS", "false")
        reset_settings()
        try:
            settings = get_settings()
            assert settings.app.environment == "testing"
            assert settings.app.auto_generate_suggestions is False
            assert settings.get_environment_info()["features"]["auto_generate_suggestions"] is False
        finally:
            monkeypatch.undo()
            reset_settings()

    def test_load_settings_from_json_file(self, tmp_path, monkeypatch):
        for key in ("SCORING_STRONG_MAX_PERCENTAGE", "APP_VERSION"):
            monkeypatch.delenv(key, raising=False)
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"scoring": {"strong_max_percentage": 75}, "app": {"version": "2.0.0"}}))
        try:
            settings = load_settings_from_file(str(path))
            assert settings.scoring.strong_max_percentage == 75
            assert settings.app.version == "2.0.0"
        finally:
            os.environ.pop("SCORING_STRONG_MAX_PERCENTAGE", None)
            os.environ.pop("APP_VERSION", None)
            reset_settings()

    def test_database_is_configured(self):
        assert is_database_configured() is True


class TestRepositoryPatterns:
    """Repository error conversion."""

    def test_create_converts_sqlalchemy_errors(self, session):
        repo = OrganizationRepo(session)
        repo.create(name="First", email="same@cso.org")

        with pytest.raises(IntegrityError):
            repo.create(name="Second", email="same@cso.org")

    def test_flush_failures_become_database_errors(self, session):
        repo = OrganizationRepo(session)
        failure = OperationalError("INSERT", {}, Exception("database is locked"))
        with patch.object(session, "flush", side_effect=failure):
            with pytest.raises(DatabaseError):
                repo.create(name="Locked CSO")

    def test_unit_of_work_converts_commit_failures(self, uow):
        with pytest.raises(IntegrityError):
            with uow.begin() as s:
                s.add(OrganizationORM(name="First", email="dup@cso.org"))
                s.add(OrganizationORM(name="Second", email="dup@cso.org"))

        with uow.begin() as s:
            assert s.query(OrganizationORM).count() == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
